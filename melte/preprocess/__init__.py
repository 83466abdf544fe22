"""Per-block preprocessing of component documents."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List

from ..models import Block, PreprocessResult, Stylesheet
from ..sourcemaps.segments import SegmentMapBuilder
from .blocks import find_blocks, parse_attributes, parse_html_sections
from .script import ScriptPreprocessor
from .style import StylePreprocessor, resolve_style_import

ScriptHook = Callable[[Block], PreprocessResult]
StyleHook = Callable[[Block], Awaitable[PreprocessResult]]


async def preprocess_markup(
    source: str,
    *,
    filename: str,
    script: ScriptHook,
    style: StyleHook,
) -> PreprocessResult:
    """Run every block through its hook and splice the results back in.

    Blocks are processed concurrently and rejoined in document order. Script
    hooks are blocking and run in the default executor. The returned map
    points into ``source`` and is None when no block changed.
    """
    blocks = find_blocks(source)
    loop = asyncio.get_running_loop()

    async def _run(block: Block) -> PreprocessResult:
        if block.kind == "script":
            return await loop.run_in_executor(None, script, block)
        return await style(block)

    results: List[PreprocessResult] = list(await asyncio.gather(*(_run(block) for block in blocks)))

    builder = SegmentMapBuilder(source, filename)
    dependencies: List[str] = []
    stylesheets: List[Stylesheet] = []
    position = 0
    for block, result in zip(blocks, results):
        builder.copy(source[position:block.start], position)
        if result.code == block.content:
            builder.copy(block.content, block.start)
        else:
            builder.replace(result.code, block.start, result.map)
        dependencies.extend(result.dependencies)
        stylesheets.extend(result.stylesheets)
        position = block.end
    builder.copy(source[position:], position)

    code, source_map = builder.build()
    return PreprocessResult(
        code=code,
        map=source_map,
        dependencies=tuple(dict.fromkeys(dependencies)),
        stylesheets=tuple(stylesheets),
    )


__all__ = [
    "ScriptPreprocessor",
    "StylePreprocessor",
    "find_blocks",
    "parse_attributes",
    "parse_html_sections",
    "preprocess_markup",
    "resolve_style_import",
]
