"""Deterministic stand-ins for the JavaScript and SCSS toolchains."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from melte.errors import LoweringError, SourcePosition, TransformError
from melte.models import CompileOptions, SourceMap
from melte.postproc.hot_reload import HARDCODED_HOOK
from melte.sourcemaps import SourceMapGenerator
from melte.transformers import (
    HotReloader,
    Lowerer,
    MarkupCompiler,
    ScriptTransformer,
    StyleTransformer,
    TransformerSet,
    TransformResult,
)

_IMPORT = re.compile(r"""^\s*@import\s+['"]([^'"]+)['"];\s*$""", re.MULTILINE)


def shifted_line_map(text: str, filename: str, *, offset: int, content: str | None = None) -> SourceMap:
    """Map line ``n`` of ``text`` to generated line ``n + offset``."""
    generator = SourceMapGenerator()
    for number, line in enumerate(text.split("\n"), start=1):
        if line:
            generator.add_mapping(generated=(number + offset, 0), original=(number, 0), source=filename)
    if content is not None:
        generator.set_source_content(filename, content)
    return generator.to_json()


class FakeMarkupCompiler(MarkupCompiler):
    """Prefixes the markup with a header line and maps every line back."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.css_output: Optional[str] = None

    @property
    def version(self) -> str:
        return "3.0.0-test"

    def compile(self, source: str, options: CompileOptions) -> TransformResult:
        self.calls.append({"source": source, "options": options})
        if "<broken>" in source:
            raise TransformError("Unexpected token", start=SourcePosition(line=3, column=4))
        code = f"// compiled {options.name} ({options.generate})\n{source}"
        return TransformResult(
            code=code,
            map=shifted_line_map(source, options.filename, offset=1, content=source),
            css=self.css_output,
            meta={"vars": [], "ast": None},
        )


class FakeScriptTransformer(ScriptTransformer):
    """Drops ``: number`` annotations without moving any line."""

    def __init__(self) -> None:
        self.calls = 0

    def transform(self, content: str, *, filename: str, attributes: Mapping[str, Any]) -> TransformResult:
        self.calls += 1
        code = content.replace(": number", "")
        return TransformResult(code=code, map=shifted_line_map(code, filename, offset=0))


class FakeStyleTransformer(StyleTransformer):
    """Inlines ``@import`` lines through the resolver."""

    def __init__(self) -> None:
        self.calls = 0

    def transform(
        self,
        content: str,
        *,
        filename: str,
        attributes: Mapping[str, Any],
        resolve,
    ) -> TransformResult:
        self.calls += 1
        dependencies: List[str] = []

        def _inline(match: re.Match) -> str:
            url = match.group(1)
            resolved = resolve(url)
            if resolved is None:
                raise TransformError(f"File to import not found or unreadable: {url}")
            dependencies.append(resolved)
            return Path(resolved).read_text(encoding="utf-8").strip()

        code = _IMPORT.sub(_inline, content)
        return TransformResult(code=code, dependencies=tuple(dependencies))


class FakeHotReloader(HotReloader):
    """Appends the runtime import and two guarded calls using the hard-coded hook."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.error: Optional[Exception] = None

    def make_hot(self, *, id, code, hot_options, compiled_meta, original_code, compile_options) -> str:
        self.calls.append({"id": id, "hot_options": dict(hot_options), "original_code": original_code})
        if self.error is not None:
            raise self.error
        return (
            f"{code}\n"
            f"import hot from {hot_options['hotApi']!r};\n"
            f"if ({HARDCODED_HOOK}) {{ accept({id!r}); }}\n"
            f"if ({HARDCODED_HOOK}) {{ dispose(); }}"
        )


class FakeLowerer(Lowerer):
    """Prepends a strict-mode line; can be told to fail or produce nothing."""

    def __init__(self) -> None:
        self.calls = 0
        self.error: Optional[Exception] = None
        self.empty = False

    def lower(self, code: str, *, filename: str) -> TransformResult:
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.empty:
            return TransformResult(code="")
        return TransformResult(
            code=f'"use strict";\n{code}',
            map=shifted_line_map(code, filename, offset=1),
        )


def fake_transformers(**overrides: Any) -> TransformerSet:
    stages: Dict[str, Any] = {
        "markup": FakeMarkupCompiler(),
        "script": FakeScriptTransformer(),
        "style": FakeStyleTransformer(),
        "hot": FakeHotReloader(),
        "lowering": FakeLowerer(),
    }
    stages.update(overrides)
    return TransformerSet.of(**stages)


def positioned_lowering_error() -> LoweringError:
    return LoweringError(
        "Unexpected token (2:4)",
        start=SourcePosition(line=2, column=4),
        frame="  1 | let a\n> 2 | let b =\n    |     ^",
    )


__all__ = [
    "FakeHotReloader",
    "FakeLowerer",
    "FakeMarkupCompiler",
    "FakeScriptTransformer",
    "FakeStyleTransformer",
    "fake_transformers",
    "positioned_lowering_error",
    "shifted_line_map",
]
