"""Style block lowering, standalone emission and import resolution."""

from __future__ import annotations

import asyncio
import functools
import posixpath
from pathlib import Path
from typing import Callable, Optional, Sequence

from ..errors import report_exception
from ..host import InputFile
from ..logging import get_logger
from ..models import Block, SourceMap, StyleEmission, Stylesheet
from ..postproc.extraction import GLOBAL_STYLE_EXTRACTION
from ..transformers.base import StyleTransformer

SCSS_LANG = "scss"
_IMPORT_SUFFIXES = ("", ".scss", ".sass", ".css")


def resolve_style_import(url: str, *, filename: str, project_root: Path) -> Path:
    """Return the file an ``@import`` names.

    References starting with ``.`` are relative to the importing document's
    directory. Anything else (a leading ``/`` is ignored) is looked up in the
    project root first and its ``node_modules`` second. When nothing exists the
    first candidate is returned so the caller can report it.
    """
    if url.startswith("."):
        document_dir = posixpath.dirname(filename.replace("\\", "/"))
        roots = [project_root / document_dir]
    else:
        roots = [project_root, project_root / "node_modules"]
    target = url[1:] if url.startswith("/") else url

    for root in roots:
        found = _find_style_file(root / target)
        if found is not None:
            return found
    return roots[0] / target


def _find_style_file(path: Path) -> Optional[Path]:
    if path.is_file():
        return path
    for prefix in ("", "_"):
        for suffix in _IMPORT_SUFFIXES:
            candidate = path.with_name(f"{prefix}{path.name}{suffix}")
            if candidate.is_file():
                return candidate
    return None


class StylePreprocessor:
    """Lowers SCSS blocks and decides whether each block leaves the component."""

    def __init__(
        self,
        file: InputFile,
        *,
        transformer: Callable[[], StyleTransformer],
        project_root: Path,
        inline_css: bool,
    ) -> None:
        self.file = file
        self.filename = file.get_path_in_package()
        self.project_root = project_root
        self.inline_css = inline_css
        self._transformer = transformer
        self._emitted = 0
        self.logger = get_logger("preprocess.style")

    def should_emit(self, block: Block) -> bool:
        return "global" in block.attributes or not self.inline_css

    def resolve(self, url: str) -> Optional[str]:
        resolved = resolve_style_import(url, filename=self.filename, project_root=self.project_root)
        return str(resolved) if resolved.is_file() else None

    async def process(self, block: Block) -> StyleEmission:
        if block.lang != SCSS_LANG:
            if "global" in block.attributes and block.content.strip():
                return self._emit(block.content, None, ())
            return StyleEmission(code=block.content)

        stylesheet_path = self._next_stylesheet_path() if self.should_emit(block) else None
        transformer = self._transformer()
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(
                None,
                functools.partial(
                    transformer.transform,
                    block.content,
                    filename=self.filename,
                    attributes=block.attributes,
                    resolve=self.resolve,
                ),
            )
        except Exception as exc:
            self.logger.debug("SCSS lowering failed for %s: %s", self.filename, exc)
            report_exception(self.file, exc)
            return StyleEmission(code="")

        for dependency in result.dependencies:
            self.file.read_and_watch_file(dependency)

        if not self.should_emit(block):
            return StyleEmission(code=result.code, map=result.map, dependencies=result.dependencies)
        return self._emit(result.code, result.map, result.dependencies, path=stylesheet_path)

    def _emit(
        self,
        css: str,
        source_map: Optional[SourceMap],
        dependencies: Sequence[str],
        *,
        path: Optional[str] = None,
    ) -> StyleEmission:
        stylesheet = Stylesheet(
            path=path or self._next_stylesheet_path(),
            data=css,
            source_map=source_map,
            lazy=False,
        )
        self.logger.debug("Emitting %s as a standalone stylesheet", stylesheet.path)
        return StyleEmission(
            code=GLOBAL_STYLE_EXTRACTION,
            dependencies=tuple(dependencies),
            stylesheets=(stylesheet,),
            emit=True,
        )

    def _next_stylesheet_path(self) -> str:
        index = self._emitted
        self._emitted += 1
        basename = self.file.get_basename()
        return f"{basename}.css" if index == 0 else f"{basename}.{index}.css"


__all__ = ["SCSS_LANG", "StylePreprocessor", "resolve_style_import"]
