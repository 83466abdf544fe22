"""Capability interfaces for the opaque third-party transformers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..models import CompileOptions, SourceMap

StyleResolver = Callable[[str], Optional[str]]


@dataclass
class TransformResult:
    """Narrow output contract shared by every transformer."""

    code: str
    map: Optional[SourceMap] = None
    dependencies: Tuple[str, ...] = ()
    diagnostics: List[str] = field(default_factory=list)
    css: Optional[str] = None
    css_map: Optional[SourceMap] = None
    meta: Dict[str, Any] = field(default_factory=dict)


class MarkupCompiler(ABC):
    """Turns preprocessed component markup into module code."""

    @property
    @abstractmethod
    def version(self) -> str:
        """Version string folded into cache keys."""

    @abstractmethod
    def compile(self, source: str, options: CompileOptions) -> TransformResult:
        """Compile ``source``; ``meta`` carries whatever hot reload needs later."""


class ScriptTransformer(ABC):
    """Lowers an alternate script language to plain JavaScript."""

    @abstractmethod
    def transform(
        self, content: str, *, filename: str, attributes: Mapping[str, Any]
    ) -> TransformResult:
        """Return lowered code with a map relative to ``content``."""


class StyleTransformer(ABC):
    """Lowers an alternate stylesheet language to CSS."""

    @abstractmethod
    def transform(
        self,
        content: str,
        *,
        filename: str,
        attributes: Mapping[str, Any],
        resolve: StyleResolver,
    ) -> TransformResult:
        """Return CSS; every file reached through ``resolve`` goes into ``dependencies``."""


class HotReloader(ABC):
    """Wraps compiled component code with a reload proxy."""

    @abstractmethod
    def make_hot(
        self,
        *,
        id: str,
        code: str,
        hot_options: Mapping[str, Any],
        compiled_meta: Mapping[str, Any],
        original_code: str,
        compile_options: CompileOptions,
    ) -> str:
        """Return instrumented code."""


class Lowerer(ABC):
    """Lowers a compiled module to the host's baseline syntax."""

    @abstractmethod
    def lower(self, code: str, *, filename: str) -> TransformResult:
        """Return lowered code; raise ``LoweringError`` for positioned failures."""


__all__ = [
    "HotReloader",
    "Lowerer",
    "MarkupCompiler",
    "ScriptTransformer",
    "StyleResolver",
    "StyleTransformer",
    "TransformResult",
]
