"""Core data models shared across melte components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

SourceMap = Dict[str, Any]


@dataclass(frozen=True)
class Document:
    """A single component source as seen by one compile invocation."""

    path: str
    content: str
    arch: str
    package_name: Optional[str]
    source_hash: str

    @property
    def basename(self) -> str:
        return self.path.replace("\\", "/").rsplit("/", 1)[-1]

    @property
    def is_server(self) -> bool:
        return self.arch.startswith("os.")


@dataclass
class Block:
    """A demarcated script or style section of a document."""

    kind: str
    content: str
    attributes: Dict[str, Any]
    start: int
    end: int

    @property
    def lang(self) -> Optional[str]:
        value = self.attributes.get("lang")
        return value if isinstance(value, str) else None


@dataclass
class Stylesheet:
    """A stylesheet registered with the host next to the compiled module."""

    path: str
    data: str
    source_map: Optional[SourceMap] = None
    lazy: bool = False


@dataclass
class PreprocessResult:
    """Lowered code for one block or one document, plus side-channel facts."""

    code: str
    map: Optional[SourceMap] = None
    dependencies: Tuple[str, ...] = ()
    stylesheets: Tuple[Stylesheet, ...] = ()


@dataclass
class StyleEmission(PreprocessResult):
    """Style block result; ``emit`` means the block left the component as a stylesheet."""

    emit: bool = False


@dataclass
class CompileOptions:
    """Options handed to the markup compiler for one document.

    ``css_hash`` is only honoured by compilers running in Python. The Node
    bridge serialises ``to_dict()`` and rebuilds the hash from
    ``css_hash_prefix`` on the JavaScript side.
    """

    filename: str
    name: str
    dev: bool
    generate: str = "dom"
    hydratable: bool = False
    css: bool = False
    css_hash_prefix: Optional[str] = None
    css_hash: Optional[Callable[[Callable[[str], str], str], str]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "filename": self.filename,
            "name": self.name,
            "dev": self.dev,
            "generate": self.generate,
        }
        if self.generate != "ssr":
            payload["hydratable"] = self.hydratable
            payload["css"] = self.css
        if self.css_hash_prefix:
            payload["cssHashPrefix"] = self.css_hash_prefix
        return payload


@dataclass
class CompiledArtifact:
    """Module code produced by the markup compiler, mutated by later stages."""

    code: str
    map: Optional[SourceMap] = None
    stylesheets: List[Stylesheet] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CompileOutput:
    """Final module registered with the host."""

    source_path: str
    path: str
    data: str
    source_map: Optional[SourceMap] = None
    stylesheets: List[Stylesheet] = field(default_factory=list)


@dataclass
class HtmlSection:
    """Static head/body markup returned for documents that are not components."""

    section: str
    data: str


CompileResult = Union[CompileOutput, List[HtmlSection]]
