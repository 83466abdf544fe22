"""Transformer adapters and discovery utilities."""

from __future__ import annotations

import importlib
import threading
from dataclasses import dataclass
from importlib import metadata
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from ..errors import SetupError
from ..logging import get_logger
from .base import (
    HotReloader,
    Lowerer,
    MarkupCompiler,
    ScriptTransformer,
    StyleResolver,
    StyleTransformer,
    TransformResult,
)
from .node import NodeBridge, NodeHotReloader, NodeLowerer, NodeMarkupCompiler, NodeScriptTransformer
from .sass import SassStyleTransformer

_ENTRY_POINT_GROUP = "melte.transformers"

STAGE_TYPES: Dict[str, type] = {
    "markup": MarkupCompiler,
    "script": ScriptTransformer,
    "style": StyleTransformer,
    "hot": HotReloader,
    "lowering": Lowerer,
}


@dataclass
class TransformerContext:
    """What a transformer factory may need to build its adapter."""

    project_root: Path
    node_executable: str = "node"
    _bridge: Optional[NodeBridge] = None

    @property
    def bridge(self) -> NodeBridge:
        if self._bridge is None:
            self._bridge = NodeBridge(self.project_root, executable=self.node_executable)
        return self._bridge


Factory = Callable[[TransformerContext], Any]

_BUILTIN_FACTORIES: Dict[str, Factory] = {
    "markup": lambda context: NodeMarkupCompiler(context.bridge),
    "script": lambda context: NodeScriptTransformer(context.bridge),
    "style": lambda context: SassStyleTransformer(
        [context.project_root, context.project_root / "node_modules"]
    ),
    "hot": lambda context: NodeHotReloader(context.bridge),
    "lowering": lambda context: NodeLowerer(context.bridge),
}


class TransformerSet:
    """Resolves one transformer per stage, building each at most once."""

    def __init__(self, factories: Mapping[str, Factory], context: TransformerContext) -> None:
        self._factories = dict(factories)
        self._context = context
        self._instances: Dict[str, Any] = {}
        self._lock = threading.Lock()

    @classmethod
    def of(cls, **instances: Any) -> "TransformerSet":
        """Build a set from ready-made adapters, e.g. deterministic test doubles."""
        unknown = set(instances) - set(STAGE_TYPES)
        if unknown:
            raise ValueError(f"Unknown transformer stages: {', '.join(sorted(unknown))}")
        transformer_set = cls({}, TransformerContext(project_root=Path.cwd()))
        for stage, instance in instances.items():
            transformer_set._instances[stage] = _coerce(stage, instance, transformer_set._context)
        return transformer_set

    def get(self, stage: str) -> Any:
        if stage not in STAGE_TYPES:
            raise KeyError(stage)
        with self._lock:
            if stage not in self._instances:
                factory = self._factories.get(stage)
                if factory is None:
                    raise SetupError(f"No transformer configured for the '{stage}' stage")
                self._instances[stage] = _coerce(stage, factory, self._context)
            return self._instances[stage]

    def has(self, stage: str) -> bool:
        return stage in self._instances or stage in self._factories

    def require_all(self) -> None:
        for stage in STAGE_TYPES:
            if self.has(stage):
                self.get(stage)

    @property
    def markup(self) -> MarkupCompiler:
        return self.get("markup")

    @property
    def script(self) -> ScriptTransformer:
        return self.get("script")

    @property
    def style(self) -> StyleTransformer:
        return self.get("style")

    @property
    def hot(self) -> HotReloader:
        return self.get("hot")

    @property
    def lowering(self) -> Lowerer:
        return self.get("lowering")


def load_transformers(
    project_root: Path,
    *,
    overrides: Optional[Mapping[str, Any]] = None,
    node_executable: str = "node",
    lazy: bool = False,
) -> TransformerSet:
    """Return the transformer set for a project.

    Built-in adapters are replaced by ``melte.transformers`` entry points, which
    are in turn replaced by ``overrides`` (instances, factories or
    ``module:attribute`` strings). Unless ``lazy`` is set, every stage is built
    immediately so a missing tool fails once at setup.
    """
    logger = get_logger("transformers")
    factories: Dict[str, Factory] = dict(_BUILTIN_FACTORIES)

    for entry in _iter_entry_points():
        if entry.name not in STAGE_TYPES:
            logger.warning("Ignoring transformer entry point for unknown stage '%s'", entry.name)
            continue
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - defensive guard
            raise SetupError(f"Failed to load transformer entry point '{entry.name}': {exc}") from exc
        factories[entry.name] = _as_factory(loaded)

    for stage, target in (overrides or {}).items():
        if stage not in STAGE_TYPES:
            raise ValueError(f"Unknown transformer stage '{stage}'")
        if isinstance(target, str):
            target = _import_target(target)
        factories[stage] = _as_factory(target)

    transformer_set = TransformerSet(
        factories, TransformerContext(project_root=project_root, node_executable=node_executable)
    )
    if not lazy:
        transformer_set.require_all()
    return transformer_set


def _as_factory(obj: Any) -> Factory:
    return lambda context: obj


def _coerce(stage: str, obj: Any, context: TransformerContext) -> Any:
    expected = STAGE_TYPES[stage]
    if isinstance(obj, expected):
        return obj
    if isinstance(obj, type) and issubclass(obj, expected):
        return obj()
    if callable(obj):
        instance = obj(context)
        if isinstance(instance, expected):
            return instance
        return _coerce(stage, instance, context)
    raise TypeError(f"Transformer for '{stage}' must be a {expected.__name__} or a factory for one")


def _import_target(target: str) -> Any:
    module_name, _, attribute = target.partition(":")
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attribute)
    except (ImportError, AttributeError) as exc:
        raise SetupError(f"Cannot import transformer '{target}': {exc}") from exc


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points(group=_ENTRY_POINT_GROUP)


__all__ = [
    "HotReloader",
    "Lowerer",
    "MarkupCompiler",
    "STAGE_TYPES",
    "ScriptTransformer",
    "StyleResolver",
    "StyleTransformer",
    "TransformResult",
    "TransformerContext",
    "TransformerSet",
    "load_transformers",
]
