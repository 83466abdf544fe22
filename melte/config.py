"""Configuration loading for melte (.melte.yml)."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

CONFIG_FILENAME = ".melte.yml"
ENV_MODE_KEYS = ("MELTE_ENV", "NODE_ENV")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class CompilerOptions:
    """Options recognised by the component compiler.

    ``dev`` left as ``None`` defers to the environment (see :func:`is_production`).
    """

    dev: Optional[bool] = None
    hydratable: bool = False
    css: bool = False
    css_hash_prefix: Optional[str] = None
    is_publishing: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MelteConfig:
    """Represents the settings defined in .melte.yml."""

    root: Path
    options: CompilerOptions = field(default_factory=CompilerOptions)
    cache_dir: Optional[Path] = None
    package_name: Optional[str] = None
    transformers: Dict[str, str] = field(default_factory=dict)
    node_executable: str = "node"


def is_production(environ: Mapping[str, str] | None = None) -> bool:
    """Return True when the first configured mode variable says ``production``."""
    env = os.environ if environ is None else environ
    for key in ENV_MODE_KEYS:
        value = env.get(key)
        if value:
            return value.strip().lower() == "production"
    return False


def load_config(config_path: Path) -> MelteConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return MelteConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    compiler_data = _as_dict(data.get("compiler"))
    options = CompilerOptions(
        dev=_as_bool(compiler_data.get("dev")),
        hydratable=_as_bool(compiler_data.get("hydratable")) or False,
        css=_as_bool(compiler_data.get("css")) or False,
        css_hash_prefix=_as_str(compiler_data.get("css_hash_prefix")),
        is_publishing=_as_bool(compiler_data.get("is_publishing")) or False,
    )

    cache_dir_str = _as_str(data.get("cache_dir"))
    cache_dir = root / cache_dir_str if cache_dir_str else None

    transformers: Dict[str, str] = {}
    for stage, target in _as_dict(data.get("transformers")).items():
        target_str = _as_str(target)
        if not target_str or ":" not in target_str:
            raise ConfigError(
                f"Transformer '{stage}' must be given as 'module:attribute', got {target!r}"
            )
        transformers[str(stage)] = target_str

    return MelteConfig(
        root=root,
        options=options,
        cache_dir=cache_dir,
        package_name=_as_str(data.get("package_name")),
        transformers=transformers,
        node_executable=_as_str(data.get("node")) or "node",
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


__all__ = [
    "CONFIG_FILENAME",
    "CompilerOptions",
    "ConfigError",
    "MelteConfig",
    "is_production",
    "load_config",
]
