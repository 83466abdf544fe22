"""Second lowering pass over compiled component modules."""

from __future__ import annotations

import hashlib
import json
import threading
from pathlib import Path
from typing import Callable, Dict, Optional

from . import __version__
from .cache_keys import PREPROCESS_VERSION
from .config import CompilerOptions
from .errors import NoOutputError
from .logging import get_logger
from .models import CompiledArtifact, CompileOutput
from .postproc.hot_reload import DEFAULT_PACKAGE_NAME, hot_options
from .sourcemaps import compose_source_maps
from .stores import CompileCache
from .transformers.base import Lowerer

OPTIONS_HASH_LENGTH = 6


def options_hash(options: CompilerOptions) -> str:
    """Short digest of the active options, stable across runs."""
    return _short_digest(options.to_dict())


def hot_options_hash(package_name: Optional[str] = None) -> str:
    """Short digest of the reload proxy options for ``package_name``."""
    return _short_digest(hot_options(package_name or DEFAULT_PACKAGE_NAME))


def _short_digest(payload: Dict[str, object]) -> str:
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.md5(canonical.encode("utf-8"), usedforsecurity=False).hexdigest()[:OPTIONS_HASH_LENGTH]


class SecondStageLowering:
    """Runs the injected lowerer and folds its map onto the artifact's map.

    The lowerer knows nothing about component options, so its cache lives in a
    directory per (options hash, hot reload runtime) pair. Development and
    production builds never share entries.
    """

    def __init__(
        self,
        lowerer: Callable[[], Lowerer],
        options: CompilerOptions,
        *,
        compiler_version: Callable[[], str],
        production: bool,
        runtime_package: Optional[str] = None,
    ) -> None:
        self._lowerer = lowerer
        self.options = options
        self._compiler_version = compiler_version
        self.production = production
        self.runtime_package = runtime_package
        self._disk_cache: Optional[Path] = None
        self._caches: Dict[Path, CompileCache] = {}
        self._lock = threading.Lock()
        self.logger = get_logger("lowering")

    def set_disk_cache_directory(self, path: Optional[Path]) -> None:
        with self._lock:
            self._disk_cache = path
            self._caches.clear()

    def partition_directory(self, *, hmr: bool) -> Optional[Path]:
        if self._disk_cache is None:
            return None
        hot = f"hmr-{hot_options_hash(self.runtime_package)}-" if hmr else ""
        discriminator = f"{hot}{__version__}"
        suffix = (
            f"-lowering-{self._compiler_version()}-{PREPROCESS_VERSION}-{str(self.production).lower()}"
            f"--{options_hash(self.options)}-{discriminator}"
        )
        return self._disk_cache.with_name(self._disk_cache.name + suffix)

    def lower(self, artifact: CompiledArtifact, path: str, *, hmr: bool) -> CompileOutput:
        cache = self._cache_for(hmr)
        key = hashlib.sha256(f"{path}\0{artifact.code}".encode("utf-8")).hexdigest()

        cached = cache.get(key) if cache is not None else None
        if cached is not None:
            self.logger.debug("Using cached lowering output for %s", path)
            code, lowered_map = cached.get("code"), cached.get("map")
        else:
            result = self._lowerer().lower(artifact.code, filename=path)
            code, lowered_map = result.code, result.map
            if code and lowered_map and cache is not None:
                cache.store(key, {"code": code, "map": lowered_map})

        if not code or not lowered_map:
            raise NoOutputError()

        return CompileOutput(
            source_path=path,
            path=path,
            data=code,
            source_map=compose_source_maps(lowered_map, artifact.map),
            stylesheets=list(artifact.stylesheets),
        )

    def persist(self) -> None:
        """Write every partition touched since the last call."""
        with self._lock:
            caches = list(self._caches.values())
        for cache in caches:
            cache.persist()

    def _cache_for(self, hmr: bool) -> Optional[CompileCache]:
        directory = self.partition_directory(hmr=hmr)
        if directory is None:
            return None
        with self._lock:
            if directory not in self._caches:
                self.logger.debug("Lowering cache partition %s", directory)
                self._caches[directory] = CompileCache(directory / "cache.json")
            return self._caches[directory]


__all__ = ["OPTIONS_HASH_LENGTH", "SecondStageLowering", "hot_options_hash", "options_hash"]
