"""Cache key derivation for component documents."""

from __future__ import annotations

import hashlib
import json
import random
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from .config import CompilerOptions, is_production
from .models import Document

# Bump to invalidate caches produced by older preprocessing logic.
PREPROCESS_VERSION = 9

SCSS_STYLE_PATTERN = re.compile(r"""<style[^>]+lang=['"]scss['"]""")


@dataclass(frozen=True)
class CacheKey:
    """Every input that can change the compiled output of one document."""

    options: Tuple[Tuple[str, Any], ...]
    path: str
    source_hash: str
    arch: str
    package_name: Optional[str]
    hmr_available: bool
    production: bool
    compiler_version: str
    runtime_package: Optional[str] = None
    preprocess_version: int = PREPROCESS_VERSION

    def digest(self) -> str:
        canonical = json.dumps(_to_payload(self), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class NoCache:
    """Key for documents whose imported files cannot be captured statically."""

    token: float


def derive_cache_key(
    document: Document,
    options: CompilerOptions,
    *,
    hmr_available: bool,
    compiler_version: str,
    production: Optional[bool] = None,
    runtime_package: Optional[str] = None,
) -> Union[CacheKey, NoCache]:
    """Return the cache key for ``document``, or a fresh :class:`NoCache` for SCSS content."""
    if SCSS_STYLE_PATTERN.search(document.content):
        # SCSS imports are only known after compiling, so never reuse these results.
        return NoCache(token=time.time() + random.random())

    return CacheKey(
        options=tuple(sorted(options.to_dict().items())),
        path=document.path,
        source_hash=document.source_hash,
        arch=document.arch,
        package_name=document.package_name,
        hmr_available=hmr_available,
        production=is_production() if production is None else production,
        compiler_version=compiler_version,
        runtime_package=runtime_package,
    )


def _to_payload(key: CacheKey) -> Dict[str, Any]:
    return {
        "options": dict(key.options),
        "path": key.path,
        "source_hash": key.source_hash,
        "arch": key.arch,
        "package_name": key.package_name,
        "hmr_available": key.hmr_available,
        "production": key.production,
        "runtime_package": key.runtime_package,
        "versions": {
            "compiler": key.compiler_version,
            "preprocess": key.preprocess_version,
        },
    }


__all__ = ["CacheKey", "NoCache", "PREPROCESS_VERSION", "SCSS_STYLE_PATTERN", "derive_cache_key"]
