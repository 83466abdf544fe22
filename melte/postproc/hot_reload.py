"""Hot-reload instrumentation for compiled components."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ..logging import get_logger
from ..models import CompileOptions
from ..transformers.base import HotReloader

DEFAULT_PACKAGE_NAME = "r00t3g:melte"

# The instrumenter emits this guard even when told to use ``module`` metadata.
HARDCODED_HOOK = "import.meta && import.meta.hot"
RUNTIME_HOOK = "module && module.hot"


def hot_options(package_name: str = DEFAULT_PACKAGE_NAME) -> Dict[str, Any]:
    """Options for the reload proxy, pointing at this package's runtime modules."""
    return {
        "meta": "module",
        "absoluteImports": False,
        "hotApi": f"meteor/{package_name}/hmr-runtime.js",
        "preserveLocalState": False,
        "adapter": f"meteor/{package_name}/proxy-adapter.js",
    }


def patch_runtime_hook(code: str) -> str:
    """Point the first hard-coded ``import.meta`` guard at the host's module hook."""
    return code.replace(HARDCODED_HOOK, RUNTIME_HOOK, 1)


class HotReloadInstrumenter:
    """Routes compiled component code through the reload proxy runtime."""

    def __init__(self, reloader: HotReloader, *, package_name: Optional[str] = None) -> None:
        self._reloader = reloader
        self.options = hot_options(package_name or DEFAULT_PACKAGE_NAME)
        self.logger = get_logger("postproc.hot_reload")

    def instrument(
        self,
        path: str,
        code: str,
        compiled_meta: Mapping[str, Any],
        original_markup: str,
        compile_options: CompileOptions,
    ) -> str:
        self.logger.debug("Instrumenting %s for hot reload", path)
        instrumented = self._reloader.make_hot(
            id=path,
            code=code,
            hot_options=self.options,
            compiled_meta=compiled_meta,
            original_code=original_markup,
            compile_options=compile_options,
        )
        return patch_runtime_hook(instrumented)


__all__ = [
    "DEFAULT_PACKAGE_NAME",
    "HARDCODED_HOOK",
    "HotReloadInstrumenter",
    "RUNTIME_HOOK",
    "hot_options",
    "patch_runtime_hook",
]
