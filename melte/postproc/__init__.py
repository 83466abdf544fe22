"""Post-compile transforms applied to markup and module code."""

from .extraction import (
    GLOBAL_STYLE_EXTRACTION,
    GLOBAL_STYLE_EXTRACTION_PATTERN,
    strip_extracted_styles,
    strip_extracted_styles_with_map,
)
from .hot_reload import HotReloadInstrumenter, hot_options, patch_runtime_hook

__all__ = [
    "GLOBAL_STYLE_EXTRACTION",
    "GLOBAL_STYLE_EXTRACTION_PATTERN",
    "HotReloadInstrumenter",
    "hot_options",
    "patch_runtime_hook",
    "strip_extracted_styles",
    "strip_extracted_styles_with_map",
]
