"""Removal of style blocks that were emitted as standalone stylesheets."""

from __future__ import annotations

import re
from typing import Optional, Tuple

from ..models import SourceMap
from ..sourcemaps.segments import SegmentMapBuilder

GLOBAL_STYLE_EXTRACTION = "/** extracted into global style */"
GLOBAL_STYLE_EXTRACTION_PATTERN = re.compile(
    r"<style[^>]+global[^>]*>" + re.escape(GLOBAL_STYLE_EXTRACTION) + r"</style>"
)


def strip_extracted_styles(markup: str) -> str:
    """Drop every extracted-style placeholder block; idempotent."""
    return GLOBAL_STYLE_EXTRACTION_PATTERN.sub("", markup)


def strip_extracted_styles_with_map(
    markup: str, filename: str
) -> Tuple[str, Optional[SourceMap]]:
    """Like :func:`strip_extracted_styles`, plus a map back onto ``markup``.

    No map is returned when nothing was removed.
    """
    builder = SegmentMapBuilder(markup, filename)
    position = 0
    for match in GLOBAL_STYLE_EXTRACTION_PATTERN.finditer(markup):
        builder.copy(markup[position:match.start()], position)
        builder.drop()
        position = match.end()
    builder.copy(markup[position:], position)
    return builder.build()


__all__ = [
    "GLOBAL_STYLE_EXTRACTION",
    "GLOBAL_STYLE_EXTRACTION_PATTERN",
    "strip_extracted_styles",
    "strip_extracted_styles_with_map",
]
