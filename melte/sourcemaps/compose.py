"""Folding of stage-local source maps into one map onto the original document."""

from __future__ import annotations

from typing import Optional

from ..models import SourceMap
from .consumer import MapInput, SourceMapConsumer, load_map
from .generator import SourceMapGenerator


def compose_source_maps(
    later: Optional[MapInput], earlier: Optional[MapInput]
) -> Optional[SourceMap]:
    """Return a map from ``later``'s generated positions to ``earlier``'s originals.

    ``later`` must describe a transform whose input was ``earlier``'s output.
    A stage that produced no map does not move positions, so a missing map on
    either side is treated as the identity and the other map is returned.

    Entries of ``later`` without a source are dropped, as are entries whose
    original position does not resolve in ``earlier``. Only one document takes
    part in a compile, so the first embedded source text of ``earlier`` is
    carried over under its first source id.
    """
    if later is None:
        return None if earlier is None else load_map(earlier)
    if earlier is None:
        return load_map(later)

    earlier_data = load_map(earlier)
    later_consumer = SourceMapConsumer(later)
    earlier_consumer = SourceMapConsumer(earlier_data)
    result = SourceMapGenerator()

    for mapping in later_consumer.each_mapping():
        if mapping.source is None:
            continue
        position = earlier_consumer.original_position_for(
            mapping.original_line, mapping.original_column  # type: ignore[arg-type]
        )
        if position.source is None:
            continue
        result.add_mapping(
            source=position.source,
            original=(position.line, position.column),  # type: ignore[arg-type]
            generated=(mapping.generated_line, mapping.generated_column),
        )

    contents = earlier_data.get("sourcesContent")
    if contents and earlier_consumer.sources:
        result.set_source_content(earlier_consumer.sources[0], contents[0])  # type: ignore[index]

    return result.to_json()


__all__ = ["compose_source_maps"]
