"""Source map reading, writing and composition."""

from .compose import compose_source_maps
from .consumer import MappingEntry, OriginalPosition, SourceMapConsumer, load_map
from .generator import SourceMapGenerator
from .segments import LineIndex, SegmentMapBuilder

__all__ = [
    "LineIndex",
    "MappingEntry",
    "OriginalPosition",
    "SegmentMapBuilder",
    "SourceMapConsumer",
    "SourceMapGenerator",
    "compose_source_maps",
    "load_map",
]
