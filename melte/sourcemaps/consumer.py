"""Read-side view of a v3 source map."""

from __future__ import annotations

import json
from bisect import bisect_right
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Union

from . import vlq

MapInput = Union[str, Mapping[str, object]]


@dataclass(frozen=True)
class MappingEntry:
    """One decoded segment. Lines are 1-based, columns 0-based."""

    generated_line: int
    generated_column: int
    source: Optional[str] = None
    original_line: Optional[int] = None
    original_column: Optional[int] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class OriginalPosition:
    source: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    name: Optional[str] = None


UNRESOLVED = OriginalPosition()


def load_map(raw: MapInput) -> Dict[str, object]:
    if isinstance(raw, str):
        loaded = json.loads(raw)
    else:
        loaded = dict(raw)
    if not isinstance(loaded, dict):
        raise ValueError("Source map must be a JSON object")
    if "sections" in loaded:
        raise ValueError("Indexed source maps are not supported")
    version = loaded.get("version", 3)
    if int(version) != 3:  # type: ignore[arg-type]
        raise ValueError(f"Unsupported source map version: {version}")
    return loaded


class SourceMapConsumer:
    """Decodes mappings once and answers position queries against them."""

    def __init__(self, raw: MapInput) -> None:
        data = load_map(raw)
        self.file = data.get("file")
        source_root = data.get("sourceRoot") or ""
        self.sources: List[str] = [
            _join(str(source_root), str(source)) for source in data.get("sources") or []  # type: ignore[union-attr]
        ]
        self.names: List[str] = [str(name) for name in data.get("names") or []]  # type: ignore[union-attr]
        contents = data.get("sourcesContent") or []
        self.sources_content: List[Optional[str]] = list(contents)  # type: ignore[arg-type]
        self._mappings = self._parse(str(data.get("mappings") or ""))
        self._by_line: Dict[int, List[MappingEntry]] = {}
        for mapping in self._mappings:
            self._by_line.setdefault(mapping.generated_line, []).append(mapping)
        self._columns = {
            line: [mapping.generated_column for mapping in items]
            for line, items in self._by_line.items()
        }

    def each_mapping(self) -> Iterator[MappingEntry]:
        """Yield mappings in generated order."""
        return iter(self._mappings)

    def original_position_for(self, line: int, column: int) -> OriginalPosition:
        """Resolve a generated position with greatest-lower-bound search on its line."""
        if line < 1 or column < 0:
            raise ValueError("Line must be >= 1 and column must be >= 0")
        columns = self._columns.get(line)
        if not columns:
            return UNRESOLVED
        index = bisect_right(columns, column) - 1
        if index < 0:
            return UNRESOLVED
        # Prefer the first of several segments sharing one generated column.
        while index > 0 and columns[index - 1] == columns[index]:
            index -= 1
        mapping = self._by_line[line][index]
        if mapping.source is None:
            return UNRESOLVED
        return OriginalPosition(
            source=mapping.source,
            line=mapping.original_line,
            column=mapping.original_column,
            name=mapping.name,
        )

    def source_content_for(self, source: str) -> Optional[str]:
        try:
            index = self.sources.index(source)
        except ValueError:
            return None
        if index < len(self.sources_content):
            return self.sources_content[index]
        return None

    def _parse(self, mappings: str) -> List[MappingEntry]:
        parsed: List[MappingEntry] = []
        source_index = 0
        original_line = 0
        original_column = 0
        name_index = 0
        for line_number, line in enumerate(mappings.split(";"), start=1):
            generated_column = 0
            for segment in line.split(","):
                if not segment:
                    continue
                values = vlq.decode_segment(segment)
                if len(values) not in (1, 4, 5):
                    raise ValueError(f"Invalid mapping segment {segment!r}")
                generated_column += values[0]
                if len(values) == 1:
                    parsed.append(MappingEntry(line_number, generated_column))
                    continue
                source_index += values[1]
                original_line += values[2]
                original_column += values[3]
                name = None
                if len(values) == 5:
                    name_index += values[4]
                    name = self.names[name_index]
                parsed.append(
                    MappingEntry(
                        generated_line=line_number,
                        generated_column=generated_column,
                        source=self.sources[source_index],
                        original_line=original_line + 1,
                        original_column=original_column,
                        name=name,
                    )
                )
        parsed.sort(key=lambda item: (item.generated_line, item.generated_column))
        return parsed


def _join(root: str, source: str) -> str:
    if not root or "://" in source or source.startswith("/"):
        return source
    return f"{root.rstrip('/')}/{source}"


__all__ = ["MappingEntry", "OriginalPosition", "SourceMapConsumer", "UNRESOLVED", "load_map"]
