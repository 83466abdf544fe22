"""Write-side builder for v3 source maps."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from . import vlq
from ..models import SourceMap


@dataclass(frozen=True)
class _Entry:
    generated_line: int
    generated_column: int
    source: Optional[str]
    original_line: Optional[int]
    original_column: Optional[int]
    name: Optional[str]

    def sort_key(self) -> Tuple:
        return (
            self.generated_line,
            self.generated_column,
            self.source or "",
            self.original_line or 0,
            self.original_column or 0,
            self.name or "",
        )


class SourceMapGenerator:
    """Accumulates mappings and serialises them to a v3 map dictionary."""

    def __init__(self, file: Optional[str] = None) -> None:
        self.file = file
        self._entries: List[_Entry] = []
        self._sources: List[str] = []
        self._names: List[str] = []
        self._contents: Dict[str, str] = {}

    def add_mapping(
        self,
        *,
        generated: Tuple[int, int],
        original: Optional[Tuple[int, int]] = None,
        source: Optional[str] = None,
        name: Optional[str] = None,
    ) -> None:
        generated_line, generated_column = generated
        if generated_line < 1 or generated_column < 0:
            raise ValueError(f"Invalid generated position {generated!r}")
        if (original is None) != (source is None):
            raise ValueError("Original position and source must be given together")
        if original is not None and (original[0] < 1 or original[1] < 0):
            raise ValueError(f"Invalid original position {original!r}")

        if source is not None and source not in self._sources:
            self._sources.append(source)
        if name is not None and name not in self._names:
            self._names.append(name)
        self._entries.append(
            _Entry(
                generated_line=generated_line,
                generated_column=generated_column,
                source=source,
                original_line=original[0] if original else None,
                original_column=original[1] if original else None,
                name=name,
            )
        )

    def set_source_content(self, source: str, content: Optional[str]) -> None:
        if content is None:
            self._contents.pop(source, None)
        else:
            self._contents[source] = content

    def to_json(self) -> SourceMap:
        payload: SourceMap = {
            "version": 3,
            "sources": list(self._sources),
            "names": list(self._names),
            "mappings": self._serialize_mappings(),
        }
        if self.file is not None:
            payload["file"] = self.file
        if self._contents:
            payload["sourcesContent"] = [self._contents.get(source) for source in self._sources]
        return payload

    def _serialize_mappings(self) -> str:
        previous_line = 1
        previous_column = 0
        previous_source = 0
        previous_original_line = 0
        previous_original_column = 0
        previous_name = 0
        parts: List[str] = []
        last: Optional[_Entry] = None

        for entry in sorted(self._entries, key=_Entry.sort_key):
            if entry.generated_line != previous_line:
                parts.append(";" * (entry.generated_line - previous_line))
                previous_line = entry.generated_line
                previous_column = 0
            elif last is not None:
                if entry == last:
                    continue
                parts.append(",")

            segment = vlq.encode(entry.generated_column - previous_column)
            previous_column = entry.generated_column
            if entry.source is not None:
                source_index = self._sources.index(entry.source)
                segment += vlq.encode(source_index - previous_source)
                previous_source = source_index
                segment += vlq.encode(entry.original_line - 1 - previous_original_line)  # type: ignore[operator]
                previous_original_line = entry.original_line - 1  # type: ignore[operator]
                segment += vlq.encode(entry.original_column - previous_original_column)  # type: ignore[operator]
                previous_original_column = entry.original_column  # type: ignore[assignment]
                if entry.name is not None:
                    name_index = self._names.index(entry.name)
                    segment += vlq.encode(name_index - previous_name)
                    previous_name = name_index
            parts.append(segment)
            last = entry

        return "".join(parts)


__all__ = ["SourceMapGenerator"]
