"""Map builder for text that is rebuilt from spans of one original document."""

from __future__ import annotations

import re
from bisect import bisect_right
from typing import List, Optional, Tuple

from ..models import SourceMap
from .consumer import MapInput, SourceMapConsumer
from .generator import SourceMapGenerator

_TOKEN = re.compile(r"[A-Za-z0-9_$]+|[^\sA-Za-z0-9_$]")


class LineIndex:
    """Converts string offsets into (1-based line, 0-based column) pairs."""

    def __init__(self, text: str) -> None:
        self._starts = [0] + [match.end() for match in re.finditer("\n", text)]

    def position(self, offset: int) -> Tuple[int, int]:
        line = bisect_right(self._starts, offset) - 1
        return line + 1, offset - self._starts[line]


def _shift(base: Tuple[int, int], line: int, column: int) -> Tuple[int, int]:
    if line == 1:
        return base[0], base[1] + column
    return base[0] + line - 1, column


class SegmentMapBuilder:
    """Appends copied or replaced spans and records where each one came from.

    Copied spans get a mapping at every line start and every token so column
    lookups stay exact. Replaced spans reuse the replacement's own map when
    one is given, otherwise each of their lines points at the span start.
    """

    def __init__(self, original: str, source: str) -> None:
        self.source = source
        self._index = LineIndex(original)
        self._generator = SourceMapGenerator()
        self._generator.set_source_content(source, original)
        self._parts: List[str] = []
        self._line = 1
        self._column = 0
        self._changed = False

    @property
    def changed(self) -> bool:
        return self._changed

    def copy(self, text: str, original_offset: int) -> None:
        """Append ``text`` found unchanged at ``original_offset`` in the original."""
        offset = original_offset
        for number, line_text in enumerate(text.split("\n")):
            generated_line = self._line + number
            base_column = self._column if number == 0 else 0
            if line_text:
                self._add((generated_line, base_column), offset)
                for match in _TOKEN.finditer(line_text):
                    if match.start():
                        self._add((generated_line, base_column + match.start()), offset + match.start())
            offset += len(line_text) + 1
        self._append(text)

    def replace(
        self,
        text: str,
        original_offset: int,
        text_map: Optional[MapInput] = None,
    ) -> None:
        """Append ``text`` standing in for the original span at ``original_offset``."""
        self._changed = True
        base_generated = (self._line, self._column)
        if text_map is not None:
            base_original = self._index.position(original_offset)
            consumer = SourceMapConsumer(text_map)
            own_source = self._own_source(consumer)
            for mapping in consumer.each_mapping():
                if mapping.source is None or mapping.source != own_source:
                    continue
                self._generator.add_mapping(
                    source=self.source,
                    generated=_shift(base_generated, mapping.generated_line, mapping.generated_column),
                    original=_shift(base_original, mapping.original_line, mapping.original_column),  # type: ignore[arg-type]
                )
        else:
            original = self._index.position(original_offset)
            for number, line_text in enumerate(text.split("\n")):
                if line_text:
                    column = base_generated[1] if number == 0 else 0
                    self._generator.add_mapping(
                        source=self.source,
                        generated=(base_generated[0] + number, column),
                        original=original,
                    )
        self._append(text)

    def drop(self) -> None:
        """Record that original text was removed without replacement."""
        self._changed = True

    def build(self) -> Tuple[str, Optional[SourceMap]]:
        """Return the rebuilt text and its map, or no map when nothing moved."""
        code = "".join(self._parts)
        if not self._changed:
            return code, None
        return code, self._generator.to_json()

    def _own_source(self, consumer: SourceMapConsumer) -> Optional[str]:
        # Replacement maps may also point into imported files; keep only the span itself.
        if self.source in consumer.sources:
            return self.source
        return consumer.sources[0] if consumer.sources else None

    def _add(self, generated: Tuple[int, int], original_offset: int) -> None:
        self._generator.add_mapping(
            source=self.source,
            generated=generated,
            original=self._index.position(original_offset),
        )

    def _append(self, text: str) -> None:
        self._parts.append(text)
        newlines = text.count("\n")
        if newlines:
            self._line += newlines
            self._column = len(text) - text.rfind("\n") - 1
        else:
            self._column += len(text)


__all__ = ["LineIndex", "SegmentMapBuilder"]
