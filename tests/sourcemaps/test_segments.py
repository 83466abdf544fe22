"""Tests for the span-based map builder."""

from __future__ import annotations

from melte.sourcemaps import LineIndex, SegmentMapBuilder, SourceMapConsumer


def test_line_index_positions() -> None:
    index = LineIndex("ab\ncd\n")

    assert index.position(0) == (1, 0)
    assert index.position(1) == (1, 1)
    assert index.position(3) == (2, 0)
    assert index.position(6) == (3, 0)


def test_unchanged_text_has_no_map() -> None:
    original = "<p>hello</p>\n"
    builder = SegmentMapBuilder(original, "App.svelte")
    builder.copy(original, 0)

    assert builder.build() == (original, None)


def test_copied_tokens_keep_exact_columns_after_a_drop() -> None:
    original = "<b>gone</b>\n<p>keep me</p>"
    builder = SegmentMapBuilder(original, "App.svelte")
    builder.drop()
    builder.copy(original[11:], 11)

    code, source_map = builder.build()

    assert code == "\n<p>keep me</p>"
    consumer = SourceMapConsumer(source_map)
    position = consumer.original_position_for(2, 8)
    assert (position.line, position.column) == (2, 8)
    assert source_map["sourcesContent"] == [original]


def test_replacement_without_map_points_at_span_start() -> None:
    original = "<style>a{}</style>"
    builder = SegmentMapBuilder(original, "App.svelte")
    builder.copy(original[:7], 0)
    builder.replace("x\ny", 7)
    builder.copy(original[10:], 10)

    code, source_map = builder.build()

    assert code == "<style>x\ny</style>"
    consumer = SourceMapConsumer(source_map)
    assert consumer.original_position_for(1, 7).column == 7
    second = consumer.original_position_for(2, 0)
    assert (second.line, second.column) == (1, 7)
    closing = consumer.original_position_for(2, 1)
    assert (closing.line, closing.column) == (1, 10)
