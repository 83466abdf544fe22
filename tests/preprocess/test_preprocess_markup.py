"""Tests for splicing preprocessed blocks back into a document."""

from __future__ import annotations

import asyncio

from melte.models import Block, PreprocessResult, Stylesheet
from melte.preprocess import ScriptPreprocessor, preprocess_markup
from melte.sourcemaps import SourceMapConsumer
from tests._fixtures.transformers import FakeScriptTransformer

SOURCE = '<script lang="ts">\nlet n: number = 1;\n</script>\n<p>{n}</p>\n'


async def _passthrough_style(block: Block) -> PreprocessResult:
    return PreprocessResult(code=block.content)


def test_plain_scripts_pass_through_without_the_transformer() -> None:
    script = FakeScriptTransformer()
    preprocessor = ScriptPreprocessor("App.svelte", lambda: script)

    result = preprocessor.process(Block(kind="script", content="let a;", attributes={}, start=8, end=14))

    assert result.code == "let a;"
    assert script.calls == 0


def test_unchanged_documents_have_no_map() -> None:
    source = "<script>let a = 1;</script>\n<style>p {}</style>\n"
    preprocessor = ScriptPreprocessor("App.svelte", FakeScriptTransformer)

    result = asyncio.run(
        preprocess_markup(source, filename="App.svelte", script=preprocessor.process, style=_passthrough_style)
    )

    assert result.code == source
    assert result.map is None


def test_lowered_blocks_map_back_to_the_document() -> None:
    preprocessor = ScriptPreprocessor("App.svelte", FakeScriptTransformer)

    result = asyncio.run(
        preprocess_markup(SOURCE, filename="App.svelte", script=preprocessor.process, style=_passthrough_style)
    )

    assert result.code == '<script lang="ts">\nlet n = 1;\n</script>\n<p>{n}</p>\n'
    consumer = SourceMapConsumer(result.map)
    lowered = consumer.original_position_for(2, 0)
    assert (lowered.source, lowered.line, lowered.column) == ("App.svelte", 2, 0)
    markup = consumer.original_position_for(4, 3)
    assert (markup.line, markup.column) == (4, 3)
    assert result.map["sourcesContent"] == [SOURCE]


def test_dependencies_and_stylesheets_are_collected_in_order() -> None:
    source = "<style>a</style><style>b</style><style>c</style>"

    async def _style(block: Block) -> PreprocessResult:
        sheet = Stylesheet(path=f"{block.content}.css", data=block.content)
        return PreprocessResult(code="", dependencies=("shared.scss", f"{block.content}.scss"), stylesheets=(sheet,))

    result = asyncio.run(
        preprocess_markup(source, filename="App.svelte", script=lambda block: PreprocessResult(code=""), style=_style)
    )

    assert result.code == "<style></style><style></style><style></style>"
    assert result.dependencies == ("shared.scss", "a.scss", "b.scss", "c.scss")
    assert [sheet.path for sheet in result.stylesheets] == ["a.css", "b.css", "c.css"]
