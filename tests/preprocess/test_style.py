"""Tests for style block preprocessing and import resolution."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from melte.postproc import GLOBAL_STYLE_EXTRACTION
from melte.preprocess import StylePreprocessor, find_blocks, resolve_style_import
from tests._fixtures.project_builder import ProjectBuilder
from tests._fixtures.transformers import FakeStyleTransformer


@pytest.fixture
def styled_project(project: ProjectBuilder) -> ProjectBuilder:
    project.write(
        {
            "styles/_vars.scss": "$c: red;\n",
            "node_modules/theme/base.scss": "body { margin: 0; }\n",
            "imports/ui/local.scss": ".local {}\n",
            "imports/ui/App.svelte": "<h1>Hi</h1>\n",
        }
    )
    return project


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("styles/vars", "styles/_vars.scss"),
        ("/styles/vars", "styles/_vars.scss"),
        ("styles/_vars.scss", "styles/_vars.scss"),
        ("theme/base", "node_modules/theme/base.scss"),
        ("./local", "imports/ui/local.scss"),
        ("./local.scss", "imports/ui/local.scss"),
    ],
)
def test_imports_resolve_against_document_or_project_roots(
    styled_project: ProjectBuilder, url: str, expected: str
) -> None:
    root = styled_project.path()

    resolved = resolve_style_import(url, filename="imports/ui/App.svelte", project_root=root)

    assert resolved == root / expected


def test_relative_imports_never_fall_back_to_project_root(styled_project: ProjectBuilder) -> None:
    root = styled_project.path()

    resolved = resolve_style_import("./styles/vars", filename="imports/ui/App.svelte", project_root=root)

    assert resolved == root / "imports/ui/styles/vars"
    assert not resolved.exists()


def test_same_named_files_resolve_by_reference_style(styled_project: ProjectBuilder) -> None:
    styled_project.write({"local.scss": ".root {}\n"})
    root = styled_project.path()
    document = "imports/ui/App.svelte"

    assert resolve_style_import("local", filename=document, project_root=root) == root / "local.scss"
    assert resolve_style_import("./local", filename=document, project_root=root) == root / "imports/ui/local.scss"

    _, preprocessor = _preprocessor(styled_project, inline_css=True)
    from_root = asyncio.run(preprocessor.process(_block('<style lang="scss">@import "local";</style>')))
    from_document = asyncio.run(preprocessor.process(_block('<style lang="scss">@import "./local";</style>')))

    assert from_root.code == ".root {}"
    assert from_document.code == ".local {}"


def test_project_root_wins_over_node_modules(styled_project: ProjectBuilder) -> None:
    styled_project.write({"theme/base.scss": "/* app copy */\n"})
    root = styled_project.path()

    assert resolve_style_import("theme/base", filename="App.svelte", project_root=root) == root / "theme/base.scss"


def test_unresolved_imports_name_the_first_candidate(styled_project: ProjectBuilder) -> None:
    root = styled_project.path()

    assert resolve_style_import("nowhere", filename="App.svelte", project_root=root) == root / "nowhere"


def _preprocessor(project: ProjectBuilder, *, inline_css: bool, style: FakeStyleTransformer | None = None):
    file = project.component("imports/ui/App.svelte")
    preprocessor = StylePreprocessor(
        file,
        transformer=lambda: style or FakeStyleTransformer(),
        project_root=project.path(),
        inline_css=inline_css,
    )
    return file, preprocessor


def _block(markup: str):
    return find_blocks(markup)[0]


def test_global_scss_is_emitted_with_dependencies(styled_project: ProjectBuilder) -> None:
    file, preprocessor = _preprocessor(styled_project, inline_css=True)
    block = _block('<style lang="scss" global>@import "styles/vars";</style>')

    emission = asyncio.run(preprocessor.process(block))

    dependency = str(styled_project.path() / "styles/_vars.scss")
    assert emission.emit is True
    assert emission.code == GLOBAL_STYLE_EXTRACTION
    assert emission.dependencies == (dependency,)
    assert [sheet.path for sheet in emission.stylesheets] == ["App.svelte.css"]
    assert emission.stylesheets[0].data == "$c: red;"
    assert file.watched == [dependency]
    assert file.stylesheets == []


def test_scoped_scss_stays_inline_when_css_is_injected(styled_project: ProjectBuilder) -> None:
    _, preprocessor = _preprocessor(styled_project, inline_css=True)

    emission = asyncio.run(preprocessor.process(_block('<style lang="scss">@import "./local";</style>')))

    assert emission.emit is False
    assert emission.code == ".local {}"
    assert emission.stylesheets == ()


def test_every_scss_block_is_emitted_when_css_is_external(styled_project: ProjectBuilder) -> None:
    _, preprocessor = _preprocessor(styled_project, inline_css=False)

    first = asyncio.run(preprocessor.process(_block('<style lang="scss">.a {}</style>')))
    second = asyncio.run(preprocessor.process(_block('<style lang="scss">.b {}</style>')))

    assert first.stylesheets[0].path == "App.svelte.css"
    assert second.stylesheets[0].path == "App.svelte.1.css"


def test_plain_global_styles_are_emitted_without_lowering(styled_project: ProjectBuilder) -> None:
    style = FakeStyleTransformer()
    _, preprocessor = _preprocessor(styled_project, inline_css=True, style=style)

    emission = asyncio.run(preprocessor.process(_block("<style global>body { color: red; }</style>")))
    scoped = asyncio.run(preprocessor.process(_block("<style>p {}</style>")))

    assert emission.emit is True
    assert emission.stylesheets[0].data == "body { color: red; }"
    assert emission.stylesheets[0].source_map is None
    assert scoped.code == "p {}"
    assert scoped.emit is False
    assert style.calls == 0


def test_failed_lowering_is_reported_and_degrades_to_empty(styled_project: ProjectBuilder) -> None:
    file, preprocessor = _preprocessor(styled_project, inline_css=True)

    emission = asyncio.run(preprocessor.process(_block('<style lang="scss">@import "nowhere";</style>')))

    assert emission.code == ""
    assert emission.emit is False
    assert len(file.errors) == 1
    assert "nowhere" in file.errors[0].message


def test_resolver_only_returns_existing_files(styled_project: ProjectBuilder) -> None:
    _, preprocessor = _preprocessor(styled_project, inline_css=True)

    assert preprocessor.resolve("styles/vars") == str(styled_project.path() / "styles/_vars.scss")
    assert preprocessor.resolve("nowhere") is None


def test_documents_outside_root_use_their_own_directory(tmp_path: Path) -> None:
    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "_mixins.scss").write_text("", encoding="utf-8")

    resolved = resolve_style_import("./mixins", filename="pkg/Widget.svelte", project_root=tmp_path)

    assert resolved == tmp_path / "pkg" / "_mixins.scss"
