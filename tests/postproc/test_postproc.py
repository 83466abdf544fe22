"""Tests for placeholder stripping and hot-reload instrumentation."""

from __future__ import annotations

from melte.models import CompileOptions
from melte.postproc import (
    GLOBAL_STYLE_EXTRACTION,
    HotReloadInstrumenter,
    hot_options,
    patch_runtime_hook,
    strip_extracted_styles,
    strip_extracted_styles_with_map,
)
from melte.postproc.hot_reload import HARDCODED_HOOK, RUNTIME_HOOK
from melte.sourcemaps import SourceMapConsumer
from tests._fixtures.transformers import FakeHotReloader

PLACEHOLDER_BLOCK = f'<style lang="scss" global>{GLOBAL_STYLE_EXTRACTION}</style>'


def test_strip_removes_global_placeholders_only() -> None:
    markup = f"{PLACEHOLDER_BLOCK}\n<h1>Hi</h1>\n<style>{GLOBAL_STYLE_EXTRACTION}</style>"

    stripped = strip_extracted_styles(markup)

    assert stripped == f"\n<h1>Hi</h1>\n<style>{GLOBAL_STYLE_EXTRACTION}</style>"


def test_strip_is_idempotent() -> None:
    markup = f"<p>a</p>{PLACEHOLDER_BLOCK}<p>b</p>{PLACEHOLDER_BLOCK}"

    once = strip_extracted_styles(markup)

    assert once == "<p>a</p><p>b</p>"
    assert strip_extracted_styles(once) == once


def test_strip_leaves_real_global_styles_alone() -> None:
    markup = "<style global>body { margin: 0; }</style>"

    assert strip_extracted_styles(markup) == markup


def test_strip_with_map_reports_moved_positions() -> None:
    markup = f"{PLACEHOLDER_BLOCK}\n<h1>Hi</h1>"

    code, source_map = strip_extracted_styles_with_map(markup, "App.svelte")

    assert code == "\n<h1>Hi</h1>"
    position = SourceMapConsumer(source_map).original_position_for(2, 4)
    assert (position.source, position.line, position.column) == ("App.svelte", 2, 4)


def test_strip_with_map_returns_no_map_when_nothing_changes() -> None:
    assert strip_extracted_styles_with_map("<h1>Hi</h1>", "App.svelte") == ("<h1>Hi</h1>", None)


def test_patch_runtime_hook_replaces_first_occurrence_only() -> None:
    code = f"if ({HARDCODED_HOOK}) a();\nif ({HARDCODED_HOOK}) b();"

    patched = patch_runtime_hook(code)

    assert patched == f"if ({RUNTIME_HOOK}) a();\nif ({HARDCODED_HOOK}) b();"
    assert patch_runtime_hook("plain()") == "plain()"


def test_hot_options_point_at_runtime_package() -> None:
    assert hot_options("acme:melte") == {
        "meta": "module",
        "absoluteImports": False,
        "hotApi": "meteor/acme:melte/hmr-runtime.js",
        "preserveLocalState": False,
        "adapter": "meteor/acme:melte/proxy-adapter.js",
    }


def test_instrumenter_passes_component_context_to_reloader() -> None:
    reloader = FakeHotReloader()
    instrumenter = HotReloadInstrumenter(reloader)
    options = CompileOptions(filename="App.svelte", name="App", dev=True)

    code = instrumenter.instrument("App.svelte", "export default App;", {"vars": []}, "<h1>Hi</h1>", options)

    assert code.startswith("export default App;\n")
    assert code.count(RUNTIME_HOOK) == 1
    call = reloader.calls[0]
    assert call["id"] == "App.svelte"
    assert call["original_code"] == "<h1>Hi</h1>"
    assert call["hot_options"]["hotApi"] == "meteor/r00t3g:melte/hmr-runtime.js"
