"""Tests for cache key derivation."""

from __future__ import annotations

from dataclasses import replace

from melte.cache_keys import PREPROCESS_VERSION, CacheKey, NoCache, derive_cache_key
from melte.config import CompilerOptions
from melte.models import Document


def _document(content: str = "<h1>Hello</h1>\n", **changes: object) -> Document:
    document = Document(
        path="imports/ui/App.svelte",
        content=content,
        arch="web.browser",
        package_name=None,
        source_hash="abc123",
    )
    return replace(document, **changes)


def _key(document: Document, options: CompilerOptions | None = None, **kwargs: object):
    params = {"hmr_available": False, "compiler_version": "3.0.0", "production": False}
    params.update(kwargs)
    return derive_cache_key(document, options or CompilerOptions(), **params)


def test_equal_inputs_produce_equal_keys() -> None:
    first = _key(_document())
    second = _key(_document())

    assert isinstance(first, CacheKey)
    assert first == second
    assert first.digest() == second.digest()
    assert first.preprocess_version == PREPROCESS_VERSION


def test_key_changes_with_every_input() -> None:
    baseline = _key(_document()).digest()

    variants = [
        _key(_document(source_hash="def456")),
        _key(_document(arch="os.linux.x86_64")),
        _key(_document(path="imports/ui/Other.svelte")),
        _key(_document(package_name="acme:widgets")),
        _key(_document(), CompilerOptions(hydratable=True)),
        _key(_document(), hmr_available=True),
        _key(_document(), compiler_version="3.1.0"),
        _key(_document(), production=True),
        _key(_document(), runtime_package="acme:melte"),
    ]

    digests = {variant.digest() for variant in variants}
    assert baseline not in digests
    assert len(digests) == len(variants)


def test_option_order_does_not_matter() -> None:
    key = _key(_document(), CompilerOptions(css=True, dev=False))
    assert [name for name, _ in key.options] == sorted(name for name, _ in key.options)


def test_production_flag_defaults_to_environment(monkeypatch) -> None:
    monkeypatch.setenv("NODE_ENV", "production")
    key = derive_cache_key(_document(), CompilerOptions(), hmr_available=False, compiler_version="3.0.0")
    assert key.production is True


def test_scss_documents_are_never_cached() -> None:
    content = '<style lang="scss">\n@import "vars";\n</style>\n'

    first = _key(_document(content))
    second = _key(_document(content))

    assert isinstance(first, NoCache)
    assert isinstance(second, NoCache)
    assert first != second


def test_single_quoted_scss_attribute_is_detected() -> None:
    assert isinstance(_key(_document("<style global lang='scss'></style>")), NoCache)
    assert isinstance(_key(_document('<style lang="css"></style>')), CacheKey)
