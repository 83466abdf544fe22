"""Component compile pipeline with result caching."""

from __future__ import annotations

import asyncio
import functools
import json
import re
from collections import OrderedDict
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

from .cache_keys import CacheKey, NoCache, derive_cache_key
from .config import CompilerOptions, MelteConfig, is_production
from .errors import LoweringError, SetupError, report_exception, report_lowering_failure
from .host import InputFile
from .logging import get_logger
from .lowering import SecondStageLowering
from .models import CompiledArtifact, CompileOptions, CompileResult, Document, Stylesheet
from .postproc import HotReloadInstrumenter, strip_extracted_styles_with_map
from .preprocess import ScriptPreprocessor, StylePreprocessor, parse_html_sections, preprocess_markup
from .sourcemaps import compose_source_maps
from .stores import CompileCache, result_from_payload, result_to_payload
from .transformers import TransformerSet, load_transformers

DEFAULT_CACHE_SIZE = 1024 * 1024 * 10

_IDENTIFIER_UNSAFE = re.compile(r"[^a-z0-9_$]", re.IGNORECASE)


def component_name(basename: str) -> str:
    """Identifier for the component: basename up to its first dot, made JS-safe."""
    stem = basename.split(".", 1)[0]
    return _IDENTIFIER_UNSAFE.sub("_", stem)


def build_compile_options(
    document: Document, options: CompilerOptions, *, production: bool
) -> CompileOptions:
    """Translate compiler options into per-document markup compiler options."""
    compile_options = CompileOptions(
        filename=document.path,
        name=component_name(document.basename),
        dev=options.dev if options.dev is not None else not production,
    )

    # Components imported by server code are rendered, never mounted.
    if document.is_server:
        compile_options.generate = "ssr"
    else:
        compile_options.hydratable = options.hydratable is True
        compile_options.css = options.css is True

    if options.css_hash_prefix:
        prefix = options.css_hash_prefix
        compile_options.css_hash_prefix = prefix
        compile_options.css_hash = lambda hash_css, css: f"{prefix}{hash_css(css)}"

    return compile_options


class ComponentCompiler:
    """Compiles component documents and caches the results per cache key."""

    def __init__(
        self,
        options: CompilerOptions | None = None,
        *,
        transformers: TransformerSet | None = None,
        project_root: Path | None = None,
        production: bool | None = None,
        runtime_package: str | None = None,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ) -> None:
        self.options = options or CompilerOptions()
        self.project_root = (project_root or Path.cwd()).resolve()
        self.production = is_production() if production is None else production
        self.logger = get_logger("compiler")
        # Publishing only packages the plugin; transformers load on first use.
        self.transformers = transformers or load_transformers(
            self.project_root, lazy=self.options.is_publishing
        )
        self.runtime_package = runtime_package
        self.cache_size = cache_size
        self._lowering = SecondStageLowering(
            lambda: self.transformers.lowering,
            self.options,
            compiler_version=lambda: self.compiler_version,
            production=self.production,
            runtime_package=self.runtime_package,
        )
        self._memory: "OrderedDict[str, Tuple[CompileResult, int]]" = OrderedDict()
        self._memory_size = 0
        self._disk_cache: Optional[CompileCache] = None

    @classmethod
    def from_config(cls, config: MelteConfig, **kwargs: Any) -> "ComponentCompiler":
        """Build a compiler for the project described by a loaded configuration."""
        transformers = kwargs.pop("transformers", None) or load_transformers(
            config.root,
            overrides=config.transformers,
            node_executable=config.node_executable,
            lazy=config.options.is_publishing,
        )
        compiler = cls(
            config.options,
            transformers=transformers,
            project_root=config.root,
            runtime_package=kwargs.pop("runtime_package", None) or config.package_name,
            **kwargs,
        )
        if config.cache_dir is not None:
            compiler.set_disk_cache_directory(config.cache_dir)
        return compiler

    @property
    def compiler_version(self) -> str:
        return self.transformers.markup.version

    def hmr_available(self, file: InputFile) -> bool:
        return bool(file.hmr_available())

    def get_cache_key(self, file: InputFile) -> Union[CacheKey, NoCache]:
        return derive_cache_key(
            file.to_document(),
            self.options,
            hmr_available=self.hmr_available(file),
            compiler_version=self.compiler_version,
            production=self.production,
            runtime_package=self.runtime_package,
        )

    def set_disk_cache_directory(self, path: Path | str) -> None:
        directory = Path(path)
        self._disk_cache = CompileCache(directory / "compile-cache.json")
        self._lowering.set_disk_cache_directory(directory)

    def compile_result_size(self, result: CompileResult) -> int:
        if isinstance(result, list):
            return sum(len(section.data) for section in result)
        return len(result.data) + len(json.dumps(result.source_map))

    async def process_files_for_target(self, files: Sequence[InputFile]) -> List[Optional[CompileResult]]:
        """Compile (or recall) every file and register the results with the host.

        A failure in one document never discards its siblings. Errors that are
        not reportable against a document are raised once the batch finishes.
        """
        try:
            results = await asyncio.gather(
                *(self._process_file(file) for file in files), return_exceptions=True
            )
        finally:
            if self._disk_cache is not None:
                self._disk_cache.persist()
            self._lowering.persist()
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)

    async def compile_one_file(self, file: InputFile) -> Optional[CompileResult]:
        """Run the pipeline for one document; failures are reported and yield None."""
        document = file.to_document()
        sections = parse_html_sections(document.content)
        if sections is not None:
            return sections

        path = document.path
        loop = asyncio.get_running_loop()
        compile_options = build_compile_options(document, self.options, production=self.production)
        scripts = ScriptPreprocessor(path, lambda: self.transformers.script)
        styles = StylePreprocessor(
            file,
            transformer=lambda: self.transformers.style,
            project_root=self.project_root,
            inline_css=compile_options.css,
        )

        try:
            preprocessed = await preprocess_markup(
                document.content, filename=path, script=scripts.process, style=styles.process
            )
        except SetupError:
            raise
        except Exception as exc:
            self.logger.debug("Preprocessing failed for %s", path)
            report_exception(file, exc)
            return None

        try:
            markup, strip_map = strip_extracted_styles_with_map(preprocessed.code, path)
            markup_compiler = self.transformers.markup
            compiled = await loop.run_in_executor(None, markup_compiler.compile, markup, compile_options)
        except SetupError:
            raise
        except Exception as exc:
            self.logger.debug("Markup compilation failed for %s", path)
            report_exception(file, exc)
            return None

        markup_map = compose_source_maps(strip_map, preprocessed.map)
        artifact = CompiledArtifact(
            code=compiled.code,
            map=compose_source_maps(compiled.map, markup_map),
            stylesheets=list(preprocessed.stylesheets),
            meta=compiled.meta,
        )
        if compiled.css and compiled.css.strip() and not compile_options.css and not document.is_server:
            artifact.stylesheets.append(
                Stylesheet(path=f"{document.basename}.component.css", data=compiled.css, source_map=compiled.css_map)
            )

        hmr = self.hmr_available(file)
        if hmr:
            try:
                instrumenter = HotReloadInstrumenter(self.transformers.hot, package_name=self.runtime_package)
                artifact.code = await loop.run_in_executor(
                    None, instrumenter.instrument, path, artifact.code, artifact.meta, markup, compile_options
                )
            except SetupError:
                raise
            except Exception as exc:
                self.logger.debug("Hot reload instrumentation failed for %s", path)
                report_exception(file, exc)
                return None

        try:
            return await loop.run_in_executor(
                None, functools.partial(self._lowering.lower, artifact, path, hmr=hmr)
            )
        except LoweringError as exc:
            report_lowering_failure(file, exc)
            return None

    def add_compile_result(self, file: InputFile, result: CompileResult) -> None:
        if isinstance(result, list):
            for section in result:
                file.add_html(section)
            return
        for stylesheet in result.stylesheets:
            file.add_stylesheet(stylesheet)
        file.add_javascript(result)

    # ------------------------------------------------------------------
    # Internal helpers

    async def _process_file(self, file: InputFile) -> Optional[CompileResult]:
        key = self.get_cache_key(file)
        digest = key.digest() if isinstance(key, CacheKey) else None

        result = self._recall(digest) if digest else None
        if result is not None:
            self.logger.debug("Using cached compile result for %s", file.get_path_in_package())
        else:
            self.logger.debug("Compiling %s", file.get_path_in_package())
            result = await self.compile_one_file(file)
            if result is not None and digest:
                self._remember(digest, result)

        if result is not None:
            self.add_compile_result(file, result)
        return result

    def _recall(self, digest: str) -> Optional[CompileResult]:
        entry = self._memory.get(digest)
        if entry is not None:
            self._memory.move_to_end(digest)
            return entry[0]
        if self._disk_cache is None:
            return None
        payload = self._disk_cache.get(digest)
        result = result_from_payload(payload) if payload is not None else None
        if result is not None:
            self._remember(digest, result, persist=False)
        return result

    def _remember(self, digest: str, result: CompileResult, *, persist: bool = True) -> None:
        if persist and self._disk_cache is not None:
            self._disk_cache.store(digest, result_to_payload(result))
        size = self.compile_result_size(result)
        if size > self.cache_size:
            return
        previous = self._memory.pop(digest, None)
        if previous is not None:
            self._memory_size -= previous[1]
        self._memory[digest] = (result, size)
        self._memory_size += size
        while self._memory_size > self.cache_size:
            _, (_, evicted_size) = self._memory.popitem(last=False)
            self._memory_size -= evicted_size


__all__ = ["ComponentCompiler", "DEFAULT_CACHE_SIZE", "build_compile_options", "component_name"]
