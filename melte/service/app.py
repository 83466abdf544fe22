"""FastAPI application entrypoint for melte service mode."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..compiler import ComponentCompiler
from ..config import MelteConfig, load_config
from ..errors import SetupError
from ..host import DEFAULT_ARCH, LocalInputFile


class CompileRequest(BaseModel):
    path: str
    content: str
    arch: str = DEFAULT_ARCH
    package: Optional[str] = None
    hmr: bool = False


class StylesheetModel(BaseModel):
    path: str
    data: str
    source_map: Optional[Dict[str, Any]] = None


class HtmlSectionModel(BaseModel):
    section: str
    data: str


class ErrorModel(BaseModel):
    message: str
    line: int = 0
    column: int = 0


class CompileResponse(BaseModel):
    status: str
    code: Optional[str] = None
    source_map: Optional[Dict[str, Any]] = None
    stylesheets: List[StylesheetModel] = Field(default_factory=list)
    html: List[HtmlSectionModel] = Field(default_factory=list)
    errors: List[ErrorModel] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str


def _default_compiler(config: MelteConfig | None = None) -> Callable[[], ComponentCompiler]:
    def _factory() -> ComponentCompiler:
        return ComponentCompiler.from_config(config or load_config(Path.cwd()))

    return _factory


def create_app(
    compiler_factory: Callable[[], ComponentCompiler] | None = None,
) -> FastAPI:
    """Create the FastAPI application exposing the component compiler."""
    factory = compiler_factory or _default_compiler()
    app = FastAPI(title="Melte Service", version=__version__)

    async def get_compiler(request: Request) -> ComponentCompiler:
        # One compiler per app so transformers load once and the memory cache is shared.
        compiler = getattr(request.app.state, "compiler", None)
        if compiler is None:
            compiler = factory()
            request.app.state.compiler = compiler
        return compiler

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/compile", response_model=CompileResponse)
    async def compile_component(
        payload: CompileRequest,
        compiler: ComponentCompiler = Depends(get_compiler),
    ) -> CompileResponse:
        file = LocalInputFile(
            payload.path,
            root=compiler.project_root,
            content=payload.content,
            arch=payload.arch,
            package_name=payload.package,
            hmr=payload.hmr,
        )
        await compiler.process_files_for_target([file])

        response = CompileResponse(
            status="error" if file.errors else "ok",
            stylesheets=[
                StylesheetModel(path=sheet.path, data=sheet.data, source_map=sheet.source_map)
                for sheet in file.stylesheets
            ],
            html=[HtmlSectionModel(section=section.section, data=section.data) for section in file.html],
            errors=[
                ErrorModel(message=report.message, line=report.line, column=report.column)
                for report in file.errors
            ],
        )
        if file.javascript:
            output = file.javascript[-1]
            response.code = output.data
            response.source_map = output.source_map
        return response

    @app.exception_handler(SetupError)
    async def setup_error_handler(
        _: Any, exc: SetupError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000, config: MelteConfig | None = None
) -> None:  # pragma: no cover - integration path
    app = create_app(_default_compiler(config))
    uvicorn.run(app, host=host, port=port)


__all__ = ["CompileRequest", "CompileResponse", "create_app", "run_service"]
