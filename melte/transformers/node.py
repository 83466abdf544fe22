"""Adapters that run the JavaScript transformers through a Node.js bridge."""

from __future__ import annotations

import json
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Type

from ..errors import LoweringError, SetupError, SourcePosition, TransformError
from ..logging import get_logger
from ..models import CompileOptions
from .base import HotReloader, Lowerer, MarkupCompiler, ScriptTransformer, TransformResult

BRIDGE_SCRIPT = Path(__file__).resolve().parent / "js" / "bridge.js"


@dataclass
class BridgeRequest:
    """One call into the bridge script."""

    op: str
    payload: Dict[str, Any]
    root: str
    executable: str
    script: str


class NodeBridge:
    """Sends JSON requests to ``bridge.js`` and decodes its JSON replies."""

    def __init__(
        self,
        root: Path,
        *,
        executable: str = "node",
        runner: Callable[[BridgeRequest], str] | None = None,
    ) -> None:
        self.root = root
        self.executable = executable
        self.logger = get_logger("transformers.node")
        if runner is not None:
            self._runner = runner
        else:
            if shutil.which(executable) is None:
                raise SetupError(
                    f"Cannot find `{executable}`. Install Node.js to compile components."
                )
            self._runner = self._subprocess_runner

    def call(
        self,
        op: str,
        payload: Mapping[str, Any],
        *,
        error_type: Type[TransformError] = TransformError,
    ) -> Dict[str, Any]:
        request = BridgeRequest(
            op=op,
            payload=dict(payload),
            root=str(self.root),
            executable=self.executable,
            script=str(BRIDGE_SCRIPT),
        )
        self.logger.debug("Bridge call %s", op)
        raw = self._runner(request)
        try:
            response = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise RuntimeError(f"Node bridge returned invalid JSON for '{op}'") from exc
        if not isinstance(response, dict):
            raise RuntimeError(f"Node bridge returned an unexpected payload for '{op}'")
        if not response.get("ok"):
            raise _to_error(response.get("error"), error_type)
        result = response.get("result")
        return result if isinstance(result, dict) else {}

    def require(self, modules: Sequence[str], install_hint: str) -> None:
        """Raise ``SetupError`` unless every module resolves from the project root."""
        result = self.call("probe", {"modules": list(modules)})
        missing = result.get("missing") or []
        if missing:
            raise SetupError(
                f"Cannot find {', '.join(f'`{name}`' for name in missing)} in your application. "
                f"Please install it with `{install_hint}`."
            )

    @staticmethod
    def _subprocess_runner(request: BridgeRequest) -> str:
        args = [request.executable, request.script, request.op]
        stdin = json.dumps({"root": request.root, "payload": request.payload})
        try:
            completed = subprocess.run(
                args,
                input=stdin,
                check=True,
                capture_output=True,
                text=True,
                cwd=request.root,
            )
        except FileNotFoundError as exc:  # pragma: no cover - depends on environment
            raise SetupError(f"Unable to launch '{request.executable}'.") from exc
        except subprocess.CalledProcessError as exc:  # pragma: no cover - depends on environment
            raise RuntimeError(
                f"Node bridge failed with exit code {exc.returncode}: {exc.stderr.strip()}"
            ) from exc
        return completed.stdout


class NodeMarkupCompiler(MarkupCompiler):
    """Compiles markup with the project's svelte. The bridge derives the CSS hash from ``cssHashPrefix``."""

    def __init__(self, bridge: NodeBridge) -> None:
        self._bridge = bridge
        self._bridge.require(["svelte/compiler"], "npm install svelte")
        self._version: Optional[str] = None

    @property
    def version(self) -> str:
        if self._version is None:
            self._version = str(self._bridge.call("version", {}).get("version") or "unknown")
        return self._version

    def compile(self, source: str, options: CompileOptions) -> TransformResult:
        result = self._bridge.call("compile", {"source": source, "options": options.to_dict()})
        return TransformResult(
            code=result.get("code") or "",
            map=result.get("map"),
            css=result.get("css"),
            css_map=result.get("cssMap"),
            meta=result.get("meta") or {},
        )


class NodeScriptTransformer(ScriptTransformer):
    def __init__(self, bridge: NodeBridge) -> None:
        self._bridge = bridge
        self._bridge.require(["typescript"], "npm install typescript")

    def transform(
        self, content: str, *, filename: str, attributes: Mapping[str, Any]
    ) -> TransformResult:
        result = self._bridge.call("typescript", {"content": content, "filename": filename})
        return TransformResult(code=result.get("code") or "", map=result.get("map"))


class NodeHotReloader(HotReloader):
    def __init__(self, bridge: NodeBridge) -> None:
        self._bridge = bridge
        self._bridge.require(["svelte-hmr"], "npm install svelte-hmr")

    def make_hot(
        self,
        *,
        id: str,
        code: str,
        hot_options: Mapping[str, Any],
        compiled_meta: Mapping[str, Any],
        original_code: str,
        compile_options: CompileOptions,
    ) -> str:
        result = self._bridge.call(
            "hot",
            {
                "id": id,
                "code": code,
                "hotOptions": dict(hot_options),
                "compiledMeta": dict(compiled_meta),
                "originalCode": original_code,
                "compileOptions": compile_options.to_dict(),
            },
        )
        return str(result.get("code") or code)


class NodeLowerer(Lowerer):
    def __init__(self, bridge: NodeBridge) -> None:
        self._bridge = bridge
        self._bridge.require(["@babel/core", "@babel/preset-env"], "npm install @babel/core @babel/preset-env")

    def lower(self, code: str, *, filename: str) -> TransformResult:
        result = self._bridge.call(
            "babel", {"code": code, "filename": filename}, error_type=LoweringError
        )
        return TransformResult(code=result.get("code") or "", map=result.get("map"))


def _to_error(raw: Any, error_type: Type[TransformError]) -> TransformError:
    error = raw if isinstance(raw, dict) else {}
    message = str(error.get("message") or "Unknown Node bridge failure")
    start = error.get("start")
    position = None
    if isinstance(start, dict) and isinstance(start.get("line"), int):
        position = SourcePosition(line=start["line"], column=int(start.get("column") or 0))
    frame = error.get("frame")
    return error_type(message, start=position, frame=frame if isinstance(frame, str) else None)


__all__ = [
    "BRIDGE_SCRIPT",
    "BridgeRequest",
    "NodeBridge",
    "NodeHotReloader",
    "NodeLowerer",
    "NodeMarkupCompiler",
    "NodeScriptTransformer",
]
