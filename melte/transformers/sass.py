"""SCSS lowering through libsass."""

from __future__ import annotations

import base64
import json
import re
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from ..errors import SetupError
from .base import StyleResolver, StyleTransformer, TransformResult

_EMBEDDED_MAP = re.compile(
    r"\s*/\*# sourceMappingURL=data:application/json;(?:charset=[\w-]+;)?base64,([A-Za-z0-9+/=]+) \*/\s*$"
)


class SassStyleTransformer(StyleTransformer):
    """Compiles SCSS strings; every ``@import`` goes through the injected resolver."""

    def __init__(self, include_paths: Sequence[Path] = ()) -> None:
        try:
            import sass
        except ModuleNotFoundError as exc:
            raise SetupError(
                "Cannot find the `libsass` package. Please install it with `pip install libsass`."
            ) from exc
        self._sass = sass
        self.include_paths = [str(path) for path in include_paths]

    def transform(
        self,
        content: str,
        *,
        filename: str,
        attributes: Mapping[str, Any],
        resolve: StyleResolver,
    ) -> TransformResult:
        dependencies: List[str] = []

        def _importer(url: str) -> Optional[List[Tuple[str, str]]]:
            resolved = resolve(url)
            if resolved is None:
                return None
            dependencies.append(resolved)
            return [(resolved, Path(resolved).read_text(encoding="utf-8"))]

        compiled = self._sass.compile(
            string=content,
            include_paths=self.include_paths,
            importers=[(0, _importer)],
            output_style="expanded",
            source_map_embed=True,
            source_map_contents=True,
        )
        code, source_map = _split_embedded_map(compiled, filename)
        return TransformResult(code=code, map=source_map, dependencies=tuple(dependencies))


def _split_embedded_map(css: str, filename: str) -> Tuple[str, Optional[dict]]:
    match = _EMBEDDED_MAP.search(css)
    if match is None:
        return css, None
    source_map = json.loads(base64.b64decode(match.group(1)).decode("utf-8"))
    # libsass names string input "stdin"; attribute it to the owning document.
    sources = [filename if source == "stdin" else source for source in source_map.get("sources", [])]
    source_map["sources"] = sources
    return css[: match.start()] + "\n", source_map


__all__ = ["SassStyleTransformer"]
