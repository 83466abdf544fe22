"""Script block lowering."""

from __future__ import annotations

from typing import Callable

from ..logging import get_logger
from ..models import Block, PreprocessResult
from ..transformers.base import ScriptTransformer

TYPESCRIPT_LANGS = frozenset({"ts", "typescript"})


class ScriptPreprocessor:
    """Lowers ``lang="ts"`` blocks and passes every other script through."""

    def __init__(self, filename: str, transformer: Callable[[], ScriptTransformer]) -> None:
        self.filename = filename
        # Resolved on first TypeScript block so plain components never need the tool.
        self._transformer = transformer
        self.logger = get_logger("preprocess.script")

    def process(self, block: Block) -> PreprocessResult:
        if block.lang not in TYPESCRIPT_LANGS:
            return PreprocessResult(code=block.content)
        self.logger.debug("Lowering TypeScript block in %s", self.filename)
        result = self._transformer().transform(
            block.content, filename=self.filename, attributes=block.attributes
        )
        return PreprocessResult(code=result.code, map=result.map, dependencies=result.dependencies)


__all__ = ["ScriptPreprocessor", "TYPESCRIPT_LANGS"]
