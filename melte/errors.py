"""Error taxonomy and reporting helpers for compile stages."""

from __future__ import annotations

import traceback
from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple, Optional

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .host import InputFile

NO_OUTPUT_MESSAGE = "no output produced"


class SourcePosition(NamedTuple):
    """1-based line and 0-based column inside a stage's input."""

    line: int
    column: int


@dataclass
class ErrorReport:
    """Uniform failure shape handed to the host."""

    message: str
    line: int = 0
    column: int = 0


class MelteError(Exception):
    """Base class for melte failures."""


class SetupError(MelteError):
    """Raised when a required transformer is unavailable at construction time."""


class TransformError(MelteError):
    """Raised by a transformer with optional position information."""

    def __init__(
        self,
        message: str,
        *,
        start: Optional[SourcePosition] = None,
        frame: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.start = start
        self.frame = frame


class LoweringError(TransformError):
    """Raised when the second lowering pass rejects the compiled module."""


class NoOutputError(LoweringError):
    """The lowering pass returned without code or without a source map."""

    def __init__(self, message: str = NO_OUTPUT_MESSAGE) -> None:
        super().__init__(message)


def augment_with_trace(exc: BaseException) -> str:
    """Return the exception message followed by its full traceback."""
    message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
    trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return f"{message}\n{trace.rstrip()}"


def report_exception(file: "InputFile", exc: BaseException) -> ErrorReport:
    """Report a preprocess or compile failure against the owning document."""
    start = getattr(exc, "start", None)
    report = ErrorReport(
        message=augment_with_trace(exc),
        line=start.line if start else 0,
        column=start.column if start else 0,
    )
    file.error(report)
    return report


def format_code_frame(frame: str) -> str:
    """Prefix each frame line with a bar so hosts that trim whitespace keep the caret aligned."""
    return "\n".join(f"| {line}" for line in frame.split("\n"))


def report_lowering_failure(file: "InputFile", exc: Exception) -> ErrorReport:
    """Report a diagnosable lowering failure; re-raise anything unrecognised."""
    if not isinstance(exc, LoweringError):
        raise exc
    if exc.start is None and not isinstance(exc, NoOutputError):
        raise exc

    if exc.frame:
        message = f"{exc.message}\n\n{format_code_frame(exc.frame)}"
    elif exc.start is None:
        message = augment_with_trace(exc)
    else:
        message = exc.message

    report = ErrorReport(
        message=message,
        line=exc.start.line if exc.start else 0,
        column=exc.start.column if exc.start else 0,
    )
    file.error(report)
    return report


__all__ = [
    "ErrorReport",
    "LoweringError",
    "MelteError",
    "NO_OUTPUT_MESSAGE",
    "NoOutputError",
    "SetupError",
    "SourcePosition",
    "TransformError",
    "augment_with_trace",
    "format_code_frame",
    "report_exception",
    "report_lowering_failure",
]
