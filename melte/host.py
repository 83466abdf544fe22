"""Host build-system file abstraction and a filesystem-backed implementation."""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from .errors import ErrorReport
from .models import CompileOutput, Document, HtmlSection, Stylesheet

DEFAULT_ARCH = "web.browser"


class InputFile(ABC):
    """Contract the host exposes for each document handed to the compiler."""

    @abstractmethod
    def get_contents_as_string(self) -> str:
        """Return the raw document text."""

    @abstractmethod
    def get_path_in_package(self) -> str:
        """Return the package-relative path of the document."""

    @abstractmethod
    def get_source_hash(self) -> str:
        """Return a hash of the raw content."""

    @abstractmethod
    def get_arch(self) -> str:
        """Return the target architecture, e.g. ``web.browser`` or ``os.linux``."""

    @abstractmethod
    def get_package_name(self) -> Optional[str]:
        """Return the owning package, or None for application code."""

    @abstractmethod
    def error(self, report: ErrorReport) -> None:
        """Record a compile failure for this document."""

    @abstractmethod
    def add_javascript(self, output: CompileOutput) -> None:
        """Register the compiled module."""

    @abstractmethod
    def add_stylesheet(self, stylesheet: Stylesheet) -> None:
        """Register a standalone stylesheet."""

    @abstractmethod
    def add_html(self, section: HtmlSection) -> None:
        """Register a static head/body section."""

    @abstractmethod
    def read_and_watch_file(self, path: str) -> Optional[str]:
        """Read a dependency and ask the host to rebuild when it changes."""

    def get_basename(self) -> str:
        return self.get_path_in_package().replace("\\", "/").rsplit("/", 1)[-1]

    def hmr_available(self) -> bool:
        return False

    def to_document(self) -> Document:
        return Document(
            path=self.get_path_in_package(),
            content=self.get_contents_as_string(),
            arch=self.get_arch(),
            package_name=self.get_package_name(),
            source_hash=self.get_source_hash(),
        )


class LocalInputFile(InputFile):
    """Reads a document from disk and records everything registered against it."""

    def __init__(
        self,
        path: str,
        *,
        root: Path,
        content: Optional[str] = None,
        arch: str = DEFAULT_ARCH,
        package_name: Optional[str] = None,
        hmr: bool = False,
    ) -> None:
        self.root = root
        self.path = path.replace("\\", "/")
        self._content = content
        self.arch = arch
        self.package_name = package_name
        self.hmr = hmr
        self.errors: List[ErrorReport] = []
        self.javascript: List[CompileOutput] = []
        self.stylesheets: List[Stylesheet] = []
        self.html: List[HtmlSection] = []
        self.watched: List[str] = []

    def get_contents_as_string(self) -> str:
        if self._content is None:
            self._content = (self.root / self.path).read_text(encoding="utf-8")
        return self._content

    def get_path_in_package(self) -> str:
        return self.path

    def get_source_hash(self) -> str:
        return hashlib.sha1(self.get_contents_as_string().encode("utf-8")).hexdigest()

    def get_arch(self) -> str:
        return self.arch

    def get_package_name(self) -> Optional[str]:
        return self.package_name

    def hmr_available(self) -> bool:
        return self.hmr

    def error(self, report: ErrorReport) -> None:
        self.errors.append(report)

    def add_javascript(self, output: CompileOutput) -> None:
        self.javascript.append(output)

    def add_stylesheet(self, stylesheet: Stylesheet) -> None:
        self.stylesheets.append(stylesheet)

    def add_html(self, section: HtmlSection) -> None:
        self.html.append(section)

    def read_and_watch_file(self, path: str) -> Optional[str]:
        self.watched.append(path)
        try:
            return Path(path).read_text(encoding="utf-8")
        except OSError:
            return None


__all__ = ["DEFAULT_ARCH", "InputFile", "LocalInputFile"]
