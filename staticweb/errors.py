"""Error types for staticweb.

Compilation distinguishes a single fatal condition (the source root is not a
directory) from per-page failures, which are collected while the rest of the
site keeps compiling and are raised together once every page is written.

Key classes:
- InvalidSourceRoot: The source directory is missing or not a directory.
- PageError: Base class for recoverable, per-page failures.
- CompileError: Aggregate of every PageError from one compile run.
- ErrorCollector: Thread-safe accumulator used by concurrent page writers.
"""

from __future__ import annotations

import threading
from pathlib import Path


class StaticWebError(Exception):
    """Base class for all staticweb errors."""


class InvalidSourceRoot(StaticWebError):
    """Raised when the source directory does not exist or is not a directory."""

    def __init__(self, source_path: Path):
        self.source_path = source_path
        super().__init__(f"src must be a directory: {source_path}")


class PageError(StaticWebError):
    """Recoverable error tied to a single source or output file.

    Attributes:
        source_path: Path to the file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


class FrontMatterParseError(PageError):
    """Front matter or a layout config file could not be parsed."""


class FileOpenError(PageError):
    """An output file could not be opened or written."""


class CompressionError(PageError):
    """Writing the gzip sibling of an output file failed."""


class CompileError(StaticWebError):
    """Every page error collected during one compile run.

    Attributes:
        errors: The collected PageError instances, in the order they occurred.
    """

    def __init__(self, errors: list[PageError]):
        self.errors = list(errors)
        lines = "\n".join(str(err) for err in self.errors)
        super().__init__(f"{len(self.errors)} page(s) failed to compile:\n{lines}")


class ErrorCollector:
    """Collects page errors from concurrent writers."""

    def __init__(self):
        self._errors: list[PageError] = []
        self._lock = threading.Lock()

    def add(self, error: PageError) -> None:
        with self._lock:
            self._errors.append(error)

    @property
    def errors(self) -> list[PageError]:
        with self._lock:
            return list(self._errors)

    def __bool__(self) -> bool:
        with self._lock:
            return bool(self._errors)

    def raise_if_any(self) -> None:
        """Raise a CompileError when at least one error was collected.

        Raises:
            CompileError: If any errors were added.
        """
        errors = self.errors
        if errors:
            raise CompileError(errors)
