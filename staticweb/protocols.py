"""Protocol definitions for staticweb.

These protocols describe the seams between the compiler and its
collaborators, so renderers and watch callbacks can be swapped or faked in
tests without touching the compilation pipeline.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class ContentRenderer(Protocol):
    """Protocol for rendering content files to HTML.

    Implementations handle one content type (Markdown, HTML).
    """

    @abstractmethod
    def can_render(self, path: Path) -> bool:
        """Check if this renderer can handle the given file.

        Args:
            path: Path to the source file.

        Returns:
            True if this renderer can process the file.
        """
        ...

    @abstractmethod
    def render(self, content: str) -> str:
        """Render content to HTML.

        Args:
            content: Source content, front matter already removed.

        Returns:
            Rendered HTML.
        """
        ...

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Return the source type identifier (e.g., 'markdown', 'html')."""
        ...


@runtime_checkable
class WatchCallbacks(Protocol):
    """Callbacks a filesystem watcher delivers events to.

    Each callback receives the absolute path the event is about.
    """

    @abstractmethod
    def on_file_change(self, path: str) -> None:
        """A file was created or modified."""
        ...

    @abstractmethod
    def on_dir_add(self, path: str) -> bool:
        """A directory was created.

        Returns:
            True if the new directory should be watched from now on.
        """
        ...

    @abstractmethod
    def on_remove(self, path: str) -> bool:
        """A file or directory was removed.

        Returns:
            True if any watch on the removed path should be dropped.
        """
        ...
