"""Utility functions for staticweb.

Path predicates and small helpers shared by the block loader, the tree walker
and the live watcher.

Key functions:
    is_markdown: Check if a path is a Markdown file.
    is_html: Check if a path is an HTML file.
    is_content_file: Check if a file becomes a named block.
    is_override_file: Check if a file is an ``@``-prefixed block override.
    block_name: Block name for a content file.
    split_scope: Split a page scope into directory segments.
    remove_path: Remove a file or directory tree if it exists.
"""

from __future__ import annotations

import shutil
from pathlib import Path

OVERRIDE_PREFIX = "@"

# Removing a file with one of these suffixes changes a page rather than
# an asset, so the owning directory gets recompiled.
CONTENT_SUFFIXES = (".html", ".md", ".yml", ".yaml", ".json", ".cson")


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file.

    Args:
        path: Path to check.

    Returns:
        True if the file has .md extension (case-insensitive).
    """
    return path.suffix.lower() == ".md"


def is_html(path: Path) -> bool:
    """Check if a path is an HTML file.

    Args:
        path: Path to check.

    Returns:
        True if the file has .html extension (case-insensitive).
    """
    return path.suffix.lower() == ".html"


def is_override_file(path: Path) -> bool:
    return path.name.startswith(OVERRIDE_PREFIX)


def is_content_file(path: Path) -> bool:
    """Check if a file is loaded as a named block.

    Content files are ``.html`` and ``.md`` files whose name does not start
    with ``@``; ``@`` files are only read when a page references them.

    Args:
        path: Path to check.

    Returns:
        True if the file is a content file.
    """
    return (is_markdown(path) or is_html(path)) and not is_override_file(path)


def has_content_suffix(path: str | Path) -> bool:
    return str(path).lower().endswith(CONTENT_SUFFIXES)


def block_name(path: Path) -> str:
    """Return the block name for a content file (its name without extension)."""
    return path.stem


def split_scope(page: str | None) -> list[str]:
    """Split a page scope into directory segments.

    Args:
        page: Relative directory path such as ``"/blog/posts/"``, or None.

    Returns:
        Non-empty path segments, e.g. ``["blog", "posts"]``.

    Examples:
        >>> split_scope("/blog/posts/")
        ['blog', 'posts']

        >>> split_scope(None)
        []
    """
    if not page:
        return []
    return [part for part in page.replace("\\", "/").split("/") if part and part != "."]


def remove_path(path: Path) -> None:
    """Remove a file or directory tree; a missing path is not an error.

    Args:
        path: File or directory to remove.
    """
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()
