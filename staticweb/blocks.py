"""Block loading for staticweb.

A source directory holds three kinds of entries:
- Subdirectories, compiled as child pages.
- Content files (``.html`` / ``.md`` not starting with ``@``), each rendered
  into a named block called after the file's stem. Their front matter
  configures the directory's page.
- Override files (``@name.html`` / ``@name.md``), read only when a page
  references ``{@name}``.

Reading is best-effort: a directory or file that cannot be read contributes
nothing, and compilation moves on.

Key classes:
- DirectoryContents: What one directory scan found.
- BlockLoader: Scans directories and reads override files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import parse_config_text, split_frontmatter
from .errors import FrontMatterParseError
from .renderers import RendererRegistry, default_renderer_registry
from .utils import OVERRIDE_PREFIX, block_name, is_content_file


@dataclass
class DirectoryContents:
    """Result of scanning one source directory.

    Attributes:
        subdirs: Child directories to descend into, sorted by name.
        blocks: Rendered content files keyed by block name.
        frontmatter: Parsed front matter per content file, in file order.
        errors: Front matter that failed to parse.
    """

    subdirs: list[Path] = field(default_factory=list)
    blocks: dict[str, str] = field(default_factory=dict)
    frontmatter: list[tuple[Path, dict[str, Any]]] = field(default_factory=list)
    errors: list[FrontMatterParseError] = field(default_factory=list)


class BlockLoader:
    """Loads named blocks from source directories.

    Attributes:
        renderer_registry: Registry used to render content files.
        minify: Whether rendered blocks are minified.
    """

    def __init__(
        self,
        renderer_registry: RendererRegistry | None = None,
        minify: bool = True,
    ):
        self.renderer_registry = renderer_registry or default_renderer_registry
        self.minify = minify

    def load(self, directory: Path, only_subdir: str | None = None) -> DirectoryContents:
        """Scan a directory once.

        Args:
            directory: Source directory.
            only_subdir: When given, the only subdirectory name to keep for
                descent (used by scoped compiles).

        Returns:
            The directory's subdirectories, blocks and front matter.
        """
        contents = DirectoryContents()
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError:
            return contents

        for entry in entries:
            try:
                is_dir = entry.is_dir()
            except OSError:
                continue
            if is_dir:
                if entry.name.startswith(OVERRIDE_PREFIX):
                    continue
                if only_subdir is not None and entry.name != only_subdir:
                    continue
                contents.subdirs.append(entry)
            elif is_content_file(entry):
                self._load_content_file(entry, contents)
        return contents

    def _load_content_file(self, path: Path, contents: DirectoryContents) -> None:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return
        raw, body = split_frontmatter(text)
        if raw is not None:
            try:
                contents.frontmatter.append((path, parse_config_text(raw, path)))
            except FrontMatterParseError as exc:
                contents.errors.append(exc)
        contents.blocks[block_name(path)] = self.renderer_registry.render_file(
            path, body, minify=self.minify
        )

    def read_override(self, directory: Path, name: str) -> str | None:
        """Read a local ``@name.html`` or ``@name.md`` override file.

        Args:
            directory: Source directory of the page being written.
            name: Block name.

        Returns:
            The rendered override, or None when neither file can be read.
        """
        for suffix in (".html", ".md"):
            path = directory / f"{OVERRIDE_PREFIX}{name}{suffix}"
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue
            return self.renderer_registry.render_file(path, text, minify=self.minify)
        return None
