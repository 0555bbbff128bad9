"""Content renderers for staticweb.

This module contains implementations of the ContentRenderer protocol
for the two content types a source directory may hold. Each renderer
handles a single type of content.

Key classes:
- MarkdownRenderer: Renders Markdown to HTML with heading IDs, external link
  targets and syntax highlighting.
- HTMLRenderer: Passes through HTML content.
- RendererRegistry: Picks the renderer for a file.
"""

from __future__ import annotations

import re
from pathlib import Path

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .html_utils import escape_html, minify_html
from .utils import is_html, is_markdown

_EXTERNAL_URL_RE = re.compile(r"^(?:[a-zA-Z][a-zA-Z0-9+.-]*:)?//")

MARKDOWN_PLUGINS = ["strikethrough", "footnotes", "table", "url", "def_list"]

_FORMATTER = HtmlFormatter(nowrap=False, cssclass="highlight")


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text.

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


def _is_external(url: str) -> bool:
    return bool(_EXTERNAL_URL_RE.match(url))


class _PageRenderer(mistune.HTMLRenderer):
    """Markdown renderer with heading anchors, blank-target external links and
    syntax highlighting."""

    def __init__(self):
        super().__init__(escape=False)
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        """Render a heading with an auto-generated, page-unique ID.

        Args:
            text: Heading text content.
            level: Heading level (1-6).
            **attrs: Additional attributes.

        Returns:
            HTML heading tag with id attribute.
        """
        base_id = _generate_heading_id(text)

        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id

        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def link(self, text: str, url: str, title: str | None = None) -> str:
        html = super().link(text, url, title)
        if _is_external(url):
            html = html.replace("<a ", '<a target="_blank" ', 1)
        return html

    def block_code(self, code: str, info: str | None = None) -> str:
        """Highlight a fenced code block when its language is known to Pygments.

        Unknown or missing languages fall back to an escaped ``<pre><code>``.
        """
        language = info.split()[0] if info and info.strip() else None
        if language:
            try:
                lexer = get_lexer_by_name(language, stripall=True)
            except ClassNotFound:
                pass
            else:
                return highlight(code, lexer, _FORMATTER)
        lang_class = f' class="language-{escape_html(language)}"' if language else ""
        return f"<pre><code{lang_class}>{escape_html(code)}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown content to HTML."""

    @property
    def source_type(self) -> str:
        """Return the source type identifier."""
        return "markdown"

    def can_render(self, path: Path) -> bool:
        """Check if this renderer can handle the given file.

        Args:
            path: Path to the source file.

        Returns:
            True if the file is a Markdown file.
        """
        return is_markdown(path)

    def render(self, content: str) -> str:
        """Render Markdown content to HTML.

        A fresh mistune instance is built per call so heading ID counters
        never leak between pages rendered on different threads.

        Args:
            content: Markdown source content.

        Returns:
            Rendered HTML.
        """
        markdown = mistune.create_markdown(
            renderer=_PageRenderer(), plugins=MARKDOWN_PLUGINS
        )
        return markdown(content)


class HTMLRenderer:
    """Passes through HTML content unchanged."""

    @property
    def source_type(self) -> str:
        """Return the source type identifier."""
        return "html"

    def can_render(self, path: Path) -> bool:
        return is_html(path)

    def render(self, content: str) -> str:
        return content


class RendererRegistry:
    """Registry for content renderers.

    New renderers can be added without modifying existing code.
    """

    def __init__(self):
        """Initialize the registry with default renderers."""
        self._renderers: list = []
        self.register(MarkdownRenderer())
        self.register(HTMLRenderer())

    def register(self, renderer) -> None:
        """Register a new renderer.

        Args:
            renderer: A ContentRenderer implementation.
        """
        self._renderers.append(renderer)

    def get_renderer(self, path: Path):
        """Get the appropriate renderer for a file.

        Args:
            path: Path to the source file.

        Returns:
            The first renderer that can handle the file, or None.
        """
        for renderer in self._renderers:
            if renderer.can_render(path):
                return renderer
        return None

    def render_file(self, path: Path, content: str, minify: bool = True) -> str:
        """Render a content file body to HTML and optionally minify it.

        Args:
            path: Path of the file (its suffix selects the renderer).
            content: File body, front matter already removed.
            minify: Whether to minify the rendered HTML.

        Returns:
            Rendered HTML.
        """
        renderer = self.get_renderer(path)
        html = renderer.render(content) if renderer else content
        return minify_html(html) if minify else html


# Default renderer registry instance
default_renderer_registry = RendererRegistry()
