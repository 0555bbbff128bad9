"""Template store for staticweb.

Two templates ship with the package:
- ``layout.html``: the outer page skeleton, holding the ``{@head}`` and
  ``{@body}`` markers and the title/meta slots.
- ``body.html``: the default ``layout`` block that ``{@body}`` is replaced
  with, unless a directory provides its own ``layout.html`` content file.

Templates are read once per process and minification mode, then shared
read-only by every page writer.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from .html_utils import minify_html

# Path to the bundled template directory
TEMPLATES_DIR = Path(__file__).parent / "templates"

HEAD_MARKER = "{@head}"
BODY_MARKER = "{@body}"


@dataclass(frozen=True)
class TemplateStore:
    """Immutable page templates.

    Attributes:
        layout: Page skeleton with head and body markers.
        body: Default body template.
    """

    layout: str
    body: str


@lru_cache(maxsize=None)
def load_templates(minify: bool = True) -> TemplateStore:
    """Load the bundled templates, minified unless in debug mode.

    Args:
        minify: Whether to minify the templates.

    Returns:
        The shared TemplateStore for this mode.
    """
    layout = (TEMPLATES_DIR / "layout.html").read_text(encoding="utf-8")
    body = (TEMPLATES_DIR / "body.html").read_text(encoding="utf-8")
    if minify:
        layout = minify_html(layout)
        body = minify_html(body)
    return TemplateStore(layout=layout, body=body)
