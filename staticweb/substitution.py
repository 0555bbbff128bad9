"""Page assembly for staticweb.

A page is built from the layout skeleton by a fixed sequence of passes over
one in-memory buffer. Later passes see what earlier passes inserted, so the
order matters:

1. Scan ``{name}`` / ``{name:default}`` tokens in the skeleton to find which
   meta keys the template already places itself.
2. Emit a ``<meta>`` tag before ``{@head}`` for every other meta key.
3. Emit stylesheet links before ``{@head}``.
4. Emit script tags before ``{@head}``.
5. Replace ``{@body}`` with the ``layout`` block.
6. Replace ``{@name}`` markers with a local ``@name`` override file, or the
   inherited block, or nothing.
7. Replace ``{name}`` tokens, including those that arrived with blocks.
"""

from __future__ import annotations

import re
from pathlib import Path

from .blocks import BlockLoader
from .config import RESERVED_META, Config, ScriptRef, StyleRef
from .html_utils import escape_html
from .templates import BODY_MARKER, HEAD_MARKER, TemplateStore

VAR_RE = re.compile(r"\{([A-Za-z0-9]+)(:.*?|)\}")
BLOCK_RE = re.compile(r"\{@([A-Za-z0-9_-]+)\}\r?\n?")


def scan_used_meta(buffer: str, config: Config) -> set[str]:
    """Return the meta keys that ``{name}`` tokens in the buffer resolve to.

    Variables shadow meta entries, so a token whose name is also a variable
    does not count as using the meta key.
    """
    used = set(RESERVED_META)
    for match in VAR_RE.finditer(buffer):
        name = match.group(1)
        if name not in config.vars and name in config.meta:
            used.add(name)
    return used


def substitute_vars(buffer: str, config: Config) -> str:
    """Replace ``{name}`` and ``{name:default}`` tokens.

    Lookup order is ``vars``, then ``meta``, then the default text; a token
    with neither a value nor a default becomes an empty string.

    Examples:
        >>> substitute_vars("{a} {b:x} {c}", Config(vars={"a": "1"}))
        '1 x '
    """

    def repl(match: re.Match) -> str:
        name = match.group(1)
        if name in config.vars:
            return config.vars[name]
        if name in config.meta:
            return config.meta[name]
        default = match.group(2)
        return default[1:] if default else ""

    return VAR_RE.sub(repl, buffer)


def meta_tag(name: str, value: str) -> str:
    return f'<meta name="{escape_html(name)}" content="{escape_html(value)}"/>'


def style_tag(style: StyleRef) -> str:
    """Render a stylesheet link.

    A lazy stylesheet loads as print media and switches to all media once
    loaded, so it never blocks rendering.
    """
    html = f'<link rel="stylesheet" href="{escape_html(style.url)}"'
    if style.lazy:
        html += " media=\"print\" onload=\"this.media='all'\""
    elif style.print:
        html += ' media="print"'
    return html + "/>"


def script_tag(script: ScriptRef) -> str:
    html = f'<script src="{escape_html(script.url)}"'
    if script.module:
        html += ' type="module"'
    elif script.wasm:
        html += f' type="wasm/{escape_html(script.wasm)}"'
    if script.defer:
        html += " defer"
    if script.async_:
        html += " async"
    return html + "></script>"


class SubstitutionEngine:
    """Assembles pages from the template store and a Config snapshot.

    Attributes:
        templates: Layout skeleton and default body.
        block_loader: Reads ``@name`` override files at substitution time.
        debug: Put each emitted head element on its own line.
    """

    def __init__(
        self,
        templates: TemplateStore,
        block_loader: BlockLoader,
        debug: bool = False,
    ):
        self.templates = templates
        self.block_loader = block_loader
        self.debug = debug

    def render(self, config: Config, source_dir: Path) -> str:
        """Build the complete HTML for one directory's page.

        Args:
            config: The page's Config snapshot (front matter applied).
            source_dir: Source directory, searched for ``@name`` overrides.

        Returns:
            The page HTML.
        """
        buffer = self.templates.layout
        used_meta = scan_used_meta(buffer, config)

        for name in sorted(config.meta):
            if name not in used_meta:
                buffer = self._insert_head(buffer, meta_tag(name, config.meta[name]))
        for style in config.styles:
            buffer = self._insert_head(buffer, style_tag(style))
        for script in config.scripts:
            buffer = self._insert_head(buffer, script_tag(script))

        buffer = buffer.replace(BODY_MARKER, config.blocks.get("layout", ""), 1)
        buffer = self._include_blocks(buffer, config, source_dir)
        return substitute_vars(buffer, config)

    def _insert_head(self, buffer: str, html: str) -> str:
        if self.debug:
            html += "\n"
        return buffer.replace(HEAD_MARKER, html + HEAD_MARKER, 1)

    def _include_blocks(self, buffer: str, config: Config, source_dir: Path) -> str:
        def repl(match: re.Match) -> str:
            name = match.group(1)
            override = self.block_loader.read_override(source_dir, name)
            if override is not None:
                return override
            return config.blocks.get(name, "")

        return BLOCK_RE.sub(repl, buffer)
