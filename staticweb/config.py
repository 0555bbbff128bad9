"""Cascading per-directory configuration for staticweb.

Every source directory compiles with a Config snapshot derived from its
parent's. Derivation always returns a new snapshot with copied maps and
lists, so a child's layout file or front matter can never leak into its
parent or its siblings.

Configuration comes from two places:
- ``layout.yml`` (or ``layout.yaml`` / ``layout.json``) in a directory, which
  applies to that directory and everything below it.
- Front matter, a ``---`` delimited YAML block at the top of a content file,
  which applies to that directory's page only.

Both use the same shape::

    opts: {gzip: true}
    vars: {brand: Acme}
    meta: {sitetitle: Acme, description: Widgets}
    styles:
      - /css/main.css
      - {url: /css/print.css, print: true}
    scripts:
      - {url: /js/app.js, module: true, defer: true}
    title: Home        # any other scalar key is a meta entry

Key classes:
- StyleRef / ScriptRef: Stylesheet and script descriptors.
- Config: Immutable configuration snapshot.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import FrontMatterParseError

FRONTMATTER_RE = re.compile(r"^---+[ \t]*\r?\n(.*?)\r?\n---+[ \t]*(?:\r?\n|\Z)", re.DOTALL)

LAYOUT_CONFIG_NAMES = ("layout.yml", "layout.yaml", "layout.json")

# Template slots that are always filled explicitly, never as <meta> tags.
RESERVED_META = ("sitetitle", "apptitle", "title", "page")

_STRUCTURED_KEYS = {"opts", "vars", "meta", "styles", "scripts"}


class _ConfigLoader(yaml.SafeLoader):
    """Safe loader that keeps dates and floats as their source text.

    Values end up as page text, so ``2024-01-01`` and ``1.10`` must render
    exactly as written.
    """


def _construct_source_text(loader: yaml.SafeLoader, node: yaml.ScalarNode) -> str:
    return loader.construct_scalar(node)


_ConfigLoader.add_constructor("tag:yaml.org,2002:timestamp", _construct_source_text)
_ConfigLoader.add_constructor("tag:yaml.org,2002:float", _construct_source_text)


def _scalar_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


@dataclass(frozen=True)
class StyleRef:
    """A stylesheet linked from the page head.

    Attributes:
        url: Stylesheet URL.
        print: Link with ``media="print"``.
        lazy: Load as print media and swap to all media once loaded.
    """

    url: str
    print: bool = False
    lazy: bool = False

    @classmethod
    def from_value(cls, value: Any) -> StyleRef:
        if isinstance(value, str):
            return cls(url=value)
        if isinstance(value, Mapping) and value.get("url"):
            return cls(
                url=_scalar_text(value["url"]),
                print=bool(value.get("print", False)),
                lazy=bool(value.get("lazy", False)),
            )
        raise ValueError(f"invalid style entry: {value!r}")


@dataclass(frozen=True)
class ScriptRef:
    """A script loaded from the page head.

    Attributes:
        url: Script URL.
        module: Load as an ES module.
        defer: Add the ``defer`` attribute.
        async_: Add the ``async`` attribute.
        wasm: WebAssembly loader kind, used when ``module`` is false.
    """

    url: str
    module: bool = False
    defer: bool = False
    async_: bool = False
    wasm: str = ""

    @classmethod
    def from_value(cls, value: Any) -> ScriptRef:
        if isinstance(value, str):
            return cls(url=value)
        if isinstance(value, Mapping) and value.get("url"):
            return cls(
                url=_scalar_text(value["url"]),
                module=bool(value.get("module", False)),
                defer=bool(value.get("defer", False)),
                async_=bool(value.get("async", False)),
                wasm=_scalar_text(value.get("wasm")),
            )
        raise ValueError(f"invalid script entry: {value!r}")


@dataclass(frozen=True)
class Config:
    """Configuration snapshot for one directory.

    Snapshots are never mutated after construction; every ``with_*`` or
    ``merged`` call returns a new instance with copied containers.

    Attributes:
        opts: Boolean flags such as ``gzip`` and ``gziponly``.
        vars: Values for ``{name}`` tokens.
        meta: Page metadata, rendered into template slots or <meta> tags.
        styles: Stylesheets linked from the head, in order.
        scripts: Scripts loaded from the head, in order.
        blocks: Rendered named blocks; always holds ``"layout"``.
        is_home_page: True only for the root directory of a compile run.
    """

    opts: dict[str, bool] = field(default_factory=dict)
    vars: dict[str, str] = field(default_factory=dict)
    meta: dict[str, str] = field(default_factory=dict)
    styles: tuple[StyleRef, ...] = ()
    scripts: tuple[ScriptRef, ...] = ()
    blocks: dict[str, str] = field(default_factory=dict)
    is_home_page: bool = False

    @classmethod
    def root(cls, body_template: str) -> Config:
        """Create the configuration a compile run starts from.

        Args:
            body_template: Default body template, seeded as the layout block.
        """
        return cls(blocks={"layout": body_template}, is_home_page=True)

    def clone(self) -> Config:
        return replace(
            self,
            opts=dict(self.opts),
            vars=dict(self.vars),
            meta=dict(self.meta),
            blocks=dict(self.blocks),
        )

    def merged(self, data: Mapping[str, Any]) -> Config:
        """Layer a parsed config mapping on top of this snapshot.

        ``opts``, ``vars`` and ``meta`` keys override inherited values;
        ``styles`` and ``scripts`` are appended after inherited entries. Any
        other top-level scalar key is treated as a ``meta`` entry.

        Args:
            data: Mapping parsed from a layout file or front matter.

        Returns:
            A new Config.

        Raises:
            ValueError: If a section has the wrong shape.
        """
        opts = dict(self.opts)
        vars_ = dict(self.vars)
        meta = dict(self.meta)
        styles = list(self.styles)
        scripts = list(self.scripts)

        opts.update({str(k): bool(v) for k, v in _section(data, "opts").items()})
        vars_.update(_text_section(data, "vars"))
        for key, value in data.items():
            if key not in _STRUCTURED_KEYS and _is_scalar(value):
                meta[str(key)] = _scalar_text(value)
        meta.update(_text_section(data, "meta"))
        styles.extend(StyleRef.from_value(v) for v in _list_section(data, "styles"))
        scripts.extend(ScriptRef.from_value(v) for v in _list_section(data, "scripts"))

        return replace(
            self,
            opts=opts,
            vars=vars_,
            meta=meta,
            styles=tuple(styles),
            scripts=tuple(scripts),
            blocks=dict(self.blocks),
        )

    def with_blocks(self, blocks: Mapping[str, str]) -> Config:
        """Return a snapshot with extra or replaced named blocks."""
        merged = dict(self.blocks)
        merged.update(blocks)
        return replace(self, blocks=merged)

    def for_children(self) -> Config:
        """Return the snapshot subdirectories inherit (never a home page)."""
        return replace(self, is_home_page=False) if self.is_home_page else self

    def with_title_defaults(self) -> Config:
        """Fill the ``page`` and ``title`` meta slots.

        ``page`` defaults to the page's own title. ``title`` falls back to
        ``sitetitle`` and, when both are set and differ, becomes
        ``"<title> | <sitetitle>"``.
        """
        meta = dict(self.meta)
        if not meta.get("page"):
            meta["page"] = meta.get("title", "")
        title = meta.get("title", "")
        site_title = meta.get("sitetitle", "")
        if title and site_title and title != site_title:
            meta["title"] = f"{title} | {site_title}"
        elif not title:
            meta["title"] = site_title
        return replace(self, meta=meta)


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"'{key}' must be a mapping")
    return value


def _text_section(data: Mapping[str, Any], key: str) -> dict[str, str]:
    section = _section(data, key)
    result = {}
    for name, value in section.items():
        if not _is_scalar(value):
            raise ValueError(f"'{key}.{name}' must be a scalar value")
        result[str(name)] = _scalar_text(value)
    return result


def _list_section(data: Mapping[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if isinstance(value, (str, Mapping)):
        return [value]
    if not isinstance(value, list):
        raise ValueError(f"'{key}' must be a list")
    return value


def parse_config_text(text: str, source_path: Path) -> dict[str, Any]:
    """Parse a YAML (or JSON) configuration document.

    Args:
        text: Document text.
        source_path: File the text came from, for error reporting.

    Returns:
        The parsed mapping; an empty document yields an empty mapping.

    Raises:
        FrontMatterParseError: If the text is not valid YAML or not a mapping.
    """
    try:
        data = yaml.load(text, Loader=_ConfigLoader)
    except yaml.YAMLError as exc:
        raise FrontMatterParseError(source_path, f"Invalid YAML: {exc}", exc) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontMatterParseError(
            source_path, f"Expected a mapping, got {type(data).__name__}"
        )
    return data


def merge_config(config: Config, data: Mapping[str, Any], source_path: Path) -> Config:
    """Merge parsed data into a snapshot, reporting shape errors against a file.

    Raises:
        FrontMatterParseError: If a section has the wrong shape.
    """
    try:
        return config.merged(data)
    except ValueError as exc:
        raise FrontMatterParseError(source_path, str(exc), exc) from exc


def split_frontmatter(text: str) -> tuple[str | None, str]:
    """Split the raw front matter block from the rest of a content file.

    Returns:
        Tuple of (front matter text or None, remaining content).
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return None, text
    return match.group(1), text[match.end() :]


def extract_frontmatter(text: str, source_path: Path) -> tuple[dict[str, Any], str]:
    """Split and parse leading front matter from a content file.

    Args:
        text: Raw file content.
        source_path: Path of the file, for error reporting.

    Returns:
        Tuple of (front matter mapping, remaining content). Files without
        front matter yield an empty mapping and the text unchanged.

    Raises:
        FrontMatterParseError: If the front matter block is malformed.
    """
    raw, body = split_frontmatter(text)
    if raw is None:
        return {}, text
    return parse_config_text(raw, source_path), body


def find_layout_config(directory: Path) -> Path | None:
    """Return the layout config file of a directory, if it has one."""
    for name in LAYOUT_CONFIG_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def load_layout_config(config: Config, directory: Path) -> Config:
    """Merge a directory's layout config into the inherited snapshot.

    Args:
        config: Snapshot inherited from the parent directory.
        directory: Source directory to look in.

    Returns:
        The merged snapshot, or ``config`` itself when there is no layout
        file or it cannot be read.

    Raises:
        FrontMatterParseError: If the layout file is malformed.
    """
    path = find_layout_config(directory)
    if path is None:
        return config
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return config
    return merge_config(config, parse_config_text(text, path), path)
