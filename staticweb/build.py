"""Site compilation for staticweb.

This module walks the source tree and writes one page per directory. The walk
itself runs on the calling thread: it loads each directory's layout config
and blocks, derives the page's Config snapshot, then hands the page write to
a thread pool and moves on to the subdirectories. The call returns once every
write has finished, raising every collected page error at once.

Key functions:
- compile_site: Compile a source tree (or one directory chain of it).

Key classes:
- CompileOptions: Run-wide switches (minification, flat output, workers).
- TreeWalker: The recursive walk and the page write task.
"""

from __future__ import annotations

import gzip
import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from .blocks import BlockLoader
from .config import Config, load_layout_config, merge_config
from .errors import (
    CompressionError,
    ErrorCollector,
    FileOpenError,
    FrontMatterParseError,
    InvalidSourceRoot,
    PageError,
)
from .substitution import SubstitutionEngine
from .templates import TemplateStore, load_templates
from .utils import split_scope

logger = logging.getLogger(__name__)

GZIP_LEVEL = 6


@dataclass(frozen=True)
class CompileOptions:
    """Switches that apply to a whole compile run.

    Attributes:
        minify: Minify templates and blocks. Turning it off is debug mode:
            head elements go on separate lines and gzip output is skipped.
        flat: Write leaf pages as ``<name>.html`` instead of
            ``<name>/index.html``.
        workers: Maximum concurrent page writers (None lets the executor
            choose).
    """

    minify: bool = True
    flat: bool = False
    workers: int | None = None

    @property
    def debug(self) -> bool:
        return not self.minify


def compile_site(
    source_dir: str | os.PathLike,
    output_dir: str | os.PathLike,
    page: str | None = None,
    options: CompileOptions | None = None,
) -> None:
    """Compile a source tree into an output tree.

    Args:
        source_dir: Root of the source tree.
        output_dir: Root of the output tree (created if missing).
        page: Optional directory path relative to the source root. Only that
            directory and its subtree are written; its ancestors are read so
            their layout config still cascades into it.
        options: Run-wide switches.

    Raises:
        InvalidSourceRoot: If ``source_dir`` is not a directory.
        CompileError: If any page failed; every other page is still written.
    """
    options = options or CompileOptions()
    src = Path(source_dir).resolve()
    dist = Path(output_dir).resolve()
    if not src.is_dir():
        raise InvalidSourceRoot(src)
    dist.mkdir(parents=True, exist_ok=True)

    templates = load_templates(options.minify)
    errors = ErrorCollector()
    with ThreadPoolExecutor(
        max_workers=options.workers, thread_name_prefix="staticweb"
    ) as pool:
        walker = TreeWalker(templates, options, pool, errors)
        walker.walk(src, dist, Config.root(templates.body), split_scope(page))
    logger.info("Compiled %d page(s) from %s into %s", len(walker.futures), src, dist)
    errors.raise_if_any()


class TreeWalker:
    """Walks a source tree and schedules one page write per directory.

    Attributes:
        options: Run-wide switches.
        block_loader: Directory scanner and override reader.
        engine: Page assembler.
        futures: Every submitted page write.
    """

    def __init__(
        self,
        templates: TemplateStore,
        options: CompileOptions,
        pool: ThreadPoolExecutor,
        errors: ErrorCollector,
    ):
        self.options = options
        self.block_loader = BlockLoader(minify=options.minify)
        self.engine = SubstitutionEngine(templates, self.block_loader, debug=options.debug)
        self.futures: list[Future] = []
        self._pool = pool
        self._errors = errors

    def walk(self, src: Path, dist: Path, inherited: Config, scope: list[str]) -> None:
        """Compile ``src`` into ``dist`` and recurse into its subdirectories.

        Args:
            src: Source directory.
            dist: Matching output directory.
            inherited: Snapshot from the parent directory.
            scope: Remaining directory names leading to the requested page;
                empty once ``src`` is at or below it.
        """
        logger.debug("Compiling %s", src)
        try:
            config = load_layout_config(inherited, src)
        except FrontMatterParseError as exc:
            self._errors.add(exc)
            config = inherited

        contents = self.block_loader.load(src, scope[0] if scope else None)
        for error in contents.errors:
            self._errors.add(error)
        config = config.with_blocks(contents.blocks)

        if not scope:
            page_config = config.clone()
            for path, data in contents.frontmatter:
                try:
                    page_config = merge_config(page_config, data, path)
                except FrontMatterParseError as exc:
                    self._errors.add(exc)
            page_config = page_config.with_title_defaults()
            try:
                target = self._prepare_target(
                    dist, config.is_home_page, bool(contents.subdirs)
                )
            except OSError as exc:
                self._errors.add(
                    FileOpenError(dist, f"Cannot create output directory: {exc}", exc)
                )
            else:
                self.futures.append(
                    self._pool.submit(self._write_task, src, target, page_config)
                )

        child_config = config.for_children()
        for subdir in contents.subdirs:
            self.walk(subdir, dist / subdir.name, child_config, scope[1:])

    def _prepare_target(self, dist: Path, is_root: bool, has_children: bool) -> Path:
        """Create the output directory and return the page's file path."""
        if self.options.flat and not is_root and not has_children:
            dist.parent.mkdir(parents=True, exist_ok=True)
            return dist.with_name(dist.name + ".html")
        dist.mkdir(parents=True, exist_ok=True)
        return dist / "index.html"

    def _write_task(self, src: Path, target: Path, config: Config) -> None:
        try:
            write_page(self.engine, src, target, config, self.options)
        except PageError as exc:
            self._errors.add(exc)
        except Exception as exc:
            self._errors.add(PageError(src, f"Unexpected error: {exc}", exc))


def write_page(
    engine: SubstitutionEngine,
    src: Path,
    target: Path,
    config: Config,
    options: CompileOptions,
) -> None:
    """Render one page and write it (and its gzip sibling) to disk.

    Args:
        engine: Page assembler.
        src: Source directory of the page.
        target: Output file.
        config: The page's Config snapshot.
        options: Run-wide switches.

    Raises:
        FileOpenError: If the page cannot be written.
        CompressionError: If the gzip sibling cannot be written.
    """
    html = engine.render(config, src)
    data = html.encode("utf-8")
    try:
        target.write_bytes(data)
    except OSError as exc:
        raise FileOpenError(target, f"Cannot write page: {exc}", exc) from exc

    if options.debug or not (config.opts.get("gzip") or config.opts.get("gziponly")):
        return

    gz_path = target.with_name(target.name + ".gz")
    try:
        # A fixed mtime keeps repeated builds byte-identical.
        gz_path.write_bytes(gzip.compress(data, compresslevel=GZIP_LEVEL, mtime=0))
    except OSError as exc:
        raise CompressionError(gz_path, f"Cannot write gzip file: {exc}", exc) from exc
    if config.opts.get("gziponly"):
        target.unlink(missing_ok=True)
