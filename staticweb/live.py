"""Live recompilation for staticweb.

LiveWatcher compiles the whole site once, then watches every source
directory and maps each filesystem event to the smallest useful action:

- A file changed: recompile the directory that holds it (the whole site
  when it sits in the source root).
- A directory appeared: compile it and start watching it.
- A file or directory disappeared: recompile the owning directory when it
  was content or config, otherwise delete its mirror in the output tree.

Bursts of events (editors often write a file several times per save) are
coalesced by dropping events that arrive within a few milliseconds of the
last accepted one.

Key classes:
- LiveWatcher: Event policy and watch bookkeeping.
- _ChangeHandler: watchdog handler forwarding events to a LiveWatcher.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .build import CompileOptions, compile_site
from .errors import StaticWebError
from .utils import has_content_suffix, remove_path

logger = logging.getLogger(__name__)


def _log_error(error: Exception) -> None:
    logger.error("%s", error)


class LiveWatcher:
    """Watches a source tree and recompiles the parts that change.

    Attributes:
        source_dir: Absolute source root.
        output_dir: Absolute output root.
        options: Options for every compile this watcher runs.
        on_error: Receives each failed run's error; watching continues.
        on_compiled: Called after each successful compile.
    """

    def __init__(
        self,
        source_dir: str | os.PathLike,
        output_dir: str | os.PathLike,
        on_error: Callable[[Exception], None] | None = None,
        options: CompileOptions | None = None,
        on_compiled: Callable[[], None] | None = None,
    ):
        self.source_dir = Path(source_dir).resolve()
        self.output_dir = Path(output_dir).resolve()
        self.options = options or CompileOptions()
        self.on_error = on_error or _log_error
        self.on_compiled = on_compiled
        self._observer: Observer | None = None
        self._handler = _ChangeHandler(self)
        self._watches: dict[Path, object] = {}
        self._last_change = 0.0
        self._debounce_seconds = 0.01

    def start(self) -> LiveWatcher:
        """Compile the full site, then start watching the source tree."""
        self.compile()
        observer = Observer()
        self._observer = observer
        self.watch(self.source_dir)
        observer.start()
        logger.info("Watching %s", self.source_dir)
        return self

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        self._watches.clear()

    def compile(self, page: str | None = None) -> None:
        """Run one compile, forwarding any error to ``on_error``.

        Args:
            page: Directory relative to the source root, or None for the
                whole site.
        """
        logger.info("Recompiling %s", page or "site")
        try:
            compile_site(self.source_dir, self.output_dir, page, self.options)
        except (StaticWebError, OSError) as exc:
            self.on_error(exc)
            return
        if self.on_compiled:
            self.on_compiled()

    def watch(self, path: Path) -> None:
        """Watch a directory and every directory below it."""
        if self._observer is None:
            return
        for root, dirs, _files in os.walk(path):
            current = Path(root)
            if self._is_output(current):
                dirs[:] = []
                continue
            if current not in self._watches:
                self._watches[current] = self._observer.schedule(
                    self._handler, str(current), recursive=False
                )

    def unwatch(self, path: Path) -> None:
        """Stop watching a directory and every watched directory below it."""
        for watched in [p for p in self._watches if p == path or path in p.parents]:
            watch = self._watches.pop(watched)
            if self._observer is None:
                continue
            try:
                self._observer.unschedule(watch)
            except (KeyError, OSError):
                # The watch went away together with its directory.
                pass

    def on_file_change(self, path: str) -> None:
        if self._accept(path):
            self._handle_file_change(Path(path))

    def on_dir_add(self, path: str) -> bool:
        """Compile a new directory.

        Returns:
            True: the new directory should always be watched.
        """
        if self._accept(path):
            self._handle_dir_add(Path(path))
        return True

    def on_remove(self, path: str) -> bool:
        """Recompile or clean up after a removal.

        Returns:
            True: any watch on the removed path should be dropped.
        """
        if self._accept(path):
            self._handle_remove(Path(path))
        return True

    def on_move(self, src_path: str, dest_path: str, is_directory: bool) -> None:
        """Handle a rename as a removal followed by an addition."""
        if not self._accept(src_path):
            return
        self._handle_remove(Path(src_path))
        if is_directory:
            self._handle_dir_add(Path(dest_path))
        else:
            self._handle_file_change(Path(dest_path))

    def _accept(self, path: str) -> bool:
        if self._is_output(Path(path)):
            return False
        now = time.monotonic()
        if now - self._last_change < self._debounce_seconds:
            return False
        self._last_change = now
        return True

    def _is_output(self, path: Path) -> bool:
        return path == self.output_dir or self.output_dir in path.parents

    def _relative(self, path: Path) -> Path | None:
        try:
            return path.relative_to(self.source_dir)
        except ValueError:
            return None

    def _compile_dir(self, rel_dir: Path) -> None:
        if rel_dir == Path("."):
            self.compile()
        else:
            self.compile(rel_dir.as_posix())

    def _handle_file_change(self, path: Path) -> None:
        rel = self._relative(path)
        if rel is not None:
            self._compile_dir(rel.parent)

    def _handle_dir_add(self, path: Path) -> None:
        rel = self._relative(path)
        if rel is not None:
            self._compile_dir(rel)

    def _handle_remove(self, path: Path) -> None:
        rel = self._relative(path)
        if rel is None:
            return
        if has_content_suffix(path):
            self._compile_dir(rel.parent)
            return
        mirror = self.output_dir / rel
        targets = [mirror]
        if self.options.flat:
            # A flat leaf page lives beside its directory as NAME.html.
            page = mirror.with_name(mirror.name + ".html")
            targets += [page, page.with_name(page.name + ".gz")]
        try:
            for target in targets:
                remove_path(target)
        except OSError as exc:
            self.on_error(exc)


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: LiveWatcher):
        super().__init__()
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        path = os.fsdecode(event.src_path)
        if event.is_directory:
            if self.watcher.on_dir_add(path):
                self.watcher.watch(Path(path))
        else:
            self.watcher.on_file_change(path)

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory modifications just echo changes to their children.
        if not event.is_directory:
            self.watcher.on_file_change(os.fsdecode(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        path = os.fsdecode(event.src_path)
        if self.watcher.on_remove(path):
            self.watcher.unwatch(Path(path))

    def on_moved(self, event: FileSystemEvent) -> None:
        src_path = os.fsdecode(event.src_path)
        dest_path = os.fsdecode(event.dest_path)
        self.watcher.unwatch(Path(src_path))
        self.watcher.on_move(src_path, dest_path, event.is_directory)
        if event.is_directory:
            self.watcher.watch(Path(dest_path))


def start_live(
    source_dir: str | os.PathLike,
    output_dir: str | os.PathLike,
    on_error: Callable[[Exception], None] | None = None,
    options: CompileOptions | None = None,
) -> LiveWatcher:
    """Compile a site and keep recompiling it as its sources change.

    Args:
        source_dir: Root of the source tree.
        output_dir: Root of the output tree.
        on_error: Receives each failed run's error (logged by default).
        options: Run-wide compile options.

    Returns:
        The running LiveWatcher; call ``stop()`` to end the session.
    """
    return LiveWatcher(source_dir, output_dir, on_error=on_error, options=options).start()
