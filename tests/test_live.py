from pathlib import Path

import pytest

from staticweb import live
from staticweb.build import CompileOptions, compile_site
from staticweb.errors import CompileError, InvalidSourceRoot
from staticweb.live import LiveWatcher, _ChangeHandler
from staticweb.protocols import WatchCallbacks


class DummyEvent:
    def __init__(self, src_path, is_directory=False, dest_path=""):
        self.src_path = str(src_path)
        self.dest_path = str(dest_path)
        self.is_directory = is_directory


class DummyObserver:
    def __init__(self):
        self.scheduled = []
        self.unscheduled = []

    def schedule(self, handler, path, recursive=False):
        assert recursive is False
        self.scheduled.append(path)
        return path

    def unschedule(self, watch):
        self.unscheduled.append(watch)


@pytest.fixture
def site(tmp_path):
    src = tmp_path / "src"
    (src / "blog" / "posts").mkdir(parents=True)
    (src / "home.md").write_text("Home", encoding="utf-8")
    (src / "blog" / "home.md").write_text("Blog", encoding="utf-8")
    dist = tmp_path / "dist"
    dist.mkdir()
    return src.resolve(), dist.resolve()


@pytest.fixture
def calls(monkeypatch):
    recorded = []

    def fake_compile(source_dir, output_dir, page=None, options=None):
        recorded.append(page)

    monkeypatch.setattr(live, "compile_site", fake_compile)
    return recorded


def make_watcher(site, **kwargs):
    watcher = LiveWatcher(site[0], site[1], **kwargs)
    watcher._debounce_seconds = 0
    return watcher


def test_watcher_satisfies_callbacks_protocol(site):
    assert isinstance(make_watcher(site), WatchCallbacks)


def test_file_change_recompiles_its_directory(site, calls):
    src, _ = site
    watcher = make_watcher(site)

    watcher.on_file_change(str(src / "home.md"))
    watcher.on_file_change(str(src / "blog" / "home.md"))
    watcher.on_file_change(str(src / "blog" / "posts" / "img.png"))

    assert calls == [None, "blog", "blog/posts"]


def test_dir_add_compiles_new_directory(site, calls):
    src, _ = site
    (src / "new").mkdir()

    assert make_watcher(site).on_dir_add(str(src / "new")) is True
    assert calls == ["new"]


def test_dir_add_returns_true_even_when_debounced(site, calls):
    src, _ = site
    watcher = make_watcher(site)
    watcher._debounce_seconds = 60
    watcher._last_change = float("-inf")

    watcher.on_file_change(str(src / "home.md"))
    assert watcher.on_dir_add(str(src / "new")) is True
    assert calls == [None]


def test_remove_content_file_recompiles_parent(site, calls):
    src, _ = site
    watcher = make_watcher(site)

    assert watcher.on_remove(str(src / "blog" / "about.md")) is True
    assert watcher.on_remove(str(src / "layout.yml")) is True

    assert calls == ["blog", None]


def test_remove_other_path_deletes_output_mirror(site, calls):
    src, dist = site
    (dist / "logo.png").write_bytes(b"png")
    (dist / "old" / "deep").mkdir(parents=True)
    (dist / "old" / "deep" / "index.html").write_text("x", encoding="utf-8")
    watcher = make_watcher(site)

    watcher.on_remove(str(src / "logo.png"))
    watcher.on_remove(str(src / "old"))
    watcher.on_remove(str(src / "never-existed.png"))

    assert not (dist / "logo.png").exists()
    assert not (dist / "old").exists()
    assert calls == []


def test_remove_error_goes_to_on_error(site, calls, monkeypatch):
    src, _ = site
    errors = []

    def broken_remove(path):
        raise PermissionError("denied")

    monkeypatch.setattr(live, "remove_path", broken_remove)
    make_watcher(site, on_error=errors.append).on_remove(str(src / "logo.png"))

    assert len(errors) == 1
    assert isinstance(errors[0], PermissionError)


def test_events_inside_output_dir_are_ignored(tmp_path, calls):
    src = tmp_path.resolve()
    watcher = make_watcher((src, src / "dist"))

    watcher.on_file_change(str(src / "dist" / "index.html"))
    watcher.on_file_change(str(src / "home.md"))

    assert calls == [None]


def test_bursts_are_debounced(site, calls):
    src, _ = site
    watcher = make_watcher(site)
    watcher._debounce_seconds = 60
    watcher._last_change = float("-inf")

    watcher.on_file_change(str(src / "home.md"))
    watcher.on_file_change(str(src / "home.md"))
    watcher.on_file_change(str(src / "blog" / "home.md"))

    assert calls == [None]


def test_move_is_remove_then_add(site, calls):
    src, _ = site
    watcher = make_watcher(site)

    watcher.on_move(str(src / "blog" / "a.md"), str(src / "blog" / "b.md"), False)
    watcher.on_move(str(src / "blog" / "posts"), str(src / "articles"), True)

    assert calls == ["blog", "blog", "articles"]


def test_compile_errors_are_forwarded(site, monkeypatch):
    errors = []
    compiled = []

    def failing_compile(source_dir, output_dir, page=None, options=None):
        raise CompileError([InvalidSourceRoot(source_dir)])

    monkeypatch.setattr(live, "compile_site", failing_compile)
    watcher = make_watcher(site, on_error=errors.append, on_compiled=lambda: compiled.append(1))
    watcher.compile()

    assert len(errors) == 1
    assert isinstance(errors[0], CompileError)
    assert compiled == []


def test_default_on_error_logs(site, monkeypatch, caplog):
    def failing_compile(source_dir, output_dir, page=None, options=None):
        raise InvalidSourceRoot(source_dir)

    monkeypatch.setattr(live, "compile_site", failing_compile)
    with caplog.at_level("ERROR", logger="staticweb.live"):
        make_watcher(site).compile()

    assert "src must be a directory" in caplog.text


def test_watch_schedules_every_directory_except_output(tmp_path):
    src = tmp_path.resolve()
    (src / "a" / "b").mkdir(parents=True)
    (src / "dist" / "a").mkdir(parents=True)
    watcher = make_watcher((src, src / "dist"))
    observer = DummyObserver()
    watcher._observer = observer

    watcher.watch(src)
    watcher.watch(src / "a")

    assert sorted(observer.scheduled) == sorted([str(src), str(src / "a"), str(src / "a" / "b")])

    watcher.unwatch(src / "a")
    assert sorted(observer.unscheduled) == sorted([str(src / "a"), str(src / "a" / "b")])
    assert list(watcher._watches) == [src]


def test_change_handler_dispatches_events(site, calls):
    src, _ = site
    watcher = make_watcher(site)
    observer = DummyObserver()
    watcher._observer = observer
    handler = _ChangeHandler(watcher)
    (src / "fresh").mkdir()

    handler.on_modified(DummyEvent(src / "blog", is_directory=True))
    handler.on_modified(DummyEvent(src / "blog" / "home.md"))
    handler.on_created(DummyEvent(src / "fresh", is_directory=True))
    handler.on_deleted(DummyEvent(src / "blog" / "home.md"))

    assert calls == ["blog", "fresh", "blog"]
    assert str(src / "fresh") in observer.scheduled


def test_change_handler_moves_watches(site, calls):
    src, _ = site
    watcher = make_watcher(site)
    observer = DummyObserver()
    watcher._observer = observer
    watcher.watch(src)
    (src / "blog" / "posts").rename(src / "articles")

    _ChangeHandler(watcher).on_moved(
        DummyEvent(src / "blog" / "posts", is_directory=True, dest_path=src / "articles")
    )

    assert str(src / "blog" / "posts") in observer.unscheduled
    assert src / "articles" in watcher._watches
    assert src / "blog" / "posts" not in watcher._watches


def test_start_and_stop(site, calls, monkeypatch):
    observers = []

    class FakeObserver(DummyObserver):
        def start(self):
            self.started = True

        def stop(self):
            self.stopped = True

        def join(self):
            pass

    def make_observer():
        observer = FakeObserver()
        observers.append(observer)
        return observer

    monkeypatch.setattr(live, "Observer", make_observer)
    watcher = live.start_live(site[0], site[1])

    assert calls == [None]
    assert observers[0].started
    assert len(observers[0].scheduled) == 3

    watcher.stop()
    assert observers[0].stopped
    assert watcher._watches == {}


def test_scoped_recompile_uses_changed_ancestor_layout(tmp_path):
    src = tmp_path / "src"
    dist = tmp_path / "dist"
    (src / "blog").mkdir(parents=True)
    (src / "home.md").write_text("Root {brand}", encoding="utf-8")
    (src / "blog" / "home.md").write_text("Blog {brand}", encoding="utf-8")
    (src / "layout.yml").write_text("vars:\n  brand: Old\n", encoding="utf-8")
    options = CompileOptions(minify=False)
    compile_site(src, dist, options=options)

    (src / "layout.yml").write_text("vars:\n  brand: New\n", encoding="utf-8")
    watcher = LiveWatcher(src, dist, options=options)
    watcher.compile("blog")

    assert "Blog New" in (dist / "blog" / "index.html").read_text(encoding="utf-8")
    assert "Root Old" in (dist / "index.html").read_text(encoding="utf-8")


def test_unused_path_is_ignored(site, calls):
    watcher = make_watcher(site)
    watcher.on_file_change(str(Path("/somewhere/else/file.md")))
    assert calls == []


def test_remove_in_flat_mode_deletes_leaf_page(site, calls):
    src, dist = site
    (dist / "notes.html").write_text("page", encoding="utf-8")
    (dist / "notes.html.gz").write_bytes(b"gz")
    (dist / "blog").mkdir()
    (dist / "blog" / "index.html").write_text("blog", encoding="utf-8")
    watcher = make_watcher(site, options=CompileOptions(flat=True))

    watcher.on_remove(str(src / "notes"))
    watcher.on_remove(str(src / "blog"))

    assert not (dist / "notes.html").exists()
    assert not (dist / "notes.html.gz").exists()
    assert not (dist / "blog").exists()
    assert calls == []


def test_remove_without_flat_mode_keeps_sibling_html(site, calls):
    src, dist = site
    (dist / "notes.html").write_text("asset", encoding="utf-8")

    make_watcher(site).on_remove(str(src / "notes"))

    assert (dist / "notes.html").exists()
