"""Development server for staticweb.

Serves the compiled site while a LiveWatcher keeps it up to date:
- Injects a reload script into HTML responses.
- Resolves directory requests to their index.html.
- Answers missing paths with a 404, serving ``404/index.html`` or
  ``404.html`` from the output tree when the site has one.
- Broadcasts a reload message over a websocket after every recompile.

Key classes:
- DevServer: Runs the watcher, the HTTP server and the websocket server.
- _ReloadHandler: HTTP request handler that injects the reload script.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets

from .build import CompileOptions
from .live import LiveWatcher

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000
NOT_FOUND_TEXT = "Error 404: Page Not Found!"


class _ReloadHandler(SimpleHTTPRequestHandler):
    """HTTP request handler that injects the live reload script into HTML pages.

    Attributes:
        reload_script: JavaScript that reloads the page on a websocket message.
    """

    reload_script_template = """
    <script>
    (() => {{
      const ws = new WebSocket('ws://' + location.hostname + ':{ws_port}');
      ws.onmessage = (event) => {{
        const data = JSON.parse(event.data || '{{}}');
        if (data.type === 'reload') location.reload();
      }};
    }})();
    </script>
    """
    reload_script = reload_script_template.format(ws_port=DEFAULT_PORT + 1)

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        # Never expose directory listings; treat as missing content.
        return self._serve_404()

    def _inject(self, content: str) -> bytes:
        if "</body>" in content:
            content = content.replace("</body>", f"{self.reload_script}</body>", 1)
        else:
            content += self.reload_script
        return content.encode("utf-8")

    def _send_html(self, status: int, path: Path) -> None:
        encoded = self._inject(path.read_text(encoding="utf-8"))
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)

    def _serve_404(self):
        """Serve the site's 404 page (when present) with a 404 status."""
        root = Path(self.directory)
        for candidate in (root / "404" / "index.html", root / "404.html"):
            if candidate.is_file():
                self._send_html(404, candidate)
                return None
        encoded = NOT_FOUND_TEXT.encode("utf-8")
        self.send_response(404)
        self.send_header("Content-type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)
        return None

    def send_head(self):
        path_obj = Path(self.translate_path(self.path))
        if path_obj.is_dir():
            index_path = path_obj / "index.html"
            if not index_path.is_file():
                return self._serve_404()
            path_obj = index_path
        elif not path_obj.exists():
            return self._serve_404()

        if path_obj.suffix == ".html":
            self._send_html(200, path_obj)
            return None
        return super().send_head()


class DevServer:
    """Development server with live recompilation and browser reload.

    Attributes:
        source_dir: Source tree being watched.
        output_dir: Directory the compiled site is served from.
        http_port: Port for the HTTP server.
        ws_port: Port for websocket connections.
        options: Compile options for every run.
    """

    def __init__(
        self,
        source_dir: Path,
        output_dir: Path,
        http_port: int | None = None,
        ws_port: int | None = None,
        options: CompileOptions | None = None,
    ):
        """Initialize the development server.

        Args:
            source_dir: Source tree to compile and watch.
            output_dir: Output tree to serve.
            http_port: HTTP port (defaults to 3000).
            ws_port: Websocket port (defaults to the HTTP port + 1).
            options: Compile options.
        """
        self.source_dir = Path(source_dir).resolve()
        self.output_dir = Path(output_dir).resolve()
        self.http_port = int(http_port or DEFAULT_PORT)
        self.ws_port = ws_port if ws_port is not None else self.http_port + 1
        self.options = options or CompileOptions()
        self._reload_script = _ReloadHandler.reload_script_template.format(
            ws_port=self.ws_port
        )
        self._watcher: LiveWatcher | None = None
        self._ws_clients: set = set()
        self._loop = asyncio.new_event_loop()

    def start(self) -> None:  # pragma: no cover - integration path
        self._watcher = LiveWatcher(
            self.source_dir,
            self.output_dir,
            options=self.options,
            on_compiled=self._broadcast_reload,
        ).start()
        threading.Thread(target=self._start_http, daemon=True).start()
        threading.Thread(target=self._start_ws, daemon=True).start()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._watcher:
            self._watcher.stop()
        self._loop.call_soon_threadsafe(self._loop.stop)

    def _start_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type(
            "_ReloadHandlerWithPort",
            (_ReloadHandler,),
            {"reload_script": self._reload_script},
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        logger.info("Listening on port %d, serving %s", self.http_port, self.output_dir)
        httpd.serve_forever()

    def _start_ws(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._run_ws_server())
        except OSError as exc:
            logger.error("WebSocket server failed to start (port %d): %s", self.ws_port, exc)
            return

    async def _run_ws_server(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self._ws_handler, "0.0.0.0", self.ws_port):
            await asyncio.Future()  # Run forever

    async def _ws_handler(self, websocket):
        self._ws_clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._ws_clients.discard(websocket)

    def _broadcast_reload(self):
        if not self._loop.is_running():
            return
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._async_broadcast(message), self._loop)

    async def _async_broadcast(self, message: str):
        stale = set()
        for ws in list(self._ws_clients):
            try:
                await ws.send(message)
            except Exception:
                stale.add(ws)
        for ws in stale:
            self._ws_clients.discard(ws)
