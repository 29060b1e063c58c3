from __future__ import annotations

import http.server
import threading
from typing import Iterator, List

import pytest

from thp.options import Options


class _Handler(http.server.BaseHTTPRequestHandler):
    """Serves a small set of redirect scenarios."""

    # Cookie headers received by the server, in arrival order
    received_cookies: List[str] = []

    def log_message(self, format, *args):
        pass

    def _send(self, code: int, body: bytes = b"", headers=()):
        self.send_response(code)
        for key, value in headers:
            self.send_header(key, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _redirect(self, location: str, code: int = 302, headers=()):
        self._send(code, b"redirect body", [("Location", location), *headers])

    def do_GET(self):
        _Handler.received_cookies.append(self.headers.get("Cookie", ""))
        path = self.path
        if path == "/plain":
            self._send(200, b"hello, world")
        elif path == "/start":
            self._redirect("/middle", 302, [("Set-Cookie", "session=abc; Path=/")])
        elif path == "/middle":
            self._redirect("/final", 301)
        elif path == "/final":
            self._send(200, b"final page")
        elif path == "/empty":
            self._send(200, b"")
        elif path == "/notfound":
            self._send(404, b"missing")
        elif path == "/permanent":
            self._redirect("/final", 308)
        elif path == "/to-missing":
            self._redirect("/notfound", 307)
        elif path == "/loop":
            self._redirect("/loop")
        elif path == "/ftp":
            self._redirect("ftp://127.0.0.1/file")
        elif path.startswith("/count/"):
            left = int(path[len("/count/"):])
            if left <= 0:
                self._send(200, b"done")
            else:
                self._redirect(f"/count/{left - 1}")
        else:
            self._send(404, b"no such path")


@pytest.fixture
def http_server() -> Iterator[str]:
    """Runs a local HTTP server and yields its base URL."""
    _Handler.received_cookies = []
    server = http.server.ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        host, port = server.server_address[:2]
        yield f"http://{host}:{port}"
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def received_cookies(http_server: str) -> List[str]:
    return _Handler.received_cookies


@pytest.fixture
def options() -> Options:
    """Options suitable for talking to the local server."""
    o = Options()
    o.use_env_proxies = False
    o.timeout = 5.0
    return o
