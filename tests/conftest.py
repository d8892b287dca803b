"""Shared fixtures for the text browser tests.

Provides a threaded local HTTP server that answers each path with scripted
raw response bytes, counting the connections and requests it sees, plus a
controllable clock for cache expiry.
"""

import socketserver
import threading
from typing import Dict, List, Optional

import pytest

from browser.engine import RequestEngine


def http_response(
    body: bytes = b"",
    status: str = "200 OK",
    headers: Optional[Dict[str, str]] = None,
    content_length: bool = True,
) -> bytes:
    """Build raw HTTP/1.1 response bytes."""
    lines = [f"HTTP/1.1 {status}"]
    headers = dict(headers or {})
    if content_length and "Transfer-Encoding" not in headers:
        headers.setdefault("Content-Length", str(len(body)))
    lines.extend(f"{name}: {value}" for name, value in headers.items())
    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + body


def chunked(*parts: bytes) -> bytes:
    """Encode ``parts`` as a chunked transfer body."""
    out = b"".join(b"%x\r\n%s\r\n" % (len(part), part) for part in parts)
    return out + b"0\r\n\r\n"


class _ScriptedHandler(socketserver.StreamRequestHandler):
    def handle(self):
        server = self.server
        with server.lock:
            server.connections += 1

        while True:
            request_line = self.rfile.readline()
            if not request_line:
                return
            head = [request_line.rstrip(b"\r\n")]
            while True:
                line = self.rfile.readline()
                if line in (b"\r\n", b"\n", b""):
                    break
                head.append(line.rstrip(b"\r\n"))

            path = request_line.split(b" ")[1].decode("latin-1")
            with server.lock:
                server.requests.append(head)
                reply, close = server.next_reply(path)

            self.wfile.write(reply)
            self.wfile.flush()
            if close:
                return


class ScriptedHTTPServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True
    block_on_close = False

    def __init__(self):
        super().__init__(("127.0.0.1", 0), _ScriptedHandler)
        self.lock = threading.Lock()
        self.routes: Dict[str, tuple] = {}
        self.requests: List[list] = []
        self.connections = 0

    @property
    def port(self) -> int:
        return self.server_address[1]

    def url(self, path: str = "/") -> str:
        return f"http://127.0.0.1:{self.port}{path}"

    def route(self, path: str, *replies: bytes, close: bool = False):
        """Answer ``path`` with ``replies`` in turn, repeating the last one.

        With ``close`` the server hangs up after writing each reply.
        """
        self.routes[path] = (list(replies), close)

    def next_reply(self, path: str):
        if path not in self.routes:
            return http_response(b"not found", status="404 Not Found"), False
        replies, close = self.routes[path]
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        return reply, close

    @property
    def paths(self) -> List[str]:
        return [head[0].split(b" ")[1].decode("latin-1") for head in self.requests]


def _start_server():
    server = ScriptedHTTPServer()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


@pytest.fixture
def http_server():
    server = _start_server()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def other_server():
    """A second origin on a different port."""
    server = _start_server()
    yield server
    server.shutdown()
    server.server_close()


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine(clock: FakeClock) -> RequestEngine:
    """An engine with a short timeout so a misbehaving test fails instead of hanging."""
    return RequestEngine(timeout=5.0, clock=clock)
