"""
Request and Response types shared by the parser, codec and engine.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional

from .cache import ResponseCache

HeaderMap = Dict[str, str]

NETWORK_SCHEMES = ("http", "https")
SCHEMES = ("http", "https", "file", "view-source", "data")


def find_header(headers: HeaderMap, name: str) -> Optional[str]:
    """Look up a header value ignoring the case of its name."""
    if name in headers:
        return headers[name]
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


class Request:
    """
    A mutable descriptor for one logical fetch, reused across redirects and
    repeated polls of the same URL.

    For ``file`` requests ``host`` holds the filesystem path; for ``data``
    requests ``host`` is the media type and ``path`` the literal payload.
    """

    def __init__(
        self,
        scheme: str,
        host: str = "",
        port: Optional[int] = None,
        path: str = "/",
        method: str = "GET",
        headers: HeaderMap = None,
        cache: ResponseCache = None,
        source_scheme: str = "https",
    ):
        self.scheme = scheme
        self.host = host
        self.port = port
        self.path = path
        self.method = method
        self.headers = headers if headers is not None else {}
        self.cache = cache if cache is not None else ResponseCache()
        self.source_scheme = source_scheme
        self.redirect_count = 0
        self._connection = None

    @property
    def connection(self):
        return self._connection

    @connection.setter
    def connection(self, conn):
        # The request owns at most one connection; replacing it releases the old one.
        previous = self._connection
        if previous is not None and previous is not conn:
            previous.close()
        self._connection = conn

    def detach_connection(self):
        """Hand the connection over without closing it."""
        conn, self._connection = self._connection, None
        return conn

    def __repr__(self) -> str:
        return f"Request({self.scheme!r}, host={self.host!r}, port={self.port!r}, path={self.path!r})"


@dataclass(frozen=True)
class Response:
    """Immutable result of a single fetch."""

    scheme: str
    status: str
    headers: HeaderMap = field(default_factory=dict)
    body: str = ""

    @property
    def status_code(self) -> Optional[int]:
        parts = self.status.split(" ", 2)
        if len(parts) < 2:
            return None
        try:
            return int(parts[1])
        except ValueError:
            return None

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = find_header(self.headers, name)
        return default if value is None else value
