"""
Exceptions raised by the request engine. Every one is fatal to the fetch
that raised it; nothing here is retried.
"""


class BrowserError(Exception):
    """Base exception for all fetch failures."""


class FormatError(BrowserError, ValueError):
    """Malformed URL, port, chunk size, Content-Length or max-age."""


class ConnectError(BrowserError, ConnectionError):
    """Dial, TLS handshake or request write failure."""

    def __init__(self, host: str, port: int, reason: str):
        super().__init__(f"Connection to {host}:{port} failed: {reason}")
        self.host = host
        self.port = port


class ReadError(BrowserError):
    """The response stream ended early or could not be read."""


class DecodeError(ReadError):
    """The response body claimed an encoding it could not be decoded from."""


class RedirectLimitError(BrowserError):
    """Raised when a fetch follows more redirects than allowed."""

    def __init__(self, limit: int, location: str = None):
        super().__init__(f"Too many redirects (limit {limit}), last location: {location}")
        self.limit = limit
        self.location = location


class LocalIOError(BrowserError, OSError):
    """A file:// resource could not be opened or read."""
