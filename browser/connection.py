"""
Transport connector: opens plain TCP or TLS byte-streams.
"""
import socket
import ssl
from typing import Optional

import structlog

from .errors import ConnectError

logger = structlog.get_logger(__name__)


class Connection:
    """An open byte-stream to one scheme/host/port, reusable across keep-alive fetches."""

    def __init__(self, sock, scheme: str, host: str, port: int):
        self.sock = sock
        self.scheme = scheme
        self.host = host
        self.port = port
        # One buffered reader for the whole lifetime so bytes read ahead of
        # one response are still there for the next.
        self.reader = sock.makefile("rb")
        self._open = True

    def matches(self, scheme: str, host: str, port: int) -> bool:
        return (self.scheme, self.host, self.port) == (scheme, host, port)

    def is_open(self) -> bool:
        return self._open

    def send(self, data: bytes):
        try:
            self.sock.sendall(data)
        except OSError as e:
            self.close()
            raise ConnectError(self.host, self.port, f"write failed: {e}") from e

    def close(self):
        if not self._open:
            return
        self._open = False
        try:
            self.reader.close()
        finally:
            self.sock.close()
        logger.debug("connection_closed", scheme=self.scheme, host=self.host, port=self.port)

    def __repr__(self) -> str:
        state = "open" if self._open else "closed"
        return f"<Connection {self.scheme}://{self.host}:{self.port} {state}>"


def connect(
    scheme: str,
    host: str,
    port: int,
    verify: bool = False,
    timeout: Optional[float] = None,
) -> Connection:
    """Dial ``host:port``, wrapping the socket in TLS for https."""
    try:
        sock = socket.create_connection((host, port), timeout=timeout)
    except OSError as e:
        logger.warning("connect_failed", scheme=scheme, host=host, port=port, error=str(e))
        raise ConnectError(host, port, str(e)) from e

    if scheme == "https":
        ctx = ssl.create_default_context()
        if not verify:
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
        try:
            sock = ctx.wrap_socket(sock, server_hostname=host)
        except OSError as e:
            sock.close()
            logger.warning("tls_handshake_failed", host=host, port=port, error=str(e))
            raise ConnectError(host, port, f"TLS handshake failed: {e}") from e

    logger.info("connection_opened", scheme=scheme, host=host, port=port)
    return Connection(sock, scheme, host, port)
