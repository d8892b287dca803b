"""
Request engine: scheme dispatch, connection reuse, redirect following and
response caching for a Request.
"""
import copy
import dataclasses
import re
import time
from typing import Callable, Optional

import structlog

from . import decoder, wire
from .cache import ResponseCache
from .connection import Connection, connect
from .errors import BrowserError, FormatError, LocalIOError, RedirectLimitError
from .models import NETWORK_SCHEMES, Request, Response
from .url import DEFAULT_USER_AGENT, parse

logger = structlog.get_logger(__name__)

SYNTHETIC_STATUS = "HTTP/1.1 200 OK"
_MAX_AGE = re.compile(r"max-age\s*=\s*([^,\s]*)", re.IGNORECASE)


def _or_default(value, default):
    # null config values mean "use the built-in default"
    return default if value is None else value


class RequestEngine:
    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: Optional[float] = None,
        verify_tls: bool = False,
        max_redirects: int = 5,
        connector: Callable[..., Connection] = connect,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the engine; ``connector`` and ``clock`` are swappable for tests."""
        self.user_agent = user_agent
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.max_redirects = max_redirects
        self.connector = connector
        self.clock = clock

    @classmethod
    def from_config(cls, cfg=None, **kwargs) -> "RequestEngine":
        """Build an engine from the ``fetcher`` section of a Config."""
        if cfg is None:
            from .config import config as cfg
        fetcher = cfg.fetcher
        return cls(
            user_agent=_or_default(fetcher.get('user_agent'), DEFAULT_USER_AGENT),
            timeout=fetcher.get('timeout'),
            verify_tls=fetcher.get('verify_tls', False),
            max_redirects=_or_default(fetcher.get('max_redirects'), 5),
            **kwargs,
        )

    def parse(self, url: str) -> Request:
        return parse(url, user_agent=self.user_agent)

    def get(self, url: str) -> Response:
        """Parse ``url`` and fetch it once."""
        request = self.parse(url)
        try:
            return self.send(request)
        finally:
            self.close(request)

    def send(self, request: Request) -> Response:
        """Fetch ``request``, following redirects; a failed fetch leaves no hop state behind."""
        try:
            return self._dispatch(request)
        except BrowserError:
            request.redirect_count = 0
            raise

    def _dispatch(self, request: Request) -> Response:
        if request.scheme == "view-source":
            return self._send_view_source(request)
        if request.scheme in NETWORK_SCHEMES:
            return self._send_net(request)
        if request.scheme == "file":
            return self._send_file(request)
        if request.scheme == "data":
            return self._send_data(request)
        raise FormatError(f"Unsupported scheme: {request.scheme}")

    def close(self, request: Request):
        request.connection = None

    def _send_view_source(self, request: Request) -> Response:
        inner = copy.copy(request)
        inner.scheme = request.source_scheme
        try:
            response = self._dispatch(inner)
        finally:
            # redirects followed by the clone are adopted by the original request
            request.source_scheme = inner.scheme
            request.host = inner.host
            request.port = inner.port
            request.path = inner.path
            request.headers = inner.headers
            request.cache = inner.cache
            request.redirect_count = inner.redirect_count
            request.detach_connection()
            request.connection = inner.detach_connection()
        return dataclasses.replace(response, scheme="view-source")

    def _send_net(self, request: Request) -> Response:
        cached = request.cache.lookup(request.path, now=self.clock())
        if cached is not None:
            logger.info("cache_hit", host=request.host, path=request.path)
            request.redirect_count = 0
            return cached

        conn = self._connection_for(request)
        try:
            conn.send(wire.serialize_request(request))
            raw = wire.read_response(conn.reader)
            body = decoder.decode_body(raw.headers, raw.body)
        except BrowserError:
            # stream state is unknown; the next fetch dials afresh
            request.connection = None
            raise
        response = Response(scheme=request.scheme, status=raw.status, headers=raw.headers, body=body)
        logger.info("response_received", host=request.host, path=request.path, status=raw.status)

        connection_header = (response.header("Connection") or "").lower()
        if raw.eof or connection_header == "close":
            request.connection = None

        location = response.header("Location")
        if location:
            return self._handle_redirect(request, location)

        request.redirect_count = 0
        self._maybe_cache(request, response)
        return response

    def _connection_for(self, request: Request) -> Connection:
        conn = request.connection
        if conn is not None and conn.is_open() and conn.matches(request.scheme, request.host, request.port):
            logger.debug("connection_reused", host=request.host, port=request.port)
            return conn
        conn = self.connector(
            request.scheme,
            request.host,
            request.port,
            verify=self.verify_tls,
            timeout=self.timeout,
        )
        request.connection = conn
        return conn

    def _maybe_cache(self, request: Request, response: Response):
        cache_control = response.header("Cache-Control")
        if not cache_control:
            return
        lowered = cache_control.lower()
        if "no-cache" in lowered or "no-store" in lowered:
            logger.debug("response_not_cacheable", path=request.path, cache_control=cache_control)
            return
        match = _MAX_AGE.search(cache_control)
        if not match:
            return
        try:
            max_age = int(match.group(1))
        except ValueError:
            raise FormatError(f"Invalid max-age in Cache-Control header: {cache_control!r}")
        request.cache.store(request.path, response, max_age, now=self.clock())
        logger.info("response_cached", path=request.path, max_age=max_age)

    def _handle_redirect(self, request: Request, location: str) -> Response:
        if request.redirect_count >= self.max_redirects:
            logger.warning("redirect_limit_reached", limit=self.max_redirects, location=location)
            raise RedirectLimitError(self.max_redirects, location)
        request.redirect_count += 1
        logger.info("redirecting", location=location, hop=request.redirect_count)

        if location.startswith("/"):
            request.path = location
            return self._send_net(request)

        target = parse(location, user_agent=request.headers.get("User-Agent", self.user_agent))
        if target.scheme not in NETWORK_SCHEMES:
            raise FormatError(f"Refusing redirect to {target.scheme} URL: {location}")

        if target.host != request.host or target.port != request.port:
            # cross-origin: adopt the new target wholesale and start over
            request.connection = None
            request.scheme = target.scheme
            request.host = target.host
            request.port = target.port
            request.path = target.path
            request.method = target.method
            request.headers = target.headers
            request.cache = ResponseCache(clock=request.cache.clock)
            return self._dispatch(request)

        request.path = target.path
        return self._send_net(request)

    def _send_file(self, request: Request) -> Response:
        try:
            with open(request.host, "rb") as f:
                content = f.read()
        except OSError as e:
            logger.warning("file_read_failed", path=request.host, error=str(e))
            raise LocalIOError(e.errno, f"Failed to read file: {e.strerror}", request.host) from e
        return Response(
            scheme=request.scheme,
            status=SYNTHETIC_STATUS,
            headers={},
            body=decoder.to_text({}, content),
        )

    def _send_data(self, request: Request) -> Response:
        return Response(
            scheme=request.scheme,
            status=SYNTHETIC_STATUS,
            headers={"Content-Type": request.host},
            body=request.path,
        )
