"""
URL parsing: turns a URL string into a Request.

Accepted forms:
    scheme://[www.]host[:port][/path]   (http, https, view-source)
    view-source:http(s)://host[:port][/path]
    file://path
    data:mediatype,payload
"""
from typing import Optional

import structlog

from .cache import ResponseCache
from .errors import FormatError
from .models import SCHEMES, Request

logger = structlog.get_logger(__name__)

DEFAULT_USER_AGENT = "textbrowser/1.0"
VIEW_SOURCE_PREFIX = "view-source:"


def default_port(scheme: str) -> int:
    if scheme == "http":
        return 80
    return 443


def parse(url: str, user_agent: str = DEFAULT_USER_AGENT, cache: Optional[ResponseCache] = None) -> Request:
    """Parse ``url`` into a Request, raising FormatError on anything malformed."""
    if not url or not isinstance(url, str):
        raise FormatError("Empty or invalid URL")

    scheme, sep, rest = url.partition("://")
    if not sep:
        return _parse_data(url, cache)

    source_scheme = "https"
    if scheme.startswith(VIEW_SOURCE_PREFIX):
        # view-source:https://host/path
        source_scheme = scheme[len(VIEW_SOURCE_PREFIX):]
        if source_scheme not in ("http", "https"):
            raise FormatError(f"view-source cannot wrap scheme: {source_scheme}")
        scheme = "view-source"

    if scheme not in SCHEMES:
        raise FormatError(f"Unsupported scheme: {scheme}")

    if scheme == "file":
        return Request("file", host=rest, port=None, path="", cache=cache)

    if rest.startswith("www."):
        rest = rest[len("www."):]

    authority, _, path = rest.partition("/")
    host, has_port, port_str = authority.partition(":")
    if not host:
        raise FormatError(f"Missing host in URL: {url!r}")
    if has_port:
        try:
            port = int(port_str)
        except ValueError:
            raise FormatError(f"Invalid port: {port_str!r}")
        if not 0 < port < 65536:
            raise FormatError(f"Port out of range: {port}")
    else:
        port = default_port(source_scheme if scheme == "view-source" else scheme)

    request = Request(
        scheme,
        host=host,
        port=port,
        path="/" + path,
        method="GET",
        headers={
            "Host": host,
            "Connection": "keep-alive",
            "User-Agent": user_agent,
            "Accept-Encoding": "gzip",
        },
        cache=cache,
        source_scheme=source_scheme,
    )
    logger.debug("url_parsed", url=url, scheme=scheme, host=host, port=port, path=request.path)
    return request


def _parse_data(url: str, cache: Optional[ResponseCache]) -> Request:
    scheme, sep, rest = url.partition(":")
    if not sep or scheme != "data":
        raise FormatError(f"Invalid URL format: {url!r}")
    media_type, sep, payload = rest.partition(",")
    if not sep:
        raise FormatError("Invalid data URL format: missing ','")
    return Request("data", host=media_type, port=None, path=payload, cache=cache)
