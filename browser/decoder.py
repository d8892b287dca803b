"""
Content decoding: gzip decompression and charset-aware conversion to text.
"""
import codecs
import gzip
import re
import zlib
from typing import Optional

import structlog

from .errors import DecodeError
from .models import HeaderMap, find_header

logger = structlog.get_logger(__name__)

DEFAULT_CHARSET = "utf-8"
_META_CHARSET = re.compile(rb"""<meta[^>]+charset=["']?([a-zA-Z0-9_\-]+)""", re.IGNORECASE)


def _codings(headers: HeaderMap, name: str) -> list:
    value = find_header(headers, name) or ""
    return [coding.strip().lower() for coding in value.split(",")]


def is_gzipped(headers: HeaderMap) -> bool:
    codings = _codings(headers, "Content-Encoding") + _codings(headers, "Transfer-Encoding")
    return "gzip" in codings or "x-gzip" in codings


def decompress(headers: HeaderMap, raw: bytes) -> bytes:
    if not is_gzipped(headers):
        return raw
    try:
        return gzip.decompress(raw)
    except (OSError, EOFError, zlib.error) as e:
        raise DecodeError(f"Failed to decompress gzip body: {e}") from e


def extract_charset(headers: HeaderMap, content: bytes) -> Optional[str]:
    """Extract character encoding from the Content-Type header or an HTML meta tag."""
    content_type = find_header(headers, "Content-Type") or ""
    if "charset=" in content_type.lower():
        charset = content_type.lower().split("charset=")[1].split(";")[0].strip(" '\"")
        if charset:
            return charset

    if content:
        match = _META_CHARSET.search(content[:1024])
        if match:
            return match.group(1).decode("ascii").lower()

    return None


def to_text(headers: HeaderMap, content: bytes) -> str:
    charset = extract_charset(headers, content) or DEFAULT_CHARSET
    try:
        # binary codecs such as "hex" or "zip" resolve but cannot decode bytes to str
        known = codecs.lookup(charset)._is_text_encoding
    except LookupError:
        known = False
    if not known:
        logger.warning("unknown_charset", charset=charset, fallback=DEFAULT_CHARSET)
        charset = DEFAULT_CHARSET
    return content.decode(charset, errors="replace")


def decode_body(headers: HeaderMap, raw: bytes) -> str:
    """Decompress ``raw`` as the headers dictate and return it as text."""
    return to_text(headers, decompress(headers, raw))
