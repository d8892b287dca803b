"""
HTTP/1.1 wire codec.

Writes a GET request with a fixed header emission order and reads a response
framed by chunked transfer, Content-Length, or end-of-stream.
"""
from typing import BinaryIO, NamedTuple, Tuple

import structlog

from .errors import FormatError, ReadError
from .models import HeaderMap, find_header

logger = structlog.get_logger(__name__)

PREFERRED_HEADER_ORDER = ("Host", "User-Agent", "Connection")


class RawResponse(NamedTuple):
    status: str
    headers: HeaderMap
    body: bytes
    # True when the body was terminated by the peer closing the stream
    eof: bool


def serialize_request(request) -> bytes:
    lines = [f"{request.method} {request.path} HTTP/1.1"]
    for name in PREFERRED_HEADER_ORDER:
        if name in request.headers:
            lines.append(f"{name}: {request.headers[name]}")
    for name, value in request.headers.items():
        if name not in PREFERRED_HEADER_ORDER:
            lines.append(f"{name}: {value}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")


def _readline(reader: BinaryIO, what: str) -> bytes:
    try:
        line = reader.readline()
    except OSError as e:
        raise ReadError(f"Failed to read {what}: {e}") from e
    if not line:
        raise ReadError(f"Connection closed while reading {what}")
    return line


def _read_exact(reader: BinaryIO, size: int, what: str) -> bytes:
    try:
        return reader.read(size)
    except OSError as e:
        raise ReadError(f"Failed to read {what}: {e}") from e


def read_status_line(reader: BinaryIO) -> str:
    return _readline(reader, "status line").decode("iso-8859-1").rstrip("\r\n")


def read_headers(reader: BinaryIO) -> HeaderMap:
    """Read header lines up to the blank line; a repeated name keeps its last value."""
    headers: HeaderMap = {}
    while True:
        line = _readline(reader, "header").decode("iso-8859-1").rstrip("\r\n")
        if not line:
            return headers
        name, sep, value = line.partition(":")
        if not sep:
            logger.warning("header_line_skipped", line=line)
            continue
        headers[name.strip()] = value.strip()


def read_chunked(reader: BinaryIO) -> bytes:
    chunks = []
    while True:
        size_line = _readline(reader, "chunk size").decode("iso-8859-1")
        # chunk extensions after ';' are ignored
        size_str = size_line.split(";", 1)[0].strip()
        try:
            size = int(size_str, 16)
        except ValueError:
            raise FormatError(f"Invalid chunk size: {size_str!r}")
        if size < 0:
            raise FormatError(f"Invalid chunk size: {size_str!r}")

        if size == 0:
            # optional trailers, then the final CRLF
            while _readline(reader, "final CRLF").strip():
                pass
            return b"".join(chunks)

        chunk = _read_exact(reader, size, "chunk data")
        if len(chunk) < size:
            raise ReadError(f"Chunk truncated: expected {size} bytes, got {len(chunk)}")
        chunks.append(chunk)
        trailing = _readline(reader, "chunk CRLF")
        if trailing.strip(b"\r\n"):
            raise ReadError(f"Chunk overran its declared size of {size} bytes")


def transfer_codings(headers: HeaderMap) -> list:
    value = find_header(headers, "Transfer-Encoding") or ""
    return [coding.strip().lower() for coding in value.split(",") if coding.strip()]


def read_body(reader: BinaryIO, headers: HeaderMap) -> Tuple[bytes, bool]:
    """Read the framed body; returns the raw bytes and whether the stream hit EOF."""
    codings = transfer_codings(headers)
    if codings and codings[-1] == "chunked":
        return read_chunked(reader), False

    content_length = find_header(headers, "Content-Length")
    if content_length is not None:
        try:
            length = int(content_length)
        except ValueError:
            raise FormatError(f"Invalid Content-Length: {content_length!r}")
        if length < 0:
            raise FormatError(f"Invalid Content-Length: {content_length!r}")
        body = _read_exact(reader, length, "body")
        if len(body) < length:
            # EOF before the declared length ends the body
            logger.warning("body_truncated", expected=length, received=len(body))
            return body, True
        return body, False

    return _read_exact(reader, -1, "body"), True


def read_response(reader: BinaryIO) -> RawResponse:
    status = read_status_line(reader)
    headers = read_headers(reader)
    body, eof = read_body(reader, headers)
    return RawResponse(status, headers, body, eof)
