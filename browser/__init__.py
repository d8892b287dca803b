"""Request/response protocol engine for the text browser."""

from .cache import ResponseCache
from .engine import RequestEngine
from .models import Request, Response
from .url import parse

__all__ = ["Request", "RequestEngine", "Response", "ResponseCache", "parse"]
