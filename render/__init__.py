"""Text rendering of fetched responses."""

from .text import render, show

__all__ = ["render", "show"]
