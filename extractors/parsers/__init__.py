"""
Lightweight per-language source parsers.

Each parser returns a ``ParsedSource`` subclass used as a context manager:
the parse products are released when the ``with`` block exits, whether the
extraction returned early, finished or raised.
"""

from __future__ import annotations

from ..base import SourceFile


class ParsedSource:
    """Parse handle for one file; release with ``close()`` or ``with``."""

    def __init__(self, file: SourceFile, masked: str):
        self.path = file.path
        self.text = file.text
        self.masked = masked
        self.closed = False

    def close(self) -> None:
        self.text = ""
        self.masked = ""
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
