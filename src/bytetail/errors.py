"""Exceptions delivered to listeners when a tail engine terminates."""
from __future__ import annotations

from typing import Optional


class TailError(Exception):
    """Unexpected failure that stopped the engine tailing ``path``."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class TailReadError(TailError):
    """I/O failure on an open handle. ``__cause__`` holds the OSError."""


class TailCancelled(TailError):
    """The engine's execution context was cancelled (``cancel()`` or Ctrl-C)."""


__all__ = ["TailError", "TailReadError", "TailCancelled"]
