"""Listener abstractions receiving chunks and lifecycle notifications.

A ``TailEngine`` only ever talks to the hooks declared on ``TailListener``;
every hook has a no-op default so subclasses override just what they need.
Hooks run synchronously on the engine's worker thread.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence

from .logutil import get_logger

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .tail import TailEngine


class TailListener:
    def init(self, engine: "TailEngine") -> None:
        """Called once from the engine constructor, giving a way to stop it."""

    def file_not_found(self) -> None:
        """The tailed file was absent at open or reopen time."""

    def file_rotated(self) -> None:
        """Rotation detected; called before the file is reopened.

        ``file_not_found`` may follow if the replacement file is not there yet.
        """

    def handle(self, data: bytes) -> None:
        """One chunk of newly written bytes, in file order."""

    def handle_error(self, exc: BaseException) -> None:
        """An error while tailing; the final call when the engine dies."""

    def end_of_file_reached(self) -> None:
        """The engine caught up with the file after draining available bytes."""


class LineBufferListener(TailListener):
    """Reassemble newline-terminated lines from raw chunks.

    Subclasses implement ``handle_line``; the terminator is stripped. Data
    after the last newline is held back until more bytes or ``flush()``.
    """

    def __init__(self, max_line_length: int = 64 * 1024, terminator: bytes = b"\n") -> None:
        if max_line_length <= 0:
            raise ValueError("max_line_length must be positive")
        self.max_line_length = max_line_length
        self.terminator = terminator
        self._pending = bytearray()
        self.lines_split = 0

    def handle(self, data: bytes) -> None:
        self._pending.extend(data)
        while True:
            idx = self._pending.find(self.terminator)
            if idx < 0:
                break
            line = bytes(self._pending[:idx])
            del self._pending[: idx + len(self.terminator)]
            self._emit(line)
        # Guardrail: never buffer an unterminated line without bound
        while len(self._pending) > self.max_line_length:
            piece = bytes(self._pending[: self.max_line_length])
            del self._pending[: self.max_line_length]
            self.lines_split += 1
            self.handle_line(piece)

    def _emit(self, line: bytes) -> None:
        if line.endswith(b"\r"):
            line = line[:-1]
        while len(line) > self.max_line_length:
            self.lines_split += 1
            self.handle_line(line[: self.max_line_length])
            line = line[self.max_line_length :]
        self.handle_line(line)

    def flush(self) -> None:
        """Emit whatever partial line is pending."""
        if self._pending:
            line = bytes(self._pending)
            self._pending.clear()
            self._emit(line)

    @property
    def pending(self) -> bytes:
        return bytes(self._pending)

    def handle_line(self, line: bytes) -> None:
        """Override to consume one complete line (terminator removed)."""


class MultiListener(TailListener):
    """Fan every hook out to several listeners, in order.

    A child raising an exception is logged and skipped; the others still run.
    """

    def __init__(self, listeners: Sequence[TailListener]):
        self._listeners: List[TailListener] = list(listeners)

    @property
    def listeners(self) -> List[TailListener]:
        return list(self._listeners)

    def _each(self, hook: str, *args: object) -> None:
        for listener in self._listeners:
            try:
                getattr(listener, hook)(*args)
            except Exception:  # noqa: BLE001 - one child must not starve the others
                get_logger().exception("listener %r failed in %s", listener, hook)

    def init(self, engine: "TailEngine") -> None:
        self._each("init", engine)

    def file_not_found(self) -> None:
        self._each("file_not_found")

    def file_rotated(self) -> None:
        self._each("file_rotated")

    def handle(self, data: bytes) -> None:
        self._each("handle", data)

    def handle_error(self, exc: BaseException) -> None:
        self._each("handle_error", exc)

    def end_of_file_reached(self) -> None:
        self._each("end_of_file_reached")


__all__ = ["TailListener", "LineBufferListener", "MultiListener"]
