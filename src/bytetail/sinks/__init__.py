"""Event sink abstractions.

Lifecycle events observed while tailing (file missing, rotation, drains,
errors) can be recorded through a sink. ``EventListener`` turns engine
callbacks into event dicts; ``JsonlSink`` appends them to a file.
"""
from __future__ import annotations
import json
import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol

from ..errors import TailError
from ..listener import TailListener
from ..logutil import get_logger

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..tail import TailEngine

class EventSink(Protocol):  # pragma: no cover - simple protocol
    def emit(self, event: Dict[str, Any]) -> None: ...  # noqa: D401,E701 - protocol stub
    def close(self) -> None: ...

class JsonlSink:
    def __init__(self, path: str) -> None:
        self.path = path
        self._fh = open(path, "a", encoding="utf-8")

    def emit(self, event: Dict[str, Any]) -> None:
        self._fh.write(json.dumps(event) + "\n")
        self._fh.flush()

    def close(self) -> None:
        try:
            self._fh.close()
        except OSError as exc:  # pragma: no cover - trivial
            get_logger().debug("closing %s failed: %s", self.path, exc)

class MultiSink:
    def __init__(self, sinks: List[EventSink]):
        self._sinks = sinks

    def emit(self, event: Dict[str, Any]) -> None:
        for s in self._sinks:
            try:
                s.emit(event)
            except Exception:  # noqa: BLE001
                # Best-effort; individual sink failure should not cascade.
                get_logger().exception("event sink %r failed", s)

    def close(self) -> None:  # pragma: no cover
        for s in self._sinks:
            s.close()

class EventListener(TailListener):
    """Record engine lifecycle callbacks as events on a sink.

    Chunks are not recorded one by one; each drain produces a single
    ``drained`` event carrying the number of bytes delivered by it.
    """

    def __init__(self, sink: EventSink) -> None:
        self.sink = sink
        self._engine: Optional["TailEngine"] = None
        self._pending_bytes = 0

    def init(self, engine: "TailEngine") -> None:
        self._engine = engine

    def _event(self, name: str, **extra: Any) -> None:
        engine = self._engine
        event: Dict[str, Any] = {
            "event": name,
            "path": engine.path if engine is not None else None,
            "position": engine.position if engine is not None else None,
            "time": time.time(),
        }
        event.update(extra)
        self.sink.emit(event)

    def file_not_found(self) -> None:
        self._event("file_not_found")

    def file_rotated(self) -> None:
        self._event("file_rotated")

    def handle(self, data: bytes) -> None:
        self._pending_bytes += len(data)

    def end_of_file_reached(self) -> None:
        delivered, self._pending_bytes = self._pending_bytes, 0
        self._event("drained", bytes=delivered)

    def handle_error(self, exc: BaseException) -> None:
        kind = type(exc).__name__ if isinstance(exc, TailError) else "TailError"
        self._event("error", error=f"{kind}: {exc}")

__all__ = ["EventSink", "JsonlSink", "MultiSink", "EventListener"]
