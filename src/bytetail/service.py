"""Optional FastAPI service exposing a running TailEngine over HTTP.

Install with `pip install bytetail[server]` to enable.
This keeps the core library dependency-light.
"""
from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Optional

try:  # pragma: no cover - optional dependency
    from fastapi import FastAPI, Query
    from pydantic import BaseModel
except Exception as exc:  # noqa: BLE001
    raise RuntimeError(
        "FastAPI not installed. Install with `pip install bytetail[server]` to use the service."  # noqa: E501
    ) from exc

from . import __version__
from .listener import LineBufferListener
from .metrics import engine_metrics
from .tail import TailEngine


class RecentLines(LineBufferListener):
    """Keep the last ``maxlen`` lines seen by the engine (thread-safe reads)."""

    def __init__(self, maxlen: int = 1000, max_line_length: int = 64 * 1024) -> None:
        super().__init__(max_line_length=max_line_length)
        self._lines: Deque[bytes] = deque([], maxlen=maxlen)
        self._lock = threading.Lock()

    def handle_line(self, line: bytes) -> None:
        with self._lock:
            self._lines.append(line)

    def snapshot(self, limit: Optional[int] = None) -> list[bytes]:
        with self._lock:
            lines = list(self._lines)
        if limit is not None:
            lines = lines[-limit:] if limit > 0 else []
        return lines


class StatusResponse(BaseModel):
    path: str
    position: int
    running: bool
    bytes_delivered: int
    chunks: int
    rotations: int
    not_found: int


class LinesResponse(BaseModel):
    lines: list[str]


def build_app(engine: TailEngine, recent: Optional[RecentLines] = None) -> FastAPI:
    app = FastAPI(title="bytetail", version=__version__)

    @app.get("/healthz")
    def health() -> dict[str, str]:  # pragma: no cover - trivial
        return {"status": "ok"}

    @app.get("/status", response_model=StatusResponse)
    def status() -> StatusResponse:
        stats = engine.stats
        return StatusResponse(
            path=engine.path,
            position=engine.position,
            running=engine.running,
            bytes_delivered=stats.bytes_delivered,
            chunks=stats.chunks,
            rotations=stats.rotations,
            not_found=stats.not_found,
        )

    @app.get("/metrics")
    def metrics() -> dict[str, object]:
        return engine_metrics(engine)

    @app.get("/lines", response_model=LinesResponse)
    def lines(limit: int = Query(100, ge=0, le=10000)) -> LinesResponse:
        raw = recent.snapshot(limit) if recent is not None else []
        return LinesResponse(lines=[ln.decode("utf-8", errors="replace") for ln in raw])

    @app.post("/stop")
    def stop() -> dict[str, str]:
        engine.stop()
        return {"status": "stopping"}

    return app


__all__ = ["RecentLines", "build_app"]
