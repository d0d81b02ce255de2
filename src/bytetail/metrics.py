"""Metrics helper for TailEngine.

Provides a lightweight, dependency-free snapshot of engine counters suitable
for exposure via HTTP or logging. Reads only; never touches the session.
"""
from __future__ import annotations

from dataclasses import asdict
from typing import Dict, Any

from .tail import TailEngine


def engine_metrics(engine: TailEngine) -> Dict[str, Any]:
    return {
        "path": engine.path,
        "position": engine.position,
        "running": engine.running,
        "open": engine.session.handle is not None,
        **asdict(engine.stats),
        "config": {
            "poll_delay": engine.config.poll_delay,
            "buffer_size": engine.config.buffer_size,
            "start_at_end": engine.config.start_at_end,
            "reopen_each_cycle": engine.config.reopen_each_cycle,
        },
    }

__all__ = ["engine_metrics"]
