from pathlib import Path
from typing import Callable, List

import pytest

from bytetail.listener import TailListener


class RecordingListener(TailListener):
    """Remember every callback as a tuple, in order."""

    def __init__(self):
        self.events: list = []
        self.engine = None

    def init(self, engine):
        self.engine = engine
        self.events.append(("init",))

    def file_not_found(self):
        self.events.append(("not_found",))

    def file_rotated(self):
        self.events.append(("rotated",))

    def handle(self, data):
        self.events.append(("data", data))

    def handle_error(self, exc):
        self.events.append(("error", exc))

    def end_of_file_reached(self):
        self.events.append(("eof",))

    @property
    def data(self) -> bytes:
        return b"".join(e[1] for e in self.events if e[0] == "data")

    @property
    def chunks(self) -> List[bytes]:
        return [e[1] for e in self.events if e[0] == "data"]

    @property
    def errors(self) -> list:
        return [e[1] for e in self.events if e[0] == "error"]

    def kinds(self) -> List[str]:
        return [e[0] for e in self.events if e[0] != "init"]


class Script:
    """Stand-in for the poll sleep: runs one action per call, then stops the engine."""

    def __init__(self, *actions: Callable):
        self.actions = list(actions)
        self.engine = None
        self.delays: List[float] = []

    def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.actions:
            self.actions.pop(0)(self.engine)
        else:
            self.engine.stop()


def append(path: Path, data: bytes) -> None:
    with path.open("ab") as fh:
        fh.write(data)


@pytest.fixture
def recorder():
    return RecordingListener()


@pytest.fixture
def log_path(tmp_path):
    return tmp_path / "app.log"


@pytest.fixture
def run_engine():
    """Build and run an engine in the test thread, driven by scripted sleeps."""
    from bytetail.tail import TailEngine

    def _run(path, listener, config, *actions):
        script = Script(*actions)
        engine = TailEngine(path, listener, config, sleep=script)
        script.engine = engine
        engine.run()
        return engine, script

    return _run
