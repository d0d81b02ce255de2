"""Polling ``tail -f`` engine delivering raw bytes to a listener.

Behavior:
- Waits for the file to appear, reporting ``file_not_found`` once per attempt.
- Starts at byte 0 (or at the current end when ``start_at_end`` is set) and
  forwards every appended byte in buffer-sized chunks, in file order.
- If the file shrinks below the read position it is treated as rotated: the old
  handle is drained to its own end first, then reading restarts at 0 on the
  file now living at the path.
- If the length is unchanged but the modification time moved forward, the file
  was truncated and rewritten with the same length; it is re-read from 0.

The engine never decodes or splits the bytes; see ``LineBufferListener`` for
line framing.
"""
from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from typing import BinaryIO, Callable, Optional, Type, Union

from .config import TailConfig
from .errors import TailCancelled, TailError, TailReadError
from .listener import TailListener
from .logutil import get_logger

PathLike = Union[str, "os.PathLike[str]"]


@dataclass
class TailSession:
    path: str
    handle: Optional[BinaryIO] = None
    position: int = 0  # offset of the next unread byte
    last_modified: int = 0  # st_mtime_ns observed after the last drain


@dataclass
class TailStats:
    bytes_delivered: int = 0
    chunks: int = 0
    drains: int = 0
    rotations: int = 0
    not_found: int = 0
    reopens: int = 0


def _stat_or_none(path: str) -> Optional[os.stat_result]:
    try:
        return os.stat(path)
    except FileNotFoundError:
        return None


def _wrap(cls: Type[TailError], message: str, path: str, cause: BaseException) -> TailError:
    err = cls(message, path)
    err.__cause__ = cause
    return err


class TailEngine:
    """Follow one file, pushing new bytes and lifecycle events to ``listener``.

    ``listener.init(engine)`` is called from the constructor, before any file
    access. Call ``run()`` to tail in the current thread or ``start()`` to spawn
    a daemon worker. ``stop()`` is cooperative: the loop exits at its next
    checkpoint (top of an iteration, between chunks, or in the wait-for-file
    loop) and releases its handle. ``cancel()`` is fatal: the listener receives a
    ``TailCancelled`` through ``handle_error`` and the engine stops.

    ``sleep`` replaces the poll-delay wait; it receives the delay in seconds.
    """

    def __init__(
        self,
        path: PathLike,
        listener: TailListener,
        config: Optional[TailConfig] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.path = os.fspath(path)
        self.config = config or TailConfig()
        self.listener = listener
        self.session = TailSession(path=self.path)
        self.stats = TailStats()
        self._sleep_hook = sleep
        self._running = threading.Event()
        self._running.set()
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._log = get_logger()
        listener.init(self)

    # -- control ---------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running.is_set()

    @property
    def position(self) -> int:
        return self.session.position

    def stop(self) -> None:
        """Ask the loop to finish; returns without waiting for it."""
        self._running.clear()

    def cancel(self) -> None:
        """Cancel the worker: reported to the listener as ``TailCancelled``."""
        self._cancelled.set()

    def start(self) -> "TailEngine":
        if self._thread is not None:
            raise RuntimeError("engine already started")
        self._thread = threading.Thread(target=self.run, name=f"bytetail[{self.path}]", daemon=True)
        self._thread.start()
        return self

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -- main loop -------------------------------------------------------

    def run(self) -> None:
        try:
            self._await_file()
            while self.running:
                self._check_cancelled()
                if not self._poll():
                    # Rotation resolved: drain the new file without waiting
                    continue
                if self.config.reopen_each_cycle:
                    self._close()
                if not self.running:
                    break
                self._sleep()
                if self.running and self.config.reopen_each_cycle:
                    self._reopen_at_position()
        except TailError as exc:
            self._fail(exc)
        except KeyboardInterrupt as exc:
            self._fail(_wrap(TailCancelled, "tail interrupted", self.path, exc))
            raise
        except OSError as exc:
            self._fail(_wrap(TailReadError, f"failed reading {self.path}: {exc}", self.path, exc))
        except Exception as exc:  # noqa: BLE001 - the worker is the last line of defense
            self._fail(_wrap(TailError, f"tailing {self.path} failed: {exc}", self.path, exc))
        finally:
            self._close()
            self._log.debug("stopped tailing %s at offset %d", self.path, self.session.position)

    def _await_file(self) -> None:
        session = self.session
        while self.running and session.handle is None:
            try:
                handle = self._open()
            except FileNotFoundError:
                self._not_found()
                self._sleep()
                continue
            st = os.fstat(handle.fileno())
            session.handle = handle
            session.position = st.st_size if self.config.start_at_end else 0
            session.last_modified = st.st_mtime_ns
            handle.seek(session.position)
            self._log.debug("opened %s at offset %d", self.path, session.position)

    def _poll(self) -> bool:
        """Run one detection/read step. Returns False when the sleep must be skipped."""
        session = self.session
        # Must be evaluated before the length to notice a rewrite racing this check
        newer = self._is_newer()
        length = self._length()
        if length < session.position:
            return self._rotate()
        handle = session.handle
        if handle is None:
            raise TailError(f"no open handle for {self.path}", self.path)
        if length > session.position:
            self._drain(handle, limit=length, track=True)
            session.last_modified = self._modified()
        elif newer:
            # Truncated and rewritten with exactly the same length
            self._log.debug("%s rewritten in place; rereading from 0", self.path)
            handle.seek(0)
            session.position = 0
            self._drain(handle, limit=length, track=True)
            session.last_modified = self._modified()
        return True

    def _rotate(self) -> bool:
        session = self.session
        self._log.debug("%s shrank below offset %d; treating as rotated", self.path, session.position)
        self.listener.file_rotated()
        try:
            new_handle = self._open()
        except FileNotFoundError:
            # Replacement not there yet: keep serving the old handle and position
            self._not_found()
            return True
        self.stats.rotations += 1
        old = session.handle
        session.handle = new_handle
        try:
            if old is not None:
                self._drain(old)
        except OSError as exc:
            self._log.warning("error draining rotated %s: %s", self.path, exc)
            self._report(_wrap(TailReadError, f"failed draining rotated {self.path}: {exc}", self.path, exc))
        finally:
            if old is not None:
                self._close_quietly(old)
        session.position = 0
        return False

    def _drain(self, handle: BinaryIO, limit: Optional[int] = None, track: bool = False) -> int:
        """Deliver bytes from the handle offset up to ``limit`` (or EOF).

        Returns the new offset; with ``track`` the session position follows
        each chunk. ``end_of_file_reached`` fires once at the end unless the
        engine was stopped mid-drain.
        """
        offset = handle.tell()
        size = self.config.buffer_size
        while self.running:
            self._check_cancelled()
            want = size if limit is None else min(size, limit - offset)
            if want <= 0:
                break
            chunk = handle.read(want)
            if not chunk:
                break
            offset += len(chunk)
            if track:
                self.session.position = offset
            self.stats.chunks += 1
            self.stats.bytes_delivered += len(chunk)
            self.listener.handle(chunk)
        if self.running:
            self.stats.drains += 1
            self.listener.end_of_file_reached()
        return offset

    def _reopen_at_position(self) -> None:
        session = self.session
        while self.running and session.handle is None:
            try:
                handle = self._open()
            except FileNotFoundError:
                self._not_found()
                self._sleep()
                continue
            handle.seek(session.position)
            session.handle = handle
            self.stats.reopens += 1

    # -- helpers ---------------------------------------------------------

    def _open(self) -> BinaryIO:
        return open(self.path, "rb", buffering=0)  # type: ignore[return-value]

    def _is_newer(self) -> bool:
        st = _stat_or_none(self.path)
        return st is not None and st.st_mtime_ns > self.session.last_modified

    def _length(self) -> int:
        st = _stat_or_none(self.path)
        return st.st_size if st is not None else 0

    def _modified(self) -> int:
        st = _stat_or_none(self.path)
        return st.st_mtime_ns if st is not None else 0

    def _sleep(self) -> None:
        delay = self.config.poll_delay
        if self._sleep_hook is not None:
            self._sleep_hook(delay)
        else:
            self._cancelled.wait(delay)
        self._check_cancelled()

    def _check_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise TailCancelled("tail cancelled", self.path)

    def _not_found(self) -> None:
        self.stats.not_found += 1
        self._log.debug("%s not found", self.path)
        self.listener.file_not_found()

    def _report(self, exc: BaseException) -> None:
        try:
            self.listener.handle_error(exc)
        except Exception:  # noqa: BLE001 - errors from the error sink cannot be reported anywhere else
            self._log.exception("listener failed handling %r", exc)

    def _fail(self, exc: TailError) -> None:
        if isinstance(exc, TailCancelled):
            self._log.debug("%s", exc)
        else:
            self._log.warning("%s", exc)
        self._report(exc)
        self._running.clear()

    def _close(self) -> None:
        handle = self.session.handle
        self.session.handle = None
        if handle is not None:
            self._close_quietly(handle)

    def _close_quietly(self, handle: BinaryIO) -> None:
        try:
            handle.close()
        except OSError as exc:  # pragma: no cover - close failures on read-only handles are rare
            self._log.debug("closing %s failed: %s", self.path, exc)


def start(path: PathLike, listener: TailListener, config: Optional[TailConfig] = None) -> TailEngine:
    """Create an engine for ``path`` and run it on a daemon thread.

    The engine is returned after ``listener.init`` ran; use ``stop()`` on it to
    end tailing.
    """
    return TailEngine(path, listener, config).start()


__all__ = ["TailEngine", "TailSession", "TailStats", "start"]
