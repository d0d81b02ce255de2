import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Union

if sys.version_info >= (3, 11):
    import tomllib  # type: ignore
else:  # pragma: no cover - fallback for older interpreters
    import tomli as tomllib  # type: ignore

DEFAULT_POLL_DELAY = 1.0
DEFAULT_BUFFER_SIZE = 4096


def _number(name: str, value: Any, kind: type) -> Any:
    # Strings are parsed; numbers are only converted when no precision is lost
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, not {str(value).lower()}")
    if isinstance(value, str):
        try:
            return kind(value)
        except ValueError:
            raise ValueError(f"{name} must be a number, got {value!r}") from None
    if not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {type(value).__name__}")
    if kind is int and isinstance(value, float) and not value.is_integer():
        return value  # rejected by TailConfig.__post_init__
    return kind(value)


@dataclass(frozen=True)
class TailConfig:
    # Seconds between checks of the file when idle
    poll_delay: float = DEFAULT_POLL_DELAY
    # Bytes read per I/O call; also the upper bound of a delivered chunk
    buffer_size: int = DEFAULT_BUFFER_SIZE
    # Begin at the current end of file instead of byte 0
    start_at_end: bool = False
    # Close the handle before each sleep and reopen it afterwards
    reopen_each_cycle: bool = False

    def __post_init__(self) -> None:
        if self.poll_delay < 0:
            raise ValueError("poll_delay must be >= 0")
        if int(self.buffer_size) != self.buffer_size or self.buffer_size <= 0:
            raise ValueError("buffer_size must be a positive integer")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TailConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown tail option(s): {', '.join(unknown)}")
        kwargs: dict[str, Any] = {}
        if "poll_delay" in data:
            kwargs["poll_delay"] = _number("poll_delay", data["poll_delay"], float)
        if "buffer_size" in data:
            kwargs["buffer_size"] = _number("buffer_size", data["buffer_size"], int)
        for flag in ("start_at_end", "reopen_each_cycle"):
            if flag in data:
                value = data[flag]
                if not isinstance(value, bool):
                    raise ValueError(f"{flag} must be true or false")
                kwargs[flag] = value
        return cls(**kwargs)


def load_config(path: Union[str, Path]) -> TailConfig:
    """Read the ``[tail]`` table of a TOML file.

    A file without that table yields the defaults.
    """
    text = Path(path).read_text(encoding="utf-8")
    data = tomllib.loads(text)
    table = data.get("tail", {})
    if not isinstance(table, dict):
        raise ValueError("[tail] must be a table")
    return TailConfig.from_mapping(table)


__all__ = ["TailConfig", "load_config", "DEFAULT_POLL_DELAY", "DEFAULT_BUFFER_SIZE"]
