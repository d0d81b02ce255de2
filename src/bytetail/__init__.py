"""Package metadata and public API for bytetail.

Expose a single source of truth for the version. Prefer reading from
importlib.metadata so that an editable install or wheel always reports
the version declared in pyproject.toml. Fallback to a hardcoded string
to avoid import errors when metadata is unavailable (e.g. direct source
usage without installation).
"""

from __future__ import annotations

from importlib import metadata as _metadata

_FALLBACK_VERSION = "0.1.0"  # MUST match pyproject.toml [project].version

try:  # pragma: no cover - success path covered indirectly via CLI test
	__version__ = _metadata.version("bytetail")  # type: ignore[assignment]
except Exception:  # pragma: no cover - fallback exercised if metadata missing
	__version__ = _FALLBACK_VERSION

from .config import TailConfig, load_config
from .errors import TailCancelled, TailError, TailReadError
from .listener import LineBufferListener, MultiListener, TailListener
from .tail import TailEngine, TailSession, start

__all__ = [
	"__version__",
	"LineBufferListener",
	"MultiListener",
	"TailCancelled",
	"TailConfig",
	"TailEngine",
	"TailError",
	"TailListener",
	"TailReadError",
	"TailSession",
	"load_config",
	"start",
]
