import argparse
import signal
import sys
from typing import BinaryIO, List, Optional, TYPE_CHECKING

from . import __version__
from .config import TailConfig, load_config
from .errors import TailCancelled
from .listener import MultiListener, TailListener
from .logutil import get_logger, set_level
from .sinks import EventListener, JsonlSink
from .tail import TailEngine

if TYPE_CHECKING:  # pragma: no cover - typing only
    from rich.console import Console as _Console
else:  # runtime optional import
    try:  # noqa: SIM105
        from rich.console import Console as _Console  # type: ignore
    except Exception:  # noqa: BLE001
        _Console = None  # type: ignore

ConsoleType = Optional["_Console"]


def _maybe_console(args: argparse.Namespace) -> ConsoleType:
    if getattr(args, "no_color", False):
        return None
    if _Console is None:
        return None
    # Notices go to stderr; stdout carries the raw tailed bytes only
    return _Console(stderr=True, highlight=False)


def _notice(console: ConsoleType, message: str, style: str) -> None:
    if console is not None:
        console.print(f"[bytetail] {message}", style=style, markup=False)
    else:
        print(f"[bytetail] {message}", file=sys.stderr, flush=True)


class StdoutListener(TailListener):
    """Copy tailed bytes to a binary stream and report events on stderr."""

    def __init__(self, out: BinaryIO, console: ConsoleType = None) -> None:
        self.out = out
        self.console = console
        self.engine: Optional[TailEngine] = None
        self.failed = False
        self._missing_reported = False

    def init(self, engine: TailEngine) -> None:
        self.engine = engine

    def file_not_found(self) -> None:
        # Retries happen every poll; only the first miss in a row is worth a notice
        if not self._missing_reported:
            path = self.engine.path if self.engine is not None else "file"
            _notice(self.console, f"waiting for {path} (not found)", "yellow")
            self._missing_reported = True

    def file_rotated(self) -> None:
        _notice(self.console, "file rotated; reopening", "cyan")

    def handle(self, data: bytes) -> None:
        self._missing_reported = False
        try:
            self.out.write(data)
        except BrokenPipeError:
            # Reader went away (e.g. piped into head); nothing left to do
            if self.engine is not None:
                self.engine.stop()

    def end_of_file_reached(self) -> None:
        self._missing_reported = False
        try:
            self.out.flush()
        except BrokenPipeError:
            if self.engine is not None:
                self.engine.stop()

    def handle_error(self, exc: BaseException) -> None:
        if isinstance(exc, TailCancelled):
            return
        self.failed = True
        _notice(self.console, f"error: {exc}", "red")


def resolve_config(args: argparse.Namespace) -> TailConfig:
    """Configuration file first, then command line overrides."""
    base = load_config(args.config) if getattr(args, "config", None) else TailConfig()
    overrides = {
        "poll_delay": base.poll_delay if args.delay is None else args.delay,
        "buffer_size": base.buffer_size if args.buffer_size is None else args.buffer_size,
        "start_at_end": base.start_at_end if args.from_end is None else args.from_end,
        "reopen_each_cycle": base.reopen_each_cycle if args.reopen is None else args.reopen,
    }
    return TailConfig.from_mapping(overrides)


def _configure(args: argparse.Namespace) -> Optional[TailConfig]:
    if getattr(args, "log_level", None):
        set_level(args.log_level)
    try:
        return resolve_config(args)
    except FileNotFoundError:
        print(f"[bytetail] config file '{args.config}' not found", file=sys.stderr)
    except (OSError, ValueError) as exc:
        print(f"[bytetail] invalid configuration: {exc}", file=sys.stderr)
    return None


def cmd_follow(args: argparse.Namespace) -> int:
    cfg = _configure(args)
    if cfg is None:
        return 2
    console = _maybe_console(args)
    out = StdoutListener(sys.stdout.buffer, console)
    listeners: List[TailListener] = [out]
    sink: Optional[JsonlSink] = None
    if getattr(args, "events", None):
        try:
            sink = JsonlSink(args.events)
            listeners.append(EventListener(sink))
        except OSError as exc:
            print(f"[bytetail] could not open events file {args.events}: {exc}", file=sys.stderr)
            sink = None
    listener = MultiListener(listeners) if len(listeners) > 1 else out
    engine = TailEngine(args.file, listener, cfg)
    get_logger().debug("following %s with %s", args.file, cfg)

    # SIGTERM behaves like Ctrl-C so the handle is released and the exit is clean
    _old_sigterm = None
    def _sigterm_handler(signum, frame):  # pragma: no cover - exercised indirectly
        raise KeyboardInterrupt
    try:
        _old_sigterm = signal.signal(signal.SIGTERM, _sigterm_handler)
    except (ValueError, OSError):  # pragma: no cover - not in main thread / unsupported
        _old_sigterm = None

    try:
        engine.run()
    except KeyboardInterrupt:
        print("[bytetail] stopping (Ctrl-C)", file=sys.stderr)
    finally:
        if _old_sigterm is not None:
            signal.signal(signal.SIGTERM, _old_sigterm)
        if sink is not None:
            sink.close()
    return 1 if out.failed else 0


def cmd_serve(args: argparse.Namespace) -> int:  # pragma: no cover - integration feature
    try:
        import uvicorn
        from .service import RecentLines, build_app
    except Exception:  # noqa: BLE001
        print("'serve' requires uvicorn and fastapi. Install with `pip install bytetail[server]`.", file=sys.stderr)
        return 2

    cfg = _configure(args)
    if cfg is None:
        return 2
    recent = RecentLines(maxlen=args.lines)
    engine = TailEngine(args.file, recent, cfg).start()
    app = build_app(engine, recent)
    try:
        uvicorn.run(app, host=args.host, port=args.port, log_level="info")
    finally:
        engine.stop()
        engine.join(timeout=max(1.0, cfg.poll_delay * 2))
    return 0


def _add_tail_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("file", help="File to follow")
    p.add_argument("--config", help="TOML file with a [tail] table of defaults")
    p.add_argument("--delay", type=float, help="Seconds between checks for new content (default 1.0)")
    p.add_argument("--buffer-size", type=int, help="Bytes read per I/O call (default 4096)")
    p.add_argument(
        "--from-end",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Start at the current end of file instead of byte 0",
    )
    p.add_argument(
        "--reopen",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Close and reopen the file on every poll",
    )
    p.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        help="Verbosity of bytetail's own diagnostics on stderr",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bytetail", description="Follow a file like `tail -f`, surviving rotation and truncation.")
    # Global --version (argparse will exit 0 before validating subcommands)
    parser.add_argument(
        "--version",
        action="version",
        version=f"bytetail {__version__}",
        help="Show version and exit",
    )
    sub = parser.add_subparsers(dest="cmd")

    follow_parser = sub.add_parser("follow", help="Copy appended bytes of a file to stdout")
    _add_tail_options(follow_parser)
    follow_parser.add_argument("--events", help="Append JSON lines describing tail events to this file")
    follow_parser.add_argument("--no-color", action="store_true", help="Disable colorized notices even if rich present")
    follow_parser.set_defaults(func=cmd_follow)

    serve_parser = sub.add_parser("serve", help="Follow a file and expose status over HTTP (requires bytetail[server])")
    _add_tail_options(serve_parser)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8080)
    serve_parser.add_argument("--lines", type=int, default=1000, help="Number of recent lines kept for /lines")
    serve_parser.set_defaults(func=cmd_serve)

    # Simple 'version' subcommand for shells/users preferring explicit command
    version_parser = sub.add_parser("version", help="Show version and exit")
    version_parser.set_defaults(func=lambda _: (print(f"bytetail {__version__}"), 0)[1])

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "cmd", None):  # No subcommand provided
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
