"""Run-scoped JSON-lines logging.

Components log through ``structlog.get_logger(__name__)`` or an injected
logger. ``configure_logging`` points structlog at one sink per run, the file
``<log_dir>/<run_id>/xdeploy.jsonl`` plus, when enabled, the console (stderr,
so ``--json`` output on stdout stays parseable).

Each line is one JSON object::

    {"event": "artifact_deployed", "level": "INFO", "logger": "...",
     "timestamp": "...Z", "run_id": "...", "chain_id": "1",
     "fields": {"address": "0x..."}}

Keys bound with ``correlation_scope`` sit at the top level next to ``run_id``;
everything passed to the individual log call lands under ``fields``.
"""

from __future__ import annotations

import re
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Final

import structlog
from structlog.typing import EventDict, WrappedLogger

from xdeploy.constants import LOG_DIR

LOG_FILENAME: Final[str] = "xdeploy.jsonl"
REDACTED: Final[str] = "***REDACTED***"

_LEVELS: Final[dict[str, int]] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
}
_TOP_LEVEL_KEYS: Final[frozenset[str]] = frozenset(
    {"event", "exception", "level", "logger", "timestamp"}
)
# Signing material must never reach a log line, even by accident.
_SENSITIVE_KEY = re.compile(r"(?i)secret|password|passphrase|mnemonic|private_?key|api_?key")
_SENSITIVE_ASSIGNMENT = re.compile(
    r"(?i)\b(private[_-]?key|mnemonic|password|secret)\b\s*([:=])\s*([^\s,;]+)"
)


@dataclass(frozen=True, slots=True)
class LoggingSettings:
    run_id: str
    log_dir: Path = Path(LOG_DIR)
    level: str = "INFO"
    log_to_stdout: bool = True

    @classmethod
    def from_config(cls, config: Mapping[str, Any], *, run_id: str) -> LoggingSettings:
        """Build settings from the validated ``[observability]`` section."""

        section = config.get("observability", {})
        return cls(
            run_id=run_id,
            log_dir=Path(section.get("log_dir", str(LOG_DIR))),
            level=str(section.get("log_level", "INFO")),
            log_to_stdout=bool(section.get("log_to_stdout", True)),
        )


class RunLog:
    """Open sink for one run. Closing it restores structlog's defaults."""

    def __init__(self, path: Path, streams: tuple[IO[str], ...], owned: IO[str]) -> None:
        self.path = path
        self._streams = streams
        self._owned = owned
        self._lock = threading.Lock()
        self.closed = False

    def write(self, line: str) -> None:
        with self._lock:
            if self.closed:
                return
            for stream in self._streams:
                stream.write(line + "\n")
                stream.flush()

    def close(self) -> None:
        with self._lock:
            if self.closed:
                return
            self.closed = True
            self._owned.close()
        structlog.reset_defaults()

    def __enter__(self) -> RunLog:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class _NamedSink:
    """What structlog calls once a line is rendered; one per logger name."""

    def __init__(self, sink: RunLog, name: str) -> None:
        self.name = name
        self._sink = sink

    def msg(self, message: str) -> None:
        self._sink.write(message)

    debug = info = warning = warn = error = critical = exception = fatal = msg


def configure_logging(settings: LoggingSettings) -> RunLog:
    """Route every structlog logger into this run's JSON-lines sink."""

    level = _LEVELS.get(settings.level.strip().upper())
    if level is None:
        raise ValueError(f"unsupported logging level {settings.level!r}")
    run_id = settings.run_id.strip()
    if not run_id or Path(run_id).name != run_id:
        raise ValueError(f"run_id must be a single path component, got {settings.run_id!r}")

    run_dir = settings.log_dir / run_id
    run_dir.mkdir(parents=True, exist_ok=True)
    path = run_dir / LOG_FILENAME
    handle = path.open("a", encoding="utf-8")
    streams: tuple[IO[str], ...] = (handle, sys.stderr) if settings.log_to_stdout else (handle,)
    sink = RunLog(path, streams, handle)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            _add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            _redact_event,
            _RunShape(run_id),
            structlog.processors.JSONRenderer(sort_keys=True, ensure_ascii=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=lambda *args: _NamedSink(sink, str(args[0]) if args else "xdeploy"),
        cache_logger_on_first_use=False,
    )
    return sink


@contextmanager
def correlation_scope(**fields: str | int | None) -> Iterator[None]:
    """Stamp ``fields`` on every log line emitted inside the block."""

    bound: dict[str, str] = {}
    for key, value in fields.items():
        if value is None:
            continue
        rendered = str(value).strip()
        if not rendered:
            raise ValueError(f"correlation value for {key!r} must not be empty")
        bound[key] = rendered
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def redact(value: object, *, key: str | None = None) -> object:
    """Mask values under sensitive keys and ``secret=...`` style assignments."""

    if key is not None and _SENSITIVE_KEY.search(key):
        return REDACTED
    if isinstance(value, str):
        return _SENSITIVE_ASSIGNMENT.sub(lambda m: f"{m.group(1)}{m.group(2)}{REDACTED}", value)
    if isinstance(value, Mapping):
        return {str(k): redact(v, key=str(k)) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    if isinstance(value, bytes):
        return "0x" + value.hex()
    if isinstance(value, Path):
        return value.as_posix()
    return value


def _add_logger_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("logger", getattr(logger, "name", "xdeploy"))
    return event_dict


def _redact_event(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    return {key: redact(value, key=key) for key, value in event_dict.items()}


class _RunShape:
    """Lift correlation keys to the top level and nest call-site keys under ``fields``."""

    def __init__(self, run_id: str) -> None:
        self._run_id = run_id

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        correlated = structlog.contextvars.get_contextvars()
        shaped: EventDict = {"run_id": self._run_id}
        fields: dict[str, object] = {}
        for key, value in event_dict.items():
            if key in _TOP_LEVEL_KEYS or key in correlated:
                shaped[key] = value
            else:
                fields[key] = value
        shaped["level"] = str(shaped.get("level", method_name)).upper()
        if fields:
            shaped["fields"] = fields
        return shaped


__all__ = [
    "LOG_FILENAME",
    "REDACTED",
    "LoggingSettings",
    "RunLog",
    "configure_logging",
    "correlation_scope",
    "redact",
]
