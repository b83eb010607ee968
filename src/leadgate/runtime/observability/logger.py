"""Structured event logging for the gateway.

A log line is an event name plus key=value fields. Fields are merged from, in
increasing priority: the active ``log_context`` scope (session or request),
the logger's bound fields, and the call site.

Output always goes to stderr; with the stdio transport, stdout is reserved for
protocol frames.

Quick Start:
    >>> from leadgate.runtime.observability import configure_logging, get_logger, log_context
    >>>
    >>> configure_logging(format="console")  # "json" for log shippers, "none" to silence
    >>> log = get_logger("leadgate.client")
    >>> with log_context(session_id="a1b2"):
    ...     log.info("upstream call", method="GET", path="/campaigns")
    # => 10:30:45.123 [info] upstream call logger="leadgate.client" method="GET" path="/campaigns" session_id="a1b2"
"""

from __future__ import annotations

import logging
import sys
import time
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, TextIO, runtime_checkable

import orjson

# Fields contributed by enclosing log_context scopes; copied on write, never mutated
_scope: ContextVar[dict[str, Any]] = ContextVar("leadgate_log_scope", default={})


# ─────────────────────────────────────────────────────────────────────────────
# Entries & Renderers
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class LogEntry:
    timestamp: float
    level: int
    event: str
    fields: dict[str, Any]

    @property
    def level_name(self) -> str:
        return logging.getLevelName(self.level).lower()

    @property
    def iso_time(self) -> str:
        return datetime.fromtimestamp(self.timestamp, tz=UTC).isoformat()

    @property
    def clock(self) -> str:
        """HH:MM:SS.mmm"""
        return datetime.fromtimestamp(self.timestamp, tz=UTC).strftime("%H:%M:%S.%f")[:-3]


@runtime_checkable
class LogRenderer(Protocol):
    """Turns an entry into one output line, or None to drop it."""

    def __call__(self, entry: LogEntry) -> str | None: ...


@dataclass(frozen=True, slots=True)
class _Palette:
    reset: str = "\033[0m"
    bold: str = "\033[1m"
    dim: str = "\033[2m"
    red: str = "\033[31m"
    green: str = "\033[32m"
    yellow: str = "\033[33m"
    blue: str = "\033[34m"
    cyan: str = "\033[36m"

    def for_level(self, name: str) -> str:
        return {"debug": self.dim, "info": self.green, "warning": self.yellow}.get(name, self.red)


_ANSI = _Palette()
_PLAIN = _Palette(*[""] * 8)


@dataclass(slots=True)
class ConsoleRenderer:
    """``HH:MM:SS.mmm [level] event key=value ...``, sorted keys, ANSI colors when the output is a tty."""

    colors: bool = False

    def __call__(self, entry: LogEntry) -> str:
        p = _ANSI if self.colors else _PLAIN
        head = f"{p.dim}{entry.clock}{p.reset} {p.for_level(entry.level_name)}[{entry.level_name}]{p.reset} " \
               f"{p.bold}{entry.event}{p.reset}"
        pairs = [f"{p.cyan}{k}{p.reset}={_console_value(v, p)}" for k, v in sorted(entry.fields.items())
                 if k != "exc_info"]
        line = " ".join([head, *pairs])
        if trace := entry.fields.get("exc_info"):
            line = f"{line}\n{p.red}{trace.rstrip()}{p.reset}"
        return line


@dataclass(slots=True)
class JsonRenderer:
    """One JSON object per line for log shippers."""

    def __call__(self, entry: LogEntry) -> str:
        record = {"timestamp": entry.iso_time, "level": entry.level_name, "event": entry.event, **entry.fields}
        return orjson.dumps(record, option=orjson.OPT_NON_STR_KEYS, default=str).decode()


@dataclass(slots=True)
class NoOpRenderer:
    def __call__(self, entry: LogEntry) -> None:
        return None


def _console_value(value: object, p: _Palette) -> str:
    match value:
        case str():
            return f'{p.yellow}"{value}"{p.reset}'
        case bool() | None:
            return f"{p.blue}{orjson.dumps(value).decode()}{p.reset}"
        case int() | float():
            return f"{p.blue}{value}{p.reset}"
        case dict() | list() | tuple():
            return f"{p.dim}{orjson.dumps(value, default=str).decode()}{p.reset}"
        case _:
            return repr(value)


# ─────────────────────────────────────────────────────────────────────────────
# Process Configuration
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class _Output:
    renderer: LogRenderer = field(default_factory=ConsoleRenderer)
    stream: TextIO | None = None  # None follows sys.stderr, so test capture keeps working
    level: int = logging.INFO

    def write(self, entry: LogEntry) -> None:
        if (line := self.renderer(entry)) is None:
            return
        stream = self.stream or sys.stderr
        stream.write(line + "\n")
        stream.flush()


_output = _Output()


def configure_logging(
    format: str = "console",  # noqa: A002
    level: str = "INFO",
    *,
    output: TextIO | None = None,
    colors: bool | None = None,
) -> LogRenderer:
    """Select the renderer and minimum level for the whole process.

    Args:
        format: "console", "json" or "none"
        level: Standard level name, case-insensitive; unknown names mean INFO
        output: Stream to write to (stderr when omitted)
        colors: Force ANSI colors on or off; detected from the stream by default
    """
    match format:
        case "console":
            tty = getattr(output or sys.stderr, "isatty", lambda: False)()
            renderer: LogRenderer = ConsoleRenderer(colors=tty if colors is None else colors)
        case "json":
            renderer = JsonRenderer()
        case "none":
            renderer = NoOpRenderer()
        case _:
            raise ValueError(f"Unknown log format {format!r}; expected console, json or none")
    _output.renderer = renderer
    _output.stream = output
    _output.level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    return renderer


# ─────────────────────────────────────────────────────────────────────────────
# Loggers
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class BoundLogger:
    """Logger carrying a fixed set of fields. ``bind`` returns a new logger.

    The level and renderer are looked up on every call, so module-level
    loggers created before ``configure_logging`` still follow it.

    Example:
        >>> log = BoundLogger(context={"component": "dispatch"})
        >>> log.bind(tool="campaign_get").info("tool succeeded", duration_ms=41.2)
    """

    context: dict[str, Any] = field(default_factory=dict)

    def bind(self, **fields: Any) -> BoundLogger:
        return BoundLogger(context={**self.context, **fields})

    def log(self, level: int, event: str, **fields: Any) -> None:
        if level < _output.level:
            return
        _output.write(LogEntry(time.time(), level, event, {**_scope.get(), **self.context, **fields}))

    def debug(self, event: str, **fields: Any) -> None:
        self.log(logging.DEBUG, event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self.log(logging.INFO, event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self.log(logging.WARNING, event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self.log(logging.ERROR, event, **fields)

    def exception(self, event: str, **fields: Any) -> None:
        """ERROR entry with the traceback of the exception being handled."""
        self.log(logging.ERROR, event, exc_info=traceback.format_exc(), **fields)


def get_logger(name: str | None = None, **fields: Any) -> BoundLogger:
    """Logger with ``fields`` bound, plus ``logger=<name>`` when a name is given."""
    return BoundLogger(context={**fields, "logger": name} if name else dict(fields))


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Add ``fields`` to every entry logged inside the block, across awaits in the same task."""
    token = _scope.set({**_scope.get(), **fields})
    try:
        yield
    finally:
        _scope.reset(token)
