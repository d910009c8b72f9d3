from __future__ import annotations

"""
scenariokit.core.log
====================

Structured logging over the stdlib `logging` module.

Call sites log an event name plus keyword fields:

    log.debug("scenario.row.created", event="scenario.row.created", collection="users")

`get_logger()` returns an adapter that moves those fields into `extra`, together
with the current log context (`log_context(run_id=..., task_id=...)`), so every
record carries them as attributes and formatters read them off the record.

The `scenariokit` namespace is silent by default (NullHandler); applications and
tests opt in with `enable_stdout_logging()` or `configure_from_env()`.
"""

import contextvars
import json
import logging
import os
import sys
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, ClassVar, Final

__all__ = [
    "HumanFormatter",
    "JsonFormatter",
    "bind_context",
    "configure_from_env",
    "enable_stdout_logging",
    "get_logger",
    "log_context",
]

# ---------- Context ----------

_log_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "scenariokit_log_ctx", default=None
)


def _ctx_copy() -> dict[str, Any]:
    ctx = _log_context.get()
    return dict(ctx) if ctx else {}


def _present(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}


def bind_context(**fields: Any) -> None:
    """Merge fields into the current context for the rest of this task (or session)."""
    _log_context.set({**_ctx_copy(), **_present(fields)})


@contextmanager
def log_context(**fields: Any):
    """
    Add fields to the log context for the duration of the block. asyncio tasks
    created inside the block keep a copy after it exits.
    """
    token = _log_context.set({**_ctx_copy(), **_present(fields)})
    try:
        yield
    finally:
        _log_context.reset(token)


# ---------- Records and formatters ----------

# attributes every LogRecord has; anything else on a record came through `extra`
_RECORD_ATTRS: Final[frozenset[str]] = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

# fields the human formatter appends, in this order
_HUMAN_FIELDS: Final[tuple[str, ...]] = ("run_id", "collection", "task_id", "error")


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


class JsonFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, message and the extra fields."""

    def __init__(self, *, include_stack: bool = False) -> None:
        super().__init__()
        self.include_stack = include_stack

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds")
        out: dict[str, Any] = {
            "ts": ts.replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for k, v in _extra_fields(record).items():
            out.setdefault(k, v)

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            out["exception"] = {"type": type(exc).__name__, "message": str(exc)}
            if self.include_stack:
                out["exception"]["stack"] = self.formatException(record.exc_info)

        return json.dumps(out, ensure_ascii=False, separators=(",", ":"), default=str)


class HumanFormatter(logging.Formatter):
    """`HH:MM:SS.mmm LEVEL logger: message  [run_id=.. task_id=..]` for local debugging."""

    default_time_format = "%H:%M:%S"
    default_msec_format = "%s.%03d"

    def format(self, record: logging.LogRecord) -> str:
        line = f"{self.formatTime(record)} {record.levelname:<7} {record.name}: {record.getMessage()}"
        shown = [f"{k}={getattr(record, k)}" for k in _HUMAN_FIELDS if getattr(record, k, None) is not None]
        if shown:
            line += "  [" + " ".join(shown) + "]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class _KwExtraAdapter(logging.LoggerAdapter):
    """Moves keyword fields and the current log context into `extra`."""

    _passthrough: ClassVar[frozenset[str]] = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})

    def process(self, msg, kwargs):
        extra = kwargs.get("extra")
        extra = dict(extra) if isinstance(extra, dict) else {}
        fields = {k: kwargs.pop(k) for k in [k for k in kwargs if k not in self._passthrough]}
        # call-site fields win over context; reserved names get a prefix
        for k, v in {**_ctx_copy(), **fields}.items():
            extra.setdefault(f"field_{k}" if k in _RECORD_ATTRS else k, v)
        kwargs["extra"] = extra
        return msg, kwargs


# ---------- Public configuration API ----------

_ROOT_LOGGER_NAME = "scenariokit"
_STREAM_HANDLER_NAME = "scenariokit-stream"
_configured = False


def _level_from(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if isinstance(resolved, str):  # unknown name -> numeric not resolved
        raise ValueError(f"Invalid level name: {level!r}")
    return resolved


def get_logger(name: str | None = None) -> logging.LoggerAdapter:
    """Namespaced logger adapter that accepts arbitrary keyword fields."""
    _bootstrap_minimal()
    base = logging.getLogger(_ROOT_LOGGER_NAME)
    target = base.getChild(name) if name else base
    return _KwExtraAdapter(target, {})


def _bootstrap_minimal() -> None:
    global _configured
    if _configured:
        return
    lg = logging.getLogger(_ROOT_LOGGER_NAME)
    lg.setLevel(logging.DEBUG)
    if not any(isinstance(h, logging.NullHandler) for h in lg.handlers):
        lg.addHandler(logging.NullHandler())
    _configured = True


def _drop_stream_handler(lg: logging.Logger) -> None:
    for h in list(lg.handlers):
        if h.get_name() == _STREAM_HANDLER_NAME:
            lg.removeHandler(h)


def enable_stdout_logging(
    *,
    level: int | str = logging.DEBUG,
    json_output: bool = True,
    include_stack: bool = False,
) -> logging.Handler:
    """
    Route the `scenariokit` namespace to stdout, replacing any handler a
    previous call installed. JSON lines by default, `HumanFormatter` otherwise.
    """
    _bootstrap_minimal()
    lg = logging.getLogger(_ROOT_LOGGER_NAME)
    _drop_stream_handler(lg)

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_STREAM_HANDLER_NAME)
    handler.setLevel(_level_from(level))
    handler.setFormatter(JsonFormatter(include_stack=include_stack) if json_output else HumanFormatter())
    lg.addHandler(handler)
    return handler


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes", "on")


def configure_from_env() -> None:
    """
    Honors:
      - SCENARIOKIT_LOG_LEVEL=DEBUG|INFO|...  (namespace level)
      - SCENARIOKIT_LOG_STDOUT=1  -> log to stdout; otherwise the namespace stays silent
      - SCENARIOKIT_LOG_PRETTY=1  -> human formatter instead of JSON
      - SCENARIOKIT_LOG_STACK=1   -> stack traces in JSON records
    """
    level = _level_from(os.getenv("SCENARIOKIT_LOG_LEVEL", "DEBUG"))
    _bootstrap_minimal()
    lg = logging.getLogger(_ROOT_LOGGER_NAME)
    lg.setLevel(level)

    if _env_flag("SCENARIOKIT_LOG_STDOUT"):
        enable_stdout_logging(
            level=level,
            json_output=not _env_flag("SCENARIOKIT_LOG_PRETTY"),
            include_stack=_env_flag("SCENARIOKIT_LOG_STACK"),
        )
    else:
        _drop_stream_handler(lg)


_bootstrap_minimal()
