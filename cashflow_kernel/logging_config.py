"""
Structured logging for the cashflow kernel.

Every record under the ``cashflow_kernel`` logger is written as one JSON
object per line::

    {"ts": "...", "level": "INFO", "logger": "cashflow_kernel.services.sync_engine",
     "message": "record_submitted", "record_id": "...", "outcome": "accepted-local"}

Keys come from three places, in this order of precedence:

1. the fixed keys ``ts``, ``level``, ``logger``, ``message``;
2. the ambient LogContext of the current thread or task;
3. ``extra=`` fields passed at the call site.

For exceptions logged with ``exc_info`` the formatter adds ``exc_type``,
``exc_message``, ``exc_code`` (kernel errors) and one ``exc_<attr>`` key per
public attribute of the exception, followed by the ``traceback``.

Messages are event names (``remote_write_failed``), never prose; the data
lives in the fields.
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import IO, Any, Iterator, Mapping
from uuid import UUID

ROOT_LOGGER_NAME = "cashflow_kernel"

_CONTEXT_FIELDS = frozenset(
    {"correlation_id", "actor_id", "record_id", "collection", "op_id"}
)

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("cashflow_log_context", default=_EMPTY)


class LogContext:
    """
    Fields attached to every log line emitted in the current context.

    Backed by a single ContextVar holding a read-only mapping, so threads and
    asyncio tasks each see their own fields.  Allowed names: correlation_id,
    actor_id, record_id, collection, op_id.
    """

    @staticmethod
    def _merged(fields: Mapping[str, str | None]) -> Mapping[str, str]:
        unknown = set(fields) - _CONTEXT_FIELDS
        if unknown:
            raise TypeError(f"unknown log context fields: {sorted(unknown)}")
        merged = dict(_context.get())
        merged.update({k: v for k, v in fields.items() if v is not None})
        return MappingProxyType(merged)

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set fields until cleared.  None values leave a field unchanged."""
        _context.set(cls._merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY)

    @classmethod
    def bind(cls, **fields: str | None):
        """
        Set fields for the duration of a ``with`` block.

        The previous values are restored on exit, including on error.
        """
        return _bound(cls._merged(fields))


@contextmanager
def _bound(fields: Mapping[str, str]) -> Iterator[type[LogContext]]:
    token = _context.set(fields)
    try:
        yield LogContext
    finally:
        _context.reset(token)


# Attributes every LogRecord has; anything else on a record came from extra=
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return repr(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in getattr(exc, "__dict__", {}).items():
        if not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a LogRecord as a single JSON line (see module docstring)."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in _context.get().items():
            payload.setdefault(key, value)
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default, ensure_ascii=False)


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name`` below ``cashflow_kernel`` (``services.sync_engine``...)."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


_setup_lock = threading.Lock()


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelNamesMapping().get(level.upper())
    if resolved is None:
        raise ValueError(f"unknown log level {level!r}")
    return resolved


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: IO[str] | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Install the structured handler on the ``cashflow_kernel`` logger.

    Does nothing if a structured handler is already installed; call
    reset_logging() first to reconfigure.  Records do not propagate to the
    root logger.
    """
    with _setup_lock:
        root = logging.getLogger(ROOT_LOGGER_NAME)
        if any(getattr(h, "_cashflow_structured", False) for h in root.handlers):
            return

        if handler is None:
            handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())
        handler._cashflow_structured = True

        root.setLevel(_resolve_level(level))
        root.addHandler(handler)
        root.propagate = False


def reset_logging() -> None:
    """Remove every handler and restore defaults (tests and CLI teardown)."""
    with _setup_lock:
        root = logging.getLogger(ROOT_LOGGER_NAME)
        for h in list(root.handlers):
            root.removeHandler(h)
        root.setLevel(logging.WARNING)
        root.propagate = True
