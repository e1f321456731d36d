"""
Structured JSON logging for the back-office kernel and modules.

Every line is one JSON object. Services log snake_case event names
(``purchase_submitted``, ``transaction_rolled_back``) and put the facts in
``extra``; the formatter merges in whatever workflow context is bound:

    with LogContext.bind(actor_id=operator_id, entity_type="purchase"):
        logger.info("purchase_submitted", extra={"purchase_id": str(pid)})

    {"ts": "...", "level": "INFO", "logger": "backoffice.modules.purchase",
     "message": "purchase_submitted", "actor_id": "...",
     "entity_type": "purchase", "purchase_id": "..."}
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import os
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "actor_id",
    "entity_type",
    "entity_id",
    "operation",
)

_LOGGER_PREFIX = "backoffice"
_LEVEL_ENV_VAR = "BACKOFFICE_LOG_LEVEL"

_VARS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"backoffice_log_{name}", default=None) for name in CONTEXT_FIELDS
}


class LogContext:
    """Workflow fields attached to every log line in the current context.

    Backed by ``ContextVar`` so concurrent requests (threads or tasks) never
    see each other's actor or entity.
    """

    @staticmethod
    def set(**fields: Any) -> None:
        """Set the given fields; ``None`` values and unknown names are ignored."""
        for name, value in fields.items():
            if value is not None and name in _VARS:
                _VARS[name].set(str(value))

    @staticmethod
    def get_all() -> dict[str, str]:
        return {
            name: value
            for name, var in _VARS.items()
            if (value := var.get()) is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _VARS.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of the block, restoring prior values on exit."""
        tokens = [
            (_VARS[name], _VARS[name].set(str(value)))
            for name, value in fields.items()
            if value is not None and name in _VARS
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# Attributes every LogRecord has; anything else on a record came from ``extra``.
_RECORD_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}

_EXC_RESERVED = frozenset({"args", "code", "kind"})


def _json_default(obj: Any) -> Any:
    if isinstance(obj, UUID | Decimal):
        return str(obj)
    if isinstance(obj, datetime | date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: base fields, bound context, extra, exception."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_KEYS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is None:
            return fields
        # BackofficeError: code, kind and its structured attributes
        fields["exc_code"] = code
        fields["exc_kind"] = getattr(exc, "kind", None)
        for key, value in vars(exc).items():
            if not key.startswith("_") and key not in _EXC_RESERVED:
                fields[f"exc_{key}"] = value
        return fields


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``backoffice`` namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.environ.get(_LEVEL_ENV_VAR, "INFO")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level!r}")
        return resolved
    return level


def configure_logging(
    *,
    level: int | str | None = None,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach the JSON handler to the ``backoffice`` logger. Later calls are no-ops.

    ``level`` accepts a number or a name; when omitted it is read from
    ``BACKOFFICE_LOG_LEVEL`` and defaults to INFO.
    """
    global _configured
    resolved = _resolve_level(level)
    with _lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(resolved)
    root.propagate = False

    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    root.addHandler(target)


def reset_logging() -> None:
    """Drop handlers and allow ``configure_logging`` to run again. Tests only."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_LOGGER_PREFIX)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
