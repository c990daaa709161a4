"""
Structured JSON logging.

Every logger lives under the ``supply_kernel`` namespace and emits one JSON
object per line.  Event names are snake_case messages
(``ledger_entry_posted``, ``receiving_grn_saved``); details travel in
``extra`` and are merged into the payload.  Fields bound with
``LogContext`` (the acting user, the service operation, the document being
worked on) are added to every record emitted while they are bound.
"""

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
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator
from uuid import UUID

_LOGGER_PREFIX = "supply_kernel"

# Context fields, in payload order
_CONTEXT_FIELDS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"supply_log_{name}", default=None)
    for name in ("correlation_id", "actor_id", "operation", "document_id")
}


class LogContext:
    """
    Per-thread (and per-task) fields attached to every log record.

    ``document_id`` holds the business number of the document an operation
    works on, e.g. ``PO-000012`` while a receipt is saved against it.
    """

    @staticmethod
    def _var(name: str) -> ContextVar[str | None]:
        try:
            return _CONTEXT_FIELDS[name]
        except KeyError:
            raise ValueError(f"Unknown log context field: {name}") from None

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set fields; ``None`` values leave the current value alone."""
        for name, value in fields.items():
            if value is not None:
                cls._var(name).set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: var.get()
            for name, var in _CONTEXT_FIELDS.items()
            if var.get() is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _CONTEXT_FIELDS.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        tokens = [
            (cls._var(name), cls._var(name).set(value))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per record.

    Exceptions are flattened: ``exc_type``, ``exc_message``, ``exc_code``
    for typed kernel errors, and one ``exc_<attr>`` key per public attribute
    (e.g. ``exc_field_name`` on MissingFieldError).
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        exc = record.exc_info[1] if record.exc_info else None
        if exc is not None:
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            if hasattr(exc, "code"):
                payload["exc_code"] = exc.code
            payload.update(
                (f"exc_{k}", v) for k, v in vars(exc).items() if not k.startswith("_")
            )
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


def get_logger(name: str) -> logging.Logger:
    """``get_logger("services.ledger")`` -> ``supply_kernel.services.ledger``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the ``supply_kernel`` logger. Idempotent."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(level)
    root.propagate = False
    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)


def reset_logging() -> None:
    """Undo configure_logging(). Tests only."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_LOGGER_PREFIX)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
