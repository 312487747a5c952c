"""
stock_kernel.logging_config -- JSON-lines logging for every stock layer.

Responsibility:
    One JSON object per log record, carrying the envelope (ts, level,
    logger, message), the request-scoped context bound through
    ``LogContext`` (correlation, venue, department, run), any structured
    ``extra`` fields, and the ``code`` and public attributes of a
    raised StockKernelError.

Architecture position:
    Kernel -- imported by every layer.  All loggers live under the
    ``stock_kernel`` namespace so one handler covers engines, config,
    ingestion and services alike.

Usage:
    logger = get_logger("engines.variance")      # -> "stock_kernel.engines.variance"
    with LogContext.bind(venue_id="v1", run_id=run_id):
        logger.info("variance_report_started", extra={"window": label})
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TextIO

__all__ = [
    "CONTEXT_FIELDS",
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]

ROOT_LOGGER_NAME = "stock_kernel"

CONTEXT_FIELDS: tuple[str, ...] = ("correlation_id", "venue_id", "department_id", "run_id")

_CONTEXT: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"stock_log_{name}", default=None) for name in CONTEXT_FIELDS
}


class LogContext:
    """
    Request-scoped log fields, isolated per thread and per asyncio task.

    Unknown field names are ignored rather than rejected so callers can
    pass through loosely-shaped request metadata.
    """

    @staticmethod
    def set(**fields: str | None) -> None:
        """Set the given fields; None values leave the current value alone."""
        for name, value in fields.items():
            var = _CONTEXT.get(name)
            if var is not None and value is not None:
                var.set(value)

    @staticmethod
    def get_all() -> dict[str, str]:
        return {
            name: value
            for name, var in _CONTEXT.items()
            if (value := var.get()) is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _CONTEXT.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[type[LogContext]]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        tokens = [
            (var, var.set(value))
            for name, value in fields.items()
            if value is not None and (var := _CONTEXT.get(name)) is not None
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# LogRecord attributes that are not caller-supplied ``extra`` fields.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for attr, value in vars(exc).items():
        if not attr.startswith("_") and attr != "code":
            fields[f"exc_{attr}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a record as one line of JSON."""

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

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name`` under the ``stock_kernel`` namespace."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


_setup_lock = threading.Lock()
_HANDLER_MARK = "_stock_kernel_handler"


def _installed_handlers(root: logging.Logger) -> list[logging.Handler]:
    return [h for h in root.handlers if getattr(h, _HANDLER_MARK, False)]


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach the JSON handler to the ``stock_kernel`` logger.

    Only the first call has an effect until ``reset_logging()`` is called.
    Records do not propagate to the Python root logger.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    with _setup_lock:
        if _installed_handlers(root):
            return
        target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        setattr(target, _HANDLER_MARK, True)
        target.setFormatter(StructuredFormatter())
        root.addHandler(target)
        root.setLevel(level)
        root.propagate = False


def reset_logging() -> None:
    """Remove the handler installed by ``configure_logging`` (tests and scripts)."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    with _setup_lock:
        for installed in _installed_handlers(root):
            root.removeHandler(installed)
        root.setLevel(logging.WARNING)
