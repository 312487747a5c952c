"""
stock_engines.tracer -- STOCK_ENGINE_TRACE records for engine invocations.

Responsibility:
    ``@traced_engine`` wraps a pure engine entry point and emits one
    structured record per call: engine name and version, a fingerprint of
    the selected inputs, the duration, and whether the call returned or
    raised.  Two runs over the same data carry the same fingerprint, so a
    report can be tied back to the exact inputs that produced it.

Architecture position:
    Engines -- infrastructure for the pure calculation layer.  Reads
    arguments and emits a log record; never mutates inputs.

Invariants enforced:
    - Fingerprints are deterministic: mappings are rendered with sorted
      keys, dataclasses field by field, enums by value; the digest is the
      first 16 hex chars of SHA-256.
    - Arguments are bound to parameter names, so positional and keyword
      calls fingerprint identically.  Absent fields render as "null".
    - A raising engine still emits its trace (``outcome="error"`` with the
      exception's ``code`` when it has one); the exception propagates.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

_logger = logging.getLogger("stock_kernel.engines.tracer")

TRACE_TYPE = "STOCK_ENGINE_TRACE"


def _canonicalize(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return _canonicalize(value.value)
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float, Decimal)):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = ",".join(
            f"{f.name}:{_canonicalize(getattr(value, f.name))}"
            for f in dataclasses.fields(value)
        )
        return f"{type(value).__name__}{{{fields}}}"
    if isinstance(value, Mapping):
        entries = sorted((str(k), _canonicalize(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in entries) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(map(_canonicalize, value)) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """16-char SHA-256 prefix over ``name=value`` pairs of the selected fields."""
    canonical = "|".join(
        f"{name}={_canonicalize(arguments.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def _emit_trace(
    engine_name: str,
    engine_version: str,
    function: str,
    fingerprint: str,
    started: float,
    error: BaseException | None,
) -> None:
    extra: dict[str, Any] = {
        "trace_type": TRACE_TYPE,
        "engine_name": engine_name,
        "engine_version": engine_version,
        "function": function,
        "input_fingerprint": fingerprint,
        "duration_ms": round((time.monotonic() - started) * 1000, 2),
        "outcome": "ok" if error is None else "error",
    }
    if error is not None:
        extra["error_type"] = type(error).__name__
        extra["error_code"] = getattr(error, "code", None)
    _logger.log(logging.INFO if error is None else logging.WARNING, TRACE_TYPE, extra=extra)


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """
    Decorate an engine entry point so every call emits STOCK_ENGINE_TRACE.

    Args:
        engine_name: Engine identifier, e.g. "variance".
        engine_version: Version of the engine's algorithm, e.g. "1.0".
        fingerprint_fields: Parameter names hashed into ``input_fingerprint``.
            Empty means no fingerprint ("").
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        def fingerprint(args: tuple[Any, ...], kwargs: dict[str, Any]) -> str:
            if not fingerprint_fields:
                return ""
            try:
                arguments: Mapping[str, Any] = signature.bind(*args, **kwargs).arguments
            except TypeError:
                arguments = kwargs
            return compute_input_fingerprint(fingerprint_fields, arguments)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = fingerprint(args, kwargs)
            started = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                _emit_trace(engine_name, engine_version, func.__qualname__, fp, started, exc)
                raise
            _emit_trace(engine_name, engine_version, func.__qualname__, fp, started, None)
            return result

        return wrapper

    return decorator
