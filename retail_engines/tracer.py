"""
retail_engines.tracer -- RETAIL_ENGINE_TRACE records for engine calls.

Responsibility:
    ``@traced_engine`` wraps a pure engine function (pricing, allocation)
    and, after each call, logs which engine ran, at what version, on which
    inputs and for how long. Inputs are identified by a short SHA-256
    fingerprint so two calls over the same invoice lines or the same
    payment can be matched up in the logs without logging the data.

Architecture position:
    Engines -- support code for the calculation layer. Emits a log record;
    performs no other I/O and never mutates its inputs.

Invariants enforced:
    - Equal inputs give equal fingerprints: mappings are keyed in sorted
      order, dataclasses are fingerprinted field by field, and Decimal
      amounts are compared by value (``Decimal("10")`` == ``Decimal("10.00")``).

Failure modes:
    - A fingerprint field the caller did not pass is recorded as ``null``.
    - Exceptions from the engine propagate; no trace is written for them.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from retail_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_TYPE = "RETAIL_ENGINE_TRACE"
FINGERPRINT_LENGTH = 16


def _canonicalize(value: Any) -> str:
    """Stable text form of an engine argument."""
    match value:
        case None:
            return "null"
        case Enum():
            return _canonicalize(value.value)
        case bool() | int() | float() | str():
            return str(value)
        case Decimal():
            return str(value.normalize()) if value.is_finite() else str(value)
        case date():
            return value.isoformat()
        case Mapping():
            pairs = sorted((str(k), _canonicalize(v)) for k, v in value.items())
            return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
        case list() | tuple():
            return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _canonicalize({f.name: getattr(value, f.name) for f in dataclasses.fields(value)})
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """
    Hash the named arguments into a short hex fingerprint.

    Only ``fingerprint_fields`` contribute, in the order given.
    """
    canonical = "|".join(
        f"{field}={_canonicalize(arguments.get(field))}" for field in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """
    Decorate an engine function so every successful call is traced.

    Arguments are matched to ``fingerprint_fields`` by parameter name,
    whether they were passed positionally or by keyword.

    Usage:
        @traced_engine("pricing", "1.0", fingerprint_fields=("lines",))
        def compute_invoice_totals(lines):
            ...
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        def _fingerprint(args: tuple, kwargs: dict) -> str:
            if not fingerprint_fields:
                return ""
            try:
                named = signature.bind_partial(*args, **kwargs).arguments
            except TypeError:
                named = kwargs
            return compute_input_fingerprint(fingerprint_fields, named)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = _fingerprint(args, kwargs)
            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 3)

            _logger.info(
                TRACE_TYPE,
                extra={
                    "trace_type": TRACE_TYPE,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fingerprint,
                    "duration_ms": elapsed_ms,
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
