"""
backoffice_engines.tracer -- ``@traced_engine`` and input fingerprints.

Each call into a decorated calculation emits one BACKOFFICE_ENGINE_TRACE
record on the ``backoffice.engines.tracer`` logger, at the level the engine
chose.  The record names the engine and its version, how long the call
took, whether it raised, and a short fingerprint of the arguments the
engine declared as significant.  When that level is disabled the call goes
straight through and none of this is computed.

Two calls whose significant arguments are equal in value produce the same
fingerprint, however they were passed:

    - positional and keyword arguments are bound through the signature;
    - Decimals compare by value, so ``10`` and ``10.00`` agree;
    - mappings are keyed in sorted order;
    - dataclasses and enums are reduced to their fields and values.

The decorator reads its arguments and writes a log record.  It never
touches the inputs or the result, and an exception from the engine is
logged with ``outcome="error"`` and re-raised unchanged.

Usage:
    from backoffice_engines.tracer import traced_engine

    @traced_engine("pricing", "1.0", fingerprint_fields=("items", "discount"),
                   level=logging.DEBUG)
    def calculate_totals(items, discount):
        ...
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

from backoffice_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

TRACE_TYPE = "BACKOFFICE_ENGINE_TRACE"

FINGERPRINT_LENGTH = 16


def _canonicalize(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return _canonicalize(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return str(value.normalize()) if value.is_finite() else str(value)
    if isinstance(value, (str, int, float)):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        as_mapping = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return f"{type(value).__name__}{_canonicalize(as_mapping)}"
    if isinstance(value, Mapping):
        pairs = sorted((str(k), _canonicalize(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(map(_canonicalize, value)) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """SHA-256 prefix over ``name=value`` pairs for the named arguments.

    Names absent from ``arguments`` hash as ``null``.
    """
    canonical = "|".join(
        f"{name}={_canonicalize(arguments.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def _bind(signature: inspect.Signature, args: tuple, kwargs: dict) -> dict[str, Any]:
    try:
        return dict(signature.bind_partial(*args, **kwargs).arguments)
    except TypeError:
        # The call itself will fail with the real error.
        return dict(kwargs)


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    level: int = logging.INFO,
) -> Callable:
    """Decorator that emits BACKOFFICE_ENGINE_TRACE for each engine call.

    When ``level`` is not enabled on the tracer logger the wrapped function
    is called directly; no fingerprint is computed and nothing is timed.

    Args:
        engine_name: Engine identifier (e.g., "pricing").
        engine_version: Engine version (e.g., "1.0").
        fingerprint_fields: Parameter names, positional or keyword, whose
            values go into the input fingerprint.
        level: Log level of the trace record.  Engines called on every
            keystroke trace at DEBUG.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if not logger.isEnabledFor(level):
                return func(*args, **kwargs)

            fingerprint = ""
            if fingerprint_fields:
                fingerprint = compute_input_fingerprint(
                    fingerprint_fields, _bind(signature, args, kwargs),
                )

            outcome = "ok"
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            except Exception:
                outcome = "error"
                raise
            finally:
                logger.log(
                    level,
                    TRACE_TYPE,
                    extra={
                        "trace_type": TRACE_TYPE,
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "function": func.__qualname__,
                        "input_fingerprint": fingerprint,
                        "outcome": outcome,
                        "duration_ms": round((time.perf_counter() - started) * 1000, 3),
                    },
                )

        return wrapper

    return decorator
