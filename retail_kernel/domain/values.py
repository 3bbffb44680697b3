"""
Values -- Decimal coercion and money helpers.

Responsibility:
    Turns the loosely-typed numbers that arrive from forms and historical
    records (strings, floats, None, blanks) into ``Decimal`` values the
    engines can trust, and provides the small set of money helpers shared
    by every layer.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by engines and modules. No outward dependencies.

Invariants enforced:
    - Monetary arithmetic is Decimal-only; floats are converted through
      ``str`` so binary noise never enters a total.
    - Coercion is total: missing, malformed, NaN and infinite inputs
      become ``Decimal("0")`` instead of raising.

Failure modes:
    - None. Every helper in this module is a total function.

Audit relevance:
    A sanitized zero is logged at DEBUG so a record that silently lost a
    value can be traced back to its raw input.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from retail_kernel.logging_config import get_logger

logger = get_logger("domain.values")

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Coerce an arbitrary input to a finite Decimal.

    Preconditions:
        None -- any Python object is accepted.

    Postconditions:
        - Returns a finite ``Decimal``.
        - ``None``, blank strings, unparseable values, NaN and +/-Infinity
          all map to ``Decimal("0")``.
        - Floats are converted through their shortest ``repr`` so that
          ``0.1`` becomes ``Decimal("0.1")``.

    Raises:
        Nothing.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        result = Decimal(int(value))
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return ZERO
        try:
            result = Decimal(text)
        except InvalidOperation:
            logger.debug("decimal_coercion_failed", extra={"raw_value": value})
            return ZERO
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            logger.debug("decimal_coercion_failed", extra={"raw_value": repr(value)})
            return ZERO

    if not result.is_finite():
        logger.debug("decimal_not_finite", extra={"raw_value": str(value)})
        return ZERO
    return result


def non_negative(value: Any) -> Decimal:
    """Coerce to Decimal and clamp anything below zero to zero."""
    result = to_decimal(value)
    return result if result > ZERO else ZERO


def clamp_percent(value: Any) -> Decimal:
    """Coerce a percentage and clamp it into the 0..100 range."""
    result = to_decimal(value)
    if result < ZERO:
        return ZERO
    if result > HUNDRED:
        return HUNDRED
    return result


def quantize_money(value: Any, places: Decimal = CENT) -> Decimal:
    """
    Round a money value for display (ROUND_HALF_UP, two places by default).

    Engines carry full precision; only presentation code should call this.
    """
    return to_decimal(value).quantize(places, rounding=ROUND_HALF_UP)


def normalize_name(name: Any) -> str:
    """Customer-name matching key: trimmed and lower-cased."""
    if name is None:
        return ""
    return str(name).strip().lower()


def read_field(record: Any, *names: str) -> Any:
    """
    First present field among ``names`` on a dataclass/object or mapping.

    Historical records arrive as JSON dicts with camelCase keys while live
    ones are dataclasses; callers list every spelling they accept.
    """
    for name in names:
        if isinstance(record, Mapping):
            if name in record:
                return record[name]
        elif hasattr(record, name):
            return getattr(record, name)
    return None
