"""
Pure domain layer.

Value helpers and the injectable clock, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

Everything here is deterministic.
"""

from retail_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from retail_kernel.domain.values import (
    HUNDRED,
    ZERO,
    clamp_percent,
    non_negative,
    normalize_name,
    quantize_money,
    read_field,
    to_decimal,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "HUNDRED",
    "ZERO",
    "clamp_percent",
    "non_negative",
    "normalize_name",
    "quantize_money",
    "read_field",
    "to_decimal",
]
