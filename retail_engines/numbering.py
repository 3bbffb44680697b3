"""
Module: retail_engines.numbering
Responsibility:
    Assign store-facing document numbers (``SAL-0001``, ``PUR-0001``).

Numbers are monotonic per prefix: the next number is one past the
highest existing number carrying the same prefix, so deleting an invoice
never causes its number to be handed out again while a later one exists.
Historical codes that do not follow ``PREFIX-digits`` are ignored.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

SALE_PREFIX = "SAL"
PURCHASE_PREFIX = "PUR"


def parse_sequence(number: str | None, prefix: str) -> int | None:
    """The numeric part of ``PREFIX-0042``, or None if it does not match."""
    if not number:
        return None
    match = re.fullmatch(rf"{re.escape(prefix)}-(\d+)", number.strip(), flags=re.IGNORECASE)
    if match is None:
        return None
    return int(match.group(1))


def next_document_number(
    existing_numbers: Iterable[str | None],
    prefix: str = SALE_PREFIX,
    width: int = 4,
) -> str:
    """
    Next number in the ``prefix`` series.

    Postconditions:
        - Zero-padded to ``width`` digits (wider numbers are kept whole).
        - ``PREFIX-0001`` when no existing number matches.
    """
    highest = 0
    for number in existing_numbers:
        seq = parse_sequence(number, prefix)
        if seq is not None and seq > highest:
            highest = seq
    return f"{prefix}-{highest + 1:0{width}d}"
