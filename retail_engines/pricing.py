"""
Module: retail_engines.pricing
Responsibility:
    Turn raw line-item inputs into per-line and per-invoice money figures
    using the discount-then-tax cascade.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import retail_kernel.

Invariants enforced:
    - Cascade order: tax is computed on the post-discount amount, never on
      the gross amount.
    - Non-negativity: quantities and prices below zero are clamped to zero
      and percentages to 0..100, so no output is ever negative.
    - Totality: bad numeric input (None, blanks, garbage, NaN) is treated as
      zero; these functions never raise.
    - Full precision: nothing is rounded here; quantize for display only.

Failure modes:
    - None.

Usage:
    from retail_engines.pricing import compute_line, compute_invoice_totals

    amounts = compute_line(line_item)
    totals = compute_invoice_totals(draft.lines)
    print(totals.total)

Line inputs are read by attribute (``LineItem``) or by key (historical
JSON records). Legacy key spellings (``qty``, ``price``,
``discountPercent``, ``taxPercent``) are accepted.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from retail_engines.tracer import traced_engine
from retail_kernel.domain.values import HUNDRED, ZERO, clamp_percent, non_negative, read_field
from retail_kernel.logging_config import get_logger

logger = get_logger("engines.pricing")

_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "quantity": ("quantity", "qty"),
    "unit_price": ("unit_price", "price", "unitPrice"),
    "discount_percent": ("discount_percent", "discountPercent"),
    "tax_percent": ("tax_percent", "taxPercent"),
}


def read_line_field(item: Any, field: str) -> Any:
    """Read a line field by attribute or mapping key, honouring legacy aliases."""
    return read_field(item, *_FIELD_ALIASES.get(field, (field,)))


@dataclass(frozen=True)
class LineAmounts:
    """
    Money figures for one line.

    Guarantees:
        - ``taxable_amount == gross_amount - discount_amount``
        - ``line_total == taxable_amount + tax_amount``
        - every field is >= 0
    """

    gross_amount: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    tax_amount: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    """
    Money figures for a whole invoice.

    Guarantees:
        - ``subtotal`` is the sum of gross amounts.
        - ``total`` is the sum of line totals, which equals
          ``subtotal - total_discount + total_tax``.
    """

    subtotal: Decimal
    total_discount: Decimal
    total_tax: Decimal
    total: Decimal
    total_quantity: Decimal
    lines: tuple[LineAmounts, ...] = ()

    @classmethod
    def empty(cls) -> InvoiceTotals:
        return cls(
            subtotal=ZERO,
            total_discount=ZERO,
            total_tax=ZERO,
            total=ZERO,
            total_quantity=ZERO,
        )


def compute_line(item: Any) -> LineAmounts:
    """
    Compute the discount-then-tax cascade for one line.

    Preconditions:
        None -- any object or mapping is accepted; unknown fields read as 0.

    Postconditions:
        - gross    = quantity * unit_price
        - discount = gross * discount_percent / 100
        - taxable  = gross - discount
        - tax      = taxable * tax_percent / 100
        - total    = taxable + tax
    """
    quantity = non_negative(read_line_field(item, "quantity"))
    unit_price = non_negative(read_line_field(item, "unit_price"))
    discount_percent = clamp_percent(read_line_field(item, "discount_percent"))
    tax_percent = clamp_percent(read_line_field(item, "tax_percent"))

    gross_amount = quantity * unit_price
    discount_amount = gross_amount * discount_percent / HUNDRED
    taxable_amount = gross_amount - discount_amount
    tax_amount = taxable_amount * tax_percent / HUNDRED
    line_total = taxable_amount + tax_amount

    return LineAmounts(
        gross_amount=gross_amount,
        discount_amount=discount_amount,
        taxable_amount=taxable_amount,
        tax_amount=tax_amount,
        line_total=line_total,
    )


@traced_engine("pricing", "1.0", fingerprint_fields=("lines",))
def compute_invoice_totals(lines: Iterable[Any] | None) -> InvoiceTotals:
    """
    Sum per-line amounts into invoice totals.

    Postconditions:
        - An empty or missing line list yields all-zero totals.
        - ``lines`` on the result holds each line's amounts in input order.
    """
    if not lines:
        return InvoiceTotals.empty()

    subtotal = ZERO
    total_discount = ZERO
    total_tax = ZERO
    total = ZERO
    total_quantity = ZERO
    computed: list[LineAmounts] = []

    for item in lines:
        amounts = compute_line(item)
        computed.append(amounts)
        subtotal += amounts.gross_amount
        total_discount += amounts.discount_amount
        total_tax += amounts.tax_amount
        total += amounts.line_total
        total_quantity += non_negative(read_line_field(item, "quantity"))

    logger.debug("invoice_totals_computed", extra={
        "line_count": len(computed),
        "subtotal": str(subtotal),
        "total": str(total),
    })

    return InvoiceTotals(
        subtotal=subtotal,
        total_discount=total_discount,
        total_tax=total_tax,
        total=total,
        total_quantity=total_quantity,
        lines=tuple(computed),
    )
