"""
Module: retail_engines.settlement
Responsibility:
    Derive an invoice's payment status and balance due from the pair
    (total, amount_paid).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``balance_due == max(0, total - amount_paid)``.
    - Status is a pure function of (total, amount_paid, epsilon); there is
      no way to set it independently.
    - A zero total is always Unpaid: nothing was billed, so nothing can be
      settled.

Failure modes:
    - None. Inputs are coerced like every other money helper.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from retail_kernel.domain.values import ZERO, to_decimal

DEFAULT_EPSILON = Decimal("0.01")


class PaymentStatus(str, Enum):
    """How much of an invoice has been paid."""

    UNPAID = "Unpaid"
    PARTIAL = "Partial"
    PAID = "Paid"


@dataclass(frozen=True)
class Settlement:
    """Derived settlement figures for one invoice."""

    total: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    payment_status: PaymentStatus

    @property
    def pending(self) -> Decimal:
        """What an incoming payment may still apply to this invoice."""
        return self.balance_due


def balance_due(total: Any, amount_paid: Any) -> Decimal:
    """``max(0, total - amount_paid)``."""
    remaining = to_decimal(total) - to_decimal(amount_paid)
    return remaining if remaining > ZERO else ZERO


def derive_payment_status(
    total: Any,
    amount_paid: Any,
    epsilon: Decimal = DEFAULT_EPSILON,
) -> PaymentStatus:
    """
    Classify an invoice by what has been paid against it.

    Postconditions:
        - PAID    when total > 0 and total - amount_paid <= epsilon
        - PARTIAL when amount_paid > 0 and not PAID
        - UNPAID  otherwise (including total == 0)
    """
    total_d = to_decimal(total)
    paid_d = to_decimal(amount_paid)
    if total_d > ZERO and total_d - paid_d <= epsilon:
        return PaymentStatus.PAID
    if paid_d > ZERO and total_d > ZERO:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


def settle(
    total: Any,
    amount_paid: Any,
    epsilon: Decimal = DEFAULT_EPSILON,
) -> Settlement:
    """Derive balance due and status together."""
    total_d = to_decimal(total)
    paid_d = to_decimal(amount_paid)
    return Settlement(
        total=total_d,
        amount_paid=paid_d,
        balance_due=balance_due(total_d, paid_d),
        payment_status=derive_payment_status(total_d, paid_d, epsilon),
    )
