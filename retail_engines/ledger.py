"""
Module: retail_engines.ledger
Responsibility:
    Derive every customer's ledger position (billed, received, balance)
    from the invoice and receipt logs.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Derived, never cached: balances exist only as the output of
      ``compute_ledger_balances``; no stored field can drift from the logs.
    - Idempotence: the same inputs always produce an equal BalanceMap.
    - Matching is exact on the trimmed, lower-cased name. No fuzzy matching.
    - Money an allocation wrote into an invoice is counted once. Every
      receipt counts in full, and an invoice's ``amount_paid`` counts
      only beyond what receipt applications already carry on it. An
      application whose invoice was deleted or edited away therefore
      falls back to the receipt, so no payment disappears.

Failure modes:
    - None. Records with missing or malformed numbers contribute zero.

Records are read by attribute or by key, so legacy JSON dicts
(``customerName``, ``amountPaid``) aggregate alongside dataclasses.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from retail_engines.pricing import compute_invoice_totals
from retail_engines.tracer import traced_engine
from retail_kernel.domain.values import ZERO, normalize_name, read_field, to_decimal
from retail_kernel.logging_config import get_logger

logger = get_logger("engines.ledger")


def record_customer_name(record: Any) -> str:
    """Display name carried by an invoice, receipt or customer record."""
    value = read_field(record, "customer_name", "customerName", "name")
    return "" if value is None else str(value).strip()


def effective_total(invoice: Any) -> Decimal:
    """
    The invoice total, re-derived from lines for legacy records.

    A stored total that is missing or not positive is treated as absent and
    recomputed with the full discount-then-tax cascade.
    """
    stored = to_decimal(read_field(invoice, "total"))
    if stored > ZERO:
        return stored
    lines = read_field(invoice, "lines")
    if not lines:
        return ZERO
    return compute_invoice_totals(lines).total


def receipt_applications(receipt: Any) -> Iterator[tuple[str, Decimal]]:
    """``(invoice_id, amount)`` for each invoice the receipt paid into."""
    for application in read_field(receipt, "applications") or ():
        invoice_id = read_field(application, "invoice_id", "invoiceId")
        amount = to_decimal(read_field(application, "amount"))
        if invoice_id is not None and amount > ZERO:
            yield str(invoice_id), amount


def applied_by_invoice(receipts: Iterable[Any]) -> dict[str, Decimal]:
    """Receipt money per invoice id, summed over every receipt."""
    applied: dict[str, Decimal] = {}
    for receipt in receipts:
        for invoice_id, amount in receipt_applications(receipt):
            applied[invoice_id] = applied.get(invoice_id, ZERO) + amount
    return applied


def invoice_credit(invoice: Any, applied: Mapping[str, Decimal]) -> Decimal:
    """
    Part of ``amount_paid`` not already counted through a receipt.

    Receipt applications absorb at most what the invoice still carries, so
    an invoice whose paid amount was edited down gives the excess back to
    the receipt instead of dropping it.
    """
    paid = to_decimal(read_field(invoice, "amount_paid", "amountPaid"))
    invoice_id = read_field(invoice, "id")
    carried = applied.get(str(invoice_id), ZERO) if invoice_id is not None else ZERO
    absorbed = min(carried, paid) if paid > ZERO else ZERO
    return paid - absorbed


class BalanceState(str, Enum):
    """Which way a ledger balance points."""

    DUE = "Due"  # customer owes the store
    ADVANCE = "Advance"  # store owes the customer
    SETTLED = "Settled"


@dataclass(frozen=True)
class CustomerBalance:
    """
    One customer's derived ledger position.

    Guarantees:
        - ``balance == total_billed - total_received``.
    """

    customer_name: str
    total_billed: Decimal
    total_received: Decimal
    invoice_count: int = 0
    receipt_count: int = 0

    @property
    def balance(self) -> Decimal:
        return self.total_billed - self.total_received

    @property
    def state(self) -> BalanceState:
        if self.balance > ZERO:
            return BalanceState.DUE
        if self.balance < ZERO:
            return BalanceState.ADVANCE
        return BalanceState.SETTLED

    @property
    def current_due(self) -> Decimal:
        """Amount to show in the "Pay" dialog; never negative."""
        return self.balance if self.balance > ZERO else ZERO


class BalanceMap(Mapping[str, CustomerBalance]):
    """
    Read-only, case-insensitive mapping of customer name to balance.

    Iteration yields display names in first-seen order (customers first,
    then names that appear only on invoices or receipts).
    """

    def __init__(self, balances: Iterable[CustomerBalance]):
        self._by_key: dict[str, CustomerBalance] = {}
        for entry in balances:
            self._by_key[normalize_name(entry.customer_name)] = entry

    def __getitem__(self, name: str) -> CustomerBalance:
        return self._by_key[normalize_name(name)]

    def __contains__(self, name: object) -> bool:
        return normalize_name(name) in self._by_key

    def __iter__(self) -> Iterator[str]:
        return (entry.customer_name for entry in self._by_key.values())

    def __len__(self) -> int:
        return len(self._by_key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BalanceMap):
            return NotImplemented
        return self._by_key == other._by_key

    def __repr__(self) -> str:
        return f"BalanceMap({list(self._by_key.values())!r})"

    def current_due(self, name: str) -> Decimal:
        """Outstanding amount for ``name``; zero for unknown customers."""
        entry = self._by_key.get(normalize_name(name))
        return entry.current_due if entry else ZERO

    def sorted_by_balance(self) -> list[CustomerBalance]:
        """Largest amount owed first, ties broken by name."""
        return sorted(
            self._by_key.values(),
            key=lambda b: (-b.balance, normalize_name(b.customer_name)),
        )

    def search(self, text: str) -> list[CustomerBalance]:
        """Balances whose name contains ``text`` (case-insensitive)."""
        needle = normalize_name(text)
        return [b for b in self.sorted_by_balance() if needle in normalize_name(b.customer_name)]

    @property
    def total_outstanding(self) -> Decimal:
        """Sum of positive balances (receivables)."""
        return sum((b.current_due for b in self._by_key.values()), ZERO)


@dataclass
class _Accumulator:
    customer_name: str
    total_billed: Decimal = ZERO
    total_received: Decimal = ZERO
    invoice_count: int = 0
    receipt_count: int = 0

    def freeze(self) -> CustomerBalance:
        return CustomerBalance(
            customer_name=self.customer_name,
            total_billed=self.total_billed,
            total_received=self.total_received,
            invoice_count=self.invoice_count,
            receipt_count=self.receipt_count,
        )


@traced_engine("ledger", "1.0")
def compute_ledger_balances(
    customers: Iterable[Any],
    invoices: Iterable[Any],
    receipts: Iterable[Any],
) -> BalanceMap:
    """
    Aggregate invoices and receipts into per-customer balances.

    Postconditions:
        - Every customer record appears, with zeros if it has no activity.
        - Names seen only on invoices or receipts appear as well.
        - total_billed   = sum(effective_total(invoice))
        - total_received = sum(invoice_credit(invoice)) + sum(receipt.amount)
        - Records with a blank customer name are skipped.
    """
    receipts = list(receipts)
    applied = applied_by_invoice(receipts)
    accounts: dict[str, _Accumulator] = {}

    def account_for(record: Any) -> _Accumulator | None:
        display = record_customer_name(record)
        key = normalize_name(display)
        if not key:
            return None
        if key not in accounts:
            accounts[key] = _Accumulator(customer_name=display)
        return accounts[key]

    for customer in customers:
        account_for(customer)

    skipped = 0
    for invoice in invoices:
        acc = account_for(invoice)
        if acc is None:
            skipped += 1
            continue
        acc.total_billed += effective_total(invoice)
        acc.total_received += invoice_credit(invoice, applied)
        acc.invoice_count += 1

    for receipt in receipts:
        acc = account_for(receipt)
        if acc is None:
            skipped += 1
            continue
        acc.total_received += to_decimal(read_field(receipt, "amount"))
        acc.receipt_count += 1

    if skipped:
        logger.warning("ledger_records_without_customer", extra={"skipped": skipped})

    return BalanceMap(acc.freeze() for acc in accounts.values())
