"""
Sales Domain Models (``retail_modules.sales.models``).

Responsibility
--------------
Frozen dataclass value objects for the nouns of the sales counter and the
customer ledger: products (as the stock collaborator sees them), line
items, invoices, receipts, customers, and the inputs/outputs of the
assembly and allocation operations.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by the
assembler, allocator and ``SalesService``; persisted by the storage
adapter in ``orm.py``.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction); changes
  are made with ``dataclasses.replace``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* A receipt's ``applications`` name the invoices that carry its money;
  the ledger and invoice edits read them, so allocated money survives
  edits and deletions on either side.
* ``Customer`` has no balance field. Balances are derived by
  ``retail_engines.ledger.compute_ledger_balances``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from retail_engines.allocation import AllocationPlan
from retail_engines.settlement import PaymentStatus
from retail_kernel.exceptions import ValidationError

__all__ = [
    "PaymentMode",
    "PaymentStatus",
    "ReceiptKind",
    "Product",
    "LineItem",
    "InvoiceDraft",
    "Invoice",
    "ReceiptApplication",
    "Receipt",
    "Customer",
    "PaymentMetadata",
    "AllocationResult",
]


class PaymentMode(str, Enum):
    """How money changed hands."""

    CASH = "Cash"
    UPI = "UPI"
    CARD = "Card"
    BANK_TRANSFER = "BankTransfer"
    CHEQUE = "Cheque"

    @classmethod
    def parse(cls, value: PaymentMode | str | None) -> PaymentMode:
        """Accept enum members, values and loose spellings ("bank transfer")."""
        if isinstance(value, cls):
            return value
        if value is None or not str(value).strip():
            return cls.CASH
        key = str(value).strip().replace(" ", "").replace("_", "").lower()
        for mode in cls:
            if mode.value.lower() == key or mode.name.replace("_", "").lower() == key:
                return mode
        raise ValidationError("payment_mode", f"unknown payment mode {value!r}")


class ReceiptKind(str, Enum):
    """Why a receipt exists."""

    RECEIPT = "Receipt"  # money-in form
    BILL_PAYMENT = "Bill Payment"  # fully applied to invoices
    ADVANCE = "Advance / Overpayment"  # some or all left unapplied


@dataclass(frozen=True)
class Product:
    """The stock collaborator's view of a product."""
    id: str
    name: str = ""
    stock: Decimal = Decimal("0")
    sell_price: Decimal = Decimal("0")
    gst_percent: Decimal = Decimal("0")
    cost_price: Decimal = Decimal("0")
    barcode: str | None = None


@dataclass(frozen=True)
class LineItem:
    """
    One product entry on an invoice.

    ``unit_price`` and ``tax_percent`` may be left as None on a draft; the
    assembler fills them from the product's sell price and GST percent.
    """
    product_reference: str | None
    quantity: Decimal = Decimal("1")
    unit_price: Decimal | None = None
    discount_percent: Decimal = Decimal("0")
    tax_percent: Decimal | None = None
    description: str = ""


@dataclass(frozen=True)
class InvoiceDraft:
    """What the sales form submits."""
    customer_name: str
    lines: tuple[LineItem, ...]
    invoice_date: date | None = None
    amount_paid: Decimal = Decimal("0")
    payment_mode: PaymentMode | None = None
    notes: str = ""


@dataclass(frozen=True)
class Invoice:
    """
    A billed sale.

    ``total`` is None only on legacy records that never stored one; read
    such records through ``retail_engines.ledger.effective_total``.
    """
    id: str
    invoice_number: str
    customer_name: str
    invoice_date: date
    lines: tuple[LineItem, ...]
    amount_paid: Decimal
    payment_mode: PaymentMode
    subtotal: Decimal
    total_discount: Decimal
    total_tax: Decimal
    total: Decimal | None
    balance_due: Decimal
    payment_status: PaymentStatus
    notes: str = ""


@dataclass(frozen=True)
class ReceiptApplication:
    """Part of a receipt written into one invoice's ``amount_paid``."""
    invoice_id: str
    amount: Decimal


@dataclass(frozen=True)
class Receipt:
    """
    Money received outside an invoice's embedded down payment.

    ``applications`` lists, per invoice, what the allocator wrote into
    ``amount_paid``; standalone receipts have none.
    """
    id: str
    customer_name: str
    amount: Decimal
    receipt_date: date
    mode: PaymentMode = PaymentMode.CASH
    note: str = ""
    kind: ReceiptKind = ReceiptKind.RECEIPT
    applications: tuple[ReceiptApplication, ...] = ()

    @property
    def applied_amount(self) -> Decimal:
        return sum((a.amount for a in self.applications), Decimal("0"))

    def applied_to(self, invoice_id: str) -> Decimal:
        """Amount of this receipt carried by ``invoice_id``."""
        return sum(
            (a.amount for a in self.applications if a.invoice_id == invoice_id),
            Decimal("0"),
        )

    @property
    def unapplied_amount(self) -> Decimal:
        return self.amount - self.applied_amount


@dataclass(frozen=True)
class Customer:
    """A ledger entry. Reference data only; it carries no balance."""
    id: str
    name: str
    contact: str = ""
    address: str = ""


@dataclass(frozen=True)
class PaymentMetadata:
    """Details the "collect payment" dialog attaches to a payment."""
    mode: PaymentMode = PaymentMode.CASH
    payment_date: date | None = None
    note: str = ""


@dataclass(frozen=True)
class AllocationResult:
    """Outcome of applying one payment to a customer's invoices."""
    customer_name: str
    amount: Decimal
    updated_invoices: tuple[Invoice, ...]
    unallocated_remainder: Decimal
    receipt: Receipt
    plan: AllocationPlan | None = field(default=None, repr=False)

    @property
    def applied_amount(self) -> Decimal:
        return self.amount - self.unallocated_remainder

    @property
    def is_advance(self) -> bool:
        return self.unallocated_remainder > Decimal("0")
