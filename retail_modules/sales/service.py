"""
Sales Module Service - Orchestrates sales, receipts and the customer ledger.

Thin glue layer that:
1. Calls InvoiceAssembler to build invoices from sales-form drafts
2. Calls PaymentAllocator for the ledger "collect payment" action
3. Calls the ledger and reporting engines over the stored collections
4. Resolves human-facing references through the identifier resolver

All computation lives in engines. All persistence goes through the
injected stores; this service never holds a balance of its own.

Usage:
    service = SalesService(products, customers, invoices, receipts, clock=clock)
    invoice = service.record_invoice(InvoiceDraft(
        customer_name="Ravi",
        lines=(LineItem(product_reference=product_id, quantity=Decimal("2")),),
        amount_paid=Decimal("100"),
    ))
    due = service.current_due("ravi")
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import uuid4

from retail_engines.identifiers import find_by_key, resolve_id as resolve_reference
from retail_engines.ledger import BalanceMap, applied_by_invoice, compute_ledger_balances
from retail_engines.pricing import InvoiceTotals, compute_invoice_totals
from retail_engines.reporting import (
    ProfitSummary,
    filter_by_date_range,
    sales_total_on,
    summarize_profit,
)
from retail_kernel.domain.clock import Clock, SystemClock
from retail_kernel.domain.values import ZERO, to_decimal
from retail_kernel.exceptions import RecordNotFoundError, ValidationError
from retail_kernel.logging_config import get_logger
from retail_modules.sales.allocator import PaymentAllocator
from retail_modules.sales.assembler import InvoiceAssembler
from retail_modules.sales.config import SalesConfig
from retail_modules.sales.models import (
    AllocationResult,
    Invoice,
    InvoiceDraft,
    PaymentMetadata,
    PaymentMode,
    Product,
    Receipt,
    ReceiptKind,
)
from retail_modules.sales.stores import (
    CustomerStore,
    InvoiceStore,
    ProductLookup,
    ReceiptStore,
)

logger = get_logger("modules.sales.service")


class SalesService:
    """
    Entry points for the sales counter and the customer ledger.

    Engine composition:
    - InvoiceAssembler: draft -> invoice (totals, status, stock check)
    - PaymentAllocator: FIFO payment application + receipt
    - compute_ledger_balances: derived per-customer balances
    - reporting engines: date filter, profit summary, daily takings

    Every read recomputes from the stores; nothing is cached between calls.
    """

    def __init__(
        self,
        product_lookup: ProductLookup,
        customer_store: CustomerStore,
        invoice_store: InvoiceStore,
        receipt_store: ReceiptStore,
        config: SalesConfig | None = None,
        clock: Clock | None = None,
    ):
        self._products = product_lookup
        self._customers = customer_store
        self._invoices = invoice_store
        self._receipts = receipt_store
        self._config = config or SalesConfig()
        self._clock = clock or SystemClock()

        self._assembler = InvoiceAssembler(
            product_lookup=product_lookup,
            customer_store=customer_store,
            invoice_store=invoice_store,
            config=self._config,
            clock=self._clock,
        )
        self._allocator = PaymentAllocator(
            invoice_store=invoice_store,
            receipt_store=receipt_store,
            config=self._config,
            clock=self._clock,
        )

    @property
    def config(self) -> SalesConfig:
        return self._config

    # =========================================================================
    # Invoices
    # =========================================================================

    @staticmethod
    def compute_invoice_totals(lines: Iterable[Any]) -> InvoiceTotals:
        """Live totals for the sales form (no validation, no side effects)."""
        return compute_invoice_totals(tuple(lines))

    def assemble_invoice(
        self,
        draft: InvoiceDraft,
        existing_invoice_id: str | None = None,
    ) -> Invoice:
        """Build an invoice without saving it."""
        return self._assembler.assemble(
            draft,
            existing_invoice_id,
            allocated=self._allocated() if existing_invoice_id is not None else None,
        )

    def record_invoice(self, draft: InvoiceDraft) -> Invoice:
        """Assemble a new invoice and save it."""
        invoice = self._invoices.save(self._assembler.assemble(draft))
        logger.info("invoice_recorded", extra={
            "invoice_id": invoice.id,
            "invoice_number": invoice.invoice_number,
        })
        return invoice

    def update_invoice(self, reference: str, draft: InvoiceDraft) -> Invoice:
        """
        Replace an existing invoice with ``draft``.

        ``reference`` may be the invoice id or its invoice number. The id,
        invoice number and (unless the draft gives one) date are kept, and so
        is any receipt money allocated to it: the new ``amount_paid`` is the
        draft's down payment plus those applications.
        """
        invoice = self._invoices.save(
            self._assembler.assemble(
                draft, existing_invoice_id=reference, allocated=self._allocated()
            )
        )
        logger.info("invoice_updated", extra={
            "invoice_id": invoice.id,
            "invoice_number": invoice.invoice_number,
        })
        return invoice

    def delete_invoice(self, reference: str) -> Invoice:
        """Delete an invoice by id or invoice number; returns what was deleted."""
        invoice = self.get_invoice(reference)
        self._invoices.delete(invoice.id)
        logger.info("invoice_deleted", extra={
            "invoice_id": invoice.id,
            "invoice_number": invoice.invoice_number,
        })
        return invoice

    def get_invoice(self, reference: str) -> Invoice:
        invoices = self._invoices.list()
        found = find_by_key(invoices, resolve_reference(invoices, reference))
        if found is None:
            raise RecordNotFoundError("invoice", str(reference))
        return found

    def list_invoices(
        self,
        customer_name: str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[Invoice]:
        """Invoices, optionally for one customer and within a date range."""
        return filter_by_date_range(self._invoices.list(customer_name=customer_name), start, end)

    # =========================================================================
    # Payments and receipts
    # =========================================================================

    def allocate_payment(
        self,
        customer_name: str,
        amount: Any,
        metadata: PaymentMetadata | None = None,
    ) -> AllocationResult:
        """Collect a payment against the customer's oldest unpaid invoices."""
        return self._allocator.allocate(customer_name, amount, metadata)

    def record_receipt(
        self,
        customer_name: str,
        amount: Any,
        receipt_date: date | None = None,
        mode: PaymentMode | str | None = None,
        note: str = "",
    ) -> Receipt:
        """
        Record standalone money-in (the receipts form).

        The whole amount counts as received against the customer's ledger
        balance; no invoice is touched.
        """
        display_name = (customer_name or "").strip()
        if not display_name:
            raise ValidationError("customer_name", "customer name is required")
        value = to_decimal(amount)
        if value <= ZERO:
            raise ValidationError("amount", f"receipt amount must be positive, got {amount!r}")

        receipt = self._receipts.save(Receipt(
            id=str(uuid4()),
            customer_name=display_name,
            amount=value,
            receipt_date=receipt_date or self._clock.today(),
            mode=PaymentMode.parse(mode) if mode is not None else self._config.default_payment_mode,
            note=note,
            kind=ReceiptKind.RECEIPT,
        ))
        logger.info("receipt_recorded", extra={
            "receipt_id": receipt.id,
            "customer": display_name,
            "amount": str(value),
        })
        return receipt

    def delete_receipt(self, reference: str) -> Receipt:
        """
        Delete a receipt, first taking its allocations back out of invoices.

        Invoices the receipt paid into lose that money again and have their
        balance and status re-derived, so the ledger moves by exactly the
        receipt's amount.
        """
        receipts = self._receipts.list()
        found = find_by_key(receipts, resolve_reference(receipts, reference))
        if found is None:
            raise RecordNotFoundError("receipt", str(reference))
        reversed_invoices = self._allocator.reverse(found)
        self._receipts.delete(found.id)
        logger.info("receipt_deleted", extra={
            "receipt_id": found.id,
            "invoices_reversed": len(reversed_invoices),
        })
        return found

    def _allocated(self) -> dict[str, Decimal]:
        return applied_by_invoice(self._receipts.list())

    # =========================================================================
    # Ledger
    # =========================================================================

    def ledger_balances(self) -> BalanceMap:
        """Every customer's balance, recomputed from invoices and receipts."""
        return compute_ledger_balances(
            self._customers.list(),
            self._invoices.list(),
            self._receipts.list(),
        )

    def current_due(self, customer_name: str) -> Decimal:
        """Pre-fill for the "Pay" dialog."""
        return self.ledger_balances().current_due(customer_name)

    # =========================================================================
    # Identifiers and reporting
    # =========================================================================

    def resolve_id(self, collection: str, reference: Any, candidate: Any = None) -> str:
        """Resolve ``reference`` against the "invoices" or "receipts" collection."""
        match collection:
            case "invoices":
                records = self._invoices.list()
            case "receipts":
                records = self._receipts.list()
            case _:
                raise ValidationError("collection", f"unknown collection {collection!r}")
        return resolve_reference(records, reference, candidate)

    def profit_summary(
        self,
        products: Iterable[Product],
        start: date | None = None,
        end: date | None = None,
    ) -> ProfitSummary:
        """Revenue, cost and margin for invoices dated within ``start``..``end``."""
        return summarize_profit(self.list_invoices(start=start, end=end), products)

    def todays_sales(self) -> Decimal:
        return sales_total_on(self._invoices.list(), self._clock.today())
