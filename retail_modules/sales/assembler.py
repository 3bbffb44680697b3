"""
Invoice Assembler (``retail_modules.sales.assembler``).

Responsibility
--------------
Turn an ``InvoiceDraft`` from the sales form into a complete, consistent
``Invoice`` ready to hand to ``InvoiceStore.save``: prices and GST filled
from the catalogue, totals computed, status and balance derived, stock
checked, id and invoice number assigned.

Architecture position
---------------------
**Modules layer** -- composes the pricing, settlement, identifier and
numbering engines with the injected stores. Does not persist the invoice
itself; ``SalesService.record_invoice`` does.

Invariants enforced
-------------------
* Validation and stock errors are raised before any side effect.
* ``balance_due == max(0, total - amount_paid)`` and ``payment_status`` is
  derived from (total, amount_paid), never taken from input.
* Edits keep the existing invoice's id, its invoice number and the
  receipt money allocated to it.

Failure modes
-------------
* ``ValidationError`` -- blank customer, no lines, a line without a product
  reference, negative amount paid, unknown payment mode.
* ``InsufficientStockError`` -- requested quantity above stock on hand
  (only when ``enforce_stock_check`` is on).
* ``RecordNotFoundError`` -- the invoice being edited does not exist.

Audit relevance
---------------
Emits ``invoice_assembled`` with the derived figures, and
``stock_check_overridden`` whenever an oversell goes through under the
backorder policy.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

from retail_engines.identifiers import find_by_key, resolve_id
from retail_engines.numbering import next_document_number
from retail_engines.pricing import compute_invoice_totals
from retail_engines.settlement import settle
from retail_kernel.domain.clock import Clock, SystemClock
from retail_kernel.domain.values import ZERO, non_negative, to_decimal
from retail_kernel.exceptions import (
    InsufficientStockError,
    RecordNotFoundError,
    ValidationError,
)
from retail_kernel.logging_config import LogContext, get_logger
from retail_modules.sales.config import SalesConfig
from retail_modules.sales.models import (
    Invoice,
    InvoiceDraft,
    LineItem,
    PaymentMode,
    Product,
)
from retail_modules.sales.stores import CustomerStore, InvoiceStore, ProductLookup

logger = get_logger("modules.sales.assembler")


def _quantities_by_product(lines: Iterable[LineItem]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for line in lines:
        if line.product_reference:
            totals[str(line.product_reference)] += non_negative(line.quantity)
    return totals


class InvoiceAssembler:
    """
    Build invoices from drafts.

    Contract:
        ``assemble(draft, existing_invoice_id=None) -> Invoice``
    Guarantees:
        - The returned invoice's money fields are consistent with its lines.
        - Omitted unit prices and tax rates come from the product record.
    Non-goals:
        - Does not decrement stock; the stock check is advisory and
          read-then-decide.
        - Does not save the invoice.
    """

    def __init__(
        self,
        product_lookup: ProductLookup,
        customer_store: CustomerStore,
        invoice_store: InvoiceStore,
        config: SalesConfig | None = None,
        clock: Clock | None = None,
    ):
        self._products = product_lookup
        self._customers = customer_store
        self._invoices = invoice_store
        self._config = config or SalesConfig()
        self._clock = clock or SystemClock()

    def assemble(
        self,
        draft: InvoiceDraft,
        existing_invoice_id: str | None = None,
        allocated: Mapping[str, Decimal] | None = None,
    ) -> Invoice:
        """
        Assemble ``draft`` into an invoice.

        With ``existing_invoice_id`` the draft replaces that invoice: the
        reference may be its id or its invoice number. ``allocated`` maps
        invoice ids to receipt money already applied to them; the replaced
        invoice keeps that money on top of the draft's down payment.
        """
        customer_name = self._validate(draft)
        down_payment = to_decimal(draft.amount_paid)
        payment_mode = (
            PaymentMode.parse(draft.payment_mode)
            if draft.payment_mode is not None
            else self._config.default_payment_mode
        )

        invoices = self._invoices.list()
        existing = self._find_existing(invoices, existing_invoice_id)

        carried = ZERO
        if existing is not None and allocated:
            carried = to_decimal(allocated.get(existing.id))
        amount_paid = down_payment + carried

        products: dict[str, Product | None] = {}
        lines = tuple(self._complete_line(line, products) for line in draft.lines)
        self._check_stock(lines, products, existing)

        totals = compute_invoice_totals(lines)
        settlement = settle(totals.total, amount_paid, self._config.settlement_epsilon)

        if existing is not None:
            invoice_id = existing.id
            invoice_number = existing.invoice_number
            invoice_date = draft.invoice_date or existing.invoice_date
        else:
            invoice_id = str(uuid4())
            invoice_number = next_document_number(
                (inv.invoice_number for inv in invoices),
                prefix=self._config.invoice_prefix,
                width=self._config.invoice_number_width,
            )
            invoice_date = draft.invoice_date or self._clock.today()

        invoice = Invoice(
            id=invoice_id,
            invoice_number=invoice_number,
            customer_name=customer_name,
            invoice_date=invoice_date,
            lines=lines,
            amount_paid=amount_paid,
            payment_mode=payment_mode,
            subtotal=totals.subtotal,
            total_discount=totals.total_discount,
            total_tax=totals.total_tax,
            total=totals.total,
            balance_due=settlement.balance_due,
            payment_status=settlement.payment_status,
            notes=draft.notes,
        )

        with LogContext.bind(invoice_id=invoice_id, customer_name=customer_name):
            logger.info("invoice_assembled", extra={
                "invoice_number": invoice_number,
                "is_edit": existing is not None,
                "line_count": len(lines),
                "total": str(totals.total),
                "amount_paid": str(amount_paid),
                "allocated_kept": str(carried),
                "balance_due": str(settlement.balance_due),
                "payment_status": settlement.payment_status.value,
            })
            self._ensure_customer(customer_name)

        return invoice

    # =========================================================================
    # Steps
    # =========================================================================

    def _validate(self, draft: InvoiceDraft) -> str:
        customer_name = (draft.customer_name or "").strip()
        if not customer_name:
            raise ValidationError("customer_name", "customer name is required")
        if not draft.lines:
            raise ValidationError("lines", "at least one line item is required")
        for index, line in enumerate(draft.lines):
            reference = line.product_reference
            if reference is None or not str(reference).strip():
                raise ValidationError(
                    f"lines[{index}].product_reference",
                    f"line {index + 1} has no product",
                )
        if to_decimal(draft.amount_paid) < ZERO:
            raise ValidationError("amount_paid", "amount paid cannot be negative")
        return customer_name

    def _find_existing(
        self,
        invoices: Sequence[Invoice],
        reference: str | None,
    ) -> Invoice | None:
        if reference is None:
            return None
        key = resolve_id(invoices, reference)
        existing = find_by_key(invoices, key)
        if existing is None:
            raise RecordNotFoundError("invoice", str(reference))
        return existing

    def _complete_line(
        self,
        line: LineItem,
        products: dict[str, Product | None],
    ) -> LineItem:
        reference = str(line.product_reference).strip()
        if reference not in products:
            products[reference] = self._products.find_by_id(reference)
        product = products[reference]

        unit_price = line.unit_price
        if unit_price is None:
            unit_price = product.sell_price if product is not None else ZERO
        tax_percent = line.tax_percent
        if tax_percent is None:
            tax_percent = product.gst_percent if product is not None else ZERO
        description = line.description
        if not description and product is not None:
            description = product.name

        return replace(
            line,
            product_reference=reference,
            quantity=to_decimal(line.quantity),
            unit_price=to_decimal(unit_price),
            discount_percent=to_decimal(line.discount_percent),
            tax_percent=to_decimal(tax_percent),
            description=description,
        )

    def _check_stock(
        self,
        lines: Sequence[LineItem],
        products: dict[str, Product | None],
        existing: Invoice | None,
    ) -> None:
        """
        Cumulative per-product check; the first line that pushes a product
        past its stock is the one reported.
        """
        credited = _quantities_by_product(existing.lines) if existing is not None else {}
        requested: dict[str, Decimal] = defaultdict(lambda: ZERO)

        for index, line in enumerate(lines):
            reference = str(line.product_reference)
            requested[reference] += non_negative(line.quantity)
            product = products.get(reference)
            on_hand = non_negative(product.stock) if product is not None else ZERO
            available = on_hand + credited.get(reference, ZERO)
            if requested[reference] <= available:
                continue
            if self._config.enforce_stock_check:
                raise InsufficientStockError(
                    line_index=index,
                    product_reference=reference,
                    requested=requested[reference],
                    available=available,
                )
            logger.warning("stock_check_overridden", extra={
                "product_reference": reference,
                "requested": str(requested[reference]),
                "available": str(available),
            })

    def _ensure_customer(self, customer_name: str) -> None:
        if not self._config.auto_create_customers:
            return
        if self._customers.find_by_name(customer_name) is not None:
            return
        try:
            customer = self._customers.create({"name": customer_name})
        except Exception:
            # Assembly already succeeded; the customer can be added by hand.
            logger.warning("customer_auto_create_failed", exc_info=True)
            return
        logger.info("customer_auto_created", extra={"customer_id": customer.id})
