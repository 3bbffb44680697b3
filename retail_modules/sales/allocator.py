"""
Payment Allocator (``retail_modules.sales.allocator``).

Responsibility
--------------
The ledger's "collect payment" action: spread one incoming payment over a
customer's outstanding invoices, oldest first, write the new paid amounts
back, and record a single receipt for the money received.

Architecture position
---------------------
**Modules layer** -- applies the pure plan from
``retail_engines.allocation.AllocationEngine`` to the injected stores.

Invariants enforced
-------------------
* Conservation: ``sum(applied) + unallocated_remainder == amount``.
* Only invoices whose derived status is not Paid are considered; the
  stored status is not trusted.
* No invoice is raised above its total.
* Exactly one receipt per successful allocation, for the full amount.
  Its ``applications`` record what went to each invoice, so the ledger
  counts that money once and invoice edits can keep it.

Failure modes
-------------
* ``ValidationError`` -- amount not positive, blank customer name, unknown
  payment mode. Raised before any write.
* ``PartialAllocationFailure`` -- an invoice write or the receipt write
  failed. Earlier invoice writes stay in place and no receipt is recorded;
  the ledger still counts their money through ``amount_paid``.
  Re-running the allocation for ``unapplied_amount`` is safe: Paid
  invoices absorb nothing.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import uuid4

from retail_engines.allocation import AllocationEngine, AllocationPlan, AllocationTarget
from retail_engines.ledger import effective_total
from retail_engines.settlement import PaymentStatus, settle
from retail_kernel.domain.clock import Clock, SystemClock
from retail_kernel.domain.values import ZERO, normalize_name, to_decimal
from retail_kernel.exceptions import PartialAllocationFailure, ValidationError
from retail_kernel.logging_config import LogContext, get_logger
from retail_modules.sales.config import SalesConfig
from retail_modules.sales.models import (
    AllocationResult,
    Invoice,
    PaymentMetadata,
    PaymentMode,
    Receipt,
    ReceiptApplication,
    ReceiptKind,
)
from retail_modules.sales.stores import InvoiceStore, ReceiptStore

logger = get_logger("modules.sales.allocator")


class PaymentAllocator:
    """
    Apply customer payments to invoices, FIFO.

    Contract:
        ``allocate(customer_name, amount, metadata) -> AllocationResult``
    Guarantees:
        - Invoice writes happen in application order, one per invoice.
        - Only ``amount_paid``, ``balance_due`` and ``payment_status`` change
          on an allocated invoice.
    Non-goals:
        - No cross-invoice transaction; see ``PartialAllocationFailure``.
    """

    def __init__(
        self,
        invoice_store: InvoiceStore,
        receipt_store: ReceiptStore,
        config: SalesConfig | None = None,
        clock: Clock | None = None,
    ):
        self._invoices = invoice_store
        self._receipts = receipt_store
        self._config = config or SalesConfig()
        self._clock = clock or SystemClock()
        self._engine = AllocationEngine()

    def allocate(
        self,
        customer_name: str,
        amount: Any,
        metadata: PaymentMetadata | None = None,
    ) -> AllocationResult:
        """
        Apply ``amount`` to ``customer_name``'s unpaid invoices.

        ``amount`` is coerced like every money input; anything that does not
        come out strictly positive is rejected.
        """
        display_name = (customer_name or "").strip()
        if not display_name:
            raise ValidationError("customer_name", "customer name is required")
        payment = to_decimal(amount)
        if payment <= ZERO:
            raise ValidationError("amount", f"payment must be positive, got {amount!r}")
        metadata = metadata or PaymentMetadata(mode=self._config.default_payment_mode)
        mode = PaymentMode.parse(metadata.mode)
        receipt_date = metadata.payment_date or self._clock.today()
        if not isinstance(receipt_date, date):
            raise ValidationError("payment_date", f"not a date: {receipt_date!r}")

        with LogContext.bind(customer_name=display_name):
            outstanding = self._outstanding_invoices(display_name)
            plan = self._engine.allocate_fifo(
                amount=payment,
                targets=[
                    AllocationTarget(
                        target_id=invoice.id,
                        pending=settle(effective_total(invoice), invoice.amount_paid).balance_due,
                        date=invoice.invoice_date,
                    )
                    for invoice in outstanding
                ],
            )

            by_id = {invoice.id: invoice for invoice in outstanding}
            updated: list[Invoice] = []
            applied = ZERO
            for line in plan.funded_lines:
                invoice = self._apply(by_id[line.target_id], line.allocated)
                try:
                    saved = self._invoices.save(invoice)
                except Exception as exc:
                    logger.error("allocation_write_failed", exc_info=True, extra={
                        "failed_invoice_id": line.target_id,
                        "applied_before_failure": str(applied),
                    })
                    raise PartialAllocationFailure(
                        customer_name=display_name,
                        succeeded_invoice_ids=tuple(inv.id for inv in updated),
                        failed_invoice_id=line.target_id,
                        applied_amount=applied,
                        unapplied_amount=payment - applied,
                        cause=str(exc),
                    ) from exc
                updated.append(saved)
                applied += line.allocated
                logger.info("allocation_applied", extra={
                    "target_invoice_id": saved.id,
                    "invoice_number": saved.invoice_number,
                    "allocated": str(line.allocated),
                    "payment_status": saved.payment_status.value,
                })

            receipt = self._build_receipt(
                display_name,
                payment,
                plan,
                mode=mode,
                receipt_date=receipt_date,
                note=metadata.note,
            )
            try:
                receipt = self._receipts.save(receipt)
            except Exception as exc:
                logger.error("receipt_write_failed", exc_info=True, extra={
                    "receipt_id": receipt.id,
                    "applied_before_failure": str(applied),
                })
                raise PartialAllocationFailure(
                    customer_name=display_name,
                    succeeded_invoice_ids=tuple(inv.id for inv in updated),
                    failed_invoice_id=None,
                    applied_amount=applied,
                    unapplied_amount=payment - applied,
                    cause=str(exc),
                ) from exc

            logger.info("payment_allocated", extra={
                "amount": str(payment),
                "applied": str(applied),
                "unallocated": str(plan.unallocated),
                "invoices_updated": len(updated),
                "receipt_id": receipt.id,
                "receipt_kind": receipt.kind.value,
            })

        return AllocationResult(
            customer_name=display_name,
            amount=payment,
            updated_invoices=tuple(updated),
            unallocated_remainder=plan.unallocated,
            receipt=receipt,
            plan=plan,
        )

    def _outstanding_invoices(self, customer_name: str) -> list[Invoice]:
        key = normalize_name(customer_name)
        eps = self._config.settlement_epsilon
        outstanding = []
        for invoice in self._invoices.list(customer_name=customer_name):
            if normalize_name(invoice.customer_name) != key:
                continue
            status = settle(effective_total(invoice), invoice.amount_paid, eps).payment_status
            if status is not PaymentStatus.PAID:
                outstanding.append(invoice)
        return outstanding

    def _apply(self, invoice: Invoice, allocated: Decimal) -> Invoice:
        total = effective_total(invoice)
        amount_paid = to_decimal(invoice.amount_paid) + allocated
        settlement = settle(total, amount_paid, self._config.settlement_epsilon)
        return replace(
            invoice,
            amount_paid=amount_paid,
            total=total,
            balance_due=settlement.balance_due,
            payment_status=settlement.payment_status,
        )

    def reverse(self, receipt: Receipt) -> list[Invoice]:
        """
        Take a receipt's applications back out of its invoices.

        Each still-existing invoice loses at most what it carries; deleted
        invoices are skipped. Returns the invoices rewritten.
        """
        if not receipt.applications:
            return []
        by_id = {invoice.id: invoice for invoice in self._invoices.list()}
        reversed_invoices: list[Invoice] = []
        for invoice_id in dict.fromkeys(a.invoice_id for a in receipt.applications):
            invoice = by_id.get(invoice_id)
            if invoice is None:
                continue
            paid = to_decimal(invoice.amount_paid)
            taken_back = min(receipt.applied_to(invoice_id), paid)
            if taken_back <= ZERO:
                continue
            saved = self._invoices.save(self._apply(invoice, -taken_back))
            reversed_invoices.append(saved)
            logger.info("allocation_reversed", extra={
                "receipt_id": receipt.id,
                "target_invoice_id": saved.id,
                "reversed": str(taken_back),
                "payment_status": saved.payment_status.value,
            })
        return reversed_invoices

    def _build_receipt(
        self,
        customer_name: str,
        amount: Decimal,
        plan: AllocationPlan,
        *,
        mode: PaymentMode,
        receipt_date: date,
        note: str = "",
    ) -> Receipt:
        if plan.unallocated > ZERO:
            kind = ReceiptKind.ADVANCE
            text = self._config.advance_note
        else:
            kind = ReceiptKind.BILL_PAYMENT
            text = self._config.bill_payment_note
        if note:
            text = f"{text}: {note}"
        return Receipt(
            id=str(uuid4()),
            customer_name=customer_name,
            amount=amount,
            receipt_date=receipt_date,
            mode=mode,
            note=text,
            kind=kind,
            applications=tuple(
                ReceiptApplication(invoice_id=line.target_id, amount=line.allocated)
                for line in plan.funded_lines
            ),
        )
