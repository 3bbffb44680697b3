"""
Tests for the SQLAlchemy storage adapter (in-memory SQLite).

Covers:
- Exact Decimal round-trips
- Invoice full replace including lines
- Case-insensitive customer lookups and uniqueness
- Deletion and not-found handling
- Receipt applications stored per invoice and deleted with the receipt
- SalesService end to end over the SQL stores
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from retail_kernel.db.engine import get_session, session_scope
from retail_kernel.exceptions import RecordNotFoundError, ValidationError
from retail_modules.sales.models import (
    InvoiceDraft,
    LineItem,
    PaymentStatus,
    Product,
    Receipt,
    ReceiptApplication,
    ReceiptKind,
)
from retail_modules.sales.orm import ReceiptApplicationModel
from retail_modules.sales.repository import (
    SqlCustomerStore,
    SqlInvoiceStore,
    SqlProductLookup,
    SqlReceiptStore,
)
from retail_modules.sales.service import SalesService


@pytest.fixture
def products(session):
    lookup = SqlProductLookup(session)
    lookup.save(Product(
        id=str(uuid4()),
        name="Basmati 5kg",
        stock=Decimal("12"),
        sell_price=Decimal("649.50"),
        gst_percent=Decimal("5"),
        cost_price=Decimal("540.125"),
    ))
    return lookup


@pytest.fixture
def sql_service(session, products, deterministic_clock):
    return SalesService(
        product_lookup=products,
        customer_store=SqlCustomerStore(session),
        invoice_store=SqlInvoiceStore(session),
        receipt_store=SqlReceiptStore(session),
        clock=deterministic_clock,
    )


class TestProducts:

    def test_decimal_round_trip(self, products):
        stored = products.list()[0]
        assert stored.cost_price == Decimal("540.125")
        assert products.find_by_id(stored.id) == stored

    def test_find_unknown_or_malformed(self, products):
        assert products.find_by_id(str(uuid4())) is None
        assert products.find_by_id("not-a-key") is None


class TestCustomers:

    def test_create_and_find_case_insensitive(self, session):
        store = SqlCustomerStore(session)
        created = store.create({"name": " Ravi Kumar ", "contact": "98450"})

        found = store.find_by_name("RAVI kumar")
        assert found == created
        assert found.name == "Ravi Kumar"
        assert store.list() == [created]

    def test_duplicate_rejected(self, session):
        store = SqlCustomerStore(session)
        store.create({"name": "Ravi"})
        with pytest.raises(ValidationError):
            store.create({"name": "ravi"})

    def test_blank_name_rejected(self, session):
        with pytest.raises(ValidationError):
            SqlCustomerStore(session).create({"name": "  "})


class TestInvoices:

    def test_save_list_and_replace(self, session, invoice_factory):
        store = SqlInvoiceStore(session)
        line = LineItem(
            product_reference="p1",
            quantity=Decimal("3"),
            unit_price=Decimal("100"),
            discount_percent=Decimal("10"),
            tax_percent=Decimal("18"),
        )
        invoice = invoice_factory("Ravi", "318.6", invoice_number="SAL-0001", lines=[line])
        store.save(invoice)

        assert store.list() == [invoice]
        assert store.list(customer_name="  RAVI") == [invoice]
        assert store.list(customer_name="Asha") == []

        replaced = replace(invoice, lines=(line, line), amount_paid=Decimal("318.6"),
                           payment_status=PaymentStatus.PAID, balance_due=Decimal("0"))
        store.save(replaced)

        reloaded = store.list()
        assert len(reloaded) == 1
        assert reloaded[0] == replaced
        assert len(reloaded[0].lines) == 2

    def test_legacy_null_total(self, session, invoice_factory):
        store = SqlInvoiceStore(session)
        legacy = invoice_factory("Ravi", None, invoice_number="SAL-0002")
        store.save(legacy)
        assert store.list()[0].total is None

    def test_list_oldest_first(self, session, invoice_factory):
        store = SqlInvoiceStore(session)
        store.save(invoice_factory("Ravi", "1", invoice_number="SAL-0002", invoice_date=date(2024, 2, 1)))
        store.save(invoice_factory("Ravi", "1", invoice_number="SAL-0001", invoice_date=date(2024, 1, 1)))
        assert [inv.invoice_number for inv in store.list()] == ["SAL-0001", "SAL-0002"]

    def test_delete(self, session, invoice_factory):
        store = SqlInvoiceStore(session)
        invoice = invoice_factory("Ravi", "5", invoice_number="SAL-0003")
        store.save(invoice)

        store.delete(invoice.id)

        assert store.list() == []
        with pytest.raises(RecordNotFoundError):
            store.delete(invoice.id)
        with pytest.raises(RecordNotFoundError):
            store.delete("SAL-0003")


class TestReceipts:

    def test_save_list_delete(self, sql_service, session):
        store = SqlReceiptStore(session)
        receipt = sql_service.record_receipt("Ravi", "150.75", note="cash at counter")

        assert store.list(customer_name="ravi") == [receipt]
        store.delete(receipt.id)
        assert store.list() == []

    def test_applications_round_trip(self, session):
        store = SqlReceiptStore(session)
        receipt = Receipt(
            id=str(uuid4()),
            customer_name="Ravi",
            amount=Decimal("150.50"),
            receipt_date=date(2024, 3, 1),
            kind=ReceiptKind.ADVANCE,
            applications=(
                ReceiptApplication(invoice_id="inv-jan", amount=Decimal("100")),
                ReceiptApplication(invoice_id="inv-feb", amount=Decimal("20.25")),
            ),
        )
        store.save(receipt)

        (reloaded,) = store.list()
        assert reloaded == receipt
        assert reloaded.applied_amount == Decimal("120.25")

        store.delete(receipt.id)
        assert session.scalars(select(ReceiptApplicationModel)).all() == []


class TestServiceOverSql:
    """The full flow on real tables."""

    def test_sale_payment_and_ledger(self, sql_service, products, session):
        rice = products.list()[0]
        first = sql_service.record_invoice(InvoiceDraft(
            customer_name="Ravi",
            lines=(LineItem(product_reference=rice.id, quantity=Decimal("2")),),
            invoice_date=date(2024, 1, 10),
            amount_paid=Decimal("100"),
        ))
        second = sql_service.record_invoice(InvoiceDraft(
            customer_name="ravi",
            lines=(LineItem(product_reference=rice.id, quantity=Decimal("1")),),
            invoice_date=date(2024, 2, 10),
        ))

        assert first.total == Decimal("1363.95")
        assert second.total == Decimal("681.975")
        assert sql_service.current_due("RAVI") == Decimal("1945.925")

        result = sql_service.allocate_payment("Ravi", Decimal("2000"))

        assert result.receipt.kind is ReceiptKind.ADVANCE
        assert result.unallocated_remainder == Decimal("54.075")
        stored = {inv.id: inv for inv in sql_service.list_invoices()}
        assert stored[first.id].payment_status is PaymentStatus.PAID
        assert stored[second.id].payment_status is PaymentStatus.PAID
        assert sql_service.ledger_balances()["Ravi"].balance == Decimal("-54.075")

    def test_allocation_survives_invoice_edit_and_delete(self, sql_service, products):
        rice = products.list()[0]
        draft = InvoiceDraft(
            customer_name="Ravi",
            lines=(LineItem(product_reference=rice.id, quantity=Decimal("1")),),
        )
        invoice = sql_service.record_invoice(draft)
        sql_service.allocate_payment("Ravi", Decimal("681.975"))

        edited = sql_service.update_invoice(invoice.invoice_number, draft)
        assert edited.payment_status is PaymentStatus.PAID
        assert sql_service.current_due("Ravi") == Decimal("0")

        sql_service.delete_invoice(invoice.id)
        assert sql_service.ledger_balances()["Ravi"].balance == Decimal("-681.975")

    def test_customer_auto_created_once(self, sql_service, products, session):
        rice = products.list()[0]
        draft = InvoiceDraft(
            customer_name="Meena",
            lines=(LineItem(product_reference=rice.id, quantity=Decimal("1")),),
        )
        sql_service.record_invoice(draft)
        sql_service.record_invoice(draft)

        names = [c.name for c in SqlCustomerStore(session).list()]
        assert names == ["Meena"]


class TestSessionScope:
    """Stores only flush; session_scope is the commit point."""

    def test_commit_on_success(self, session):
        with session_scope() as scoped:
            SqlCustomerStore(scoped).create({"name": "Asha"})

        fresh = get_session()
        try:
            assert SqlCustomerStore(fresh).find_by_name("asha") is not None
        finally:
            fresh.close()

    def test_rollback_on_error(self, session):
        with pytest.raises(ValidationError):
            with session_scope() as scoped:
                store = SqlCustomerStore(scoped)
                store.create({"name": "Asha"})
                store.create({"name": "ASHA"})

        fresh = get_session()
        try:
            assert SqlCustomerStore(fresh).list() == []
        finally:
            fresh.close()
