"""
Pytest fixtures for the retail ledger core test suite.

Provides:
- Structured log capture
- In-memory implementations of the sales store protocols
- A product catalogue and a ready-wired SalesService
- SQLite in-memory database sessions for the storage adapter
- A deterministic clock
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Any, Generator
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from retail_engines.settlement import settle
from retail_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from retail_kernel.domain.clock import DeterministicClock
from retail_kernel.domain.values import normalize_name
from retail_kernel.exceptions import RecordNotFoundError
from retail_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from retail_modules.sales.config import SalesConfig
from retail_modules.sales.models import Customer, Invoice, PaymentMode, Product, Receipt
from retail_modules.sales.service import SalesService


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture retail_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, sales_service):
            sales_service.record_invoice(draft)
            logs = captured_logs()
            assert any(r["message"] == "invoice_assembled" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("retail_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock
# =============================================================================


TODAY = date(2024, 3, 15)


@pytest.fixture
def deterministic_clock():
    """Deterministic clock whose today() is TODAY."""
    return DeterministicClock(datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc))


# =============================================================================
# In-memory stores
# =============================================================================


class InMemoryProductLookup:
    def __init__(self, products=()):
        self.products: dict[str, Product] = {p.id: p for p in products}

    def find_by_id(self, product_id: str) -> Product | None:
        return self.products.get(product_id)

    def list(self) -> list[Product]:
        return list(self.products.values())


class InMemoryCustomerStore:
    def __init__(self, customers=(), fail_on_create: bool = False):
        self.customers: list[Customer] = list(customers)
        self.fail_on_create = fail_on_create
        self.create_calls: list[dict] = []

    def find_by_name(self, name: str) -> Customer | None:
        key = normalize_name(name)
        for customer in self.customers:
            if normalize_name(customer.name) == key:
                return customer
        return None

    def create(self, data: Mapping[str, Any]) -> Customer:
        self.create_calls.append(dict(data))
        if self.fail_on_create:
            raise RuntimeError("customer store unavailable")
        customer = Customer(id=str(uuid4()), name=data["name"])
        self.customers.append(customer)
        return customer

    def list(self) -> list[Customer]:
        return list(self.customers)


class InMemoryInvoiceStore:
    """Insertion-ordered invoice store; ``fail_on`` ids make ``save`` raise."""

    def __init__(self, invoices=(), fail_on=()):
        self.invoices: dict[str, Invoice] = {inv.id: inv for inv in invoices}
        self.fail_on = set(fail_on)
        self.saved: list[Invoice] = []

    def list(self, customer_name: str | None = None) -> list[Invoice]:
        records = list(self.invoices.values())
        if customer_name is None:
            return records
        key = normalize_name(customer_name)
        return [inv for inv in records if normalize_name(inv.customer_name) == key]

    def save(self, invoice: Invoice) -> Invoice:
        if invoice.id in self.fail_on:
            raise RuntimeError(f"write rejected for {invoice.id}")
        self.invoices[invoice.id] = invoice
        self.saved.append(invoice)
        return invoice

    def delete(self, invoice_id: str) -> None:
        if invoice_id not in self.invoices:
            raise RecordNotFoundError("invoice", invoice_id)
        del self.invoices[invoice_id]


class InMemoryReceiptStore:
    """Receipt store; ``fail_on_save`` makes every ``save`` raise."""

    def __init__(self, receipts=(), fail_on_save: bool = False):
        self.receipts: dict[str, Receipt] = {r.id: r for r in receipts}
        self.fail_on_save = fail_on_save

    def list(self, customer_name: str | None = None) -> list[Receipt]:
        records = list(self.receipts.values())
        if customer_name is None:
            return records
        key = normalize_name(customer_name)
        return [r for r in records if normalize_name(r.customer_name) == key]

    def save(self, receipt: Receipt) -> Receipt:
        if self.fail_on_save:
            raise RuntimeError("receipt store unavailable")
        self.receipts[receipt.id] = receipt
        return receipt

    def delete(self, receipt_id: str) -> None:
        if receipt_id not in self.receipts:
            raise RecordNotFoundError("receipt", receipt_id)
        del self.receipts[receipt_id]


# =============================================================================
# Catalogue and wired services
# =============================================================================


PEN = Product(
    id="prod-pen",
    name="Gel Pen",
    stock=Decimal("50"),
    sell_price=Decimal("10"),
    gst_percent=Decimal("18"),
    cost_price=Decimal("6"),
)
NOTEBOOK = Product(
    id="prod-notebook",
    name="Notebook",
    stock=Decimal("5"),
    sell_price=Decimal("100"),
    gst_percent=Decimal("12"),
    cost_price=Decimal("70"),
)


@pytest.fixture
def catalog() -> dict[str, Product]:
    """The seeded products by short name."""
    return {"pen": PEN, "notebook": NOTEBOOK}


@pytest.fixture
def invoice_store_factory():
    """``InMemoryInvoiceStore`` class, for tests that need failing writes."""
    return InMemoryInvoiceStore


@pytest.fixture
def customer_store_factory():
    return InMemoryCustomerStore


@pytest.fixture
def receipt_store_factory():
    """``InMemoryReceiptStore`` class, for tests that need failing writes."""
    return InMemoryReceiptStore


@pytest.fixture
def product_lookup():
    return InMemoryProductLookup([PEN, NOTEBOOK])


@pytest.fixture
def customer_store():
    return InMemoryCustomerStore([Customer(id=str(uuid4()), name="Ravi")])


@pytest.fixture
def invoice_store():
    return InMemoryInvoiceStore()


@pytest.fixture
def receipt_store():
    return InMemoryReceiptStore()


@pytest.fixture
def sales_config():
    return SalesConfig()


@pytest.fixture
def sales_service(
    product_lookup,
    customer_store,
    invoice_store,
    receipt_store,
    sales_config,
    deterministic_clock,
):
    return SalesService(
        product_lookup=product_lookup,
        customer_store=customer_store,
        invoice_store=invoice_store,
        receipt_store=receipt_store,
        config=sales_config,
        clock=deterministic_clock,
    )


def make_invoice(
    customer_name: str,
    total: str | None,
    amount_paid: str = "0",
    invoice_date: date = date(2024, 1, 1),
    invoice_number: str | None = None,
    lines=(),
) -> Invoice:
    """A stored invoice with the given figures and consistent derived fields."""
    settlement = settle(total, amount_paid)
    invoice_id = str(uuid4())
    return Invoice(
        id=invoice_id,
        invoice_number=invoice_number or f"SAL-{invoice_id[:4]}",
        customer_name=customer_name,
        invoice_date=invoice_date,
        lines=tuple(lines),
        amount_paid=Decimal(amount_paid),
        payment_mode=PaymentMode.CASH,
        subtotal=Decimal(total) if total is not None else Decimal("0"),
        total_discount=Decimal("0"),
        total_tax=Decimal("0"),
        total=Decimal(total) if total is not None else None,
        balance_due=settlement.balance_due,
        payment_status=settlement.payment_status,
    )


@pytest.fixture
def invoice_factory():
    """Factory fixture for stored invoices; see ``make_invoice``."""
    return make_invoice


@pytest.fixture
def with_status():
    """Return a copy of an invoice with a (possibly inconsistent) stored status."""

    def _with_status(invoice: Invoice, status) -> Invoice:
        return replace(invoice, payment_status=status)

    return _with_status


# =============================================================================
# SQLite storage adapter
# =============================================================================


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """Fresh in-memory SQLite database per test."""
    init_engine_from_url("sqlite:///:memory:", pool_pre_ping=False)
    create_tables()
    sess = get_session()
    try:
        yield sess
    finally:
        sess.close()
        reset_engine()
