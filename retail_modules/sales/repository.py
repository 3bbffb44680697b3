"""
SQLAlchemy store implementations for the sales module.

Each class satisfies one protocol from ``retail_modules.sales.stores`` over
a caller-supplied ``Session``. Stores flush but never commit; the caller
owns the transaction (typically ``retail_kernel.db.session_scope``).

Usage:
    with session_scope() as session:
        service = SalesService(
            SqlProductLookup(session),
            SqlCustomerStore(session),
            SqlInvoiceStore(session),
            SqlReceiptStore(session),
        )
        service.record_invoice(draft)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from retail_kernel.domain.values import normalize_name
from retail_kernel.exceptions import RecordNotFoundError, ValidationError
from retail_kernel.logging_config import get_logger
from retail_modules.sales.models import Customer, Invoice, Product, Receipt
from retail_modules.sales.orm import (
    CustomerModel,
    InvoiceModel,
    ProductModel,
    ReceiptModel,
)

logger = get_logger("modules.sales.repository")


def _parse_key(key: str) -> UUID | None:
    try:
        return UUID(str(key))
    except ValueError:
        return None


class SqlProductLookup:
    """``ProductLookup`` over the retail_products table."""

    def __init__(self, session: Session):
        self._session = session

    def find_by_id(self, product_id: str) -> Product | None:
        key = _parse_key(product_id)
        if key is None:
            return None
        model = self._session.get(ProductModel, key)
        return model.to_dto() if model is not None else None

    def list(self) -> list[Product]:
        stmt = select(ProductModel).order_by(ProductModel.name)
        return [m.to_dto() for m in self._session.scalars(stmt)]

    def save(self, product: Product) -> Product:
        """Insert or replace a catalogue entry."""
        model = self._session.get(ProductModel, UUID(product.id))
        if model is None:
            self._session.add(ProductModel.from_dto(product))
        else:
            model.name = product.name
            model.stock = product.stock
            model.sell_price = product.sell_price
            model.gst_percent = product.gst_percent
            model.cost_price = product.cost_price
            model.barcode = product.barcode
        self._session.flush()
        return product


class SqlCustomerStore:
    """``CustomerStore`` over the retail_customers table."""

    def __init__(self, session: Session):
        self._session = session

    def find_by_name(self, name: str) -> Customer | None:
        key = normalize_name(name)
        if not key:
            return None
        stmt = select(CustomerModel).where(CustomerModel.name_key == key)
        model = self._session.scalars(stmt).first()
        return model.to_dto() if model is not None else None

    def create(self, data: Mapping[str, Any]) -> Customer:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("name", "customer name is required")
        if self.find_by_name(name) is not None:
            raise ValidationError("name", f"customer {name!r} already exists")
        customer = Customer(
            id=str(uuid4()),
            name=name,
            contact=str(data.get("contact") or ""),
            address=str(data.get("address") or ""),
        )
        self._session.add(CustomerModel.from_dto(customer))
        self._session.flush()
        logger.info("customer_created", extra={"customer_id": customer.id})
        return customer

    def list(self) -> list[Customer]:
        stmt = select(CustomerModel).order_by(CustomerModel.name_key)
        return [m.to_dto() for m in self._session.scalars(stmt)]


class SqlInvoiceStore:
    """
    ``InvoiceStore`` over retail_invoices / retail_invoice_lines.

    ``list`` returns invoices oldest first (date, then invoice number).
    """

    def __init__(self, session: Session):
        self._session = session

    def list(self, customer_name: str | None = None) -> list[Invoice]:
        stmt = (
            select(InvoiceModel)
            .options(selectinload(InvoiceModel.lines))
            .order_by(InvoiceModel.invoice_date, InvoiceModel.invoice_number)
        )
        if customer_name is not None:
            stmt = stmt.where(InvoiceModel.customer_key == normalize_name(customer_name))
        return [m.to_dto() for m in self._session.scalars(stmt)]

    def save(self, invoice: Invoice) -> Invoice:
        model = self._session.get(InvoiceModel, UUID(invoice.id))
        if model is None:
            self._session.add(InvoiceModel.from_dto(invoice))
        else:
            model.apply_dto(invoice)
        self._session.flush()
        return invoice

    def delete(self, invoice_id: str) -> None:
        key = _parse_key(invoice_id)
        model = self._session.get(InvoiceModel, key) if key is not None else None
        if model is None:
            raise RecordNotFoundError("invoice", str(invoice_id))
        self._session.delete(model)
        self._session.flush()


class SqlReceiptStore:
    """``ReceiptStore`` over retail_receipts / retail_receipt_applications."""

    def __init__(self, session: Session):
        self._session = session

    def list(self, customer_name: str | None = None) -> list[Receipt]:
        stmt = (
            select(ReceiptModel)
            .options(selectinload(ReceiptModel.applications))
            .order_by(ReceiptModel.receipt_date, ReceiptModel.created_at)
        )
        if customer_name is not None:
            stmt = stmt.where(ReceiptModel.customer_key == normalize_name(customer_name))
        return [m.to_dto() for m in self._session.scalars(stmt)]

    def save(self, receipt: Receipt) -> Receipt:
        self._session.add(ReceiptModel.from_dto(receipt))
        self._session.flush()
        return receipt

    def delete(self, receipt_id: str) -> None:
        key = _parse_key(receipt_id)
        model = self._session.get(ReceiptModel, key) if key is not None else None
        if model is None:
            raise RecordNotFoundError("receipt", str(receipt_id))
        self._session.delete(model)
        self._session.flush()
