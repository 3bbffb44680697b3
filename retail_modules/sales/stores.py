"""
Store protocols consumed by the sales module.

The assembler, allocator and ``SalesService`` only ever talk to these
structural interfaces; ``retail_modules.sales.repository`` provides the
SQLAlchemy implementation and the test suite provides in-memory ones.

Stores accept and return the frozen dataclasses of
``retail_modules.sales.models`` by value.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from retail_modules.sales.models import Customer, Invoice, Product, Receipt


@runtime_checkable
class ProductLookup(Protocol):
    """Read-only view of the product catalogue."""

    def find_by_id(self, product_id: str) -> Product | None:
        ...


@runtime_checkable
class CustomerStore(Protocol):
    """Customer ledger entries."""

    def find_by_name(self, name: str) -> Customer | None:
        """Case-insensitive exact match on the trimmed name."""
        ...

    def create(self, data: Mapping[str, Any]) -> Customer:
        ...

    def list(self) -> list[Customer]:
        ...


@runtime_checkable
class InvoiceStore(Protocol):
    """
    Invoice collection.

    ``save`` inserts a new invoice or fully replaces the one with the same
    ``id``; it returns the stored record.
    """

    def list(self, customer_name: str | None = None) -> list[Invoice]:
        ...

    def save(self, invoice: Invoice) -> Invoice:
        ...

    def delete(self, invoice_id: str) -> None:
        ...


@runtime_checkable
class ReceiptStore(Protocol):
    """Receipt collection. Receipts are never updated, only added or deleted."""

    def list(self, customer_name: str | None = None) -> list[Receipt]:
        ...

    def save(self, receipt: Receipt) -> Receipt:
        ...

    def delete(self, receipt_id: str) -> None:
        ...
