"""
Sales Module.

Handles sales invoices, payment collection, standalone receipts and the
customer ledger. Totals, settlement, allocation and balances come from
shared engines; persistence comes through the store protocols.
"""

from retail_modules.sales.allocator import PaymentAllocator
from retail_modules.sales.assembler import InvoiceAssembler
from retail_modules.sales.config import SalesConfig
from retail_modules.sales.models import (
    AllocationResult,
    Customer,
    Invoice,
    InvoiceDraft,
    LineItem,
    PaymentMetadata,
    PaymentMode,
    PaymentStatus,
    Product,
    Receipt,
    ReceiptApplication,
    ReceiptKind,
)
from retail_modules.sales.service import SalesService
from retail_modules.sales.stores import (
    CustomerStore,
    InvoiceStore,
    ProductLookup,
    ReceiptStore,
)

__all__ = [
    "AllocationResult",
    "Customer",
    "CustomerStore",
    "Invoice",
    "InvoiceAssembler",
    "InvoiceDraft",
    "InvoiceStore",
    "LineItem",
    "PaymentAllocator",
    "PaymentMetadata",
    "PaymentMode",
    "PaymentStatus",
    "Product",
    "ProductLookup",
    "Receipt",
    "ReceiptApplication",
    "ReceiptKind",
    "ReceiptStore",
    "SalesConfig",
    "SalesService",
]
