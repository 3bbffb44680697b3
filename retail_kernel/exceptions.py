"""
Typed Exception Hierarchy for the Retail Ledger Core.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The sales form, the ledger "collect payment" dialog and any storage adapter
all need to react differently to a bad draft, an oversell and a payment
that was only partly applied. Catching by type keeps that decision out of
message parsing:

    try:
        service.record_invoice(draft)
    except InsufficientStockError as e:
        warn_user(e.product_reference, e.requested, e.available)

Every exception carries:
  1. a TYPED class (catch by type, not message)
  2. a CODE attribute (machine-readable, API-safe)
  3. structured DATA attributes (picked up by the JSON log formatter)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    RetailCoreError (base)
    |
    +-- ValidationError
    +-- InsufficientStockError
    +-- AllocationError
    |   +-- PartialAllocationFailure
    +-- RecordNotFoundError
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                  | When Raised
----------------------|--------------------------------------------------------
VALIDATION_ERROR      | Bad input shape: no lines, missing product reference,
                      | blank customer, non-positive payment amount
INSUFFICIENT_STOCK    | A line asks for more than the product has on hand
PARTIAL_ALLOCATION    | An invoice write failed mid-way through an allocation
RECORD_NOT_FOUND      | A reference did not resolve to any stored record
CONFIGURATION_ERROR   | A settings value is missing or malformed

Validation and stock errors are always raised before any mutation.
Monetary helper functions never raise; they sanitize bad numbers to zero.
"""

from decimal import Decimal


class RetailCoreError(Exception):
    """
    Base exception for all retail ledger core errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "RETAIL_CORE_ERROR"


class ValidationError(RetailCoreError):
    """Input rejected before any state was touched."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InsufficientStockError(RetailCoreError):
    """A sale line requests more units than the product has available."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        line_index: int,
        product_reference: str,
        requested: Decimal,
        available: Decimal,
    ):
        self.line_index = line_index
        self.product_reference = product_reference
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock on line {line_index + 1} "
            f"(product {product_reference}): requested {requested}, "
            f"available {available}"
        )


class AllocationError(RetailCoreError):
    """Base exception for payment allocation errors."""

    code: str = "ALLOCATION_ERROR"


class PartialAllocationFailure(AllocationError):
    """
    A write failed part-way through an allocation.

    ``failed_invoice_id`` names the invoice whose write failed, or is None
    when every invoice write succeeded and the receipt write failed. In
    both cases no receipt was recorded (``receipt_recorded`` is False).

    Writes that already succeeded are NOT rolled back. The caller can
    re-run the allocation for ``unapplied_amount``: invoices that reached
    Paid absorb nothing on the second pass.
    """

    code: str = "PARTIAL_ALLOCATION"

    def __init__(
        self,
        customer_name: str,
        succeeded_invoice_ids: tuple[str, ...],
        failed_invoice_id: str | None,
        applied_amount: Decimal,
        unapplied_amount: Decimal,
        cause: str,
    ):
        self.customer_name = customer_name
        self.succeeded_invoice_ids = succeeded_invoice_ids
        self.failed_invoice_id = failed_invoice_id
        self.applied_amount = applied_amount
        self.unapplied_amount = unapplied_amount
        self.cause = cause
        self.receipt_recorded = False
        stopped_at = (
            f"invoice {failed_invoice_id}" if failed_invoice_id is not None else "the receipt"
        )
        super().__init__(
            f"Allocation for {customer_name!r} stopped at {stopped_at}: {cause} "
            f"(applied {applied_amount}, unapplied {unapplied_amount}, "
            f"{len(succeeded_invoice_ids)} invoice(s) already updated, no receipt recorded)"
        )


class RecordNotFoundError(RetailCoreError):
    """A reference did not resolve to a stored record."""

    code: str = "RECORD_NOT_FOUND"

    def __init__(self, collection: str, reference: str):
        self.collection = collection
        self.reference = reference
        super().__init__(f"No {collection} record matches {reference!r}")


class ConfigurationError(RetailCoreError):
    """A configuration value is missing or malformed."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration for {key!r}: {reason}")
