"""
Sales ORM Models (``retail_modules.sales.orm``).

Responsibility
--------------
SQLAlchemy persistence models for the sales module.  Maps the frozen
domain dataclasses from ``models.py`` to database tables.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``retail_kernel.db.base``
and sibling ``models.py``.  MUST NOT be imported by ``retail_kernel``
outside ``create_tables``.

Domain ids are strings; the tables key on UUIDs, so ``from_dto`` parses
and ``to_dto`` formats them.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from retail_kernel.db.base import TrackedBase
from retail_kernel.domain.values import normalize_name


# ---------------------------------------------------------------------------
# 1. CustomerModel
# ---------------------------------------------------------------------------


class CustomerModel(TrackedBase):
    """
    ORM model for ledger customers.

    Maps to the ``Customer`` frozen dataclass.

    Guarantees:
        - name_key (trimmed, lower-cased name) is unique, so two customers
          cannot differ only by case (uq_retail_customers_name_key).
        - No balance column: balances are derived from invoices and receipts.
    """

    __tablename__ = "retail_customers"

    __table_args__ = (
        UniqueConstraint("name_key", name="uq_retail_customers_name_key"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    name_key: Mapped[str] = mapped_column(String(255), nullable=False)
    contact: Mapped[str] = mapped_column(String(100), default="")
    address: Mapped[str] = mapped_column(Text, default="")

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from retail_modules.sales.models import Customer

        return Customer(
            id=str(self.id),
            name=self.name,
            contact=self.contact or "",
            address=self.address or "",
        )

    @classmethod
    def from_dto(cls, dto) -> "CustomerModel":
        """Create ORM model from frozen dataclass."""
        return cls(
            id=UUID(dto.id),
            name=dto.name.strip(),
            name_key=normalize_name(dto.name),
            contact=dto.contact,
            address=dto.address,
        )

    def __repr__(self) -> str:
        return f"<CustomerModel {self.name}>"


# ---------------------------------------------------------------------------
# 2. ProductModel
# ---------------------------------------------------------------------------


class ProductModel(TrackedBase):
    """
    ORM model for the product catalogue (the fields the sales module reads).

    Guarantees:
        - Monetary fields and stock are exact Decimals (DecimalString).
    """

    __tablename__ = "retail_products"

    __table_args__ = (
        Index("idx_retail_products_barcode", "barcode"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    stock: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    sell_price: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    gst_percent: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    cost_price: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    barcode: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from retail_modules.sales.models import Product

        return Product(
            id=str(self.id),
            name=self.name,
            stock=self.stock,
            sell_price=self.sell_price,
            gst_percent=self.gst_percent,
            cost_price=self.cost_price,
            barcode=self.barcode,
        )

    @classmethod
    def from_dto(cls, dto) -> "ProductModel":
        """Create ORM model from frozen dataclass."""
        return cls(
            id=UUID(dto.id),
            name=dto.name,
            stock=dto.stock,
            sell_price=dto.sell_price,
            gst_percent=dto.gst_percent,
            cost_price=dto.cost_price,
            barcode=dto.barcode,
        )

    def __repr__(self) -> str:
        return f"<ProductModel {self.name}>"


# ---------------------------------------------------------------------------
# 3. InvoiceModel
# ---------------------------------------------------------------------------


class InvoiceModel(TrackedBase):
    """
    ORM model for sales invoices.

    Maps to the ``Invoice`` frozen dataclass.  Lines are stored in a
    separate child table via the ``lines`` relationship.

    Guarantees:
        - invoice_number is unique (uq_retail_invoices_invoice_number).
        - total is nullable for legacy records that never stored one.
        - status and payment mode are stored as enum values.
    """

    __tablename__ = "retail_invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_retail_invoices_invoice_number"),
        Index("idx_retail_invoices_customer_key", "customer_key"),
        Index("idx_retail_invoices_invoice_date", "invoice_date"),
    )

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_key: Mapped[str] = mapped_column(String(255), nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    payment_mode: Mapped[str] = mapped_column(String(20), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_discount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_tax: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total: Mapped[Decimal | None] = mapped_column(nullable=True)
    balance_due: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="")

    lines: Mapped[list["InvoiceLineModel"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineModel.line_number",
    )

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from retail_modules.sales.models import Invoice, PaymentMode, PaymentStatus

        return Invoice(
            id=str(self.id),
            invoice_number=self.invoice_number,
            customer_name=self.customer_name,
            invoice_date=self.invoice_date,
            lines=tuple(line.to_dto() for line in self.lines),
            amount_paid=self.amount_paid,
            payment_mode=PaymentMode.parse(self.payment_mode),
            subtotal=self.subtotal,
            total_discount=self.total_discount,
            total_tax=self.total_tax,
            total=self.total,
            balance_due=self.balance_due,
            payment_status=PaymentStatus(self.payment_status),
            notes=self.notes or "",
        )

    @classmethod
    def from_dto(cls, dto) -> "InvoiceModel":
        """Create ORM model from frozen dataclass."""
        model = cls(id=UUID(dto.id))
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto) -> None:
        """Overwrite every column and the line set from ``dto`` (full replace)."""
        self.invoice_number = dto.invoice_number
        self.customer_name = dto.customer_name
        self.customer_key = normalize_name(dto.customer_name)
        self.invoice_date = dto.invoice_date
        self.amount_paid = dto.amount_paid
        self.payment_mode = dto.payment_mode.value
        self.subtotal = dto.subtotal
        self.total_discount = dto.total_discount
        self.total_tax = dto.total_tax
        self.total = dto.total
        self.balance_due = dto.balance_due
        self.payment_status = dto.payment_status.value
        self.notes = dto.notes
        self.lines = [
            InvoiceLineModel.from_dto(line, line_number=i + 1)
            for i, line in enumerate(dto.lines)
        ]

    def __repr__(self) -> str:
        return f"<InvoiceModel {self.invoice_number}: {self.customer_name}>"


# ---------------------------------------------------------------------------
# 4. InvoiceLineModel
# ---------------------------------------------------------------------------


class InvoiceLineModel(TrackedBase):
    """
    ORM model for invoice lines.

    Guarantees:
        - line_number orders lines within an invoice.
        - Deleted with their invoice (delete-orphan cascade).
    """

    __tablename__ = "retail_invoice_lines"

    __table_args__ = (
        Index("idx_retail_invoice_lines_invoice_id", "invoice_id"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        ForeignKey("retail_invoices.id", ondelete="CASCADE"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    product_reference: Mapped[str | None] = mapped_column(String(64), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    unit_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    discount_percent: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    tax_percent: Mapped[Decimal | None] = mapped_column(nullable=True)
    description: Mapped[str] = mapped_column(String(255), default="")

    invoice: Mapped["InvoiceModel"] = relationship(back_populates="lines")

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from retail_modules.sales.models import LineItem

        return LineItem(
            product_reference=self.product_reference,
            quantity=self.quantity,
            unit_price=self.unit_price,
            discount_percent=self.discount_percent,
            tax_percent=self.tax_percent,
            description=self.description or "",
        )

    @classmethod
    def from_dto(cls, dto, line_number: int) -> "InvoiceLineModel":
        """Create ORM model from frozen dataclass."""
        return cls(
            line_number=line_number,
            product_reference=dto.product_reference,
            quantity=dto.quantity,
            unit_price=dto.unit_price,
            discount_percent=dto.discount_percent,
            tax_percent=dto.tax_percent,
            description=dto.description,
        )

    def __repr__(self) -> str:
        return f"<InvoiceLineModel {self.line_number}: {self.product_reference}>"


# ---------------------------------------------------------------------------
# 5. ReceiptModel
# ---------------------------------------------------------------------------


class ReceiptModel(TrackedBase):
    """
    ORM model for receipts.

    Maps to the ``Receipt`` frozen dataclass.

    Guarantees:
        - applications (child table) record, per invoice, the part already
          written into amount_paid by an allocation. They go with the
          receipt (delete-orphan cascade).
    """

    __tablename__ = "retail_receipts"

    __table_args__ = (
        Index("idx_retail_receipts_customer_key", "customer_key"),
        Index("idx_retail_receipts_receipt_date", "receipt_date"),
    )

    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_key: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    receipt_date: Mapped[date] = mapped_column(Date, nullable=False)
    mode: Mapped[str] = mapped_column(String(20), nullable=False)
    note: Mapped[str] = mapped_column(Text, default="")
    kind: Mapped[str] = mapped_column(String(40), nullable=False)

    applications: Mapped[list["ReceiptApplicationModel"]] = relationship(
        back_populates="receipt",
        cascade="all, delete-orphan",
        order_by="ReceiptApplicationModel.line_number",
    )

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from retail_modules.sales.models import PaymentMode, Receipt, ReceiptKind

        return Receipt(
            id=str(self.id),
            customer_name=self.customer_name,
            amount=self.amount,
            receipt_date=self.receipt_date,
            mode=PaymentMode.parse(self.mode),
            note=self.note or "",
            kind=ReceiptKind(self.kind),
            applications=tuple(a.to_dto() for a in self.applications),
        )

    @classmethod
    def from_dto(cls, dto) -> "ReceiptModel":
        """Create ORM model from frozen dataclass."""
        return cls(
            id=UUID(dto.id),
            customer_name=dto.customer_name,
            customer_key=normalize_name(dto.customer_name),
            amount=dto.amount,
            receipt_date=dto.receipt_date,
            mode=dto.mode.value,
            note=dto.note,
            kind=dto.kind.value,
            applications=[
                ReceiptApplicationModel.from_dto(application, line_number=i + 1)
                for i, application in enumerate(dto.applications)
            ],
        )

    def __repr__(self) -> str:
        return f"<ReceiptModel {self.customer_name}: {self.amount}>"


# ---------------------------------------------------------------------------
# 6. ReceiptApplicationModel
# ---------------------------------------------------------------------------


class ReceiptApplicationModel(TrackedBase):
    """
    ORM model for the per-invoice split of an allocated receipt.

    Guarantees:
        - invoice_id is a plain reference, not a foreign key: the invoice
          may be deleted while the receipt (and its money) stays.
        - Deleted with their receipt (delete-orphan cascade).
    """

    __tablename__ = "retail_receipt_applications"

    __table_args__ = (
        Index("idx_retail_receipt_applications_receipt_id", "receipt_id"),
        Index("idx_retail_receipt_applications_invoice_id", "invoice_id"),
    )

    receipt_id: Mapped[UUID] = mapped_column(
        ForeignKey("retail_receipts.id", ondelete="CASCADE"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    invoice_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    receipt: Mapped["ReceiptModel"] = relationship(back_populates="applications")

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from retail_modules.sales.models import ReceiptApplication

        return ReceiptApplication(invoice_id=self.invoice_id, amount=self.amount)

    @classmethod
    def from_dto(cls, dto, line_number: int) -> "ReceiptApplicationModel":
        """Create ORM model from frozen dataclass."""
        return cls(line_number=line_number, invoice_id=dto.invoice_id, amount=dto.amount)

    def __repr__(self) -> str:
        return f"<ReceiptApplicationModel {self.invoice_id}: {self.amount}>"
