"""
Module: retail_kernel.db.base
Responsibility: Declarative base and column types for the sales tables.
Architecture position: Kernel > DB. Imported by ``retail_modules.sales.orm``;
    imports nothing from engines or modules.

Invariants enforced:
    - Every row is keyed by a uuid4 stored as a 36-character string, which
      is also the ``id`` string the domain dataclasses carry.
    - Money and quantities are stored as exact decimal strings; no dialect
      (SQLite included) ever rounds them through float.
    - ``TrackedBase`` rows record when they were inserted and last updated.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID column as ``String(36)``. Accepts a ``UUID`` or its string form."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> str | None:
        return None if value is None else str(UUID(str(value)))

    def process_result_value(self, value: Any, dialect: Any) -> UUID | None:
        return None if value is None else UUID(value)


class DecimalString(TypeDecorator):
    """
    Decimal column stored as fixed-point text.

    Contract:
        ``Decimal("318.60")`` comes back as ``Decimal("318.60")``, on every
        backend. Non-finite values are rejected at bind time.
    """

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> str | None:
        if value is None:
            return None
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
        if not amount.is_finite():
            raise ValueError(f"Cannot store non-finite amount: {amount}")
        return format(amount, "f")

    def process_result_value(self, value: Any, dialect: Any) -> Decimal | None:
        return None if value is None else Decimal(value)


class Base(DeclarativeBase):
    """
    Declarative base for the sales tables.

    ``Mapped[Decimal]`` and ``Mapped[UUID]`` annotations pick up the exact
    column types above without repeating them on every column.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: DecimalString(),
        UUID: UUIDString(),
        datetime: DateTime(timezone=True),
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Abstract base adding ``created_at`` / ``updated_at`` (database clock)."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())
