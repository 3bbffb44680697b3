"""
Module: retail_engines.allocation
Responsibility:
    Plan how one incoming customer payment is spread across that
    customer's outstanding invoices, oldest debt first.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The plan is applied to stored invoices by
    ``retail_modules.sales.allocator.PaymentAllocator``.

Invariants enforced:
    - Conservation: total_allocated + unallocated == source_amount, exactly
      (Decimal arithmetic, no rounding step).
    - No target receives more than its pending amount.
    - Ordering: ascending by date; equal dates keep their input order.

Failure modes:
    - ValueError on a negative source amount (the allocator rejects
      non-positive payments before planning).

Usage:
    from retail_engines.allocation import AllocationEngine, AllocationTarget

    plan = AllocationEngine().allocate_fifo(
        amount=Decimal("120"),
        targets=[
            AllocationTarget(target_id="inv-1", pending=Decimal("100"), date=date(2024, 1, 1)),
            AllocationTarget(target_id="inv-2", pending=Decimal("50"), date=date(2024, 2, 1)),
        ],
    )
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from retail_engines.tracer import traced_engine
from retail_kernel.domain.values import ZERO
from retail_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")


@dataclass(frozen=True)
class AllocationTarget:
    """
    An outstanding invoice that can absorb part of a payment.

    Guarantees:
        - ``pending`` is non-negative.
    """

    target_id: str
    pending: Decimal
    date: date | None = None
    target_type: str = "invoice"

    def __post_init__(self) -> None:
        if self.pending < ZERO:
            raise ValueError("Pending amount cannot be negative")


@dataclass(frozen=True)
class AllocationLine:
    """
    Outcome for one target.

    Guarantees:
        - ``allocated + remaining == pending``.
    """

    target_id: str
    target_type: str
    pending: Decimal
    allocated: Decimal
    remaining: Decimal

    @property
    def is_fully_allocated(self) -> bool:
        return self.remaining == ZERO


@dataclass(frozen=True)
class AllocationPlan:
    """
    Complete allocation plan.

    Guarantees:
        - ``total_allocated + unallocated == source_amount``.
        - ``lines`` are in application order and only cover targets that
          were reached before the payment ran out.
    """

    source_amount: Decimal
    lines: tuple[AllocationLine, ...]
    total_allocated: Decimal
    unallocated: Decimal

    @property
    def is_fully_allocated(self) -> bool:
        """True if the entire payment went to invoices."""
        return self.unallocated == ZERO

    @property
    def funded_lines(self) -> tuple[AllocationLine, ...]:
        """Lines that actually received money."""
        return tuple(line for line in self.lines if line.allocated > ZERO)


def order_oldest_first(targets: Sequence[AllocationTarget]) -> list[AllocationTarget]:
    """Stable ascending sort by date; undated targets go first."""
    return sorted(targets, key=lambda t: t.date or date.min)


class AllocationEngine:
    """
    Allocate a payment across outstanding invoices.

    Contract:
        Pure function of its inputs. No I/O, no database access.
    Non-goals:
        - Does not decide which invoices are outstanding; callers pass
          the candidates.
        - Does not persist anything.
    """

    @traced_engine("allocation", "1.0", fingerprint_fields=("amount", "targets"))
    def allocate_fifo(
        self,
        amount: Decimal,
        targets: Sequence[AllocationTarget],
    ) -> AllocationPlan:
        """
        Apply ``amount`` to targets oldest first until it runs out.

        Preconditions:
            - ``amount`` >= 0.
        Postconditions:
            - Each reached target gets ``min(remaining, pending)``.
            - Targets after the point where the payment ran out are omitted.
        """
        if amount < ZERO:
            raise ValueError(f"Allocation amount cannot be negative: {amount}")

        logger.info("allocation_started", extra={
            "amount": str(amount),
            "target_count": len(targets),
        })

        remaining_to_allocate = amount
        lines: list[AllocationLine] = []

        for target in order_oldest_first(targets):
            if remaining_to_allocate <= ZERO:
                break

            to_allocate = min(remaining_to_allocate, target.pending)
            remaining_to_allocate -= to_allocate

            lines.append(
                AllocationLine(
                    target_id=target.target_id,
                    target_type=target.target_type,
                    pending=target.pending,
                    allocated=to_allocate,
                    remaining=target.pending - to_allocate,
                )
            )

        total_allocated = amount - remaining_to_allocate

        # Conservation: allocated + unallocated == source
        assert total_allocated + remaining_to_allocate == amount, (
            f"Allocation conservation violated: "
            f"{total_allocated} + {remaining_to_allocate} != {amount}"
        )

        logger.info("allocation_fifo_completed", extra={
            "source_amount": str(amount),
            "total_allocated": str(total_allocated),
            "unallocated": str(remaining_to_allocate),
            "targets_funded": sum(1 for l in lines if l.allocated > ZERO),
            "line_count": len(lines),
        })

        return AllocationPlan(
            source_amount=amount,
            lines=tuple(lines),
            total_allocated=total_allocated,
            unallocated=remaining_to_allocate,
        )


def plan_fifo_allocation(
    amount: Decimal,
    targets: Sequence[AllocationTarget],
) -> AllocationPlan:
    """Convenience wrapper around ``AllocationEngine().allocate_fifo``."""
    return AllocationEngine().allocate_fifo(amount=amount, targets=targets)
