"""
Module: retail_engines.reporting
Responsibility:
    Sales figures for the reports page and dashboard: date-range
    filtering, revenue/cost/profit with margin, and a day's takings.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Revenue uses ``effective_total`` so legacy invoices without a stored
total still count. Cost is quantity times the product's cost price; lines
whose product is unknown cost zero.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from retail_engines.ledger import effective_total
from retail_engines.pricing import read_line_field
from retail_engines.tracer import traced_engine
from retail_kernel.domain.values import HUNDRED, ZERO, non_negative, read_field, to_decimal
from retail_kernel.logging_config import get_logger

logger = get_logger("engines.reporting")


def record_date(record: Any) -> date | None:
    """Calendar date of an invoice or receipt (date, datetime or ISO string)."""
    value = read_field(record, "invoice_date", "receipt_date", "date")
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        logger.debug("record_date_unparseable", extra={"raw_value": text})
        return None


def filter_by_date_range(
    records: Iterable[Any],
    start: date | None = None,
    end: date | None = None,
) -> list[Any]:
    """
    Records dated within ``start``..``end`` inclusive.

    Open ends are unbounded. Undated records are kept only when both ends
    are open.
    """
    selected = []
    for record in records:
        day = record_date(record)
        if day is None:
            if start is None and end is None:
                selected.append(record)
            continue
        if start is not None and day < start:
            continue
        if end is not None and day > end:
            continue
        selected.append(record)
    return selected


@dataclass(frozen=True)
class ProfitSummary:
    """Revenue against cost for a set of invoices."""

    total_revenue: Decimal
    total_cost: Decimal
    invoice_count: int

    @property
    def net_profit(self) -> Decimal:
        return self.total_revenue - self.total_cost

    @property
    def margin_percent(self) -> Decimal:
        """Net profit as a percentage of revenue; zero when there is no revenue."""
        if self.total_revenue <= ZERO:
            return ZERO
        return self.net_profit / self.total_revenue * HUNDRED


def invoice_cost(invoice: Any, cost_prices: Mapping[str, Decimal]) -> Decimal:
    """Estimated cost of goods on one invoice."""
    cost = ZERO
    for line in read_field(invoice, "lines") or ():
        reference = read_field(line, "product_reference", "productId")
        unit_cost = cost_prices.get(str(reference), ZERO) if reference is not None else ZERO
        cost += unit_cost * non_negative(read_line_field(line, "quantity"))
    return cost


@traced_engine("reporting", "1.0")
def summarize_profit(
    invoices: Iterable[Any],
    products: Iterable[Any],
) -> ProfitSummary:
    """Revenue, cost and invoice count over ``invoices``."""
    cost_prices = {
        str(read_field(p, "id")): non_negative(read_field(p, "cost_price", "costPrice"))
        for p in products
    }
    revenue = ZERO
    cost = ZERO
    count = 0
    for invoice in invoices:
        revenue += effective_total(invoice)
        cost += invoice_cost(invoice, cost_prices)
        count += 1
    return ProfitSummary(total_revenue=revenue, total_cost=cost, invoice_count=count)


def sales_total_on(invoices: Iterable[Any], day: date) -> Decimal:
    """Sum of stored invoice totals dated ``day`` (dashboard "today's sales")."""
    return sum(
        (to_decimal(read_field(inv, "total")) for inv in invoices if record_date(inv) == day),
        ZERO,
    )
