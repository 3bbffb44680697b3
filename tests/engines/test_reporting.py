"""
Tests for sales reporting figures.

Covers:
- Inclusive date-range filtering with open ends
- Revenue, cost, profit and margin
- A day's takings for the dashboard
"""

from datetime import date, datetime
from decimal import Decimal

from retail_engines.reporting import (
    ProfitSummary,
    filter_by_date_range,
    record_date,
    sales_total_on,
    summarize_profit,
)
from retail_modules.sales.models import LineItem, Product


class TestFilterByDateRange:

    def setup_method(self):
        self.records = [
            {"id": "a", "invoice_date": date(2024, 1, 1)},
            {"id": "b", "invoice_date": "2024-01-15T09:30:00"},
            {"id": "c", "date": datetime(2024, 2, 1, 18, 0)},
            {"id": "d"},
        ]

    def _ids(self, records):
        return [r["id"] for r in records]

    def test_inclusive_bounds(self):
        selected = filter_by_date_range(self.records, date(2024, 1, 1), date(2024, 1, 15))
        assert self._ids(selected) == ["a", "b"]

    def test_open_start(self):
        assert self._ids(filter_by_date_range(self.records, end=date(2024, 1, 10))) == ["a"]

    def test_open_end(self):
        assert self._ids(filter_by_date_range(self.records, start=date(2024, 1, 10))) == ["b", "c"]

    def test_all_time_keeps_undated(self):
        assert self._ids(filter_by_date_range(self.records)) == ["a", "b", "c", "d"]

    def test_record_date_garbage(self):
        assert record_date({"date": "not a date"}) is None


class TestSummarizeProfit:

    def test_revenue_cost_margin(self, invoice_factory):
        pen = Product(id="pen", name="Pen", cost_price=Decimal("6"))
        invoices = [
            invoice_factory("Ravi", "118", lines=[
                LineItem(product_reference="pen", quantity=Decimal("10"), unit_price=Decimal("10")),
            ]),
            invoice_factory("Asha", "82", lines=[
                LineItem(product_reference="unknown", quantity=Decimal("1"), unit_price=Decimal("82")),
            ]),
        ]

        summary = summarize_profit(invoices, [pen])

        assert summary.total_revenue == Decimal("200")
        assert summary.total_cost == Decimal("60")
        assert summary.net_profit == Decimal("140")
        assert summary.margin_percent == Decimal("70")
        assert summary.invoice_count == 2

    def test_no_revenue_margin_zero(self):
        summary = ProfitSummary(total_revenue=Decimal("0"), total_cost=Decimal("5"), invoice_count=0)
        assert summary.margin_percent == Decimal("0")
        assert summary.net_profit == Decimal("-5")


class TestSalesTotalOn:

    def test_only_that_day(self, invoice_factory):
        invoices = [
            invoice_factory("Ravi", "100", invoice_date=date(2024, 3, 15)),
            invoice_factory("Asha", "50.5", invoice_date=date(2024, 3, 15)),
            invoice_factory("Arun", "70", invoice_date=date(2024, 3, 14)),
        ]
        assert sales_total_on(invoices, date(2024, 3, 15)) == Decimal("150.5")
