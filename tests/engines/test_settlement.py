"""
Tests for payment status and balance-due derivation.
"""

from decimal import Decimal

import pytest

from retail_engines.settlement import (
    PaymentStatus,
    balance_due,
    derive_payment_status,
    settle,
)


class TestDerivePaymentStatus:
    """Status is a pure function of (total, amount_paid)."""

    @pytest.mark.parametrize(
        "paid, expected",
        [
            ("500", PaymentStatus.PAID),
            ("0", PaymentStatus.UNPAID),
            ("250", PaymentStatus.PARTIAL),
            ("600", PaymentStatus.PAID),
            ("499.995", PaymentStatus.PAID),
            ("499.98", PaymentStatus.PARTIAL),
        ],
    )
    def test_total_500(self, paid, expected):
        assert derive_payment_status(Decimal("500"), Decimal(paid)) is expected

    def test_zero_total_is_unpaid(self):
        """Nothing billed means nothing settled, even if money was recorded."""
        assert derive_payment_status(Decimal("0"), Decimal("0")) is PaymentStatus.UNPAID
        assert derive_payment_status(Decimal("0"), Decimal("10")) is PaymentStatus.UNPAID

    def test_custom_epsilon(self):
        assert derive_payment_status(Decimal("100"), Decimal("99"), epsilon=Decimal("1")) is PaymentStatus.PAID
        assert derive_payment_status(Decimal("100"), Decimal("99.999"), epsilon=Decimal("0")) is PaymentStatus.PARTIAL

    def test_string_values(self):
        assert PaymentStatus.PAID.value == "Paid"
        assert PaymentStatus("Partial") is PaymentStatus.PARTIAL


class TestBalanceDue:

    def test_never_negative(self):
        assert balance_due(Decimal("100"), Decimal("150")) == Decimal("0")

    def test_remaining(self):
        assert balance_due(Decimal("500"), Decimal("250")) == Decimal("250")

    def test_garbage_inputs(self):
        assert balance_due("abc", None) == Decimal("0")


class TestSettle:

    def test_scenarios(self):
        paid = settle(Decimal("500"), Decimal("500"))
        assert (paid.balance_due, paid.payment_status) == (Decimal("0"), PaymentStatus.PAID)

        unpaid = settle(Decimal("500"), Decimal("0"))
        assert (unpaid.balance_due, unpaid.payment_status) == (Decimal("500"), PaymentStatus.UNPAID)

        partial = settle(Decimal("500"), Decimal("250"))
        assert (partial.balance_due, partial.payment_status) == (Decimal("250"), PaymentStatus.PARTIAL)

    def test_corrects_inconsistent_stored_state(self):
        """A record stored as Paid with money still owed re-derives as Partial."""
        stored = {"total": "500", "amount_paid": "100", "payment_status": "Paid", "balance_due": "0"}
        derived = settle(stored["total"], stored["amount_paid"])
        assert derived.payment_status is PaymentStatus.PARTIAL
        assert derived.balance_due == Decimal("400")

    def test_pending_alias(self):
        assert settle("80", "30").pending == Decimal("50")
