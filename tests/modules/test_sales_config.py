"""Tests for the SalesConfig schema."""

from decimal import Decimal

import pytest

from retail_kernel.exceptions import ConfigurationError
from retail_modules.sales.config import SalesConfig
from retail_modules.sales.models import PaymentMode


class TestSalesConfigDefaults:

    def test_defaults(self):
        config = SalesConfig()
        assert config.settlement_epsilon == Decimal("0.01")
        assert config.invoice_prefix == "SAL"
        assert config.invoice_number_width == 4
        assert config.enforce_stock_check is True
        assert config.auto_create_customers is True
        assert config.default_payment_mode is PaymentMode.CASH

    def test_epsilon_coerced_to_decimal(self):
        config = SalesConfig(settlement_epsilon="0.005")
        assert config.settlement_epsilon == Decimal("0.005")

    def test_payment_mode_parsed(self):
        assert SalesConfig(default_payment_mode="upi").default_payment_mode is PaymentMode.UPI


class TestSalesConfigValidation:
    """Invalid values raise ConfigurationError naming the key."""

    @pytest.mark.parametrize(
        "kwargs, key",
        [
            ({"settlement_epsilon": Decimal("-0.01")}, "settlement_epsilon"),
            ({"settlement_epsilon": Decimal("1")}, "settlement_epsilon"),
            ({"invoice_prefix": "  "}, "invoice_prefix"),
            ({"invoice_prefix": "S-A"}, "invoice_prefix"),
            ({"invoice_number_width": 0}, "invoice_number_width"),
            ({"default_payment_mode": "Barter"}, "default_payment_mode"),
        ],
    )
    def test_rejected(self, kwargs, key):
        with pytest.raises(ConfigurationError) as exc_info:
            SalesConfig(**kwargs)
        assert exc_info.value.key == key
        assert exc_info.value.code == "CONFIGURATION_ERROR"

    def test_frozen(self):
        config = SalesConfig()
        with pytest.raises(AttributeError):
            config.invoice_prefix = "INV"
