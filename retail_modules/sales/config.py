"""
Sales Configuration Schema.

Defines the structure and sensible defaults for sales, receipt and
allocation settings. Actual values are loaded from YAML at runtime by
``retail_config.get_active_config()``.
"""

from dataclasses import dataclass
from decimal import Decimal

from retail_kernel.exceptions import ConfigurationError, ValidationError
from retail_kernel.logging_config import get_logger
from retail_modules.sales.models import PaymentMode

logger = get_logger("modules.sales.config")


@dataclass(frozen=True)
class SalesConfig:
    """
    Configuration schema for the sales module.

    Field defaults match how a single-store counter operates. Override at
    instantiation or through YAML:

        config = SalesConfig(
            enforce_stock_check=False,   # allow backorders
            invoice_prefix="INV",
        )
    """

    # Floating-point slack when deciding an invoice is fully paid
    settlement_epsilon: Decimal = Decimal("0.01")

    # Invoice numbering
    invoice_prefix: str = "SAL"
    invoice_number_width: int = 4

    # Stock policy: hard error when True, logged warning when False
    enforce_stock_check: bool = True

    # Create a ledger entry when a sale names an unknown customer
    auto_create_customers: bool = True

    default_payment_mode: PaymentMode = PaymentMode.CASH

    # Receipt annotations written by the payment allocator
    bill_payment_note: str = "Bill Payment"
    advance_note: str = "Advance / Overpayment"

    def __post_init__(self):
        if not isinstance(self.settlement_epsilon, Decimal):
            object.__setattr__(self, "settlement_epsilon", Decimal(str(self.settlement_epsilon)))
        if self.settlement_epsilon < Decimal("0") or self.settlement_epsilon >= Decimal("1"):
            raise ConfigurationError(
                "settlement_epsilon", f"must be in [0, 1), got {self.settlement_epsilon}"
            )
        if not self.invoice_prefix or not self.invoice_prefix.strip():
            raise ConfigurationError("invoice_prefix", "cannot be empty")
        if "-" in self.invoice_prefix:
            raise ConfigurationError("invoice_prefix", "cannot contain '-'")
        if self.invoice_number_width < 1:
            raise ConfigurationError(
                "invoice_number_width", f"must be positive, got {self.invoice_number_width}"
            )
        if not isinstance(self.default_payment_mode, PaymentMode):
            try:
                mode = PaymentMode.parse(self.default_payment_mode)
            except ValidationError as exc:
                raise ConfigurationError("default_payment_mode", exc.reason) from exc
            object.__setattr__(self, "default_payment_mode", mode)
        logger.debug(
            "sales_config_initialized",
            extra={
                "settlement_epsilon": str(self.settlement_epsilon),
                "invoice_prefix": self.invoice_prefix,
                "enforce_stock_check": self.enforce_stock_check,
                "auto_create_customers": self.auto_create_customers,
            },
        )
