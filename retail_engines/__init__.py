"""
Module: retail_engines
Responsibility:
    Package entrypoint re-exporting the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    ``retail_modules``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import retail_kernel (and sibling engine modules).
    MUST NOT import retail_modules.

Invariants enforced:
    - Purity: engines never read the clock or touch a store; dates and
      collections are passed in.
    - Decimal-only arithmetic for every money figure.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine entry points are wrapped with ``@traced_engine`` (see
    ``retail_engines.tracer``) and emit RETAIL_ENGINE_TRACE records.
"""

from retail_kernel.logging_config import get_logger

logger = get_logger("engines")

from retail_engines.allocation import (
    AllocationEngine,
    AllocationLine,
    AllocationPlan,
    AllocationTarget,
    plan_fifo_allocation,
)
from retail_engines.identifiers import canonical_key_of, find_by_key, resolve_id
from retail_engines.ledger import (
    BalanceMap,
    BalanceState,
    CustomerBalance,
    compute_ledger_balances,
    effective_total,
)
from retail_engines.numbering import next_document_number
from retail_engines.pricing import (
    InvoiceTotals,
    LineAmounts,
    compute_invoice_totals,
    compute_line,
)
from retail_engines.reporting import (
    ProfitSummary,
    filter_by_date_range,
    sales_total_on,
    summarize_profit,
)
from retail_engines.settlement import (
    DEFAULT_EPSILON,
    PaymentStatus,
    Settlement,
    balance_due,
    derive_payment_status,
    settle,
)

__all__ = [
    # Allocation
    "AllocationEngine",
    "AllocationLine",
    "AllocationPlan",
    "AllocationTarget",
    "plan_fifo_allocation",
    # Identifiers
    "canonical_key_of",
    "find_by_key",
    "resolve_id",
    # Ledger
    "BalanceMap",
    "BalanceState",
    "CustomerBalance",
    "compute_ledger_balances",
    "effective_total",
    # Numbering
    "next_document_number",
    # Pricing
    "InvoiceTotals",
    "LineAmounts",
    "compute_invoice_totals",
    "compute_line",
    # Reporting
    "ProfitSummary",
    "filter_by_date_range",
    "sales_total_on",
    "summarize_profit",
    # Settlement
    "DEFAULT_EPSILON",
    "PaymentStatus",
    "Settlement",
    "balance_due",
    "derive_payment_status",
    "settle",
]
