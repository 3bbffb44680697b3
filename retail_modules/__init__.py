"""
Retail Modules.

Orchestration layers over the Retail Kernel and Engines. Each module
contains:
- Domain models (the nouns)
- Store protocols (what it needs from persistence)
- Configuration schema (policy and settings)
- A service exposing the entry points

Modules:
- Sales: invoices, payment collection, receipts, customer ledger

Actual processing logic lives in the engines.
"""

from retail_modules import sales

__all__ = ["sales"]
