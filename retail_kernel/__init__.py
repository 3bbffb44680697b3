"""
Retail Kernel

Shared foundation for the retail ledger core:
- Decimal coercion and money helpers
- Typed exceptions with machine-readable codes
- Structured JSON logging
- Injectable clock
- SQLAlchemy declarative base for the reference storage adapter
"""

__version__ = "0.1.0"
