"""
Inventory Kernel

The lowest layer of the stock ledger:
- Declarative ORM base with UUID keys and Decimal precision
- Explicit database handle and unit of work (commit-or-rollback)
- Append-only guards for the transaction and movement logs
- Typed exception hierarchy
- Structured JSON logging
- Injectable clock
"""

__version__ = "0.1.0"
