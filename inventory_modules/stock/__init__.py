"""
Stock Module (``inventory_modules.stock``).

Responsibility
--------------
The Stock Record Store, the append-only Transaction and Movement Logs, the
Stock Operations Service that mutates them atomically, and the selectors
that read them.

Invariants
----------
- ``0 <= reserved <= quantity`` for every stock record.
- Record, transaction log and movement log change together or not at all.
- Log rows are never updated or deleted.
"""

from inventory_modules.stock.models import (
    AdjustmentDirection,
    InventoryTransaction,
    ItemStockSummary,
    LedgerCheck,
    ManualAction,
    MovementAnalytics,
    MovementDirection,
    Page,
    StockLevel,
    StockMovement,
    StockOperationResult,
    TransactionDraft,
    TransactionType,
)
from inventory_modules.stock.selectors import StockSelector
from inventory_modules.stock.service import StockOperationsService

__all__ = [
    "AdjustmentDirection",
    "InventoryTransaction",
    "ItemStockSummary",
    "LedgerCheck",
    "ManualAction",
    "MovementAnalytics",
    "MovementDirection",
    "Page",
    "StockLevel",
    "StockMovement",
    "StockOperationResult",
    "TransactionDraft",
    "TransactionType",
    "StockSelector",
    "StockOperationsService",
]
