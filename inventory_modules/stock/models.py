"""
Stock Domain Models (``inventory_modules.stock.models``).

Responsibility
--------------
Frozen value objects for the stock ledger: stock levels, transaction
drafts and records, movements, operation results, pages and analytics.

Architecture
------------
Layer: **Modules** -- pure domain data structures.  All dataclasses are
``frozen=True``.  They carry no session and no I/O; the ORM models in
``inventory_modules.stock.orm`` convert to and from them.

Invariants
----------
- ``StockLevel`` enforces ``0 <= reserved <= quantity``.
- ``TransactionDraft`` is a closed tagged variant: each ``TransactionType``
  has its own required fields and quantity sign (see ``_VARIANT_RULES``).
  A draft that breaks its variant's rules cannot be constructed.
- Quantities and costs are ``Decimal``, never ``float``.

Failure Modes
-------------
- ``StockLevel`` with inconsistent quantities raises ``ValueError``.
- ``TransactionDraft`` violations raise ``InvalidTransactionError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Generic, TypeVar
from uuid import UUID, uuid4

from inventory_engines.replenishment import DaysOfInventory
from inventory_kernel.exceptions import InvalidTransactionError
from inventory_kernel.logging_config import get_logger

logger = get_logger("modules.stock.models")

_ZERO = Decimal("0")

T = TypeVar("T")


class TransactionType(Enum):
    """Closed set of stock-affecting events."""
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    TRANSFER = "TRANSFER"
    USAGE = "USAGE"
    ADJUSTMENT = "ADJUSTMENT"
    MANUAL = "MANUAL"


class MovementDirection(Enum):
    IN = "IN"
    OUT = "OUT"


class AdjustmentDirection(Enum):
    INCREASE = "INCREASE"
    DECREASE = "DECREASE"


class ManualAction(Enum):
    """Reservation intent recorded by a MANUAL transaction."""
    RESERVE = "RESERVE"
    RELEASE = "RELEASE"


@dataclass(frozen=True)
class StockLevel:
    """
    Current state of one item at one location.

    Contract: ``available`` is derived, never stored.
    """
    id: UUID
    tenant_id: str
    item_id: str
    location_id: str
    quantity: Decimal
    reserved: Decimal
    last_updated: datetime | None = None

    def __post_init__(self):
        if self.quantity < 0:
            raise ValueError(f"quantity cannot be negative, got {self.quantity}")
        if self.reserved < 0:
            raise ValueError(f"reserved cannot be negative, got {self.reserved}")
        if self.reserved > self.quantity:
            raise ValueError(
                f"reserved ({self.reserved}) cannot exceed quantity ({self.quantity})"
            )

    @property
    def available(self) -> Decimal:
        return self.quantity - self.reserved


@dataclass(frozen=True)
class TransactionDraft:
    """
    A transaction about to be appended to the log.

    ``quantity`` is the signed change to on-hand quantity and
    ``reserved_delta`` the signed change to the reserved quantity.  Summing
    both over a stock record's transactions rebuilds the record.
    """
    transaction_type: TransactionType
    item_id: str
    location_id: str
    quantity: Decimal
    reference: str
    cost_per_unit: Decimal | None = None
    reserved_delta: Decimal = _ZERO
    manual_action: ManualAction | None = None
    adjustment_direction: AdjustmentDirection | None = None
    paired_transaction_id: UUID | None = None
    production_batch_id: UUID | None = None
    purchase_order_id: str | None = None
    sale_order_id: str | None = None
    note: str | None = None
    transaction_id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        if not self.reference:
            self._reject("reference is required")
        if self.cost_per_unit is not None and self.cost_per_unit < 0:
            self._reject(f"cost_per_unit cannot be negative, got {self.cost_per_unit}")
        _VARIANT_RULES[self.transaction_type](self)

    def _reject(self, reason: str) -> None:
        logger.warning(
            "transaction_draft_rejected",
            extra={
                "transaction_type": self.transaction_type.value,
                "item_id": self.item_id,
                "location_id": self.location_id,
                "reason": reason,
            },
        )
        raise InvalidTransactionError(self.transaction_type.value, reason)


def _check_purchase(d: TransactionDraft) -> None:
    if d.quantity <= 0:
        d._reject("quantity must be positive")
    if d.cost_per_unit is None:
        d._reject("cost_per_unit is required")
    if d.reserved_delta != 0:
        d._reject("reserved_delta must be zero")


def _check_sale(d: TransactionDraft) -> None:
    if d.quantity >= 0:
        d._reject("quantity must be negative")
    if d.reserved_delta != 0:
        d._reject("reserved_delta must be zero")


def _check_usage(d: TransactionDraft) -> None:
    if d.quantity >= 0:
        d._reject("quantity must be negative")
    if d.production_batch_id is None:
        d._reject("production_batch_id is required")


def _check_transfer(d: TransactionDraft) -> None:
    if d.quantity == 0:
        d._reject("quantity must be non-zero")
    if d.paired_transaction_id is None:
        d._reject("paired_transaction_id is required")
    if d.paired_transaction_id == d.transaction_id:
        d._reject("a transfer cannot be paired with itself")


def _check_adjustment(d: TransactionDraft) -> None:
    if d.adjustment_direction is None:
        d._reject("adjustment_direction is required")
    if d.adjustment_direction == AdjustmentDirection.INCREASE and d.quantity <= 0:
        d._reject("INCREASE requires a positive quantity")
    if d.adjustment_direction == AdjustmentDirection.DECREASE and d.quantity >= 0:
        d._reject("DECREASE requires a negative quantity")


def _check_manual(d: TransactionDraft) -> None:
    if d.quantity != 0:
        d._reject("quantity must be zero")
    if d.manual_action is None:
        d._reject("manual_action is required")
    if d.manual_action == ManualAction.RESERVE and d.reserved_delta <= 0:
        d._reject("RESERVE requires a positive reserved_delta")
    if d.manual_action == ManualAction.RELEASE and d.reserved_delta >= 0:
        d._reject("RELEASE requires a negative reserved_delta")


_VARIANT_RULES = {
    TransactionType.PURCHASE: _check_purchase,
    TransactionType.SALE: _check_sale,
    TransactionType.USAGE: _check_usage,
    TransactionType.TRANSFER: _check_transfer,
    TransactionType.ADJUSTMENT: _check_adjustment,
    TransactionType.MANUAL: _check_manual,
}


@dataclass(frozen=True)
class InventoryTransaction:
    """An appended, immutable transaction log row."""
    id: UUID
    tenant_id: str
    transaction_type: TransactionType
    item_id: str
    location_id: str
    stock_record_id: UUID
    quantity: Decimal
    reference: str
    occurred_at: datetime
    created_by_id: UUID
    cost_per_unit: Decimal | None = None
    reserved_delta: Decimal = _ZERO
    manual_action: ManualAction | None = None
    adjustment_direction: AdjustmentDirection | None = None
    paired_transaction_id: UUID | None = None
    production_batch_id: UUID | None = None
    purchase_order_id: str | None = None
    sale_order_id: str | None = None
    note: str | None = None

    @property
    def extended_cost(self) -> Decimal | None:
        """|quantity| x cost_per_unit, or None when uncosted."""
        if self.cost_per_unit is None:
            return None
        return abs(self.quantity) * self.cost_per_unit


@dataclass(frozen=True)
class StockMovement:
    """A physical IN/OUT entry derived from a transaction."""
    id: UUID
    tenant_id: str
    stock_record_id: UUID
    transaction_id: UUID
    item_id: str
    location_id: str
    direction: MovementDirection
    quantity: Decimal
    reference: str
    occurred_at: datetime
    created_by_id: UUID

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError(f"movement quantity must be positive, got {self.quantity}")


@dataclass(frozen=True)
class StockOperationResult:
    """
    What one atomic stock operation wrote.

    ``stock_levels`` holds the post-operation state of every record the
    operation touched, in lock order.
    """
    operation: str
    stock_levels: tuple[StockLevel, ...]
    transactions: tuple[InventoryTransaction, ...]
    movements: tuple[StockMovement, ...] = ()

    @property
    def stock_level(self) -> StockLevel:
        """The single touched record (for one-record operations)."""
        return self.stock_levels[0]

    def level_at(self, location_id: str) -> StockLevel:
        for level in self.stock_levels:
            if level.location_id == location_id:
                return level
        raise KeyError(location_id)


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a filtered, newest-first listing."""
    items: tuple[T, ...]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


@dataclass(frozen=True)
class ItemStockSummary:
    """An item's stock across every location, with totals."""
    item_id: str
    levels: tuple[StockLevel, ...]
    total_quantity: Decimal
    total_reserved: Decimal

    @property
    def total_available(self) -> Decimal:
        return self.total_quantity - self.total_reserved

    @property
    def location_count(self) -> int:
        return len(self.levels)


@dataclass(frozen=True)
class MovementAnalytics:
    """In/out movement summary for one item over a trailing period."""
    item_id: str
    location_id: str | None
    period_days: int
    total_in: Decimal
    total_out: Decimal
    movement_count: int
    current_quantity: Decimal
    avg_daily_consumption: Decimal
    stock_turnover: Decimal
    days_of_inventory: DaysOfInventory

    @property
    def net_movement(self) -> Decimal:
        return self.total_in - self.total_out

    @property
    def opening_quantity(self) -> Decimal:
        """Quantity at the start of the period, implied by the net movement."""
        return self.current_quantity - self.net_movement


@dataclass(frozen=True)
class LedgerCheck:
    """Replay of the transaction log against a stock record."""
    item_id: str
    location_id: str
    quantity: Decimal
    reserved: Decimal
    ledger_quantity: Decimal
    ledger_reserved: Decimal
    transaction_count: int

    @property
    def is_consistent(self) -> bool:
        return (
            self.quantity == self.ledger_quantity
            and self.reserved == self.ledger_reserved
        )
