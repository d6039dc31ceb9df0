"""
Production Domain Models (``inventory_modules.production.models``).

Responsibility
--------------
Frozen value objects for production batches: the batch itself, what a
completion consumed and produced, and the lineage views built from the
transaction log.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Returned by
``ProductionBatchService`` and ``ProductionSelector``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* Quantities and costs use ``Decimal``, never ``float``.
* ``ProductionBatch.planned_quantity > 0``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import UUID

from inventory_kernel.logging_config import get_logger
from inventory_modules.stock.models import (
    InventoryTransaction,
    Page,
    StockLevel,
    StockMovement,
)

logger = get_logger("modules.production.models")

_ZERO = Decimal("0")
_PERCENT = Decimal("0.01")


class BatchStatus(Enum):
    """Production batch lifecycle states."""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (BatchStatus.COMPLETED, BatchStatus.CANCELLED)


@dataclass(frozen=True)
class ProductionBatch:
    """One production run of a recipe."""
    id: UUID
    tenant_id: str
    recipe_id: str
    batch_ref: str
    output_item_id: str
    planned_quantity: Decimal
    status: BatchStatus = BatchStatus.PENDING
    actual_quantity: Decimal | None = None
    cost_per_unit: Decimal | None = None
    location_id: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    created_at: datetime | None = None
    cancel_reason: str | None = None
    notes: str | None = None

    def __post_init__(self):
        if self.planned_quantity <= 0:
            raise ValueError(
                f"planned_quantity must be positive, got {self.planned_quantity}"
            )
        if self.actual_quantity is not None and self.actual_quantity <= 0:
            raise ValueError(
                f"actual_quantity must be positive, got {self.actual_quantity}"
            )

    @property
    def total_cost(self) -> Decimal | None:
        if self.actual_quantity is None or self.cost_per_unit is None:
            return None
        return self.actual_quantity * self.cost_per_unit

    @property
    def yield_percent(self) -> Decimal | None:
        """actual / planned x 100, once the batch has an actual quantity."""
        if self.actual_quantity is None:
            return None
        return (self.actual_quantity / self.planned_quantity * 100).quantize(
            _PERCENT, rounding=ROUND_HALF_UP,
        )


@dataclass(frozen=True)
class IngredientConsumption:
    """Stock drawn for one ingredient during completion."""
    item_id: str
    location_id: str
    quantity: Decimal
    cost_per_unit: Decimal
    total_cost: Decimal
    transaction_id: UUID


@dataclass(frozen=True)
class BatchCompletion:
    """
    Everything a completion wrote.

    ``stock_levels`` holds the post-completion state of every locked
    record (ingredients and output) in lock order.
    """
    batch: ProductionBatch
    consumptions: tuple[IngredientConsumption, ...]
    output_transaction: InventoryTransaction
    movements: tuple[StockMovement, ...]
    stock_levels: tuple[StockLevel, ...]

    @property
    def total_ingredient_cost(self) -> Decimal:
        return sum((c.total_cost for c in self.consumptions), _ZERO)


# -----------------------------------------------------------------------------
# Lineage
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class BatchIngredientLine:
    """Recipe requirement for one ingredient next to what was actually drawn."""
    item_id: str
    quantity_per_unit: Decimal
    consumed_quantity: Decimal
    consumed_cost: Decimal


@dataclass(frozen=True)
class BatchTraceability:
    """
    Backward lineage of a batch: the ingredient lots it consumed and the
    output it produced, read from the transaction log.

    ``timeline`` lists every transaction tagged with the batch, oldest
    first.
    """
    batch: ProductionBatch
    ingredients: tuple[BatchIngredientLine, ...]
    consumed: tuple[InventoryTransaction, ...]
    produced: tuple[InventoryTransaction, ...]
    timeline: tuple[InventoryTransaction, ...]

    @property
    def total_produced(self) -> Decimal:
        return sum((t.quantity for t in self.produced), _ZERO)

    @property
    def total_ingredient_cost(self) -> Decimal:
        return sum((line.consumed_cost for line in self.ingredients), _ZERO)

    @property
    def yield_percent(self) -> Decimal | None:
        return self.batch.yield_percent


@dataclass(frozen=True)
class IngredientBatchUsage:
    """The USAGE transactions of one ingredient within one batch."""
    batch: ProductionBatch
    transactions: tuple[InventoryTransaction, ...]

    @property
    def quantity_used(self) -> Decimal:
        return sum((-t.quantity for t in self.transactions), _ZERO)

    @property
    def cost(self) -> Decimal:
        return sum((t.extended_cost or _ZERO for t in self.transactions), _ZERO)


@dataclass(frozen=True)
class IngredientTraceability:
    """Forward lineage of an ingredient: the batches it fed, newest first."""
    item_id: str
    usages: tuple[IngredientBatchUsage, ...]

    @property
    def total_transactions(self) -> int:
        return sum(len(u.transactions) for u in self.usages)

    @property
    def total_quantity_used(self) -> Decimal:
        return sum((u.quantity_used for u in self.usages), _ZERO)

    @property
    def batch_count(self) -> int:
        return len(self.usages)

    @property
    def product_count(self) -> int:
        return len({u.batch.output_item_id for u in self.usages})


@dataclass(frozen=True)
class BatchHistorySummary:
    """Totals over every batch matching a history query."""
    total_batches: int
    pending_batches: int
    in_progress_batches: int
    completed_batches: int
    cancelled_batches: int
    total_produced: Decimal
    total_cost: Decimal

    @property
    def average_cost_per_unit(self) -> Decimal:
        """Produced-quantity weighted; zero when nothing was produced."""
        if self.total_produced == 0:
            return _ZERO
        return (self.total_cost / self.total_produced).quantize(
            Decimal("0.000001"), rounding=ROUND_HALF_UP,
        )


@dataclass(frozen=True)
class ProductBatchHistory:
    """Paged batches of one output item, newest first, with a summary."""
    output_item_id: str
    summary: BatchHistorySummary
    batches: Page[ProductionBatch]
