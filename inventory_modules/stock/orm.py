"""
Module: inventory_modules.stock.orm
Responsibility: SQLAlchemy ORM persistence for the Stock Record Store, the
    Transaction Log and the Movement Log.  Maps the frozen DTOs in
    ``inventory_modules.stock.models`` to relational tables.

Architecture position: Modules > Stock > ORM.  StockRecordModel inherits from
    TrackedBase; the two logs inherit from Base and carry their own creator
    and timestamp columns.  Item and location ids are opaque strings owned by
    the surrounding catalog (no foreign keys).

Invariants enforced:
    - One stock record per (tenant_id, item_id, location_id): unique key.
    - 0 <= reserved <= quantity: CHECK constraints back the service checks.
    - Quantities and costs use Decimal (Numeric(38,9)), never float.
    - Enum fields stored as String(20).
    - Transaction and movement rows are append-only (see
      inventory_kernel.db.immutability).

Failure modes:
    - IntegrityError on a duplicate (tenant, item, location) insert; the
      stock service translates it to StockContentionError.
    - IntegrityError from a CHECK constraint if a negative state ever
      reaches the store.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, TrackedBase


# =============================================================================
# StockRecordModel
# =============================================================================

class StockRecordModel(TrackedBase):
    """
    Current quantity/reserved state for one item at one location.

    Maps to: inventory_modules.stock.models.StockLevel.

    Guarantees:
        - Created lazily on first reference; never deleted.
        - Mutated only by StockOperationsService under a row lock.
    """

    __tablename__ = "stock_records"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "item_id", "location_id",
            name="uq_stock_record_tenant_item_location",
        ),
        CheckConstraint("quantity >= 0", name="ck_stock_record_quantity_non_negative"),
        CheckConstraint("reserved >= 0", name="ck_stock_record_reserved_non_negative"),
        CheckConstraint("reserved <= quantity", name="ck_stock_record_reserved_le_quantity"),
        Index("idx_stock_record_item", "tenant_id", "item_id"),
        Index("idx_stock_record_location", "tenant_id", "location_id"),
    )

    tenant_id: Mapped[str] = mapped_column(String(100))
    item_id: Mapped[str] = mapped_column(String(100))
    location_id: Mapped[str] = mapped_column(String(100))

    quantity: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    reserved: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    last_updated: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def available(self) -> Decimal:
        return self.quantity - self.reserved

    def to_dto(self):
        """Convert ORM model to frozen StockLevel DTO."""
        from inventory_modules.stock.models import StockLevel
        return StockLevel(
            id=self.id,
            tenant_id=self.tenant_id,
            item_id=self.item_id,
            location_id=self.location_id,
            quantity=self.quantity,
            reserved=self.reserved,
            last_updated=self.last_updated,
        )

    def __repr__(self) -> str:
        return (
            f"<StockRecordModel {self.item_id}@{self.location_id} "
            f"qty={self.quantity} reserved={self.reserved}>"
        )


# =============================================================================
# InventoryTransactionModel
# =============================================================================

class InventoryTransactionModel(Base):
    """
    Append-only transaction log row.

    Maps to: inventory_modules.stock.models.InventoryTransaction.

    Guarantees:
        - quantity is the signed on-hand delta; reserved_delta the signed
          reserved delta.  Their sums rebuild the stock record.
        - Never updated or deleted after insert.
    """

    __tablename__ = "inventory_transactions"

    __table_args__ = (
        Index("idx_inv_txn_item_location", "tenant_id", "item_id", "location_id"),
        Index("idx_inv_txn_stock_record", "stock_record_id"),
        Index("idx_inv_txn_type", "tenant_id", "transaction_type"),
        Index("idx_inv_txn_batch", "production_batch_id"),
        Index("idx_inv_txn_reference", "tenant_id", "reference"),
        Index("idx_inv_txn_occurred", "occurred_at"),
    )

    tenant_id: Mapped[str] = mapped_column(String(100))
    transaction_type: Mapped[str] = mapped_column(String(20))
    item_id: Mapped[str] = mapped_column(String(100))
    location_id: Mapped[str] = mapped_column(String(100))
    stock_record_id: Mapped[UUID] = mapped_column(ForeignKey("stock_records.id"))

    quantity: Mapped[Decimal] = mapped_column()
    cost_per_unit: Mapped[Decimal | None] = mapped_column(nullable=True)
    reserved_delta: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    # Variant fields
    manual_action: Mapped[str | None] = mapped_column(String(20), nullable=True)
    adjustment_direction: Mapped[str | None] = mapped_column(String(20), nullable=True)
    paired_transaction_id: Mapped[UUID | None] = mapped_column(nullable=True)

    # Source documents
    reference: Mapped[str] = mapped_column(String(200))
    production_batch_id: Mapped[UUID | None] = mapped_column(nullable=True)
    purchase_order_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    sale_order_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by_id: Mapped[UUID] = mapped_column()
    occurred_at: Mapped[datetime] = mapped_column()
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    def to_dto(self):
        """Convert ORM model to frozen InventoryTransaction DTO."""
        from inventory_modules.stock.models import (
            AdjustmentDirection,
            InventoryTransaction,
            ManualAction,
            TransactionType,
        )
        return InventoryTransaction(
            id=self.id,
            tenant_id=self.tenant_id,
            transaction_type=TransactionType(self.transaction_type),
            item_id=self.item_id,
            location_id=self.location_id,
            stock_record_id=self.stock_record_id,
            quantity=self.quantity,
            reference=self.reference,
            occurred_at=self.occurred_at,
            created_by_id=self.created_by_id,
            cost_per_unit=self.cost_per_unit,
            reserved_delta=self.reserved_delta,
            manual_action=ManualAction(self.manual_action) if self.manual_action else None,
            adjustment_direction=(
                AdjustmentDirection(self.adjustment_direction)
                if self.adjustment_direction else None
            ),
            paired_transaction_id=self.paired_transaction_id,
            production_batch_id=self.production_batch_id,
            purchase_order_id=self.purchase_order_id,
            sale_order_id=self.sale_order_id,
            note=self.note,
        )

    @classmethod
    def from_draft(
        cls,
        draft,
        tenant_id: str,
        stock_record_id: UUID,
        created_by_id: UUID,
        occurred_at: datetime,
    ) -> "InventoryTransactionModel":
        """Create ORM model from a validated TransactionDraft."""
        return cls(
            id=draft.transaction_id,
            tenant_id=tenant_id,
            transaction_type=draft.transaction_type.value,
            item_id=draft.item_id,
            location_id=draft.location_id,
            stock_record_id=stock_record_id,
            quantity=draft.quantity,
            cost_per_unit=draft.cost_per_unit,
            reserved_delta=draft.reserved_delta,
            manual_action=draft.manual_action.value if draft.manual_action else None,
            adjustment_direction=(
                draft.adjustment_direction.value if draft.adjustment_direction else None
            ),
            paired_transaction_id=draft.paired_transaction_id,
            reference=draft.reference,
            production_batch_id=draft.production_batch_id,
            purchase_order_id=draft.purchase_order_id,
            sale_order_id=draft.sale_order_id,
            note=draft.note,
            created_by_id=created_by_id,
            occurred_at=occurred_at,
        )

    def __repr__(self) -> str:
        return (
            f"<InventoryTransactionModel {self.id} {self.transaction_type} "
            f"{self.item_id}@{self.location_id} qty={self.quantity}>"
        )


# =============================================================================
# StockMovementModel
# =============================================================================

class StockMovementModel(Base):
    """
    Append-only physical IN/OUT entry.

    Maps to: inventory_modules.stock.models.StockMovement.

    Guarantees:
        - quantity is always positive; direction carries the sign.
        - Derived from a transaction; never the source of truth for on-hand.
    """

    __tablename__ = "stock_movements"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_movement_quantity_positive"),
        Index("idx_stock_movement_record", "stock_record_id"),
        Index("idx_stock_movement_item", "tenant_id", "item_id", "location_id"),
        Index("idx_stock_movement_occurred", "occurred_at"),
    )

    tenant_id: Mapped[str] = mapped_column(String(100))
    stock_record_id: Mapped[UUID] = mapped_column(ForeignKey("stock_records.id"))
    transaction_id: Mapped[UUID] = mapped_column(ForeignKey("inventory_transactions.id"))
    item_id: Mapped[str] = mapped_column(String(100))
    location_id: Mapped[str] = mapped_column(String(100))

    direction: Mapped[str] = mapped_column(String(10))
    quantity: Mapped[Decimal] = mapped_column()
    reference: Mapped[str] = mapped_column(String(200))

    created_by_id: Mapped[UUID] = mapped_column()
    occurred_at: Mapped[datetime] = mapped_column()
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    def to_dto(self):
        """Convert ORM model to frozen StockMovement DTO."""
        from inventory_modules.stock.models import MovementDirection, StockMovement
        return StockMovement(
            id=self.id,
            tenant_id=self.tenant_id,
            stock_record_id=self.stock_record_id,
            transaction_id=self.transaction_id,
            item_id=self.item_id,
            location_id=self.location_id,
            direction=MovementDirection(self.direction),
            quantity=self.quantity,
            reference=self.reference,
            occurred_at=self.occurred_at,
            created_by_id=self.created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<StockMovementModel {self.id} {self.direction} "
            f"{self.item_id}@{self.location_id} qty={self.quantity}>"
        )
