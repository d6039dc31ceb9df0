"""
Module: inventory_modules.production.orm
Responsibility: SQLAlchemy ORM persistence for production batches.  Maps the
    frozen ``ProductionBatch`` DTO to the ``production_batches`` table.

Architecture position: Modules > Production > ORM.  Inherits from TrackedBase
    (inventory_kernel.db.base).  Recipe and item ids are opaque strings owned
    by the recipe/catalog collaborator (no foreign keys).

Invariants enforced:
    - batch_ref is unique per tenant (uq_production_batch_tenant_ref).
    - Quantities and costs use Decimal (Numeric(38,9)), never float.
    - status stored as String(20); transitions are enforced by
      ProductionBatchService against BATCH_WORKFLOW, not by the table.

Failure modes:
    - IntegrityError on a duplicate (tenant_id, batch_ref); the service
      translates it to DuplicateBatchReferenceError.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase


class ProductionBatchModel(TrackedBase):
    """
    One production run of a recipe.

    Maps to: inventory_modules.production.models.ProductionBatch.

    Guarantees:
        - actual_quantity, cost_per_unit and location_id are set once, on
          completion.
        - finished_at is set on completion or cancellation.
    """

    __tablename__ = "production_batches"

    __table_args__ = (
        UniqueConstraint("tenant_id", "batch_ref", name="uq_production_batch_tenant_ref"),
        CheckConstraint("planned_quantity > 0", name="ck_production_batch_planned_positive"),
        Index("idx_production_batch_output", "tenant_id", "output_item_id"),
        Index("idx_production_batch_status", "tenant_id", "status"),
        Index("idx_production_batch_recipe", "tenant_id", "recipe_id"),
    )

    tenant_id: Mapped[str] = mapped_column(String(100))
    recipe_id: Mapped[str] = mapped_column(String(100))
    batch_ref: Mapped[str] = mapped_column(String(100))
    output_item_id: Mapped[str] = mapped_column(String(100))

    planned_quantity: Mapped[Decimal] = mapped_column()
    actual_quantity: Mapped[Decimal | None] = mapped_column(nullable=True)
    cost_per_unit: Mapped[Decimal | None] = mapped_column(nullable=True)
    location_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # BatchStatus enum stored as string
    status: Mapped[str] = mapped_column(String(20), default="PENDING")

    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(nullable=True)

    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        """Convert ORM model to frozen ProductionBatch DTO."""
        from inventory_modules.production.models import BatchStatus, ProductionBatch
        return ProductionBatch(
            id=self.id,
            tenant_id=self.tenant_id,
            recipe_id=self.recipe_id,
            batch_ref=self.batch_ref,
            output_item_id=self.output_item_id,
            planned_quantity=self.planned_quantity,
            status=BatchStatus(self.status),
            actual_quantity=self.actual_quantity,
            cost_per_unit=self.cost_per_unit,
            location_id=self.location_id,
            started_at=self.started_at,
            finished_at=self.finished_at,
            created_at=self.created_at,
            cancel_reason=self.cancel_reason,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<ProductionBatchModel {self.batch_ref} {self.status}>"
