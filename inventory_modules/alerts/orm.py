"""
Module: inventory_modules.alerts.orm
Responsibility: SQLAlchemy ORM persistence for stock alerts.

Architecture position: Modules > Alerts > ORM.  Inherits from TrackedBase
    (inventory_kernel.db.base).  Item and location ids are opaque strings.

Invariants enforced:
    - At most one unresolved alert per (tenant_id, item_id, location_id,
      alert_type): partial unique index uq_stock_alert_open.
    - alert_type stored as String(20).
    - metadata is a JSON object; it is always reassigned, never mutated in
      place, so change tracking sees every update.

Failure modes:
    - IntegrityError when two sessions open the same alert concurrently;
      AlertService translates it to ConcurrencyError.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase


class AlertModel(TrackedBase):
    """
    One stock alert.

    Maps to: inventory_modules.alerts.models.Alert.
    """

    __tablename__ = "stock_alerts"

    __table_args__ = (
        Index(
            "uq_stock_alert_open",
            "tenant_id", "item_id", "location_id", "alert_type",
            unique=True,
            postgresql_where=text("is_resolved = false"),
            sqlite_where=text("is_resolved = 0"),
        ),
        Index("idx_stock_alert_item", "tenant_id", "item_id"),
        Index("idx_stock_alert_created", "tenant_id", "created_at"),
    )

    tenant_id: Mapped[str] = mapped_column(String(100))
    item_id: Mapped[str] = mapped_column(String(100))
    location_id: Mapped[str] = mapped_column(String(100))
    alert_type: Mapped[str] = mapped_column(String(20))
    message: Mapped[str] = mapped_column(Text)

    # ``metadata`` is reserved on declarative classes.
    alert_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

    is_resolved: Mapped[bool] = mapped_column(Boolean, default=False)
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    resolved_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    resolution_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        """Convert ORM model to frozen Alert DTO."""
        from inventory_modules.alerts.models import Alert, AlertType
        return Alert(
            id=self.id,
            tenant_id=self.tenant_id,
            item_id=self.item_id,
            location_id=self.location_id,
            alert_type=AlertType(self.alert_type),
            message=self.message,
            metadata=dict(self.alert_metadata or {}),
            is_resolved=self.is_resolved,
            created_at=self.created_at,
            updated_at=self.updated_at,
            resolved_at=self.resolved_at,
            resolved_by_id=self.resolved_by_id,
            resolution_note=self.resolution_note,
        )

    def __repr__(self) -> str:
        state = "resolved" if self.is_resolved else "open"
        return f"<AlertModel {self.alert_type} {self.item_id}@{self.location_id} {state}>"
