"""
Alert Domain Models (``inventory_modules.alerts.models``).

Responsibility
--------------
Frozen value objects for stock alerts: the closed alert type set, supplied
thresholds, evaluation signals, persisted alerts and the summaries the
alert service returns.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* At most one unresolved alert per (tenant, item, location, type); the
  ORM backs this with a partial unique index, ``AlertService.upsert``
  maintains it.
* Thresholds are ``Decimal`` or ``None`` (check disabled).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class AlertType(Enum):
    """Closed set of alert kinds."""
    LOW_STOCK = "LOW_STOCK"
    OVERSTOCK = "OVERSTOCK"
    REORDER = "REORDER"
    EXPIRY = "EXPIRY"  # no evaluator; raised by callers holding lot expiry data


# Types ``generate_alerts`` evaluates by default.
EVALUATED_ALERT_TYPES: tuple[AlertType, ...] = (
    AlertType.LOW_STOCK,
    AlertType.OVERSTOCK,
    AlertType.REORDER,
)


@dataclass(frozen=True)
class StockThresholds:
    """
    Quantities an item/location is checked against.

    A ``None`` threshold disables that check.
    """
    low_stock: Decimal | None = None
    overstock: Decimal | None = None
    reorder_point: Decimal | None = None


@dataclass(frozen=True)
class AlertSignal:
    """One threshold crossed by a stock quantity."""
    alert_type: AlertType
    quantity: Decimal
    threshold: Decimal


@dataclass(frozen=True)
class Alert:
    """A persisted stock alert."""
    id: UUID
    tenant_id: str
    item_id: str
    location_id: str
    alert_type: AlertType
    message: str
    metadata: Mapping[str, Any] = field(default_factory=dict)
    is_resolved: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    resolved_at: datetime | None = None
    resolved_by_id: UUID | None = None
    resolution_note: str | None = None


@dataclass(frozen=True)
class AlertGenerationSummary:
    """Outcome of one ``generate_alerts`` sweep."""
    records_evaluated: int
    alerts: tuple[Alert, ...]
    by_type: Mapping[AlertType, int]

    @property
    def total_generated(self) -> int:
        return len(self.alerts)


@dataclass(frozen=True)
class BulkResolveResult:
    """Alerts resolved by ``bulk_resolve``; already-resolved ids are skipped."""
    requested: int
    resolved: tuple[Alert, ...]

    @property
    def resolved_count(self) -> int:
        return len(self.resolved)


@dataclass(frozen=True)
class AlertCounts:
    total: int = 0
    resolved: int = 0
    unresolved: int = 0


@dataclass(frozen=True)
class AlertStatistics:
    """Alert counts over the trailing ``period_days``."""
    period_days: int
    total: int
    resolved: int
    unresolved: int
    by_type: Mapping[AlertType, AlertCounts]
    by_location: Mapping[str, AlertCounts]
    average_resolution_hours: Decimal
