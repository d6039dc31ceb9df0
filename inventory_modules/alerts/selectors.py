"""
Alert Selectors (``inventory_modules.alerts.selectors``).

Read access to stock alerts: open alerts, one item's alerts, and period
statistics with resolution times.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.exceptions import AlertNotFoundError, ValidationError
from inventory_kernel.selectors.base import BaseSelector
from inventory_modules.alerts.models import Alert, AlertCounts, AlertStatistics, AlertType
from inventory_modules.alerts.orm import AlertModel
from inventory_modules.stock.models import Page

_HOURS = Decimal("0.01")


class AlertSelector(BaseSelector):
    """Tenant-scoped read access to alerts."""

    def __init__(self, session, tenant_id: str, clock: Clock | None = None):
        super().__init__(session, tenant_id)
        self._clock = clock or SystemClock()

    def get_alert(self, alert_id: UUID) -> Alert:
        model = self.session.execute(
            select(AlertModel).where(
                AlertModel.tenant_id == self.tenant_id,
                AlertModel.id == alert_id,
            )
        ).scalar_one_or_none()
        if model is None:
            raise AlertNotFoundError(str(alert_id))
        return model.to_dto()

    def get_active_alerts(
        self,
        alert_type: AlertType | None = None,
        location_id: str | None = None,
        item_id: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page[Alert]:
        """Unresolved alerts, newest first."""
        offset, limit = self._page_bounds(page, limit)
        stmt = select(AlertModel).where(
            AlertModel.tenant_id == self.tenant_id,
            AlertModel.is_resolved.is_(False),
        )
        if alert_type is not None:
            stmt = stmt.where(AlertModel.alert_type == AlertType(alert_type).value)
        if location_id is not None:
            stmt = stmt.where(AlertModel.location_id == location_id)
        if item_id is not None:
            stmt = stmt.where(AlertModel.item_id == item_id)

        total = self._count(stmt)
        rows = self.session.execute(
            stmt.order_by(AlertModel.created_at.desc(), AlertModel.alert_type)
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        return Page(items=tuple(r.to_dto() for r in rows), total=total, page=page, limit=limit)

    def get_item_alerts(
        self,
        item_id: str,
        include_resolved: bool = False,
        location_id: str | None = None,
    ) -> tuple[Alert, ...]:
        """Every alert on one item, newest first."""
        stmt = select(AlertModel).where(
            AlertModel.tenant_id == self.tenant_id,
            AlertModel.item_id == item_id,
        )
        if not include_resolved:
            stmt = stmt.where(AlertModel.is_resolved.is_(False))
        if location_id is not None:
            stmt = stmt.where(AlertModel.location_id == location_id)
        rows = self.session.execute(
            stmt.order_by(AlertModel.created_at.desc(), AlertModel.alert_type)
        ).scalars()
        return tuple(r.to_dto() for r in rows)

    def get_alert_statistics(
        self,
        period_days: int = 30,
        location_id: str | None = None,
    ) -> AlertStatistics:
        """
        Counts of alerts raised in the trailing ``period_days``, by type and
        by location, plus the mean hours from creation to resolution.
        """
        if period_days < 1:
            raise ValidationError(f"period_days must be at least 1, got {period_days}")

        since = self._clock.now() - timedelta(days=period_days)
        stmt = select(AlertModel).where(
            AlertModel.tenant_id == self.tenant_id,
            AlertModel.created_at >= since,
        )
        if location_id is not None:
            stmt = stmt.where(AlertModel.location_id == location_id)
        alerts = [m.to_dto() for m in self.session.execute(stmt).scalars()]

        by_type: dict[AlertType, list[Alert]] = defaultdict(list)
        by_location: dict[str, list[Alert]] = defaultdict(list)
        resolution_hours: list[Decimal] = []
        for alert in alerts:
            by_type[alert.alert_type].append(alert)
            by_location[alert.location_id].append(alert)
            if alert.is_resolved and alert.resolved_at and alert.created_at:
                elapsed = alert.resolved_at - alert.created_at
                resolution_hours.append(Decimal(str(elapsed.total_seconds())) / 3600)

        average = Decimal("0")
        if resolution_hours:
            average = (sum(resolution_hours, Decimal("0")) / len(resolution_hours)).quantize(
                _HOURS, rounding=ROUND_HALF_UP,
            )

        resolved = sum(1 for a in alerts if a.is_resolved)
        return AlertStatistics(
            period_days=period_days,
            total=len(alerts),
            resolved=resolved,
            unresolved=len(alerts) - resolved,
            by_type={k: _counts(v) for k, v in by_type.items()},
            by_location={k: _counts(v) for k, v in by_location.items()},
            average_resolution_hours=average,
        )


def _counts(alerts: list[Alert]) -> AlertCounts:
    resolved = sum(1 for a in alerts if a.is_resolved)
    return AlertCounts(total=len(alerts), resolved=resolved, unresolved=len(alerts) - resolved)
