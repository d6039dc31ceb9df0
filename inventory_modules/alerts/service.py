"""
Alert Generator (``inventory_modules.alerts.service``).

Responsibility
--------------
Raise, refresh and resolve stock alerts.  ``generate_alerts`` sweeps the
Stock Record Store, asks the configured ``ThresholdSource`` for each
record's thresholds, evaluates them, and upserts one alert per signal.

Architecture position
---------------------
**Modules layer** -- stateful service over a caller-supplied session.
Reads stock records; never writes them.

Invariants enforced
-------------------
* Dedup: at most one unresolved alert per (item, location, type).  A
  repeated trigger updates the open alert's message and merges its
  metadata; the alert keeps its id.
* A resolved alert is never re-opened; the next trigger opens a new one.
* Metadata is stored as JSON: Decimal, UUID and datetime values are
  written as strings.

Failure modes
-------------
* ``AlertNotFoundError`` -- resolve of an unknown alert.
* ``AlertAlreadyResolvedError`` -- resolve of a resolved alert.
* ``ValidationError`` -- ``bulk_resolve`` with no ids.
* ``ConcurrencyError`` -- another session opened the same alert first
  (retry the call).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inventory_kernel.db.unit_of_work import UnitOfWork
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.exceptions import (
    AlertAlreadyResolvedError,
    AlertNotFoundError,
    ConcurrencyError,
    ValidationError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_modules.alerts.evaluation import describe, evaluate
from inventory_modules.alerts.models import (
    EVALUATED_ALERT_TYPES,
    Alert,
    AlertGenerationSummary,
    AlertStatistics,
    AlertType,
    BulkResolveResult,
)
from inventory_modules.alerts.orm import AlertModel
from inventory_modules.alerts.selectors import AlertSelector
from inventory_modules.alerts.thresholds import StaticThresholdSource, ThresholdSource
from inventory_modules.stock.models import Page
from inventory_modules.stock.orm import StockRecordModel

logger = get_logger("modules.alerts.service")


class AlertService:
    """
    Stock alerts for one tenant.

    Contract:
        ``upsert``, ``resolve``, ``bulk_resolve`` and ``generate_alerts``
        each own their transaction boundary.
    Non-goals:
        - Does not send notifications; callers observe the returned alerts.
        - Does not auto-resolve alerts whose condition has cleared.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        thresholds: ThresholdSource | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._tenant_id = tenant_id
        self._thresholds = thresholds or StaticThresholdSource()
        self._clock = clock or SystemClock()
        self._reader = AlertSelector(session, tenant_id, self._clock)

    # =========================================================================
    # Writes
    # =========================================================================

    def upsert(
        self,
        item_id: str,
        location_id: str,
        alert_type: AlertType,
        message: str,
        actor_id: UUID,
        metadata: Mapping[str, Any] | None = None,
    ) -> Alert:
        """
        Open an alert, or refresh the open one for the same
        (item, location, type).

        Refreshing replaces the message, merges ``metadata`` over the
        existing metadata and stamps ``last_updated``.
        """
        alert_type = AlertType(alert_type)
        with LogContext.bind(actor_id=actor_id, tenant_id=self._tenant_id), \
                UnitOfWork(self._session, "alerts.upsert"):
            result = self._upsert(item_id, location_id, alert_type, message, metadata, actor_id)
        return result

    def resolve(self, alert_id: UUID, resolved_by: UUID, note: str | None = None) -> Alert:
        """
        Mark an alert resolved and stamp resolver details into its metadata.

        Raises:
            AlertNotFoundError: Unknown alert.
            AlertAlreadyResolvedError: Alert is already resolved.
        """
        with LogContext.bind(actor_id=resolved_by, tenant_id=self._tenant_id), \
                UnitOfWork(self._session, "alerts.resolve"):
            model = self._lock_alert(alert_id)
            if model is None:
                raise AlertNotFoundError(str(alert_id))
            if model.is_resolved:
                raise AlertAlreadyResolvedError(str(alert_id))
            self._mark_resolved(model, resolved_by, note)
            result = model.to_dto()

        logger.info(
            "alert_resolved",
            extra={
                "alert_id": str(alert_id),
                "alert_type": result.alert_type.value,
                "item_id": result.item_id,
                "location_id": result.location_id,
            },
        )
        return result

    def bulk_resolve(
        self,
        alert_ids: Iterable[UUID],
        resolved_by: UUID,
        note: str | None = None,
    ) -> BulkResolveResult:
        """
        Resolve several alerts in one unit of work.

        Unknown and already-resolved ids are skipped.
        """
        alert_ids = list(alert_ids)
        if not alert_ids:
            raise ValidationError("alert_ids must not be empty")

        resolved: list[Alert] = []
        with LogContext.bind(actor_id=resolved_by, tenant_id=self._tenant_id), \
                UnitOfWork(self._session, "alerts.bulk_resolve"):
            for alert_id in alert_ids:
                model = self._lock_alert(alert_id)
                if model is None or model.is_resolved:
                    continue
                self._mark_resolved(model, resolved_by, note)
                resolved.append(model.to_dto())

        logger.info(
            "alerts_bulk_resolved",
            extra={"requested": len(alert_ids), "resolved": len(resolved)},
        )
        return BulkResolveResult(requested=len(alert_ids), resolved=tuple(resolved))

    def generate_alerts(
        self,
        actor_id: UUID,
        location_id: str | None = None,
        alert_types: Iterable[AlertType] = EVALUATED_ALERT_TYPES,
    ) -> AlertGenerationSummary:
        """
        Evaluate every stock record (optionally one location) and upsert an
        alert for each signal whose type is in ``alert_types``.

        EXPIRY has no evaluator and is ignored here.
        """
        wanted = {AlertType(t) for t in alert_types}
        stmt = select(StockRecordModel).where(StockRecordModel.tenant_id == self._tenant_id)
        if location_id is not None:
            stmt = stmt.where(StockRecordModel.location_id == location_id)
        stmt = stmt.order_by(StockRecordModel.item_id, StockRecordModel.location_id)

        alerts: list[Alert] = []
        by_type = {t: 0 for t in EVALUATED_ALERT_TYPES if t in wanted}
        with LogContext.bind(actor_id=actor_id, tenant_id=self._tenant_id), \
                UnitOfWork(self._session, "alerts.generate"):
            records = [r.to_dto() for r in self._session.execute(stmt).scalars()]
            for level in records:
                thresholds = self._thresholds.thresholds_for(level.item_id, level.location_id)
                for signal in evaluate(level.quantity, thresholds):
                    if signal.alert_type not in wanted:
                        continue
                    metadata = {
                        "current_stock": level.quantity,
                        "available_stock": level.available,
                        "threshold": signal.threshold,
                    }
                    alert = self._upsert(
                        level.item_id,
                        level.location_id,
                        signal.alert_type,
                        describe(signal, level.item_id, level.location_id),
                        metadata,
                        actor_id,
                    )
                    alerts.append(alert)
                    by_type[signal.alert_type] += 1

        logger.info(
            "alerts_generated",
            extra={
                "records_evaluated": len(records),
                "total_generated": len(alerts),
                "by_type": {t.value: n for t, n in by_type.items()},
            },
        )
        return AlertGenerationSummary(
            records_evaluated=len(records),
            alerts=tuple(alerts),
            by_type=by_type,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def get_alert(self, alert_id: UUID) -> Alert:
        return self._reader.get_alert(alert_id)

    def get_active_alerts(
        self,
        alert_type: AlertType | None = None,
        location_id: str | None = None,
        item_id: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page[Alert]:
        return self._reader.get_active_alerts(
            alert_type=alert_type, location_id=location_id, item_id=item_id,
            page=page, limit=limit,
        )

    def get_item_alerts(
        self,
        item_id: str,
        include_resolved: bool = False,
        location_id: str | None = None,
    ) -> tuple[Alert, ...]:
        return self._reader.get_item_alerts(
            item_id, include_resolved=include_resolved, location_id=location_id,
        )

    def get_alert_statistics(
        self,
        period_days: int = 30,
        location_id: str | None = None,
    ) -> AlertStatistics:
        return self._reader.get_alert_statistics(period_days, location_id=location_id)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _upsert(
        self,
        item_id: str,
        location_id: str,
        alert_type: AlertType,
        message: str,
        metadata: Mapping[str, Any] | None,
        actor_id: UUID,
    ) -> Alert:
        now = self._clock.now()
        existing = self._session.execute(
            select(AlertModel)
            .where(
                AlertModel.tenant_id == self._tenant_id,
                AlertModel.item_id == item_id,
                AlertModel.location_id == location_id,
                AlertModel.alert_type == alert_type.value,
                AlertModel.is_resolved.is_(False),
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if existing is not None:
            existing.message = message
            existing.alert_metadata = {
                **(existing.alert_metadata or {}),
                **_jsonable(metadata),
                "last_updated": now.isoformat(),
            }
            existing.updated_at = now
            existing.updated_by_id = actor_id
            self._session.flush()
            logger.info(
                "alert_updated",
                extra={
                    "alert_id": str(existing.id),
                    "alert_type": alert_type.value,
                    "item_id": item_id,
                    "location_id": location_id,
                },
            )
            return existing.to_dto()

        model = AlertModel(
            tenant_id=self._tenant_id,
            item_id=item_id,
            location_id=location_id,
            alert_type=alert_type.value,
            message=message,
            alert_metadata=_jsonable(metadata),
            is_resolved=False,
            created_at=now,
            updated_at=now,
            created_by_id=actor_id,
        )
        self._session.add(model)
        try:
            self._session.flush()
        except IntegrityError as exc:
            logger.warning(
                "alert_create_conflict",
                extra={
                    "alert_type": alert_type.value,
                    "item_id": item_id,
                    "location_id": location_id,
                },
            )
            raise ConcurrencyError(
                f"Open {alert_type.value} alert for {item_id}@{location_id} created concurrently"
            ) from exc

        logger.info(
            "alert_created",
            extra={
                "alert_id": str(model.id),
                "alert_type": alert_type.value,
                "item_id": item_id,
                "location_id": location_id,
            },
        )
        return model.to_dto()

    def _lock_alert(self, alert_id: UUID) -> AlertModel | None:
        return self._session.execute(
            select(AlertModel)
            .where(AlertModel.tenant_id == self._tenant_id, AlertModel.id == alert_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _mark_resolved(self, model: AlertModel, resolved_by: UUID, note: str | None) -> None:
        now = self._clock.now()
        model.is_resolved = True
        model.resolved_at = now
        model.resolved_by_id = resolved_by
        model.resolution_note = note
        model.alert_metadata = {
            **(model.alert_metadata or {}),
            "resolved_by": str(resolved_by),
            "resolution_note": note,
            "resolved_at": now.isoformat(),
        }
        model.updated_at = now
        model.updated_by_id = resolved_by
        self._session.flush()


def _jsonable(metadata: Mapping[str, Any] | None) -> dict[str, Any]:
    """Copy ``metadata`` with Decimal/UUID/datetime values as strings, at any depth."""
    return {str(key): _to_json_value(value) for key, value in (metadata or {}).items()}


def _to_json_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return _jsonable(value)
    if isinstance(value, (list, tuple)):
        return [_to_json_value(v) for v in value]
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value
