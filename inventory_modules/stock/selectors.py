"""
Stock Selectors (``inventory_modules.stock.selectors``).

Read accessors over the Stock Record Store, Transaction Log and Movement
Log: current stock levels, paged histories, movement analytics and a
ledger replay check.  Listings are newest first.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import func, select

from inventory_engines.costing import CostLayer
from inventory_engines.replenishment import days_of_inventory, stock_turnover
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.exceptions import StockRecordNotFoundError, ValidationError
from inventory_kernel.selectors.base import BaseSelector
from inventory_modules.stock.models import (
    InventoryTransaction,
    ItemStockSummary,
    LedgerCheck,
    MovementAnalytics,
    MovementDirection,
    Page,
    StockLevel,
    StockMovement,
    TransactionType,
)
from inventory_modules.stock.orm import (
    InventoryTransactionModel,
    StockMovementModel,
    StockRecordModel,
)

_RATE_PRECISION = Decimal("0.000001")


class StockSelector(BaseSelector):
    """Tenant-scoped read access to stock state and its logs."""

    def __init__(self, session, tenant_id: str, clock: Clock | None = None):
        super().__init__(session, tenant_id)
        self._clock = clock or SystemClock()

    # -------------------------------------------------------------------------
    # Stock levels
    # -------------------------------------------------------------------------

    def find_stock_level(self, item_id: str, location_id: str) -> StockLevel | None:
        record = self.session.execute(
            select(StockRecordModel).where(
                StockRecordModel.tenant_id == self.tenant_id,
                StockRecordModel.item_id == item_id,
                StockRecordModel.location_id == location_id,
            )
        ).scalar_one_or_none()
        return record.to_dto() if record is not None else None

    def get_stock_level(self, item_id: str, location_id: str) -> StockLevel:
        """Current level; raises StockRecordNotFoundError when never stocked."""
        level = self.find_stock_level(item_id, location_id)
        if level is None:
            raise StockRecordNotFoundError(item_id, location_id)
        return level

    def get_item_stock_levels(self, item_id: str) -> ItemStockSummary:
        """Every location holding ``item_id``, with totals."""
        records = self.session.execute(
            select(StockRecordModel)
            .where(
                StockRecordModel.tenant_id == self.tenant_id,
                StockRecordModel.item_id == item_id,
            )
            .order_by(StockRecordModel.location_id)
        ).scalars().all()
        return self._summarize(item_id, [r.to_dto() for r in records])

    def get_stock_overview(self, location_id: str | None = None) -> tuple[ItemStockSummary, ...]:
        """Per-item summaries, optionally limited to one location."""
        stmt = select(StockRecordModel).where(StockRecordModel.tenant_id == self.tenant_id)
        if location_id is not None:
            stmt = stmt.where(StockRecordModel.location_id == location_id)
        stmt = stmt.order_by(StockRecordModel.item_id, StockRecordModel.location_id)

        by_item: dict[str, list[StockLevel]] = defaultdict(list)
        for record in self.session.execute(stmt).scalars():
            by_item[record.item_id].append(record.to_dto())
        return tuple(self._summarize(item_id, levels) for item_id, levels in by_item.items())

    @staticmethod
    def _summarize(item_id: str, levels: list[StockLevel]) -> ItemStockSummary:
        return ItemStockSummary(
            item_id=item_id,
            levels=tuple(levels),
            total_quantity=sum((lvl.quantity for lvl in levels), Decimal("0")),
            total_reserved=sum((lvl.reserved for lvl in levels), Decimal("0")),
        )

    # -------------------------------------------------------------------------
    # Histories
    # -------------------------------------------------------------------------

    def get_transaction_history(
        self,
        item_id: str | None = None,
        location_id: str | None = None,
        transaction_type: TransactionType | None = None,
        reference: str | None = None,
        production_batch_id: UUID | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> Page[InventoryTransaction]:
        """Filtered transaction log, newest first."""
        offset, limit = self._page_bounds(page, limit)
        model = InventoryTransactionModel
        stmt = select(model).where(model.tenant_id == self.tenant_id)
        if item_id is not None:
            stmt = stmt.where(model.item_id == item_id)
        if location_id is not None:
            stmt = stmt.where(model.location_id == location_id)
        if transaction_type is not None:
            stmt = stmt.where(model.transaction_type == TransactionType(transaction_type).value)
        if reference is not None:
            stmt = stmt.where(model.reference == reference)
        if production_batch_id is not None:
            stmt = stmt.where(model.production_batch_id == production_batch_id)
        if since is not None:
            stmt = stmt.where(model.occurred_at >= since)
        if until is not None:
            stmt = stmt.where(model.occurred_at <= until)

        total = self._count(stmt)
        rows = self.session.execute(
            stmt.order_by(model.occurred_at.desc(), model.created_at.desc())
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        return Page(
            items=tuple(r.to_dto() for r in rows),
            total=total,
            page=page,
            limit=limit,
        )

    def get_movement_history(
        self,
        item_id: str | None = None,
        location_id: str | None = None,
        direction: MovementDirection | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> Page[StockMovement]:
        """Filtered movement log, newest first."""
        offset, limit = self._page_bounds(page, limit)
        model = StockMovementModel
        stmt = select(model).where(model.tenant_id == self.tenant_id)
        if item_id is not None:
            stmt = stmt.where(model.item_id == item_id)
        if location_id is not None:
            stmt = stmt.where(model.location_id == location_id)
        if direction is not None:
            stmt = stmt.where(model.direction == MovementDirection(direction).value)
        if since is not None:
            stmt = stmt.where(model.occurred_at >= since)
        if until is not None:
            stmt = stmt.where(model.occurred_at <= until)

        total = self._count(stmt)
        rows = self.session.execute(
            stmt.order_by(model.occurred_at.desc(), model.created_at.desc())
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        return Page(
            items=tuple(r.to_dto() for r in rows),
            total=total,
            page=page,
            limit=limit,
        )

    # -------------------------------------------------------------------------
    # Analytics
    # -------------------------------------------------------------------------

    def get_movement_analytics(
        self,
        item_id: str,
        period_days: int = 30,
        location_id: str | None = None,
    ) -> MovementAnalytics:
        """
        In/out totals over the trailing ``period_days``.

        avg_daily_consumption = total_out / period_days.
        stock_turnover = total_out / average stock, where average stock is
        the mean of the implied opening quantity and the current quantity.
        """
        if period_days < 1:
            raise ValidationError(f"period_days must be at least 1, got {period_days}")

        since = self._clock.now() - timedelta(days=period_days)
        model = StockMovementModel
        stmt = (
            select(model.direction, func.sum(model.quantity), func.count())
            .where(
                model.tenant_id == self.tenant_id,
                model.item_id == item_id,
                model.occurred_at >= since,
            )
            .group_by(model.direction)
        )
        if location_id is not None:
            stmt = stmt.where(model.location_id == location_id)

        totals = {MovementDirection.IN: Decimal("0"), MovementDirection.OUT: Decimal("0")}
        movement_count = 0
        for direction, quantity, count in self.session.execute(stmt):
            totals[MovementDirection(direction)] = self._decimal(quantity)
            movement_count += count

        qty_stmt = select(func.sum(StockRecordModel.quantity)).where(
            StockRecordModel.tenant_id == self.tenant_id,
            StockRecordModel.item_id == item_id,
        )
        if location_id is not None:
            qty_stmt = qty_stmt.where(StockRecordModel.location_id == location_id)
        current = self._decimal(self.session.execute(qty_stmt).scalar())

        total_in = totals[MovementDirection.IN]
        total_out = totals[MovementDirection.OUT]
        avg_daily = (total_out / Decimal(period_days)).quantize(
            _RATE_PRECISION, rounding=ROUND_HALF_UP,
        )
        opening = current - (total_in - total_out)
        average_stock = (opening + current) / Decimal("2")

        return MovementAnalytics(
            item_id=item_id,
            location_id=location_id,
            period_days=period_days,
            total_in=total_in,
            total_out=total_out,
            movement_count=movement_count,
            current_quantity=current,
            avg_daily_consumption=avg_daily,
            stock_turnover=stock_turnover(total_out, average_stock),
            days_of_inventory=days_of_inventory(current, avg_daily),
        )

    # -------------------------------------------------------------------------
    # Cost layers
    # -------------------------------------------------------------------------

    def get_receipt_layers(self, item_id: str, location_id: str) -> tuple[CostLayer, ...]:
        """Every PURCHASE at one location as a cost layer, oldest first."""
        model = InventoryTransactionModel
        rows = self.session.execute(
            select(model)
            .where(
                model.tenant_id == self.tenant_id,
                model.item_id == item_id,
                model.location_id == location_id,
                model.transaction_type == TransactionType.PURCHASE.value,
                model.quantity > 0,
            )
            .order_by(model.occurred_at, model.created_at)
        ).scalars().all()
        return tuple(
            CostLayer(
                layer_id=str(row.id),
                quantity=row.quantity,
                cost_per_unit=row.cost_per_unit or Decimal("0"),
                date=row.occurred_at,
            )
            for row in rows
        )

    # -------------------------------------------------------------------------
    # Ledger replay
    # -------------------------------------------------------------------------

    def verify_stock_record(self, item_id: str, location_id: str) -> LedgerCheck:
        """
        Replay the transaction log for one record.

        A consistent record satisfies ``Σ quantity == quantity`` and
        ``Σ reserved_delta == reserved``.
        """
        record = self.session.execute(
            select(StockRecordModel).where(
                StockRecordModel.tenant_id == self.tenant_id,
                StockRecordModel.item_id == item_id,
                StockRecordModel.location_id == location_id,
            )
        ).scalar_one_or_none()
        if record is None:
            raise StockRecordNotFoundError(item_id, location_id)

        model = InventoryTransactionModel
        ledger_qty, ledger_reserved, count = self.session.execute(
            select(
                func.sum(model.quantity),
                func.sum(model.reserved_delta),
                func.count(),
            ).where(model.stock_record_id == record.id)
        ).one()

        return LedgerCheck(
            item_id=item_id,
            location_id=location_id,
            quantity=record.quantity,
            reserved=record.reserved,
            ledger_quantity=self._decimal(ledger_qty),
            ledger_reserved=self._decimal(ledger_reserved),
            transaction_count=count,
        )
