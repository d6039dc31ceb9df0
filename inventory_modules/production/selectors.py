"""
Production Selectors (``inventory_modules.production.selectors``).

Read side of production: batch lookup, product batch history, and the
forward/backward lineage views.  Lineage is read straight from the
transaction log through ``production_batch_id``; nothing is re-derived.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.exceptions import BatchNotFoundError
from inventory_kernel.selectors.base import BaseSelector
from inventory_modules.production.models import (
    BatchHistorySummary,
    BatchIngredientLine,
    BatchStatus,
    BatchTraceability,
    IngredientBatchUsage,
    IngredientTraceability,
    ProductBatchHistory,
    ProductionBatch,
)
from inventory_modules.production.orm import ProductionBatchModel
from inventory_modules.production.recipes import RecipeProvider
from inventory_modules.stock.models import InventoryTransaction, Page, TransactionType
from inventory_modules.stock.orm import InventoryTransactionModel

_ZERO = Decimal("0")


class ProductionSelector(BaseSelector):
    """Tenant-scoped read access to production batches and their lineage."""

    def __init__(self, session, tenant_id: str, recipes: RecipeProvider | None = None):
        super().__init__(session, tenant_id)
        self._recipes = recipes

    def find_batch(self, batch_id: UUID) -> ProductionBatch | None:
        model = self.session.execute(
            select(ProductionBatchModel).where(
                ProductionBatchModel.tenant_id == self.tenant_id,
                ProductionBatchModel.id == batch_id,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def get_batch(self, batch_id: UUID) -> ProductionBatch:
        batch = self.find_batch(batch_id)
        if batch is None:
            raise BatchNotFoundError(str(batch_id))
        return batch

    def find_batch_by_ref(self, batch_ref: str) -> ProductionBatch | None:
        model = self.session.execute(
            select(ProductionBatchModel).where(
                ProductionBatchModel.tenant_id == self.tenant_id,
                ProductionBatchModel.batch_ref == batch_ref,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def get_product_batch_history(
        self,
        output_item_id: str,
        status: BatchStatus | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> ProductBatchHistory:
        """
        Batches producing ``output_item_id``, newest first.

        The summary covers every matching batch, not just the page.
        """
        offset, limit = self._page_bounds(page, limit)
        model = ProductionBatchModel
        stmt = select(model).where(
            model.tenant_id == self.tenant_id,
            model.output_item_id == output_item_id,
        )
        if status is not None:
            stmt = stmt.where(model.status == BatchStatus(status).value)
        if since is not None:
            stmt = stmt.where(model.created_at >= since)
        if until is not None:
            stmt = stmt.where(model.created_at <= until)

        matching = [m.to_dto() for m in self.session.execute(stmt).scalars()]
        rows = self.session.execute(
            stmt.order_by(model.created_at.desc(), model.batch_ref.desc())
            .offset(offset)
            .limit(limit)
        ).scalars().all()

        return ProductBatchHistory(
            output_item_id=output_item_id,
            summary=self._summarize(matching),
            batches=Page(
                items=tuple(r.to_dto() for r in rows),
                total=len(matching),
                page=page,
                limit=limit,
            ),
        )

    @staticmethod
    def _summarize(batches: list[ProductionBatch]) -> BatchHistorySummary:
        by_status: dict[BatchStatus, int] = defaultdict(int)
        produced = _ZERO
        cost = _ZERO
        for batch in batches:
            by_status[batch.status] += 1
            if batch.status == BatchStatus.COMPLETED:
                produced += batch.actual_quantity or _ZERO
                cost += batch.total_cost or _ZERO
        return BatchHistorySummary(
            total_batches=len(batches),
            pending_batches=by_status[BatchStatus.PENDING],
            in_progress_batches=by_status[BatchStatus.IN_PROGRESS],
            completed_batches=by_status[BatchStatus.COMPLETED],
            cancelled_batches=by_status[BatchStatus.CANCELLED],
            total_produced=produced,
            total_cost=cost,
        )

    # -------------------------------------------------------------------------
    # Lineage
    # -------------------------------------------------------------------------

    def get_batch_traceability(self, batch_id: UUID) -> BatchTraceability:
        """Backward lineage: batch -> consumed ingredient transactions."""
        batch = self.get_batch(batch_id)
        model = InventoryTransactionModel
        timeline = tuple(
            row.to_dto()
            for row in self.session.execute(
                select(model)
                .where(
                    model.tenant_id == self.tenant_id,
                    model.production_batch_id == batch.id,
                )
                .order_by(model.occurred_at, model.created_at)
            ).scalars()
        )
        consumed = tuple(t for t in timeline if t.transaction_type == TransactionType.USAGE)
        produced = tuple(t for t in timeline if t.transaction_type == TransactionType.PURCHASE)

        return BatchTraceability(
            batch=batch,
            ingredients=self._ingredient_lines(batch, consumed),
            consumed=consumed,
            produced=produced,
            timeline=timeline,
        )

    def _ingredient_lines(
        self,
        batch: ProductionBatch,
        consumed: tuple[InventoryTransaction, ...],
    ) -> tuple[BatchIngredientLine, ...]:
        quantity: dict[str, Decimal] = defaultdict(lambda: _ZERO)
        cost: dict[str, Decimal] = defaultdict(lambda: _ZERO)
        for txn in consumed:
            quantity[txn.item_id] += -txn.quantity
            cost[txn.item_id] += txn.extended_cost or _ZERO

        per_unit: dict[str, Decimal] = {}
        recipe = self._recipes.get_recipe(batch.recipe_id) if self._recipes else None
        if recipe is not None:
            for ingredient in recipe.ingredients:
                per_unit[ingredient.item_id] = (
                    per_unit.get(ingredient.item_id, _ZERO) + ingredient.quantity
                )

        # Recipe order first, then anything consumed that the recipe no
        # longer lists.
        item_ids = list(per_unit)
        item_ids += [item_id for item_id in quantity if item_id not in per_unit]
        return tuple(
            BatchIngredientLine(
                item_id=item_id,
                quantity_per_unit=per_unit.get(item_id, _ZERO),
                consumed_quantity=quantity[item_id],
                consumed_cost=cost[item_id],
            )
            for item_id in item_ids
        )

    def get_ingredient_traceability(
        self,
        item_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> IngredientTraceability:
        """Forward lineage: ingredient -> the batches it fed, newest first."""
        txn = InventoryTransactionModel
        stmt = (
            select(txn, ProductionBatchModel)
            .join(ProductionBatchModel, ProductionBatchModel.id == txn.production_batch_id)
            .where(
                txn.tenant_id == self.tenant_id,
                txn.item_id == item_id,
                txn.transaction_type == TransactionType.USAGE.value,
            )
        )
        if since is not None:
            stmt = stmt.where(txn.occurred_at >= since)
        if until is not None:
            stmt = stmt.where(txn.occurred_at <= until)
        stmt = stmt.order_by(txn.occurred_at.desc(), txn.created_at.desc())

        batches: dict[UUID, ProductionBatch] = {}
        grouped: dict[UUID, list[InventoryTransaction]] = defaultdict(list)
        for row, batch in self.session.execute(stmt):
            batches.setdefault(batch.id, batch.to_dto())
            grouped[batch.id].append(row.to_dto())

        return IngredientTraceability(
            item_id=item_id,
            usages=tuple(
                IngredientBatchUsage(batch=batches[batch_id], transactions=tuple(txns))
                for batch_id, txns in grouped.items()
            ),
        )
