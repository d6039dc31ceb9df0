"""
Production Batch Orchestrator (``inventory_modules.production.service``).

Responsibility
--------------
Drives the production batch state machine (``BATCH_WORKFLOW``) and, on
completion, converts ingredient stock into output stock as one atomic
unit.

Architecture position
---------------------
**Modules layer**.  ``ProductionBatchService`` is the sole writer of
production batches.  Stock mutations go through the
``StockOperationsService`` locking and append helpers inside this
service's own ``UnitOfWork``; ingredient costing goes through the pure
Costing Engine over receipt layers read by ``StockSelector``.

Invariants enforced
-------------------
* Transitions follow ``BATCH_WORKFLOW``; COMPLETED and CANCELLED are
  terminal.  Anything else raises ``InvalidTransitionError``.
* The batch row is locked ``FOR UPDATE`` before every transition, so two
  concurrent completions of the same batch cannot both consume stock.
* Completion is all-or-nothing: every ingredient is checked before any
  stock moves, and any failure rolls back ingredient stock, output stock
  and the batch status together.
* Every transaction written during completion carries the batch id and
  uses the batch reference as its reference.

Failure modes
-------------
* ``ValidationError`` -- non-positive quantity, recipe without an output
  item or without ingredients.
* ``RecipeNotFoundError`` / ``BatchNotFoundError``.
* ``DuplicateBatchReferenceError`` -- batch reference already taken.
* ``InvalidTransitionError`` -- action not allowed from current status.
* ``InsufficientStockError`` -- the first ingredient short at the
  completion location; the batch stays IN_PROGRESS.

Usage::

    service = ProductionBatchService(session, "acme", recipes, clock=clock)
    batch = service.create("BREAD", Decimal("10"), actor_id=actor_id)
    service.start(batch.id, actor_id=actor_id)
    done = service.complete(batch.id, Decimal("10"), "KITCHEN", actor_id=actor_id)
    done.batch.cost_per_unit
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inventory_engines.costing import (
    CostMethod,
    consume_layers,
    quantize_cost,
    remaining_layers,
)
from inventory_kernel.db.unit_of_work import UnitOfWork
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.exceptions import (
    BatchNotFoundError,
    DuplicateBatchReferenceError,
    InsufficientStockError,
    InvalidTransitionError,
    RecipeNotFoundError,
    ValidationError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_modules.production.models import (
    BatchCompletion,
    BatchStatus,
    BatchTraceability,
    IngredientConsumption,
    IngredientTraceability,
    ProductBatchHistory,
    ProductionBatch,
)
from inventory_modules.production.orm import ProductionBatchModel
from inventory_modules.production.recipes import RecipeDefinition, RecipeProvider
from inventory_modules.production.selectors import ProductionSelector
from inventory_modules.production.workflows import BATCH_WORKFLOW, Transition
from inventory_modules.stock.orm import StockRecordModel
from inventory_modules.stock.selectors import StockSelector
from inventory_modules.stock.service import StockOperationsService

logger = get_logger("modules.production.service")


class ProductionBatchService:
    """
    Production batch lifecycle for one tenant.

    Contract:
        Each mutating method owns its transaction boundary and returns
        frozen DTOs.  Read methods delegate to ``ProductionSelector``.
    Non-goals:
        - Does not own recipes; they come from the ``RecipeProvider``.
        - Does not reserve ingredients ahead of completion.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        recipes: RecipeProvider,
        clock: Clock | None = None,
        cost_method: CostMethod = CostMethod.WEIGHTED_AVERAGE,
        stock_service: StockOperationsService | None = None,
    ):
        self._session = session
        self._tenant_id = tenant_id
        self._recipes = recipes
        self._clock = clock or SystemClock()
        self._cost_method = CostMethod(cost_method)
        self._stock = stock_service or StockOperationsService(session, tenant_id, self._clock)
        self._stock_reader = StockSelector(session, tenant_id, self._clock)
        self._reader = ProductionSelector(session, tenant_id, recipes)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def create(
        self,
        recipe_id: str,
        planned_quantity: Decimal,
        actor_id: UUID,
        batch_ref: str | None = None,
        notes: str | None = None,
    ) -> ProductionBatch:
        """
        Register a PENDING batch for ``recipe_id``.

        A reference is generated when ``batch_ref`` is not supplied.

        Raises:
            ValidationError: ``planned_quantity <= 0`` or an incomplete recipe.
            RecipeNotFoundError: Unknown recipe.
            DuplicateBatchReferenceError: ``batch_ref`` already used.
        """
        if planned_quantity <= 0:
            raise ValidationError(
                f"planned quantity must be positive, got {planned_quantity}",
                details={"recipe_id": recipe_id, "quantity": str(planned_quantity)},
            )
        recipe = self._require_recipe(recipe_id)
        now = self._clock.now()
        batch_ref = batch_ref or self._generate_batch_ref(now)

        with self._bind(actor_id, batch_ref), UnitOfWork(self._session, "production.create"):
            if self._reader.find_batch_by_ref(batch_ref) is not None:
                raise DuplicateBatchReferenceError(batch_ref)

            batch = ProductionBatchModel(
                tenant_id=self._tenant_id,
                recipe_id=recipe.recipe_id,
                batch_ref=batch_ref,
                output_item_id=recipe.output_item_id,
                planned_quantity=planned_quantity,
                status=BATCH_WORKFLOW.initial_state,
                notes=notes,
                created_at=now,
                updated_at=now,
                created_by_id=actor_id,
            )
            self._session.add(batch)
            try:
                self._session.flush()
            except IntegrityError as exc:
                raise DuplicateBatchReferenceError(batch_ref) from exc
            result = batch.to_dto()

        logger.info(
            "production_batch_created",
            extra={
                "batch_id": str(result.id),
                "batch_ref": batch_ref,
                "recipe_id": recipe_id,
                "planned_quantity": str(planned_quantity),
            },
        )
        return result

    def start(self, batch_id: UUID, actor_id: UUID) -> ProductionBatch:
        """PENDING -> IN_PROGRESS; stamps ``started_at``."""
        with UnitOfWork(self._session, "production.start"):
            batch = self._lock_batch(batch_id)
            with self._bind(actor_id, batch.batch_ref):
                transition = self._require_transition(batch, "start")
                batch.status = transition.to_state
                batch.started_at = self._clock.now()
                batch.updated_by_id = actor_id
                result = batch.to_dto()

        logger.info(
            "production_batch_started",
            extra={"batch_id": str(result.id), "batch_ref": result.batch_ref},
        )
        return result

    def complete(
        self,
        batch_id: UUID,
        actual_quantity: Decimal,
        location_id: str,
        actor_id: UUID,
    ) -> BatchCompletion:
        """
        IN_PROGRESS -> COMPLETED, consuming ingredients and booking output.

        For each recipe ingredient ``required = quantity_per_unit x
        actual_quantity`` is drawn from ``location_id`` as a USAGE
        transaction at the ingredient's unit cost.  The output item then
        receives ``actual_quantity`` as a PURCHASE-typed transaction costed
        at ``sum(ingredient cost) / actual_quantity``.

        Raises:
            ValidationError: ``actual_quantity <= 0``.
            InvalidTransitionError: Batch is not IN_PROGRESS.
            InsufficientStockError: First short ingredient; nothing is
                written and the batch stays IN_PROGRESS.
        """
        if actual_quantity <= 0:
            raise ValidationError(
                f"actual quantity must be positive, got {actual_quantity}",
                details={"batch_id": str(batch_id), "quantity": str(actual_quantity)},
            )

        with UnitOfWork(self._session, "production.complete"):
            batch = self._lock_batch(batch_id)
            with self._bind(actor_id, batch.batch_ref):
                transition = self._require_transition(batch, "complete")
                recipe = self._require_recipe(batch.recipe_id)
                result = self._complete_locked(
                    batch, recipe, transition, actual_quantity, location_id, actor_id,
                )

        logger.info(
            "production_batch_completed",
            extra={
                "batch_id": str(result.batch.id),
                "batch_ref": result.batch.batch_ref,
                "location_id": location_id,
                "actual_quantity": str(actual_quantity),
                "cost_per_unit": str(result.batch.cost_per_unit),
                "ingredient_count": len(result.consumptions),
            },
        )
        return result

    def _complete_locked(
        self,
        batch: ProductionBatchModel,
        recipe: RecipeDefinition,
        transition: Transition,
        actual_quantity: Decimal,
        location_id: str,
        actor_id: UUID,
    ) -> BatchCompletion:
        required = recipe.requirements(actual_quantity)
        output_key = (batch.output_item_id, location_id)
        records = self._stock.lock_records(
            [(item_id, location_id) for item_id in required] + [output_key],
            create_missing={output_key},
            actor_id=actor_id,
        )

        # Check every ingredient before touching any of them.
        for item_id, quantity in required.items():
            record = records.get((item_id, location_id))
            available = record.available if record is not None else Decimal("0")
            if available < quantity:
                logger.warning(
                    "production_ingredient_insufficient",
                    extra={
                        "batch_ref": batch.batch_ref,
                        "item_id": item_id,
                        "location_id": location_id,
                        "required": str(quantity),
                        "available": str(available),
                    },
                )
                raise InsufficientStockError(
                    item_id, location_id, required=quantity, available=available,
                    details={"batch_id": str(batch.id), "batch_ref": batch.batch_ref},
                )

        consumptions: list[IngredientConsumption] = []
        movements = []
        for item_id, quantity in required.items():
            record = records[(item_id, location_id)]
            unit_cost = self._ingredient_unit_cost(recipe, record, quantity)
            txn, movement = self._stock.consume_for_production(
                record, quantity, unit_cost, batch.id, batch.batch_ref, actor_id,
            )
            movements.append(movement)
            consumptions.append(
                IngredientConsumption(
                    item_id=item_id,
                    location_id=location_id,
                    quantity=quantity,
                    cost_per_unit=unit_cost,
                    total_cost=quantize_cost(quantity * unit_cost),
                    transaction_id=txn.id,
                )
            )

        total_cost = sum((c.total_cost for c in consumptions), Decimal("0"))
        cost_per_unit = quantize_cost(total_cost / actual_quantity)
        output_txn, output_movement = self._stock.produce_from_batch(
            records[output_key], actual_quantity, cost_per_unit,
            batch.id, batch.batch_ref, actor_id,
        )
        movements.append(output_movement)

        batch.status = transition.to_state
        batch.actual_quantity = actual_quantity
        batch.cost_per_unit = cost_per_unit
        batch.location_id = location_id
        batch.finished_at = self._clock.now()
        batch.updated_by_id = actor_id
        self._session.flush()

        return BatchCompletion(
            batch=batch.to_dto(),
            consumptions=tuple(consumptions),
            output_transaction=output_txn,
            movements=tuple(movements),
            stock_levels=tuple(records[key].to_dto() for key in sorted(records)),
        )

    def _ingredient_unit_cost(
        self,
        recipe: RecipeDefinition,
        record: StockRecordModel,
        quantity: Decimal,
    ) -> Decimal:
        """
        The recipe's fixed unit cost when it has one; otherwise the cost of
        drawing ``quantity`` from the receipt layers still on hand.
        """
        ingredient = recipe.ingredient(record.item_id)
        if ingredient is not None and ingredient.unit_cost is not None:
            return ingredient.unit_cost

        receipts = self._stock_reader.get_receipt_layers(record.item_id, record.location_id)
        if not receipts:
            return Decimal("0")
        on_hand = remaining_layers(receipts, record.quantity, self._cost_method)
        return consume_layers(on_hand, quantity, self._cost_method).average_unit_cost

    def cancel(self, batch_id: UUID, reason: str | None, actor_id: UUID) -> ProductionBatch:
        """
        PENDING or IN_PROGRESS -> CANCELLED.  No stock is touched.

        Raises:
            InvalidTransitionError: Batch is already COMPLETED or CANCELLED.
        """
        with UnitOfWork(self._session, "production.cancel"):
            batch = self._lock_batch(batch_id)
            with self._bind(actor_id, batch.batch_ref):
                transition = self._require_transition(batch, "cancel")
                from_status = batch.status
                batch.status = transition.to_state
                batch.finished_at = self._clock.now()
                batch.cancel_reason = reason
                batch.updated_by_id = actor_id
                result = batch.to_dto()

        logger.info(
            "production_batch_cancelled",
            extra={
                "batch_id": str(result.id),
                "batch_ref": result.batch_ref,
                "from_status": from_status,
                "reason": reason,
            },
        )
        return result

    # =========================================================================
    # Reads
    # =========================================================================

    def get_batch(self, batch_id: UUID) -> ProductionBatch:
        return self._reader.get_batch(batch_id)

    def get_batch_traceability(self, batch_id: UUID) -> BatchTraceability:
        return self._reader.get_batch_traceability(batch_id)

    def get_ingredient_traceability(
        self,
        item_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> IngredientTraceability:
        return self._reader.get_ingredient_traceability(item_id, since=since, until=until)

    def get_product_batch_history(
        self,
        output_item_id: str,
        status: BatchStatus | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> ProductBatchHistory:
        return self._reader.get_product_batch_history(
            output_item_id, status=status, since=since, until=until, page=page, limit=limit,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_recipe(self, recipe_id: str) -> RecipeDefinition:
        recipe = self._recipes.get_recipe(recipe_id)
        if recipe is None:
            raise RecipeNotFoundError(recipe_id)
        if not recipe.output_item_id:
            raise ValidationError(
                f"Recipe {recipe_id} has no output item",
                details={"recipe_id": recipe_id},
            )
        if not recipe.ingredients:
            raise ValidationError(
                f"Recipe {recipe_id} has no ingredients",
                details={"recipe_id": recipe_id},
            )
        return recipe

    def _lock_batch(self, batch_id: UUID) -> ProductionBatchModel:
        batch = self._session.execute(
            select(ProductionBatchModel)
            .where(
                ProductionBatchModel.tenant_id == self._tenant_id,
                ProductionBatchModel.id == batch_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if batch is None:
            raise BatchNotFoundError(str(batch_id))
        return batch

    @staticmethod
    def _require_transition(batch: ProductionBatchModel, action: str) -> Transition:
        transition = BATCH_WORKFLOW.transition_for(batch.status, action)
        if transition is None:
            logger.warning(
                "production_batch_transition_rejected",
                extra={
                    "batch_id": str(batch.id),
                    "batch_ref": batch.batch_ref,
                    "status": batch.status,
                    "action": action,
                },
            )
            raise InvalidTransitionError(str(batch.id), batch.status, action)
        return transition

    @staticmethod
    def _generate_batch_ref(now: datetime) -> str:
        return f"BATCH-{now:%Y%m%d%H%M%S}-{uuid4().hex[:8].upper()}"

    def _bind(self, actor_id: UUID, batch_ref: str):
        return LogContext.bind(
            actor_id=actor_id, tenant_id=self._tenant_id, batch_ref=batch_ref,
        )
