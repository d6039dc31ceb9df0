"""
Stock Operations Service (``inventory_modules.stock.service``).

Responsibility
--------------
The only writer of the Stock Record Store.  Every public operation
(reserve, release, adjust, transfer, receive, issue) updates one or two
stock records and appends the matching transaction and movement rows as
one atomic unit.

Architecture
------------
Layer: **Modules** -- stateful service over a caller-supplied session.

1. Opens a ``UnitOfWork`` per public call.
2. Locks every touched stock record with ``SELECT ... FOR UPDATE`` in
   sorted ``(item_id, location_id)`` order, creating missing records
   where the operation allows it.
3. Validates against the locked state, mutates, and appends log rows
   built from validated ``TransactionDraft`` variants.

The production orchestrator reuses the locking and append helpers inside
its own unit of work (``lock_records``, ``consume_for_production``,
``produce_from_batch``).

Invariants
----------
- ``0 <= reserved <= quantity`` after every operation.
- Stock record, transaction log and movement log change together or not
  at all: any exception rolls the unit of work back before re-raising.
- Two operations touching the same record serialize on its row lock;
  operations on disjoint records do not block each other.
- Duplicate calls are separate physical events: no reference dedup.

Failure Modes
-------------
- ``ValidationError`` on a non-positive quantity, a same-location
  transfer, or a release exceeding the reserved quantity.
- ``InsufficientStockError`` when available stock cannot cover an
  outbound quantity.
- ``StockRecordNotFoundError`` when reserve, release, issue or an
  adjust DECREASE targets a record that does not exist.
- ``StockContentionError`` when a concurrent transaction created the same
  record first (retry the whole call).

Usage::

    service = StockOperationsService(session, tenant_id="acme", clock=clock)
    result = service.transfer(
        item_id="FLOUR", from_location_id="W1", to_location_id="W2",
        quantity=Decimal("4"), reference="TR-001", actor_id=actor_id,
    )
    result.level_at("W1").quantity  # Decimal('6')
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inventory_kernel.db.unit_of_work import UnitOfWork
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.exceptions import (
    InsufficientStockError,
    StockContentionError,
    StockRecordNotFoundError,
    ValidationError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_modules.stock.models import (
    AdjustmentDirection,
    InventoryTransaction,
    ManualAction,
    MovementDirection,
    StockMovement,
    StockOperationResult,
    TransactionDraft,
    TransactionType,
)
from inventory_modules.stock.orm import (
    InventoryTransactionModel,
    StockMovementModel,
    StockRecordModel,
)

logger = get_logger("modules.stock.service")

StockKey = tuple[str, str]  # (item_id, location_id)


class StockOperationsService:
    """
    Atomic stock mutations for one tenant.

    Contract:
        Each public method owns its transaction boundary and returns a
        ``StockOperationResult`` describing what it wrote.
    Non-goals:
        - Does not check that items or locations exist in the catalog.
        - Does not deduplicate by reference.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        clock: Clock | None = None,
    ):
        self._session = session
        self._tenant_id = tenant_id
        self._clock = clock or SystemClock()

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    # =========================================================================
    # Reservations
    # =========================================================================

    def reserve(
        self,
        item_id: str,
        location_id: str,
        quantity: Decimal,
        reference: str,
        actor_id: UUID,
        note: str | None = None,
    ) -> StockOperationResult:
        """
        Place a soft hold on available stock.

        Preconditions:
            - ``quantity > 0``.
            - The stock record exists and ``available >= quantity``.
        Postconditions:
            - ``reserved`` grows by ``quantity``; ``quantity`` is unchanged.
            - One MANUAL/RESERVE transaction; no movement.

        Raises:
            ValidationError, StockRecordNotFoundError, InsufficientStockError.
        """
        self._require_positive(quantity, "reserve")

        with self._bind(actor_id), UnitOfWork(self._session, "stock.reserve"):
            record = self._lock_one((item_id, location_id), create_missing=False)
            if record.available < quantity:
                raise InsufficientStockError(
                    item_id, location_id, required=quantity, available=record.available,
                )

            record.reserved = record.reserved + quantity
            self._touch(record, actor_id)
            txn = self._append_transaction(
                TransactionDraft(
                    transaction_type=TransactionType.MANUAL,
                    item_id=item_id,
                    location_id=location_id,
                    quantity=Decimal("0"),
                    reference=reference,
                    reserved_delta=quantity,
                    manual_action=ManualAction.RESERVE,
                    note=note,
                ),
                record,
                actor_id,
            )
            result = StockOperationResult(
                operation="reserve",
                stock_levels=(record.to_dto(),),
                transactions=(txn,),
            )

        logger.info(
            "stock_reserved",
            extra={
                "item_id": item_id,
                "location_id": location_id,
                "quantity": str(quantity),
                "reserved": str(result.stock_level.reserved),
                "available": str(result.stock_level.available),
                "reference": reference,
            },
        )
        return result

    def release(
        self,
        item_id: str,
        location_id: str,
        quantity: Decimal,
        reference: str,
        actor_id: UUID,
        note: str | None = None,
    ) -> StockOperationResult:
        """
        Release part of a reservation.

        Raises:
            ValidationError: ``quantity <= 0`` or ``quantity > reserved``.
            StockRecordNotFoundError: No record for (item, location).
        """
        self._require_positive(quantity, "release")

        with self._bind(actor_id), UnitOfWork(self._session, "stock.release"):
            record = self._lock_one((item_id, location_id), create_missing=False)
            if quantity > record.reserved:
                raise ValidationError(
                    f"Cannot release {quantity} of {item_id} at {location_id}: "
                    f"only {record.reserved} reserved",
                    details={
                        "item_id": item_id,
                        "location_id": location_id,
                        "requested": str(quantity),
                        "reserved": str(record.reserved),
                    },
                )

            record.reserved = record.reserved - quantity
            self._touch(record, actor_id)
            txn = self._append_transaction(
                TransactionDraft(
                    transaction_type=TransactionType.MANUAL,
                    item_id=item_id,
                    location_id=location_id,
                    quantity=Decimal("0"),
                    reference=reference,
                    reserved_delta=-quantity,
                    manual_action=ManualAction.RELEASE,
                    note=note,
                ),
                record,
                actor_id,
            )
            result = StockOperationResult(
                operation="release",
                stock_levels=(record.to_dto(),),
                transactions=(txn,),
            )

        logger.info(
            "stock_released",
            extra={
                "item_id": item_id,
                "location_id": location_id,
                "quantity": str(quantity),
                "reserved": str(result.stock_level.reserved),
                "reference": reference,
            },
        )
        return result

    # =========================================================================
    # Quantity changes
    # =========================================================================

    def adjust(
        self,
        item_id: str,
        location_id: str,
        quantity: Decimal,
        direction: AdjustmentDirection,
        reference: str,
        actor_id: UUID,
        note: str | None = None,
    ) -> StockOperationResult:
        """
        Correct on-hand quantity up or down.

        INCREASE creates the stock record when it is missing.  DECREASE may
        not cut into reserved stock (``available >= quantity``), which also
        keeps ``quantity`` non-negative.

        Postconditions:
            - One ADJUSTMENT transaction and one movement (IN or OUT).
        """
        self._require_positive(quantity, "adjust")
        direction = AdjustmentDirection(direction)
        increase = direction == AdjustmentDirection.INCREASE

        with self._bind(actor_id), UnitOfWork(self._session, "stock.adjust"):
            record = self._lock_one((item_id, location_id), create_missing=increase, actor_id=actor_id)
            if increase:
                record.quantity = record.quantity + quantity
                delta = quantity
            else:
                if record.available < quantity:
                    raise InsufficientStockError(
                        item_id, location_id, required=quantity, available=record.available,
                    )
                record.quantity = record.quantity - quantity
                delta = -quantity
            self._touch(record, actor_id)

            txn = self._append_transaction(
                TransactionDraft(
                    transaction_type=TransactionType.ADJUSTMENT,
                    item_id=item_id,
                    location_id=location_id,
                    quantity=delta,
                    reference=reference,
                    adjustment_direction=direction,
                    note=note,
                ),
                record,
                actor_id,
            )
            movement = self._append_movement(
                record, txn,
                MovementDirection.IN if increase else MovementDirection.OUT,
                quantity, actor_id,
            )
            result = StockOperationResult(
                operation="adjust",
                stock_levels=(record.to_dto(),),
                transactions=(txn,),
                movements=(movement,),
            )

        logger.info(
            "stock_adjusted",
            extra={
                "item_id": item_id,
                "location_id": location_id,
                "direction": direction.value,
                "quantity": str(quantity),
                "new_quantity": str(result.stock_level.quantity),
                "reference": reference,
            },
        )
        return result

    def transfer(
        self,
        item_id: str,
        from_location_id: str,
        to_location_id: str,
        quantity: Decimal,
        reference: str,
        actor_id: UUID,
        note: str | None = None,
    ) -> StockOperationResult:
        """
        Move stock between two locations.

        Preconditions:
            - ``from_location_id != to_location_id`` and ``quantity > 0``.
            - Source record exists with ``available >= quantity``.
        Postconditions:
            - Source quantity drops and destination quantity rises by
              ``quantity``; the destination record is created if absent.
            - Two paired TRANSFER transactions (out, in) and two movements
              (OUT, IN).

        Both records are locked in (item, location) order, so two opposing
        transfers between the same pair cannot deadlock.
        """
        self._require_positive(quantity, "transfer")
        if from_location_id == to_location_id:
            raise ValidationError(
                "Source and destination locations must differ",
                details={"item_id": item_id, "location_id": from_location_id},
            )

        source_key = (item_id, from_location_id)
        dest_key = (item_id, to_location_id)

        with self._bind(actor_id), UnitOfWork(self._session, "stock.transfer"):
            records = self.lock_records(
                [source_key, dest_key],
                create_missing={dest_key},
                actor_id=actor_id,
            )
            if source_key not in records:
                raise StockRecordNotFoundError(item_id, from_location_id)
            source = records[source_key]
            dest = records[dest_key]

            if source.available < quantity:
                raise InsufficientStockError(
                    item_id, from_location_id, required=quantity, available=source.available,
                )

            source.quantity = source.quantity - quantity
            dest.quantity = dest.quantity + quantity
            self._touch(source, actor_id)
            self._touch(dest, actor_id)

            out_id, in_id = uuid4(), uuid4()
            out_txn = self._append_transaction(
                TransactionDraft(
                    transaction_type=TransactionType.TRANSFER,
                    item_id=item_id,
                    location_id=from_location_id,
                    quantity=-quantity,
                    reference=reference,
                    paired_transaction_id=in_id,
                    note=note,
                    transaction_id=out_id,
                ),
                source,
                actor_id,
            )
            in_txn = self._append_transaction(
                TransactionDraft(
                    transaction_type=TransactionType.TRANSFER,
                    item_id=item_id,
                    location_id=to_location_id,
                    quantity=quantity,
                    reference=reference,
                    paired_transaction_id=out_id,
                    note=note,
                    transaction_id=in_id,
                ),
                dest,
                actor_id,
            )
            out_move = self._append_movement(source, out_txn, MovementDirection.OUT, quantity, actor_id)
            in_move = self._append_movement(dest, in_txn, MovementDirection.IN, quantity, actor_id)

            result = StockOperationResult(
                operation="transfer",
                stock_levels=(source.to_dto(), dest.to_dto()),
                transactions=(out_txn, in_txn),
                movements=(out_move, in_move),
            )

        logger.info(
            "stock_transfer_completed",
            extra={
                "item_id": item_id,
                "from_location_id": from_location_id,
                "to_location_id": to_location_id,
                "quantity": str(quantity),
                "reference": reference,
            },
        )
        return result

    def receive(
        self,
        item_id: str,
        location_id: str,
        quantity: Decimal,
        cost_per_unit: Decimal,
        reference: str,
        actor_id: UUID,
        purchase_order_id: str | None = None,
        note: str | None = None,
    ) -> StockOperationResult:
        """
        Book inbound purchased stock.  Creates the record if absent.

        The PURCHASE transaction is a cost layer for valuation.
        """
        self._require_positive(quantity, "receive")

        with self._bind(actor_id), UnitOfWork(self._session, "stock.receive"):
            record = self._lock_one((item_id, location_id), create_missing=True, actor_id=actor_id)
            record.quantity = record.quantity + quantity
            self._touch(record, actor_id)
            txn = self._append_transaction(
                TransactionDraft(
                    transaction_type=TransactionType.PURCHASE,
                    item_id=item_id,
                    location_id=location_id,
                    quantity=quantity,
                    reference=reference,
                    cost_per_unit=cost_per_unit,
                    purchase_order_id=purchase_order_id,
                    note=note,
                ),
                record,
                actor_id,
            )
            movement = self._append_movement(record, txn, MovementDirection.IN, quantity, actor_id)
            result = StockOperationResult(
                operation="receive",
                stock_levels=(record.to_dto(),),
                transactions=(txn,),
                movements=(movement,),
            )

        logger.info(
            "stock_received",
            extra={
                "item_id": item_id,
                "location_id": location_id,
                "quantity": str(quantity),
                "cost_per_unit": str(cost_per_unit),
                "reference": reference,
            },
        )
        return result

    def issue(
        self,
        item_id: str,
        location_id: str,
        quantity: Decimal,
        reference: str,
        actor_id: UUID,
        cost_per_unit: Decimal | None = None,
        sale_order_id: str | None = None,
        note: str | None = None,
    ) -> StockOperationResult:
        """Book outbound sold stock against available quantity."""
        self._require_positive(quantity, "issue")

        with self._bind(actor_id), UnitOfWork(self._session, "stock.issue"):
            record = self._lock_one((item_id, location_id), create_missing=False)
            if record.available < quantity:
                raise InsufficientStockError(
                    item_id, location_id, required=quantity, available=record.available,
                )
            record.quantity = record.quantity - quantity
            self._touch(record, actor_id)
            txn = self._append_transaction(
                TransactionDraft(
                    transaction_type=TransactionType.SALE,
                    item_id=item_id,
                    location_id=location_id,
                    quantity=-quantity,
                    reference=reference,
                    cost_per_unit=cost_per_unit,
                    sale_order_id=sale_order_id,
                    note=note,
                ),
                record,
                actor_id,
            )
            movement = self._append_movement(record, txn, MovementDirection.OUT, quantity, actor_id)
            result = StockOperationResult(
                operation="issue",
                stock_levels=(record.to_dto(),),
                transactions=(txn,),
                movements=(movement,),
            )

        logger.info(
            "stock_issued",
            extra={
                "item_id": item_id,
                "location_id": location_id,
                "quantity": str(quantity),
                "reference": reference,
            },
        )
        return result

    # =========================================================================
    # Production helpers (run inside the caller's unit of work)
    # =========================================================================

    def consume_for_production(
        self,
        record: StockRecordModel,
        quantity: Decimal,
        cost_per_unit: Decimal | None,
        batch_id: UUID,
        batch_ref: str,
        actor_id: UUID,
    ) -> tuple[InventoryTransaction, StockMovement]:
        """
        Draw ingredient stock for a production batch.

        ``record`` must already be locked by ``lock_records``.  Does not
        commit.

        Raises:
            InsufficientStockError: ``available < quantity``.
        """
        if record.available < quantity:
            raise InsufficientStockError(
                record.item_id, record.location_id,
                required=quantity, available=record.available,
            )
        record.quantity = record.quantity - quantity
        self._touch(record, actor_id)
        txn = self._append_transaction(
            TransactionDraft(
                transaction_type=TransactionType.USAGE,
                item_id=record.item_id,
                location_id=record.location_id,
                quantity=-quantity,
                reference=batch_ref,
                cost_per_unit=cost_per_unit,
                production_batch_id=batch_id,
            ),
            record,
            actor_id,
        )
        movement = self._append_movement(record, txn, MovementDirection.OUT, quantity, actor_id)
        return txn, movement

    def produce_from_batch(
        self,
        record: StockRecordModel,
        quantity: Decimal,
        cost_per_unit: Decimal,
        batch_id: UUID,
        batch_ref: str,
        actor_id: UUID,
    ) -> tuple[InventoryTransaction, StockMovement]:
        """
        Book finished-good output of a batch as a PURCHASE-typed receipt.

        ``record`` must already be locked.  Does not commit.
        """
        record.quantity = record.quantity + quantity
        self._touch(record, actor_id)
        txn = self._append_transaction(
            TransactionDraft(
                transaction_type=TransactionType.PURCHASE,
                item_id=record.item_id,
                location_id=record.location_id,
                quantity=quantity,
                reference=batch_ref,
                cost_per_unit=cost_per_unit,
                production_batch_id=batch_id,
                note="production output",
            ),
            record,
            actor_id,
        )
        movement = self._append_movement(record, txn, MovementDirection.IN, quantity, actor_id)
        return txn, movement

    # =========================================================================
    # Locking
    # =========================================================================

    def lock_records(
        self,
        keys: Iterable[StockKey],
        create_missing: Iterable[StockKey] = (),
        actor_id: UUID | None = None,
    ) -> dict[StockKey, StockRecordModel]:
        """
        Lock stock records FOR UPDATE in sorted (item, location) order.

        Keys listed in ``create_missing`` are created zero-initialized when
        absent; other missing keys are simply left out of the result.

        Raises:
            StockContentionError: A concurrent transaction inserted the same
                record between our read and our insert.
        """
        creatable = set(create_missing)
        locked: dict[StockKey, StockRecordModel] = {}
        for key in sorted(set(keys)):
            record = self._select_for_update(key)
            if record is None and key in creatable:
                record = self._create_record(key, actor_id)
            if record is not None:
                locked[key] = record
        return locked

    def _lock_one(
        self,
        key: StockKey,
        create_missing: bool,
        actor_id: UUID | None = None,
    ) -> StockRecordModel:
        records = self.lock_records(
            [key], create_missing={key} if create_missing else (), actor_id=actor_id,
        )
        if key not in records:
            raise StockRecordNotFoundError(*key)
        return records[key]

    def _select_for_update(self, key: StockKey) -> StockRecordModel | None:
        item_id, location_id = key
        stmt = (
            select(StockRecordModel)
            .where(
                StockRecordModel.tenant_id == self._tenant_id,
                StockRecordModel.item_id == item_id,
                StockRecordModel.location_id == location_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def _create_record(self, key: StockKey, actor_id: UUID | None) -> StockRecordModel:
        item_id, location_id = key
        if actor_id is None:
            raise ValueError("actor_id is required to create a stock record")
        record = StockRecordModel(
            tenant_id=self._tenant_id,
            item_id=item_id,
            location_id=location_id,
            quantity=Decimal("0"),
            reserved=Decimal("0"),
            last_updated=self._clock.now(),
            created_by_id=actor_id,
        )
        self._session.add(record)
        try:
            self._session.flush()
        except IntegrityError as exc:
            logger.warning(
                "stock_record_create_conflict",
                extra={"item_id": item_id, "location_id": location_id},
            )
            raise StockContentionError(
                item_id, location_id, "stock record created concurrently",
            ) from exc

        logger.info(
            "stock_record_created",
            extra={"item_id": item_id, "location_id": location_id},
        )
        return record

    # =========================================================================
    # Log appends
    # =========================================================================

    def _append_transaction(
        self,
        draft: TransactionDraft,
        record: StockRecordModel,
        actor_id: UUID,
    ) -> InventoryTransaction:
        row = InventoryTransactionModel.from_draft(
            draft,
            tenant_id=self._tenant_id,
            stock_record_id=record.id,
            created_by_id=actor_id,
            occurred_at=self._clock.now(),
        )
        self._session.add(row)
        self._session.flush()
        return row.to_dto()

    def _append_movement(
        self,
        record: StockRecordModel,
        txn: InventoryTransaction,
        direction: MovementDirection,
        quantity: Decimal,
        actor_id: UUID,
    ) -> StockMovement:
        row = StockMovementModel(
            tenant_id=self._tenant_id,
            stock_record_id=record.id,
            transaction_id=txn.id,
            item_id=record.item_id,
            location_id=record.location_id,
            direction=direction.value,
            quantity=quantity,
            reference=txn.reference,
            created_by_id=actor_id,
            occurred_at=txn.occurred_at,
        )
        self._session.add(row)
        self._session.flush()
        return row.to_dto()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _touch(self, record: StockRecordModel, actor_id: UUID) -> None:
        record.last_updated = self._clock.now()
        record.updated_by_id = actor_id

    def _bind(self, actor_id: UUID):
        return LogContext.bind(actor_id=actor_id, tenant_id=self._tenant_id)

    @staticmethod
    def _require_positive(quantity: Decimal, operation: str) -> None:
        if quantity <= 0:
            raise ValidationError(
                f"{operation} quantity must be positive, got {quantity}",
                details={"operation": operation, "quantity": str(quantity)},
            )
