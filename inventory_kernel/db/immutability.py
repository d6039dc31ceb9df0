"""
ORM-level immutability enforcement for the append-only stock logs.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                      | When Immutable         | Why
----------------------------|------------------------|-------------------------------
InventoryTransaction        | ALWAYS (from creation) | Replaying it rebuilds on-hand
StockMovement               | ALWAYS (from creation) | In/out history for analytics

Corrections are new rows (an ADJUSTMENT, a compensating movement).  A row
already written is never edited or removed.

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_update] --> _block_update() --> ImmutabilityViolationError
    [before_delete] --> _block_delete() --> ImmutabilityViolationError

    session.execute(update(...)/delete(...))
         |
         v
    [do_orm_execute] --> _block_bulk_statement() --> ImmutabilityViolationError

If a check fails the flush or statement is aborted and the caller's
transaction rolls back.

===============================================================================
USAGE
===============================================================================

Registered by ``Database.create_all()``.  To disable (TESTS ONLY):

    from inventory_kernel.db.immutability import unregister_immutability_listeners
    unregister_immutability_listeners()
"""

from sqlalchemy import event
from sqlalchemy.orm import Session

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _protected_models() -> tuple[type, ...]:
    from inventory_modules.stock.orm import (
        InventoryTransactionModel,
        StockMovementModel,
    )

    return (InventoryTransactionModel, StockMovementModel)


def _entity_name(target) -> str:
    return type(target).__name__.removesuffix("Model")


def _block_update(mapper, connection, target):
    """Reject any UPDATE of a ledger row."""
    entity_type = _entity_name(target)
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason="Ledger rows are append-only and cannot be modified",
    )


def _block_delete(mapper, connection, target):
    """Reject any DELETE of a ledger row."""
    entity_type = _entity_name(target)
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason="Ledger rows are append-only and cannot be deleted",
    )


def _block_bulk_statement(orm_execute_state):
    """Reject ORM-enabled bulk UPDATE/DELETE against a ledger table."""
    if not (orm_execute_state.is_update or orm_execute_state.is_delete):
        return

    mapper = orm_execute_state.bind_mapper
    if mapper is None or mapper.class_ not in _protected_models():
        return

    operation = "UPDATE" if orm_execute_state.is_update else "DELETE"
    entity_type = mapper.class_.__name__.removesuffix("Model")
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": "*",
            "operation": f"BULK_{operation}",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id="*",
        reason=f"Bulk {operation} is not permitted on an append-only log",
    )


def register_immutability_listeners():
    """
    Register the append-only guards.  Safe to call more than once.

    Call after the ORM models are imported and before any writes.
    """
    for model in _protected_models():
        if not event.contains(model, "before_update", _block_update):
            event.listen(model, "before_update", _block_update)
        if not event.contains(model, "before_delete", _block_delete):
            event.listen(model, "before_delete", _block_delete)

    if not event.contains(Session, "do_orm_execute", _block_bulk_statement):
        event.listen(Session, "do_orm_execute", _block_bulk_statement)

    logger.debug("immutability_listeners_registered")


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if it was never registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the append-only guards.

    WARNING: Only use this in tests that need to write a forbidden change
    to verify detection elsewhere.
    """
    for model in _protected_models():
        _safe_remove_listener(model, "before_update", _block_update)
        _safe_remove_listener(model, "before_delete", _block_delete)

    _safe_remove_listener(Session, "do_orm_execute", _block_bulk_statement)

    logger.debug("immutability_listeners_unregistered")
