"""
Append-only guards on the transaction and movement logs.

Every stock mutation appends rows; none may ever be edited or removed,
whether through the ORM unit of work or a bulk statement.
"""

from decimal import Decimal

import pytest
from sqlalchemy import delete, select, update

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_modules.stock.orm import InventoryTransactionModel, StockMovementModel


@pytest.fixture
def booked(receive_stock):
    return receive_stock("FLOUR", "W1", "10", "2")


class TestTransactionLogImmutability:

    def test_orm_update_blocked(self, session, booked):
        row = session.get(InventoryTransactionModel, booked.transactions[0].id)
        row.quantity = Decimal("99")

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.entity_type == "InventoryTransaction"
        session.rollback()

    def test_orm_delete_blocked(self, session, booked):
        row = session.get(InventoryTransactionModel, booked.transactions[0].id)
        session.delete(row)

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_bulk_update_blocked(self, session, booked):
        with pytest.raises(ImmutabilityViolationError):
            session.execute(
                update(InventoryTransactionModel).values(reference="rewritten")
            )
        session.rollback()

    def test_row_unchanged_after_blocked_update(self, session, booked):
        row = session.get(InventoryTransactionModel, booked.transactions[0].id)
        row.reference = "rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        reloaded = session.execute(
            select(InventoryTransactionModel.reference)
        ).scalar_one()
        assert reloaded == booked.transactions[0].reference


class TestMovementLogImmutability:

    def test_orm_update_blocked(self, session, booked):
        row = session.get(StockMovementModel, booked.movements[0].id)
        row.quantity = Decimal("1")

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_bulk_delete_blocked(self, session, booked, captured_logs):
        with pytest.raises(ImmutabilityViolationError):
            session.execute(delete(StockMovementModel))
        session.rollback()

        blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert blocked[-1]["operation"] == "BULK_DELETE"
