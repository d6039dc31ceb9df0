"""
Tests for the UnitOfWork transaction boundary and the Database handle.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from inventory_kernel.db.engine import Database
from inventory_kernel.db.unit_of_work import UnitOfWork
from inventory_modules.stock.orm import StockRecordModel


def _record(actor_id, item_id="FLOUR"):
    return StockRecordModel(
        tenant_id="t1",
        item_id=item_id,
        location_id="W1",
        quantity=Decimal("5"),
        reserved=Decimal("0"),
        created_by_id=actor_id,
    )


def _count(session) -> int:
    return session.execute(select(func.count()).select_from(StockRecordModel)).scalar_one()


class TestUnitOfWork:

    def test_commits_on_normal_exit(self, session, test_actor_id):
        with UnitOfWork(session, "test.commit") as uow:
            uow.session.add(_record(test_actor_id))

        session.rollback()
        assert _count(session) == 1

    def test_rolls_back_and_reraises(self, session, test_actor_id):
        with pytest.raises(RuntimeError, match="boom"):
            with UnitOfWork(session, "test.rollback"):
                session.add(_record(test_actor_id))
                session.flush()
                raise RuntimeError("boom")

        assert _count(session) == 0

    def test_explicit_rollback_skips_commit(self, session, test_actor_id):
        with UnitOfWork(session, "test.explicit") as uow:
            session.add(_record(test_actor_id))
            session.flush()
            uow.rollback()

        assert _count(session) == 0

    def test_logs_lifecycle(self, session, test_actor_id, captured_logs):
        with UnitOfWork(session, "test.logged"):
            session.add(_record(test_actor_id))

        messages = [r["message"] for r in captured_logs() if r.get("operation") == "test.logged"]
        assert messages == ["unit_of_work_started", "unit_of_work_committed"]


class TestDatabase:

    def test_sqlite_dialect(self, database):
        assert database.dialect == "sqlite"

    def test_session_scope_commits(self, database):
        actor = uuid4()
        with database.session_scope() as session:
            session.add(_record(actor))

        with database.session_scope() as session:
            assert _count(session) == 1

    def test_session_scope_rolls_back(self, database):
        with pytest.raises(ValueError):
            with database.session_scope() as session:
                session.add(_record(uuid4()))
                session.flush()
                raise ValueError("abort")

        with database.session_scope() as session:
            assert _count(session) == 0

    def test_independent_handles_do_not_share_data(self, database):
        other = Database("sqlite:///:memory:")
        other.create_all()
        try:
            with database.session_scope() as session:
                session.add(_record(uuid4()))
            with other.session_scope() as session:
                assert _count(session) == 0
        finally:
            other.dispose()
