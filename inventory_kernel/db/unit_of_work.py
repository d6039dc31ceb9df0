"""
UnitOfWork -- one atomic stock operation.

Every stock mutation (a record update plus its transaction and movement
rows) runs inside a unit of work: either every write becomes visible
together or none does.

Usage:
    with UnitOfWork(session) as uow:
        record = repo.lock(...)
        record.quantity += delta
        uow.session.add(transaction)
    # committed here; rolled back if the block raised
"""

from types import TracebackType

from sqlalchemy.orm import Session

from inventory_kernel.logging_config import get_logger

logger = get_logger("db.unit_of_work")


class UnitOfWork:
    """
    Transaction boundary over a caller-supplied session.

    Guarantees:
        - ``commit()`` flushes and commits; any failure rolls back and
          re-raises.
        - Leaving the ``with`` block through an exception rolls back.
        - Leaving it normally commits unless ``rollback()`` was called.

    Non-goals:
        - Does not open or close the session; the caller owns its lifetime.
    """

    def __init__(self, session: Session, name: str = "stock_operation"):
        self._session = session
        self._name = name
        self._finished = False

    @property
    def session(self) -> Session:
        return self._session

    def begin(self) -> "UnitOfWork":
        self._finished = False
        logger.debug("unit_of_work_started", extra={"operation": self._name})
        return self

    def commit(self) -> None:
        try:
            self._session.commit()
        except Exception:
            self._session.rollback()
            logger.warning(
                "unit_of_work_commit_failed",
                extra={"operation": self._name},
                exc_info=True,
            )
            raise
        finally:
            self._finished = True
        logger.debug("unit_of_work_committed", extra={"operation": self._name})

    def rollback(self) -> None:
        self._session.rollback()
        self._finished = True
        logger.debug("unit_of_work_rolled_back", extra={"operation": self._name})

    def __enter__(self) -> "UnitOfWork":
        return self.begin()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            if not self._finished:
                self.rollback()
            logger.info(
                "unit_of_work_aborted",
                extra={
                    "operation": self._name,
                    "error_type": exc_type.__name__,
                    "error_code": getattr(exc, "code", None),
                },
            )
            return
        if not self._finished:
            self.commit()
