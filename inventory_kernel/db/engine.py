"""
Module: inventory_kernel.db.engine
Responsibility: Engine construction, session factory management and
    transactional scope utilities.  A ``Database`` handle owns one engine and
    its session factory; every service receives sessions made here.
Architecture position: Kernel > DB.  May import from db/base.py and
    db/immutability.py.  MUST NOT import from modules or services at module
    load time (create_all imports the ORM registry lazily).

Invariants enforced:
    - PostgreSQL sessions run at READ COMMITTED.  Stock mutations take
      explicit row locks (SELECT ... FOR UPDATE) instead of relying on a
      stronger isolation level.
    - PostgreSQL connections are pooled via QueuePool with pre-ping.
    - SQLite in-memory URLs share one connection (StaticPool) so that every
      session in a process sees the same schema.  SQLite is for tests only:
      it ignores FOR UPDATE.

Failure modes:
    - sqlalchemy.exc.ArgumentError for an unparseable URL.
    - OperationalError surfaces on first use if the server is unreachable.
"""

from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from inventory_kernel.logging_config import get_logger

logger = get_logger("db.engine")


class Database:
    """
    Handle around one SQLAlchemy engine and its session factory.

    Replaces process-global engine state: tests and applications build as
    many independent handles as they need and dispose of them explicitly.
    """

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_size: int = 20,
        max_overflow: int = 10,
        pool_pre_ping: bool = True,
        pool_timeout: int = 30,
        pool_recycle: int = 1800,
    ):
        url = make_url(database_url)
        self._dialect = url.get_backend_name()

        if self._dialect == "sqlite":
            self._engine = create_engine(
                database_url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            self._engine = create_engine(
                database_url,
                echo=echo,
                poolclass=QueuePool,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=pool_pre_ping,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                isolation_level="READ COMMITTED",
            )

        self._session_factory = sessionmaker(
            bind=self._engine, expire_on_commit=False,
        )

        logger.info(
            "engine_initialized",
            extra={
                "dialect": self._dialect,
                "pool_size": pool_size if self._dialect != "sqlite" else None,
                "echo": echo,
            },
        )

    @classmethod
    def from_settings(cls, settings: Any) -> "Database":
        """Build a handle from a ``DatabaseSettings``-shaped object."""
        return cls(
            settings.url,
            echo=settings.echo,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_timeout=settings.pool_timeout,
        )

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def dialect(self) -> str:
        return self._dialect

    @property
    def session_factory(self) -> sessionmaker[Session]:
        """Session factory, for callers that need one session per thread."""
        return self._session_factory

    def session(self) -> Session:
        """Open a new session.  The caller owns commit/rollback/close."""
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Postconditions: On normal exit, the session is committed and closed.
            On exception, the session is rolled back and closed and the
            exception is re-raised.

        Usage:
            with database.session_scope() as session:
                session.add(entity)
        """
        session = self.session()
        logger.debug("transaction_started")
        try:
            yield session
            session.commit()
            logger.debug("transaction_committed")
        except Exception:
            session.rollback()
            logger.warning("transaction_rolled_back", exc_info=True)
            raise
        finally:
            session.close()

    def create_all(self, install_guards: bool = True) -> None:
        """
        Create every ledger table and, optionally, register the ORM
        immutability guards on the append-only logs.
        """
        from inventory_kernel.db.base import Base
        from inventory_modules._orm_registry import import_all_orm_models

        import_all_orm_models()
        Base.metadata.create_all(self._engine)

        if install_guards:
            from inventory_kernel.db.immutability import register_immutability_listeners

            register_immutability_listeners()

        logger.info(
            "tables_created",
            extra={"table_count": len(Base.metadata.tables)},
        )

    def drop_all(self) -> None:
        """Drop every ledger table.  Primarily for tests."""
        from inventory_kernel.db.base import Base

        Base.metadata.drop_all(self._engine)

    def dispose(self) -> None:
        """Close pooled connections.  The handle must not be used afterwards."""
        self._engine.dispose()
        logger.info("engine_disposed", extra={"dialect": self._dialect})
