"""
Module: inventory_kernel.selectors.base
Responsibility: Base class for read-only, tenant-scoped query selectors.
    Selectors are the read side of the stock ledger: they turn ORM rows into
    frozen DTOs and never mutate.
Architecture position: Kernel > Selectors.  Subclassed by module selectors
    (inventory_modules.stock.selectors).

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(), delete(),
      commit() or flush().
    - DTO return convention: selectors return frozen dataclasses, never ORM
      instances.
    - Session ownership: the caller owns the session and its transaction.
"""

from abc import ABC
from decimal import Decimal
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from inventory_kernel.exceptions import ValidationError

MAX_PAGE_SIZE = 500


class BaseSelector(ABC):
    """
    Abstract base class for tenant-scoped selectors.

    Contract:
        Accepts a Session and a tenant id from the caller, performs
        read-only queries filtered to that tenant, returns DTOs.
    """

    def __init__(self, session: Session, tenant_id: str):
        self.session = session
        self.tenant_id = tenant_id

    def _count(self, stmt: Select) -> int:
        return self.session.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        ).scalar_one()

    @staticmethod
    def _page_bounds(page: int, limit: int) -> tuple[int, int]:
        """Validate 1-based page/limit and return (offset, limit)."""
        if page < 1:
            raise ValidationError(f"page must be at least 1, got {page}")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(
                f"limit must be between 1 and {MAX_PAGE_SIZE}, got {limit}"
            )
        return (page - 1) * limit, limit

    @staticmethod
    def _decimal(value: Any) -> Decimal:
        """Coerce an aggregate result (None, int, Decimal) to Decimal."""
        if value is None:
            return Decimal("0")
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))
