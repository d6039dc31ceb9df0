"""
Module ORM Registry (``inventory_modules._orm_registry``).

Responsibility
--------------
Ensure every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` contains its table definition before
``Database.create_all()`` runs.

Architecture position
---------------------
**Modules layer** -- utility.  Imported lazily by the kernel's
``Database.create_all()``; nothing else should need it.
"""


def import_all_orm_models() -> None:
    """Import every ``inventory_modules.*.orm`` module.  Idempotent."""
    # fmt: off
    import inventory_modules.alerts.orm  # noqa: F401
    import inventory_modules.production.orm  # noqa: F401
    import inventory_modules.stock.orm  # noqa: F401
    # fmt: on
