"""
Inventory Modules.

Stateful domain modules over the Inventory Kernel and Engines.  Each
module contains:
- Domain models (frozen dataclasses)
- ORM persistence
- A service owning its transaction boundaries
- Selectors for the read side

Modules:
- Stock: Stock Record Store, Transaction Log, Movement Log, stock operations
- Production: Production batches, recipes, batch workflow, lineage
- Alerts: Threshold evaluation and deduplicated stock alerts
"""

from inventory_modules import (
    alerts,
    production,
    stock,
)

__all__ = [
    "alerts",
    "production",
    "stock",
]
