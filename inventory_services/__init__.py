"""
Inventory Services.

Stateful orchestration over the modules and engines:
- ValuationService: store-backed FIFO/LIFO/weighted-average valuation
- InventoryOrchestrator: builds and wires every service from settings
"""

from inventory_services.orchestrator import InventoryOrchestrator
from inventory_services.valuation_service import InventoryValuation, ValuationService

__all__ = [
    "InventoryOrchestrator",
    "InventoryValuation",
    "ValuationService",
]
