"""
Costing - Pure layer valuation for FIFO/LIFO/weighted-average costing.

The store-backed ValuationService lives in inventory_services.valuation_service.
"""

from inventory_engines.costing.layers import (
    COST_PRECISION,
    ConsumptionResult,
    CostedQuantity,
    CostLayer,
    CostMethod,
    LayerConsumption,
    consume_layers,
    fifo_cost,
    lifo_cost,
    quantize_cost,
    remaining_layers,
    weighted_average_consumption,
    weighted_average_cost,
)

__all__ = [
    "COST_PRECISION",
    "ConsumptionResult",
    "CostedQuantity",
    "CostLayer",
    "CostMethod",
    "LayerConsumption",
    "consume_layers",
    "fifo_cost",
    "lifo_cost",
    "quantize_cost",
    "remaining_layers",
    "weighted_average_consumption",
    "weighted_average_cost",
]
