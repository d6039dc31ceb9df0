"""
Module: inventory_engines
Responsibility:
    Package entrypoint re-exporting the pure Costing Engine: layer costing,
    cost variance and replenishment formulas.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import inventory_kernel logging and sibling engine modules.
    MUST NOT import inventory_services or inventory_modules.

Invariants enforced:
    - Purity: engines never read the clock or the database.  Layer dates
      and consumption rates are passed in by the caller.
    - Decimal-only arithmetic; floats are never accepted as quantities or
      costs.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from inventory_engines import fifo_cost, CostLayer, economic_order_quantity
"""

from inventory_engines.costing import (
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
from inventory_engines.replenishment import (
    INFINITE_DAYS,
    DaysOfInventory,
    ReorderPointAnalysis,
    ZScoreFunction,
    ceil_decimal,
    days_of_inventory,
    economic_order_quantity,
    optimal_reorder_point,
    reorder_point,
    safety_stock,
    stock_turnover,
    z_score_for_service_level,
)
from inventory_engines.variance import CostVarianceResult, cost_variance

__all__ = [
    # Costing
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
    # Variance
    "CostVarianceResult",
    "cost_variance",
    # Replenishment
    "INFINITE_DAYS",
    "DaysOfInventory",
    "ReorderPointAnalysis",
    "ZScoreFunction",
    "ceil_decimal",
    "days_of_inventory",
    "economic_order_quantity",
    "optimal_reorder_point",
    "reorder_point",
    "safety_stock",
    "stock_turnover",
    "z_score_for_service_level",
]
