"""
inventory_engines.variance -- Standard vs. actual cost variance.

Responsibility:
    Compare a standard unit cost against an actual unit cost over a
    quantity and classify the difference.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Used by production costing (recipe standard vs. consumed actual).

Invariants enforced:
    - variance = actual_total - standard_total.
    - is_favorable is True exactly when variance < 0.
    - variance_percent is 0 when standard_total is 0 (no division by zero).

Usage:
    result = cost_variance(Decimal("10"), Decimal("10.50"), Decimal("100"))
    result.variance          # Decimal('50.000000') -- unfavorable
    result.variance_percent  # Decimal('5.00')
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from inventory_engines.costing.layers import quantize_cost
from inventory_engines.tracer import traced_engine

_PERCENT = Decimal("0.01")


@dataclass(frozen=True)
class CostVarianceResult:
    """Result of a cost variance calculation. All fields are immutable."""

    standard_cost: Decimal
    actual_cost: Decimal
    quantity: Decimal
    standard_total: Decimal
    actual_total: Decimal
    variance: Decimal
    variance_percent: Decimal
    is_favorable: bool

    @property
    def absolute_variance(self) -> Decimal:
        return abs(self.variance)


@traced_engine(
    "costing.variance", "1.0",
    fingerprint_fields=("standard_cost", "actual_cost", "quantity"),
)
def cost_variance(
    standard_cost: Decimal,
    actual_cost: Decimal,
    quantity: Decimal,
) -> CostVarianceResult:
    """
    Compute (actual - standard) x quantity and its percentage of standard.

    Totals and the variance are rounded to six places, the percentage to
    two.
    """
    standard_total = standard_cost * quantity
    actual_total = actual_cost * quantity
    variance = actual_total - standard_total

    if standard_total == 0:
        percent = Decimal("0")
    else:
        percent = variance / standard_total * Decimal("100")

    return CostVarianceResult(
        standard_cost=standard_cost,
        actual_cost=actual_cost,
        quantity=quantity,
        standard_total=quantize_cost(standard_total),
        actual_total=quantize_cost(actual_total),
        variance=quantize_cost(variance),
        variance_percent=percent.quantize(_PERCENT, rounding=ROUND_HALF_UP),
        is_favorable=variance < 0,
    )
