"""
Replenishment Formulas (``inventory_engines.replenishment``).

Responsibility
--------------
Stateless replenishment signals: economic order quantity (EOQ), safety
stock, reorder point, days of inventory on hand and stock turnover.

Architecture
------------
Layer: **Engines** -- pure functions.  No I/O, no session, no clock.
Called from the alert threshold sources, the movement analytics selector
and from tests.

Invariants
----------
- All numeric inputs and outputs use ``Decimal`` (never ``float``).
- Quantities that represent whole units to order or hold (EOQ, safety
  stock, reorder point) are rounded UP to an integer.
- "Infinite" days of inventory is an explicit flag, never a large number.

Failure Modes
-------------
- ``ValueError`` on negative demand, cost, lead time or deviation inputs.
- ``economic_order_quantity`` returns 0 (not an error) when the holding
  cost is not positive.

Known limitation
----------------
``z_score_for_service_level`` is a three-bucket approximation of the
inverse normal CDF (0.95 -> 1.65, 0.90 -> 1.28, otherwise 1.0).  It is a
parameter of ``safety_stock`` so callers can supply an exact function.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Callable

from inventory_engines.tracer import traced_engine

ZScoreFunction = Callable[[Decimal], Decimal]

_ZERO = Decimal("0")
_TWO_PLACES = Decimal("0.01")
_DAYS_PRECISION = Decimal("0.0001")


def ceil_decimal(value: Decimal) -> Decimal:
    """Round up to the next integer, keeping Decimal type."""
    return value.to_integral_value(rounding=ROUND_CEILING)


def z_score_for_service_level(service_level: Decimal) -> Decimal:
    """
    Approximate z-score for a target service level.

    >>> z_score_for_service_level(Decimal("0.97"))
    Decimal('1.65')
    """
    if service_level >= Decimal("0.95"):
        return Decimal("1.65")
    if service_level >= Decimal("0.90"):
        return Decimal("1.28")
    return Decimal("1.0")


@traced_engine(
    "replenishment.eoq", "1.0",
    fingerprint_fields=("annual_demand", "ordering_cost", "holding_cost"),
)
def economic_order_quantity(
    annual_demand: Decimal,
    ordering_cost: Decimal,
    holding_cost: Decimal,
) -> Decimal:
    """
    Economic Order Quantity using the Wilson formula, rounded up.

    Formula: ``EOQ = ceil(sqrt(2 * D * S / H))``

    Preconditions:
        - ``annual_demand >= 0`` and ``ordering_cost >= 0``.

    Postconditions:
        - Returns ``0`` when ``holding_cost <= 0``.
        - Otherwise a non-negative integral ``Decimal``.

    Args:
        annual_demand: Annual demand in units (D).
        ordering_cost: Cost per order placed (S).
        holding_cost: Annual holding cost per unit (H).

    Raises:
        ValueError: If demand or ordering cost is negative.
    """
    if annual_demand < 0:
        raise ValueError(f"annual_demand must be non-negative, got {annual_demand}")
    if ordering_cost < 0:
        raise ValueError(f"ordering_cost must be non-negative, got {ordering_cost}")
    if holding_cost <= 0:
        return _ZERO

    ratio = Decimal("2") * annual_demand * ordering_cost / holding_cost
    return ceil_decimal(ratio.sqrt())


def safety_stock(
    avg_demand: Decimal,
    demand_std_dev: Decimal,
    service_level: Decimal = Decimal("0.95"),
    lead_time_days: Decimal = Decimal("1"),
    z_score: ZScoreFunction = z_score_for_service_level,
) -> Decimal:
    """
    Buffer stock against demand variability over the lead time.

    Formula: ``ceil(z(service_level) * demand_std_dev * sqrt(lead_time_days))``

    ``avg_demand`` does not enter the formula; it is accepted so callers can
    pass one demand profile to every replenishment function.

    Raises:
        ValueError: If the deviation or lead time is negative.
    """
    if demand_std_dev < 0:
        raise ValueError(f"demand_std_dev must be non-negative, got {demand_std_dev}")
    if lead_time_days < 0:
        raise ValueError(f"lead_time_days must be non-negative, got {lead_time_days}")

    lead_time = Decimal(lead_time_days)
    return ceil_decimal(z_score(service_level) * demand_std_dev * lead_time.sqrt())


def reorder_point(
    avg_consumption: Decimal,
    lead_time_days: Decimal,
    safety_stock_pct: Decimal = Decimal("0.2"),
) -> Decimal:
    """
    Reorder point with a proportional safety margin.

    Formula: ``ceil(avg_consumption * lead_time_days * (1 + safety_stock_pct))``

    Raises:
        ValueError: On negative inputs.
    """
    if avg_consumption < 0:
        raise ValueError(f"avg_consumption must be non-negative, got {avg_consumption}")
    if lead_time_days < 0:
        raise ValueError(f"lead_time_days must be non-negative, got {lead_time_days}")
    if safety_stock_pct < 0:
        raise ValueError(f"safety_stock_pct must be non-negative, got {safety_stock_pct}")

    lead_time_consumption = avg_consumption * lead_time_days
    return ceil_decimal(lead_time_consumption * (Decimal("1") + safety_stock_pct))


@dataclass(frozen=True)
class ReorderPointAnalysis:
    """Breakdown of a statistically derived reorder point."""

    reorder_point: Decimal
    lead_time_demand: Decimal
    safety_stock: Decimal
    service_level: Decimal
    lead_time_days: Decimal
    avg_demand: Decimal
    demand_std_dev: Decimal


def optimal_reorder_point(
    avg_demand: Decimal,
    lead_time_days: Decimal,
    demand_std_dev: Decimal,
    service_level: Decimal = Decimal("0.95"),
    safety_factor: Decimal = Decimal("1.0"),
    z_score: ZScoreFunction = z_score_for_service_level,
) -> ReorderPointAnalysis:
    """
    Reorder point = lead-time demand + safety stock scaled by ``safety_factor``.

    All three reported quantities are rounded up.
    """
    lead_time_demand = avg_demand * lead_time_days
    buffer = safety_stock(
        avg_demand, demand_std_dev, service_level, lead_time_days, z_score,
    ) * safety_factor

    return ReorderPointAnalysis(
        reorder_point=ceil_decimal(lead_time_demand + buffer),
        lead_time_demand=ceil_decimal(lead_time_demand),
        safety_stock=ceil_decimal(buffer),
        service_level=service_level,
        lead_time_days=lead_time_days,
        avg_demand=avg_demand,
        demand_std_dev=demand_std_dev,
    )


@dataclass(frozen=True)
class DaysOfInventory:
    """
    Days of stock on hand at the current consumption rate.

    When consumption is zero or negative the cover is unbounded:
    ``is_infinite`` is True and ``days`` is None.
    """

    days: Decimal | None
    is_infinite: bool

    @property
    def whole_days(self) -> Decimal | None:
        """Days rounded up to a whole day, or None when infinite."""
        if self.days is None:
            return None
        return ceil_decimal(self.days)

    def __str__(self) -> str:
        return "infinite" if self.is_infinite else str(self.days)


INFINITE_DAYS = DaysOfInventory(days=None, is_infinite=True)


def days_of_inventory(
    current_stock: Decimal,
    avg_daily_consumption: Decimal,
) -> DaysOfInventory:
    """``current_stock / avg_daily_consumption``, or INFINITE_DAYS."""
    if avg_daily_consumption <= 0:
        return INFINITE_DAYS
    days = (current_stock / avg_daily_consumption).quantize(
        _DAYS_PRECISION, rounding=ROUND_HALF_UP,
    )
    return DaysOfInventory(days=days, is_infinite=False)


def stock_turnover(
    cost_of_goods_sold: Decimal,
    average_inventory_value: Decimal,
) -> Decimal:
    """COGS / average inventory value, two places; 0 when value <= 0."""
    if average_inventory_value <= 0:
        return _ZERO
    return (cost_of_goods_sold / average_inventory_value).quantize(
        _TWO_PLACES, rounding=ROUND_HALF_UP,
    )
