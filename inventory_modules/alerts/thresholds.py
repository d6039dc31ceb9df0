"""
Threshold sources -- where alert thresholds come from.

Evaluation (``inventory_modules.alerts.evaluation``) only compares numbers.
A ``ThresholdSource`` decides the numbers for an (item, location):

- ``StaticThresholdSource``: fixed quantities with per-item overrides.
- ``ConsumptionThresholdSource``: low-stock and overstock levels relative
  to average stock over a trailing period, and a reorder point from
  average daily consumption and lead time.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from inventory_engines.replenishment import reorder_point
from inventory_kernel.logging_config import get_logger
from inventory_modules.alerts.models import StockThresholds
from inventory_modules.stock.selectors import StockSelector

logger = get_logger("modules.alerts.thresholds")


@runtime_checkable
class ThresholdSource(Protocol):
    """Supplies the thresholds one stock record is evaluated against."""

    def thresholds_for(self, item_id: str, location_id: str) -> StockThresholds: ...


class StaticThresholdSource:
    """
    Fixed thresholds, optionally overridden per item.

    ``overrides`` maps item ids to objects with ``low_stock``,
    ``overstock`` and ``reorder_point`` attributes; a ``None`` attribute
    falls back to the default.
    """

    def __init__(
        self,
        low_stock: Decimal | None = Decimal("10"),
        overstock: Decimal | None = Decimal("1000"),
        reorder_point: Decimal | None = Decimal("5"),
        overrides: Mapping[str, Any] | None = None,
    ):
        self._defaults = StockThresholds(
            low_stock=low_stock,
            overstock=overstock,
            reorder_point=reorder_point,
        )
        self._overrides = dict(overrides or {})

    @classmethod
    def from_settings(cls, alerts) -> StaticThresholdSource:
        """Build from an ``AlertSettings``."""
        return cls(
            low_stock=alerts.low_stock_quantity,
            overstock=alerts.overstock_quantity,
            reorder_point=alerts.reorder_quantity,
            overrides=alerts.item_overrides,
        )

    def thresholds_for(self, item_id: str, location_id: str) -> StockThresholds:
        override = self._overrides.get(item_id)
        if override is None:
            return self._defaults
        return StockThresholds(
            low_stock=_pick(override.low_stock, self._defaults.low_stock),
            overstock=_pick(override.overstock, self._defaults.overstock),
            reorder_point=_pick(override.reorder_point, self._defaults.reorder_point),
        )


def _pick(value: Decimal | None, default: Decimal | None) -> Decimal | None:
    return default if value is None else value


class ConsumptionThresholdSource:
    """
    Thresholds derived from movement history.

    Over the trailing ``period_days`` at the record's location:

    - average stock = (opening + current) / 2
    - low stock     = average stock x ``low_stock_percentage``
    - overstock     = average stock x ``overstock_multiplier`` (disabled
      while average stock is zero)
    - reorder point = ceil(avg daily consumption x lead time x (1 + safety pct))
    """

    def __init__(
        self,
        selector: StockSelector,
        period_days: int = 30,
        low_stock_percentage: Decimal = Decimal("0.1"),
        overstock_multiplier: Decimal = Decimal("3"),
        lead_time_days: Decimal = Decimal("7"),
        safety_stock_pct: Decimal = Decimal("0.2"),
    ):
        self._selector = selector
        self._period_days = period_days
        self._low_stock_percentage = low_stock_percentage
        self._overstock_multiplier = overstock_multiplier
        self._lead_time_days = lead_time_days
        self._safety_stock_pct = safety_stock_pct

    @classmethod
    def from_settings(cls, selector: StockSelector, alerts) -> ConsumptionThresholdSource:
        """Build from an ``AlertSettings``."""
        return cls(
            selector,
            period_days=alerts.consumption_period_days,
            low_stock_percentage=alerts.low_stock_percentage,
            overstock_multiplier=alerts.overstock_multiplier,
            lead_time_days=alerts.lead_time_days,
            safety_stock_pct=alerts.safety_stock_pct,
        )

    def thresholds_for(self, item_id: str, location_id: str) -> StockThresholds:
        analytics = self._selector.get_movement_analytics(
            item_id, period_days=self._period_days, location_id=location_id,
        )
        average_stock = (analytics.opening_quantity + analytics.current_quantity) / 2
        thresholds = StockThresholds(
            low_stock=average_stock * self._low_stock_percentage,
            overstock=(
                average_stock * self._overstock_multiplier if average_stock > 0 else None
            ),
            reorder_point=reorder_point(
                analytics.avg_daily_consumption,
                self._lead_time_days,
                self._safety_stock_pct,
            ),
        )
        logger.debug(
            "consumption_thresholds_derived",
            extra={
                "item_id": item_id,
                "location_id": location_id,
                "average_stock": str(average_stock),
                "avg_daily_consumption": str(analytics.avg_daily_consumption),
                "reorder_point": str(thresholds.reorder_point),
            },
        )
        return thresholds
