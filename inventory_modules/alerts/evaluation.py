"""
Alert evaluation -- stateless threshold predicates.

``evaluate`` compares a supplied quantity with supplied thresholds.  Where
the thresholds come from is the caller's policy (see
``inventory_modules.alerts.thresholds``).
"""

from __future__ import annotations

from decimal import Decimal

from inventory_modules.alerts.models import AlertSignal, AlertType, StockThresholds


def evaluate(quantity: Decimal, thresholds: StockThresholds) -> tuple[AlertSignal, ...]:
    """
    Signals raised by ``quantity``, in LOW_STOCK, OVERSTOCK, REORDER order.

    - LOW_STOCK when ``quantity <= low_stock``
    - OVERSTOCK when ``quantity >= overstock``
    - REORDER when ``quantity <= reorder_point``
    """
    signals: list[AlertSignal] = []
    if thresholds.low_stock is not None and quantity <= thresholds.low_stock:
        signals.append(AlertSignal(AlertType.LOW_STOCK, quantity, thresholds.low_stock))
    if thresholds.overstock is not None and quantity >= thresholds.overstock:
        signals.append(AlertSignal(AlertType.OVERSTOCK, quantity, thresholds.overstock))
    if thresholds.reorder_point is not None and quantity <= thresholds.reorder_point:
        signals.append(AlertSignal(AlertType.REORDER, quantity, thresholds.reorder_point))
    return tuple(signals)


_MESSAGES = {
    AlertType.LOW_STOCK: "Low stock: {item_id} has {quantity} remaining at {location_id} (threshold {threshold})",
    AlertType.OVERSTOCK: "Overstock: {item_id} has {quantity} at {location_id} (threshold {threshold})",
    AlertType.REORDER: "Reorder: {item_id} at {location_id} is at {quantity}, reorder point {threshold}",
}


def describe(signal: AlertSignal, item_id: str, location_id: str) -> str:
    """Human-readable alert message for a signal."""
    return _MESSAGES[signal.alert_type].format(
        item_id=item_id,
        location_id=location_id,
        quantity=signal.quantity,
        threshold=signal.threshold,
    )
