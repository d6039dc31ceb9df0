"""
inventory_services.valuation_service -- Store-backed inventory valuation.

Responsibility:
    Turn the Transaction Log into cost layers and value stock on hand
    under FIFO, LIFO or weighted-average costing.  Receipts (PURCHASE
    transactions, including production output) are the layers; the pure
    Costing Engine does the arithmetic.

Architecture position:
    Services -- read-only orchestration over engines + modules.
    Reads through StockSelector; never writes.

Invariants enforced:
    - Read-only: no session.add(), flush() or commit().
    - FIFO/LIFO on-hand value never counts more units than are on hand.
    - Units on hand with no receipt behind them (for example stock
      transferred in, or an INCREASE adjustment) are reported as
      ``uncosted_quantity`` and valued at zero.

Failure modes:
    - ValueError from the engine on a negative quantity to consume.

Usage:
    valuation = ValuationService(session, tenant_id="acme")
    result = valuation.value_on_hand("FLOUR", "W1", CostMethod.FIFO)
    result.total_value
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session

from inventory_engines.costing import (
    ConsumptionResult,
    CostLayer,
    CostMethod,
    consume_layers,
    quantize_cost,
    remaining_layers,
    weighted_average_cost,
)
from inventory_kernel.logging_config import get_logger
from inventory_modules.stock.selectors import StockSelector

logger = get_logger("services.valuation")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class InventoryValuation:
    """Value of one item at one location under one cost method."""

    item_id: str
    location_id: str
    method: CostMethod
    quantity: Decimal
    unit_cost: Decimal
    total_value: Decimal
    layers: tuple[CostLayer, ...]
    uncosted_quantity: Decimal = _ZERO


class ValuationService:
    """
    Values stock from the receipt history.

    Contract:
        ``method`` defaults to the method given at construction (normally
        ``costing.default_method`` from settings).
    Non-goals:
        - Does not persist layers or consumption links; layers are
          recomputed from the append-only log on each call.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        default_method: CostMethod = CostMethod.WEIGHTED_AVERAGE,
        selector: StockSelector | None = None,
    ):
        self._selector = selector or StockSelector(session, tenant_id)
        self._default_method = CostMethod(default_method)

    @property
    def default_method(self) -> CostMethod:
        return self._default_method

    def receipt_layers(self, item_id: str, location_id: str) -> tuple[CostLayer, ...]:
        """Every receipt at the location as a cost layer, oldest first."""
        return self._selector.get_receipt_layers(item_id, location_id)

    def on_hand_layers(
        self,
        item_id: str,
        location_id: str,
        method: CostMethod | None = None,
    ) -> tuple[CostLayer, ...]:
        """The receipt layers still on hand under ``method``."""
        method = self._method(method)
        return remaining_layers(
            self.receipt_layers(item_id, location_id),
            self._on_hand(item_id, location_id),
            method,
        )

    def unit_cost(
        self,
        item_id: str,
        location_id: str,
        method: CostMethod | None = None,
    ) -> Decimal:
        """Average unit cost of stock on hand; zero when nothing is costed."""
        return self.value_on_hand(item_id, location_id, method).unit_cost

    def value_on_hand(
        self,
        item_id: str,
        location_id: str,
        method: CostMethod | None = None,
    ) -> InventoryValuation:
        """
        Value current on-hand quantity.

        Weighted average: on hand x average receipt cost.
        FIFO/LIFO: sum of the surviving layers.
        """
        method = self._method(method)
        quantity = self._on_hand(item_id, location_id)
        receipts = self.receipt_layers(item_id, location_id)
        layers = remaining_layers(receipts, quantity, method)

        if method == CostMethod.WEIGHTED_AVERAGE:
            costed = min(quantity, sum((layer.quantity for layer in receipts), _ZERO))
            unit_cost = weighted_average_cost(receipts)
            total = quantize_cost(costed * unit_cost)
        else:
            costed = sum((layer.quantity for layer in layers), _ZERO)
            total = quantize_cost(sum((layer.total_cost for layer in layers), _ZERO))
            unit_cost = quantize_cost(total / costed) if costed > 0 else _ZERO

        result = InventoryValuation(
            item_id=item_id,
            location_id=location_id,
            method=method,
            quantity=quantity,
            unit_cost=unit_cost,
            total_value=total,
            layers=layers,
            uncosted_quantity=quantity - costed,
        )
        logger.debug(
            "inventory_valued",
            extra={
                "item_id": item_id,
                "location_id": location_id,
                "method": method.value,
                "quantity": str(quantity),
                "total_value": str(total),
                "uncosted_quantity": str(result.uncosted_quantity),
            },
        )
        return result

    def consumption_cost(
        self,
        item_id: str,
        location_id: str,
        quantity: Decimal,
        method: CostMethod | None = None,
    ) -> ConsumptionResult:
        """
        Cost of drawing ``quantity`` from the stock on hand.

        Nothing is written; insufficient layers show up as
        ``remaining_quantity > 0``.
        """
        method = self._method(method)
        return consume_layers(self.on_hand_layers(item_id, location_id, method), quantity, method)

    def value_inventory(
        self,
        location_id: str | None = None,
        method: CostMethod | None = None,
    ) -> tuple[InventoryValuation, ...]:
        """Value every stock record, optionally at one location."""
        method = self._method(method)
        return tuple(
            self.value_on_hand(level.item_id, level.location_id, method)
            for summary in self._selector.get_stock_overview(location_id)
            for level in summary.levels
        )

    def _on_hand(self, item_id: str, location_id: str) -> Decimal:
        level = self._selector.find_stock_level(item_id, location_id)
        return level.quantity if level is not None else _ZERO

    def _method(self, method: CostMethod | None) -> CostMethod:
        return self._default_method if method is None else CostMethod(method)
