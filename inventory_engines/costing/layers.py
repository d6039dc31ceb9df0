"""
inventory_engines.costing.layers -- FIFO / LIFO / weighted-average costing.

Responsibility:
    Value a quantity drawn from a set of stock layers (discrete receipts,
    each with its own quantity, unit cost and date) and compute the
    weighted-average unit cost of a set of inbound transactions.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The store-backed ValuationService (inventory_services) builds the
    layer lists from the transaction log and calls into this module.

Invariants enforced:
    - Layers are immutable; quantity and cost_per_unit are non-negative.
    - ``consumed_quantity <= quantity`` requested, always.
    - Equal-date layers keep their input order (stable sort) under both
      FIFO and LIFO.
    - ``weighted_average_cost`` is independent of input order.

Failure modes:
    - ValueError from CostLayer.__post_init__ on negative quantity or cost.
    - ValueError if the quantity to consume is negative.
    - Insufficient supply is NOT an error: ``remaining_quantity > 0`` is
      reported and the caller decides.

Audit relevance:
    ConsumptionResult lists every layer drawn from (layer id, quantity,
    unit cost, extended cost), so a costed issue can be traced back to the
    receipts that supplied it.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Protocol

from inventory_engines.tracer import traced_engine
from inventory_kernel.logging_config import get_logger

logger = get_logger("engines.costing.layers")

# Totals and unit costs are reported to six decimal places.
COST_PRECISION = Decimal("0.000001")

_ZERO = Decimal("0")


def quantize_cost(value: Decimal) -> Decimal:
    """Round a monetary amount to COST_PRECISION, half-up."""
    return value.quantize(COST_PRECISION, rounding=ROUND_HALF_UP)


class CostMethod(str, Enum):
    """Inventory cost flow assumptions."""

    FIFO = "fifo"                          # First-in, first-out
    LIFO = "lifo"                          # Last-in, first-out
    WEIGHTED_AVERAGE = "weighted_average"  # Moving weighted average


@dataclass(frozen=True, slots=True)
class CostLayer:
    """
    One lot of stock available for costing.

    ``date`` orders the layer for FIFO/LIFO.  ``layer_id`` is whatever the
    caller uses to identify the source receipt (usually a transaction id).
    """

    layer_id: str
    quantity: Decimal
    cost_per_unit: Decimal
    date: datetime

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError(f"Layer quantity cannot be negative, got {self.quantity}")
        if self.cost_per_unit < 0:
            raise ValueError(
                f"Layer cost per unit cannot be negative, got {self.cost_per_unit}"
            )

    @property
    def total_cost(self) -> Decimal:
        return self.quantity * self.cost_per_unit


@dataclass(frozen=True, slots=True)
class LayerConsumption:
    """Quantity drawn from a single layer and its extended cost."""

    layer_id: str
    quantity: Decimal
    cost_per_unit: Decimal
    total_cost: Decimal


@dataclass(frozen=True, slots=True)
class ConsumptionResult:
    """
    Outcome of drawing a quantity from a layer set.

    ``remaining_quantity`` is the part of the request that the layers could
    not supply; it is zero when supply was sufficient.
    """

    method: CostMethod
    requested_quantity: Decimal
    consumed_quantity: Decimal
    remaining_quantity: Decimal
    total_cost: Decimal
    consumed_layers: tuple[LayerConsumption, ...]

    @property
    def is_fully_satisfied(self) -> bool:
        return self.remaining_quantity == 0

    @property
    def layer_count(self) -> int:
        return len(self.consumed_layers)

    @property
    def average_unit_cost(self) -> Decimal:
        """Weighted average unit cost of what was consumed."""
        if self.consumed_quantity == 0:
            return _ZERO
        return quantize_cost(self.total_cost / self.consumed_quantity)


class CostedQuantity(Protocol):
    """Anything with a signed quantity and an optional unit cost."""

    @property
    def quantity(self) -> Decimal: ...

    @property
    def cost_per_unit(self) -> Decimal | None: ...


def _consume(
    ordered_layers: Iterable[CostLayer],
    quantity: Decimal,
    method: CostMethod,
) -> ConsumptionResult:
    if quantity < 0:
        raise ValueError(f"Quantity to consume cannot be negative, got {quantity}")

    remaining = quantity
    total_cost = _ZERO
    consumed: list[LayerConsumption] = []

    for layer in ordered_layers:
        if remaining <= 0:
            break
        take = min(remaining, layer.quantity)
        if take <= 0:
            continue
        extended = take * layer.cost_per_unit
        total_cost += extended
        remaining -= take
        consumed.append(
            LayerConsumption(
                layer_id=layer.layer_id,
                quantity=take,
                cost_per_unit=layer.cost_per_unit,
                total_cost=extended,
            )
        )

    if remaining > 0:
        logger.info(
            "layer_supply_insufficient",
            extra={
                "method": method.value,
                "requested_quantity": str(quantity),
                "unfilled_quantity": str(remaining),
            },
        )

    return ConsumptionResult(
        method=method,
        requested_quantity=quantity,
        consumed_quantity=quantity - remaining,
        remaining_quantity=remaining,
        total_cost=quantize_cost(total_cost),
        consumed_layers=tuple(consumed),
    )


@traced_engine("costing.fifo", "1.0", fingerprint_fields=("layers", "quantity"))
def fifo_cost(layers: Sequence[CostLayer], quantity: Decimal) -> ConsumptionResult:
    """
    Cost ``quantity`` drawn oldest-layer-first.

    Layers with equal dates are drawn in input order.
    """
    ordered = sorted(layers, key=lambda layer: layer.date)
    return _consume(ordered, quantity, CostMethod.FIFO)


@traced_engine("costing.lifo", "1.0", fingerprint_fields=("layers", "quantity"))
def lifo_cost(layers: Sequence[CostLayer], quantity: Decimal) -> ConsumptionResult:
    """
    Cost ``quantity`` drawn newest-layer-first.

    Layers with equal dates are drawn in input order (``reverse=True``
    keeps sort stability).
    """
    ordered = sorted(layers, key=lambda layer: layer.date, reverse=True)
    return _consume(ordered, quantity, CostMethod.LIFO)


@traced_engine("costing.weighted_average", "1.0")
def weighted_average_cost(transactions: Iterable[CostedQuantity]) -> Decimal:
    """
    Weighted average unit cost: Σ(qty·cost) / Σ(qty) over inbound rows.

    Only rows with ``quantity > 0`` participate; a missing cost counts as
    zero.  Returns 0 when no inbound quantity exists.

    Example:
        >>> weighted_average_cost([Row(Decimal("10"), Decimal("2")),
        ...                        Row(Decimal("30"), Decimal("4"))])
        Decimal('3.500000')
    """
    total_cost = _ZERO
    total_quantity = _ZERO
    for txn in transactions:
        qty = txn.quantity
        if qty > 0:
            total_cost += qty * (txn.cost_per_unit or _ZERO)
            total_quantity += qty

    if total_quantity == 0:
        return _ZERO
    return quantize_cost(total_cost / total_quantity)


def weighted_average_consumption(
    layers: Sequence[CostLayer],
    quantity: Decimal,
) -> ConsumptionResult:
    """
    Cost ``quantity`` at the weighted average of the whole layer set.

    The breakdown is a single synthetic line since averaging does not draw
    from individual lots.
    """
    if quantity < 0:
        raise ValueError(f"Quantity to consume cannot be negative, got {quantity}")

    available = sum((layer.quantity for layer in layers), _ZERO)
    unit_cost = weighted_average_cost(layers)
    take = min(quantity, available)
    total = quantize_cost(take * unit_cost)
    lines: tuple[LayerConsumption, ...] = ()
    if take > 0:
        lines = (
            LayerConsumption(
                layer_id="weighted_average",
                quantity=take,
                cost_per_unit=unit_cost,
                total_cost=total,
            ),
        )
    return ConsumptionResult(
        method=CostMethod.WEIGHTED_AVERAGE,
        requested_quantity=quantity,
        consumed_quantity=take,
        remaining_quantity=quantity - take,
        total_cost=total,
        consumed_layers=lines,
    )


def consume_layers(
    layers: Sequence[CostLayer],
    quantity: Decimal,
    method: CostMethod,
) -> ConsumptionResult:
    """Dispatch to the consumption function for ``method``."""
    method = CostMethod(method)
    if method == CostMethod.FIFO:
        return fifo_cost(layers, quantity)
    if method == CostMethod.LIFO:
        return lifo_cost(layers, quantity)
    return weighted_average_consumption(layers, quantity)


def remaining_layers(
    receipts: Sequence[CostLayer],
    on_hand: Decimal,
    method: CostMethod,
) -> tuple[CostLayer, ...]:
    """
    The receipt layers still on hand after earlier issues.

    Under FIFO the oldest units left first, so what remains is the newest
    ``on_hand`` units; under LIFO it is the oldest.  Weighted average keeps
    every receipt (the average does not depend on which units left).  The
    result is in date order; under FIFO/LIFO it never holds more than
    ``on_hand`` units.
    """
    method = CostMethod(method)
    if method == CostMethod.WEIGHTED_AVERAGE:
        return tuple(sorted(receipts, key=lambda layer: layer.date))
    if on_hand <= 0:
        return ()

    # Survivors are drawn from the end opposite to the issue order.
    survivors = lifo_cost if method == CostMethod.FIFO else fifo_cost
    drawn = survivors(receipts, on_hand)
    by_id = {layer.layer_id: layer for layer in receipts}
    kept = [
        CostLayer(
            layer_id=line.layer_id,
            quantity=line.quantity,
            cost_per_unit=line.cost_per_unit,
            date=by_id[line.layer_id].date,
        )
        for line in drawn.consumed_layers
    ]
    return tuple(sorted(kept, key=lambda layer: layer.date))
