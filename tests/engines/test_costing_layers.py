"""
Tests for the layer Costing Engine.

Covers:
- FIFO / LIFO consumption order and extended cost
- Weighted-average unit cost and consumption
- Insufficient layer supply
- Layers surviving earlier issues (remaining_layers)
- Input validation
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from inventory_engines.costing import (
    CostLayer,
    CostMethod,
    consume_layers,
    fifo_cost,
    lifo_cost,
    quantize_cost,
    remaining_layers,
    weighted_average_consumption,
    weighted_average_cost,
)

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _layer(layer_id, quantity, cost, day):
    return CostLayer(
        layer_id=layer_id,
        quantity=Decimal(quantity),
        cost_per_unit=Decimal(cost),
        date=T0 + timedelta(days=day),
    )


@dataclass(frozen=True)
class Row:
    quantity: Decimal
    cost_per_unit: Decimal | None


@pytest.fixture
def two_layers():
    return [_layer("L1", "10", "2", 1), _layer("L2", "30", "4", 2)]


class TestFifo:
    """Oldest layers are drawn first."""

    def test_spans_layers_oldest_first(self, two_layers):
        result = fifo_cost(two_layers, Decimal("15"))

        assert result.method == CostMethod.FIFO
        assert result.total_cost == Decimal("40")
        assert [c.layer_id for c in result.consumed_layers] == ["L1", "L2"]
        assert [c.quantity for c in result.consumed_layers] == [Decimal("10"), Decimal("5")]
        assert result.is_fully_satisfied
        assert result.average_unit_cost == Decimal("2.666667")

    def test_input_order_does_not_matter(self, two_layers):
        forward = fifo_cost(two_layers, Decimal("15"))
        backward = fifo_cost(list(reversed(two_layers)), Decimal("15"))

        assert forward.consumed_layers == backward.consumed_layers

    def test_equal_dates_keep_input_order(self):
        layers = [_layer("A", "5", "1", 1), _layer("B", "5", "9", 1)]

        result = fifo_cost(layers, Decimal("5"))

        assert result.consumed_layers[0].layer_id == "A"

    def test_insufficient_supply_reports_remaining(self, two_layers):
        result = fifo_cost(two_layers, Decimal("50"))

        assert result.consumed_quantity == Decimal("40")
        assert result.remaining_quantity == Decimal("10")
        assert result.total_cost == Decimal("140")
        assert not result.is_fully_satisfied

    def test_zero_quantity_consumes_nothing(self, two_layers):
        result = fifo_cost(two_layers, Decimal("0"))

        assert result.layer_count == 0
        assert result.total_cost == Decimal("0")
        assert result.average_unit_cost == Decimal("0")

    def test_negative_quantity_rejected(self, two_layers):
        with pytest.raises(ValueError, match="cannot be negative"):
            fifo_cost(two_layers, Decimal("-1"))


class TestLifo:
    """Newest layers are drawn first."""

    def test_draws_newest_layer(self, two_layers):
        result = lifo_cost(two_layers, Decimal("15"))

        assert result.method == CostMethod.LIFO
        assert result.total_cost == Decimal("60")
        assert result.layer_count == 1
        assert result.consumed_layers[0].layer_id == "L2"

    def test_spills_into_older_layer(self, two_layers):
        result = lifo_cost(two_layers, Decimal("35"))

        assert [c.layer_id for c in result.consumed_layers] == ["L2", "L1"]
        assert result.total_cost == Decimal("130")


class TestWeightedAverage:

    def test_average_of_layers(self, two_layers):
        assert weighted_average_cost(two_layers) == Decimal("3.5")

    def test_empty_input_is_zero(self):
        assert weighted_average_cost([]) == Decimal("0")

    def test_outbound_rows_are_ignored(self):
        rows = [
            Row(Decimal("10"), Decimal("2")),
            Row(Decimal("-5"), Decimal("100")),
            Row(Decimal("30"), Decimal("4")),
        ]

        assert weighted_average_cost(rows) == Decimal("3.5")

    def test_missing_cost_counts_as_zero(self):
        rows = [Row(Decimal("10"), None), Row(Decimal("10"), Decimal("4"))]

        assert weighted_average_cost(rows) == Decimal("2")

    def test_consumption_is_a_single_synthetic_line(self, two_layers):
        result = weighted_average_consumption(two_layers, Decimal("10"))

        assert result.method == CostMethod.WEIGHTED_AVERAGE
        assert result.total_cost == Decimal("35")
        assert result.layer_count == 1
        assert result.consumed_layers[0].layer_id == "weighted_average"

    def test_consumption_capped_by_supply(self, two_layers):
        result = weighted_average_consumption(two_layers, Decimal("45"))

        assert result.consumed_quantity == Decimal("40")
        assert result.remaining_quantity == Decimal("5")


class TestConsumeLayers:

    @pytest.mark.parametrize(
        "method, expected",
        [
            (CostMethod.FIFO, Decimal("40")),
            (CostMethod.LIFO, Decimal("60")),
            (CostMethod.WEIGHTED_AVERAGE, Decimal("52.5")),
        ],
    )
    def test_dispatch(self, two_layers, method, expected):
        assert consume_layers(two_layers, Decimal("15"), method).total_cost == expected

    def test_accepts_method_value(self, two_layers):
        assert consume_layers(two_layers, Decimal("15"), "fifo").method == CostMethod.FIFO


class TestRemainingLayers:
    """What is still on hand after earlier issues."""

    def test_fifo_keeps_newest_units(self, two_layers):
        kept = remaining_layers(two_layers, Decimal("15"), CostMethod.FIFO)

        assert [(k.layer_id, k.quantity) for k in kept] == [("L2", Decimal("15"))]

    def test_lifo_keeps_oldest_units(self, two_layers):
        kept = remaining_layers(two_layers, Decimal("15"), CostMethod.LIFO)

        assert [(k.layer_id, k.quantity) for k in kept] == [
            ("L1", Decimal("10")),
            ("L2", Decimal("5")),
        ]

    def test_weighted_average_keeps_every_receipt(self, two_layers):
        kept = remaining_layers(two_layers, Decimal("1"), CostMethod.WEIGHTED_AVERAGE)

        assert kept == tuple(two_layers)

    def test_nothing_on_hand(self, two_layers):
        assert remaining_layers(two_layers, Decimal("0"), CostMethod.FIFO) == ()

    def test_never_exceeds_receipts(self, two_layers):
        kept = remaining_layers(two_layers, Decimal("100"), CostMethod.FIFO)

        assert sum(k.quantity for k in kept) == Decimal("40")


class TestCostLayerValidation:

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValueError):
            _layer("X", "-1", "1", 0)

    def test_negative_cost_rejected(self):
        with pytest.raises(ValueError):
            _layer("X", "1", "-1", 0)

    def test_total_cost(self):
        assert _layer("X", "3", "2.5", 0).total_cost == Decimal("7.5")


class TestQuantizeCost:

    def test_rounds_half_up_to_six_places(self):
        assert quantize_cost(Decimal("1.0000005")) == Decimal("1.000001")
        assert quantize_cost(Decimal("1.0000004")) == Decimal("1.000000")
