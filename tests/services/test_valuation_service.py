"""
ValuationService tests: stock on hand valued from the receipt history.

Fixture history at FLOUR@W1: 10 @ 2, then 30 @ 4, then 15 issued,
leaving 25 on hand.
"""

from decimal import Decimal

import pytest

from inventory_engines.costing import CostMethod
from inventory_services.valuation_service import ValuationService


@pytest.fixture
def valuation(session, tenant_id, stock_selector):
    return ValuationService(session, tenant_id, selector=stock_selector)


@pytest.fixture
def flour_history(stock_service, receive_stock, test_actor_id):
    receive_stock("FLOUR", "W1", "10", "2")
    receive_stock("FLOUR", "W1", "30", "4")
    stock_service.issue("FLOUR", "W1", Decimal("15"), "SO-1", test_actor_id)


class TestValueOnHand:

    def test_weighted_average(self, valuation, flour_history):
        result = valuation.value_on_hand("FLOUR", "W1")

        assert result.method == CostMethod.WEIGHTED_AVERAGE
        assert result.quantity == Decimal("25")
        assert result.unit_cost == Decimal("3.5")
        assert result.total_value == Decimal("87.5")
        assert result.uncosted_quantity == Decimal("0")

    def test_fifo_keeps_newest_units(self, valuation, flour_history):
        result = valuation.value_on_hand("FLOUR", "W1", CostMethod.FIFO)

        assert [(lay.quantity, lay.cost_per_unit) for lay in result.layers] == [
            (Decimal("25"), Decimal("4")),
        ]
        assert result.total_value == Decimal("100")
        assert result.unit_cost == Decimal("4")

    def test_lifo_keeps_oldest_units(self, valuation, flour_history):
        result = valuation.value_on_hand("FLOUR", "W1", CostMethod.LIFO)

        assert [lay.quantity for lay in result.layers] == [Decimal("10"), Decimal("15")]
        assert result.total_value == Decimal("80")
        assert result.unit_cost == Decimal("3.2")

    def test_method_accepts_string(self, valuation, flour_history):
        assert valuation.value_on_hand("FLOUR", "W1", "fifo").method == CostMethod.FIFO

    def test_transferred_stock_is_uncosted(self, valuation, stock_service, flour_history, test_actor_id):
        stock_service.transfer("FLOUR", "W1", "W2", Decimal("4"), "TR-1", test_actor_id)

        result = valuation.value_on_hand("FLOUR", "W2", CostMethod.FIFO)

        assert result.quantity == Decimal("4")
        assert result.uncosted_quantity == Decimal("4")
        assert result.total_value == Decimal("0")
        assert result.unit_cost == Decimal("0")

    def test_unknown_record_is_worth_nothing(self, valuation):
        result = valuation.value_on_hand("FLOUR", "W1")

        assert result.quantity == Decimal("0")
        assert result.total_value == Decimal("0")
        assert result.layers == ()

    def test_default_method_from_construction(self, session, tenant_id, stock_selector, flour_history):
        service = ValuationService(session, tenant_id, default_method=CostMethod.LIFO, selector=stock_selector)

        assert service.default_method == CostMethod.LIFO
        assert service.unit_cost("FLOUR", "W1") == Decimal("3.2")


class TestConsumptionCost:

    def test_fifo_draws_from_surviving_layers(self, valuation, flour_history):
        result = valuation.consumption_cost("FLOUR", "W1", Decimal("5"), CostMethod.FIFO)

        assert result.is_fully_satisfied
        assert result.total_cost == Decimal("20")

    def test_weighted_average(self, valuation, flour_history):
        result = valuation.consumption_cost("FLOUR", "W1", Decimal("5"))

        assert result.total_cost == Decimal("17.5")

    def test_shortfall_is_reported_not_raised(self, valuation, flour_history):
        result = valuation.consumption_cost("FLOUR", "W1", Decimal("30"), CostMethod.FIFO)

        assert not result.is_fully_satisfied
        assert result.remaining_quantity == Decimal("5")

    def test_nothing_is_written(self, valuation, stock_selector, flour_history):
        valuation.consumption_cost("FLOUR", "W1", Decimal("5"))

        assert stock_selector.get_stock_level("FLOUR", "W1").quantity == Decimal("25")


class TestValueInventory:

    def test_values_every_record(self, valuation, receive_stock, flour_history):
        receive_stock("SUGAR", "W1", "4", "3")
        receive_stock("SUGAR", "W2", "1", "3")

        everything = valuation.value_inventory()
        w1 = valuation.value_inventory(location_id="W1")

        assert len(everything) == 3
        assert {(v.item_id, v.location_id) for v in w1} == {("FLOUR", "W1"), ("SUGAR", "W1")}
        assert sum(v.total_value for v in w1) == Decimal("99.5")
