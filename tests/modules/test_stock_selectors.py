"""
StockSelector tests: levels, histories, movement analytics, receipt
layers and ledger replay.
"""

from decimal import Decimal

import pytest

from inventory_kernel.exceptions import StockRecordNotFoundError, ValidationError
from inventory_modules.stock.models import MovementDirection, TransactionType
from inventory_modules.stock.service import StockOperationsService


class TestStockLevels:

    def test_get_stock_level(self, stock_selector, receive_stock):
        receive_stock("FLOUR", "W1", "10")

        level = stock_selector.get_stock_level("FLOUR", "W1")

        assert level.quantity == Decimal("10")
        assert level.available == Decimal("10")

    def test_missing_level(self, stock_selector):
        assert stock_selector.find_stock_level("FLOUR", "W1") is None
        with pytest.raises(StockRecordNotFoundError):
            stock_selector.get_stock_level("FLOUR", "W1")

    def test_item_levels_across_locations(self, stock_service, stock_selector, receive_stock, test_actor_id):
        receive_stock("FLOUR", "W2", "4")
        receive_stock("FLOUR", "W1", "10")
        stock_service.reserve("FLOUR", "W1", Decimal("3"), "SO-1", test_actor_id)

        summary = stock_selector.get_item_stock_levels("FLOUR")

        assert [lvl.location_id for lvl in summary.levels] == ["W1", "W2"]
        assert summary.total_quantity == Decimal("14")
        assert summary.total_reserved == Decimal("3")
        assert summary.total_available == Decimal("11")
        assert summary.location_count == 2

    def test_overview_filters_by_location(self, stock_selector, receive_stock):
        receive_stock("FLOUR", "W1", "10")
        receive_stock("SUGAR", "W1", "5")
        receive_stock("SUGAR", "W2", "5")

        overview = stock_selector.get_stock_overview(location_id="W2")

        assert [s.item_id for s in overview] == ["SUGAR"]
        assert overview[0].total_quantity == Decimal("5")

    def test_tenants_are_isolated(self, session, stock_selector, deterministic_clock, test_actor_id):
        other = StockOperationsService(session, "other-tenant", deterministic_clock)
        other.receive("FLOUR", "W1", Decimal("10"), Decimal("1"), "PO-X", test_actor_id)

        assert stock_selector.find_stock_level("FLOUR", "W1") is None


class TestHistories:

    @pytest.fixture
    def activity(self, stock_service, receive_stock, deterministic_clock, test_actor_id):
        receive_stock("FLOUR", "W1", "10", reference="PO-1")
        stock_service.reserve("FLOUR", "W1", Decimal("2"), "SO-1", test_actor_id)
        deterministic_clock.advance(1)
        stock_service.transfer("FLOUR", "W1", "W2", Decimal("3"), "TR-1", test_actor_id)
        deterministic_clock.advance(1)
        stock_service.issue("FLOUR", "W1", Decimal("1"), "SO-2", test_actor_id)

    def test_transaction_history_newest_first(self, stock_selector, activity):
        page = stock_selector.get_transaction_history(item_id="FLOUR", location_id="W1")

        assert page.total == 4
        assert [t.transaction_type for t in page.items] == [
            TransactionType.SALE,
            TransactionType.TRANSFER,
            TransactionType.MANUAL,
            TransactionType.PURCHASE,
        ]

    def test_transaction_history_filters(self, stock_selector, activity):
        transfers = stock_selector.get_transaction_history(transaction_type=TransactionType.TRANSFER)
        by_ref = stock_selector.get_transaction_history(reference="PO-1")

        assert transfers.total == 2
        assert {t.location_id for t in transfers.items} == {"W1", "W2"}
        assert by_ref.total == 1

    def test_transaction_history_pagination(self, stock_selector, activity):
        first = stock_selector.get_transaction_history(page=1, limit=3)
        second = stock_selector.get_transaction_history(page=2, limit=3)

        assert first.total == second.total == 5
        assert first.pages == 2
        assert first.has_next and not second.has_next
        assert len(first.items) == 3 and len(second.items) == 2
        assert {t.id for t in first.items}.isdisjoint({t.id for t in second.items})

    def test_movement_history_by_direction(self, stock_selector, activity):
        outs = stock_selector.get_movement_history(item_id="FLOUR", direction=MovementDirection.OUT)

        assert outs.total == 2
        assert all(m.direction == MovementDirection.OUT for m in outs.items)

    def test_reservations_have_no_movement(self, stock_selector, activity):
        moves = stock_selector.get_movement_history(location_id="W1")

        assert moves.total == 3

    @pytest.mark.parametrize("page, limit", [(0, 10), (1, 0), (1, 501)])
    def test_invalid_page_bounds(self, stock_selector, page, limit):
        with pytest.raises(ValidationError):
            stock_selector.get_transaction_history(page=page, limit=limit)


class TestMovementAnalytics:

    def test_period_totals(self, stock_service, stock_selector, receive_stock, test_actor_id):
        receive_stock("FLOUR", "W1", "100")
        stock_service.issue("FLOUR", "W1", Decimal("30"), "SO-1", test_actor_id)
        stock_service.issue("FLOUR", "W1", Decimal("30"), "SO-2", test_actor_id)

        analytics = stock_selector.get_movement_analytics("FLOUR", period_days=30)

        assert analytics.total_in == Decimal("100")
        assert analytics.total_out == Decimal("60")
        assert analytics.movement_count == 3
        assert analytics.current_quantity == Decimal("40")
        assert analytics.net_movement == Decimal("40")
        assert analytics.opening_quantity == Decimal("0")
        assert analytics.avg_daily_consumption == Decimal("2")
        # 60 out over an average stock of (0 + 40) / 2
        assert analytics.stock_turnover == Decimal("3.00")
        assert analytics.days_of_inventory.days == Decimal("20")

    def test_movements_before_period_are_excluded(
        self, stock_service, stock_selector, receive_stock, deterministic_clock, test_actor_id,
    ):
        receive_stock("FLOUR", "W1", "100")
        deterministic_clock.advance_days(40)
        stock_service.issue("FLOUR", "W1", Decimal("10"), "SO-1", test_actor_id)

        analytics = stock_selector.get_movement_analytics("FLOUR", period_days=30)

        assert analytics.total_in == Decimal("0")
        assert analytics.total_out == Decimal("10")
        assert analytics.opening_quantity == Decimal("100")

    def test_no_consumption_is_infinite_cover(self, stock_selector, receive_stock):
        receive_stock("FLOUR", "W1", "100")

        analytics = stock_selector.get_movement_analytics("FLOUR")

        assert analytics.avg_daily_consumption == Decimal("0")
        assert analytics.days_of_inventory.is_infinite

    def test_location_filter(self, stock_service, stock_selector, receive_stock, test_actor_id):
        receive_stock("FLOUR", "W1", "10")
        receive_stock("FLOUR", "W2", "10")
        stock_service.issue("FLOUR", "W2", Decimal("6"), "SO-1", test_actor_id)

        analytics = stock_selector.get_movement_analytics("FLOUR", location_id="W1")

        assert analytics.total_out == Decimal("0")
        assert analytics.current_quantity == Decimal("10")

    def test_period_must_be_positive(self, stock_selector):
        with pytest.raises(ValidationError):
            stock_selector.get_movement_analytics("FLOUR", period_days=0)


class TestReceiptLayers:

    def test_purchases_oldest_first(self, stock_service, stock_selector, receive_stock, test_actor_id):
        receive_stock("FLOUR", "W1", "10", "2")
        receive_stock("FLOUR", "W1", "30", "4")
        stock_service.issue("FLOUR", "W1", Decimal("5"), "SO-1", test_actor_id)
        receive_stock("FLOUR", "W2", "7", "9")

        layers = stock_selector.get_receipt_layers("FLOUR", "W1")

        assert [(lay.quantity, lay.cost_per_unit) for lay in layers] == [
            (Decimal("10"), Decimal("2")),
            (Decimal("30"), Decimal("4")),
        ]
        assert layers[0].date < layers[1].date

    def test_transfers_are_not_layers(self, stock_service, stock_selector, receive_stock, test_actor_id):
        receive_stock("FLOUR", "W1", "10", "2")
        stock_service.transfer("FLOUR", "W1", "W2", Decimal("4"), "TR-1", test_actor_id)

        assert stock_selector.get_receipt_layers("FLOUR", "W2") == ()


class TestVerifyStockRecord:

    def test_consistent_record(self, stock_service, stock_selector, receive_stock, test_actor_id):
        receive_stock("FLOUR", "W1", "10")
        stock_service.reserve("FLOUR", "W1", Decimal("4"), "SO-1", test_actor_id)

        check = stock_selector.verify_stock_record("FLOUR", "W1")

        assert check.is_consistent
        assert check.ledger_quantity == Decimal("10")
        assert check.ledger_reserved == Decimal("4")
        assert check.transaction_count == 2

    def test_unknown_record(self, stock_selector):
        with pytest.raises(StockRecordNotFoundError):
            stock_selector.verify_stock_record("FLOUR", "W1")
