"""
Threshold source tests: static defaults with per-item overrides, and
thresholds derived from movement history.
"""

from decimal import Decimal

from inventory_config import parse_settings
from inventory_config.schema import ThresholdOverride
from inventory_modules.alerts.models import AlertType, StockThresholds
from inventory_modules.alerts.service import AlertService
from inventory_modules.alerts.thresholds import (
    ConsumptionThresholdSource,
    StaticThresholdSource,
    ThresholdSource,
)


class TestStaticThresholdSource:

    def test_defaults(self):
        source = StaticThresholdSource()

        assert isinstance(source, ThresholdSource)
        assert source.thresholds_for("FLOUR", "W1") == StockThresholds(
            Decimal("10"), Decimal("1000"), Decimal("5"),
        )

    def test_override_falls_back_per_field(self):
        source = StaticThresholdSource(
            overrides={"FLOUR": ThresholdOverride(low_stock=Decimal("50"))},
        )

        flour = source.thresholds_for("FLOUR", "W1")
        sugar = source.thresholds_for("SUGAR", "W1")

        assert flour.low_stock == Decimal("50")
        assert flour.overstock == Decimal("1000")
        assert sugar.low_stock == Decimal("10")

    def test_from_settings(self):
        settings = parse_settings(
            {
                "alerts": {
                    "low_stock_quantity": "20",
                    "item_overrides": {"SALT": {"overstock": "5000"}},
                },
            },
            environ={},
        )

        source = StaticThresholdSource.from_settings(settings.alerts)

        assert source.thresholds_for("FLOUR", "W1").low_stock == Decimal("20")
        assert source.thresholds_for("SALT", "W1").overstock == Decimal("5000")


class TestConsumptionThresholdSource:

    def test_derived_from_movements(self, stock_service, stock_selector, receive_stock, test_actor_id):
        receive_stock("FLOUR", "W1", "100")
        stock_service.issue("FLOUR", "W1", Decimal("30"), "SO-1", test_actor_id)

        thresholds = ConsumptionThresholdSource(stock_selector).thresholds_for("FLOUR", "W1")

        # average stock (0 + 70) / 2 = 35; 1 unit/day over 30 days
        assert thresholds.low_stock == Decimal("3.5")
        assert thresholds.overstock == Decimal("105")
        # ceil(1 x 7 x 1.2)
        assert thresholds.reorder_point == Decimal("9")

    def test_overstock_disabled_without_stock(self, stock_selector):
        thresholds = ConsumptionThresholdSource(stock_selector).thresholds_for("FLOUR", "W1")

        assert thresholds.overstock is None
        assert thresholds.low_stock == Decimal("0")
        assert thresholds.reorder_point == Decimal("0")

    def test_location_scoped(self, stock_service, stock_selector, receive_stock, test_actor_id):
        receive_stock("FLOUR", "W1", "100")
        receive_stock("FLOUR", "W2", "100")
        stock_service.issue("FLOUR", "W2", Decimal("60"), "SO-1", test_actor_id)

        source = ConsumptionThresholdSource(stock_selector, lead_time_days=Decimal("1"))

        assert source.thresholds_for("FLOUR", "W1").reorder_point == Decimal("0")
        # ceil(2 x 1 x 1.2)
        assert source.thresholds_for("FLOUR", "W2").reorder_point == Decimal("3")

    def test_drives_alert_sweep(
        self, session, tenant_id, deterministic_clock, stock_service, stock_selector,
        receive_stock, test_actor_id,
    ):
        receive_stock("FLOUR", "W1", "100")
        stock_service.issue("FLOUR", "W1", Decimal("95"), "SO-1", test_actor_id)
        service = AlertService(
            session, tenant_id,
            thresholds=ConsumptionThresholdSource(stock_selector),
            clock=deterministic_clock,
        )

        summary = service.generate_alerts(test_actor_id)

        # 5 on hand against low stock 0.25 and reorder point ceil(95/30 x 7 x 1.2) = 27
        assert [a.alert_type for a in summary.alerts] == [AlertType.REORDER]
