"""Tests for the cost variance engine and engine tracing."""

import logging
from decimal import Decimal

from inventory_engines import tracer
from inventory_engines.tracer import compute_input_fingerprint
from inventory_engines.variance import cost_variance


class TestCostVariance:

    def test_unfavorable_variance(self):
        result = cost_variance(Decimal("10"), Decimal("12"), Decimal("5"))

        assert result.standard_total == Decimal("50")
        assert result.actual_total == Decimal("60")
        assert result.variance == Decimal("10")
        assert result.variance_percent == Decimal("20.00")
        assert result.is_favorable is False

    def test_favorable_variance(self):
        result = cost_variance(Decimal("10"), Decimal("8"), Decimal("5"))

        assert result.variance == Decimal("-10")
        assert result.absolute_variance == Decimal("10")
        assert result.variance_percent == Decimal("-20.00")
        assert result.is_favorable is True

    def test_zero_standard_cost(self):
        result = cost_variance(Decimal("0"), Decimal("3"), Decimal("2"))

        assert result.variance == Decimal("6")
        assert result.variance_percent == Decimal("0")


class TestEngineTrace:

    def test_fingerprint_is_deterministic(self):
        args = {"quantity": Decimal("1.50"), "layers": [Decimal("2")]}

        first = compute_input_fingerprint(("layers", "quantity"), args)
        second = compute_input_fingerprint(("layers", "quantity"), dict(args))

        assert first == second
        assert len(first) == 16

    def test_equal_decimals_share_fingerprint(self):
        a = compute_input_fingerprint(("q",), {"q": Decimal("1.50")})
        b = compute_input_fingerprint(("q",), {"q": Decimal("1.5")})

        assert a == b

    def test_engine_call_emits_trace(self, captured_logs):
        cost_variance(Decimal("10"), Decimal("12"), Decimal("5"))

        traces = [r for r in captured_logs() if r["message"] == "INVENTORY_ENGINE_TRACE"]
        assert traces
        assert traces[-1]["engine_name"] == "costing.variance"
        assert len(traces[-1]["input_fingerprint"]) == 16

    def test_fingerprint_skipped_when_debug_is_off(self, monkeypatch, captured_logs):
        def fail(*args):
            raise AssertionError("fingerprint computed with tracing disabled")

        monkeypatch.setattr(tracer, "compute_input_fingerprint", fail)
        root = logging.getLogger("inventory_kernel")
        level = root.level
        root.setLevel(logging.INFO)
        try:
            result = cost_variance(Decimal("10"), Decimal("12"), Decimal("5"))
        finally:
            root.setLevel(level)

        assert result.variance == Decimal("10")
        assert not [r for r in captured_logs() if r["message"] == "INVENTORY_ENGINE_TRACE"]
