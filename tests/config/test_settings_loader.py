"""
Tests for settings loading: YAML parsing, validation, environment
overrides and checksums.
"""

from decimal import Decimal

import pytest

from inventory_config import (
    DEFAULT_SETTINGS_PATH,
    EngineSettings,
    load_settings,
    parse_settings,
)
from inventory_kernel.exceptions import ConfigurationError


class TestDefaultSettings:

    def test_bundled_set_loads(self):
        settings = load_settings(environ={})

        assert settings.source == str(DEFAULT_SETTINGS_PATH)
        assert settings.costing.default_method == "weighted_average"
        assert settings.alerts.threshold_source == "static"
        assert settings.alerts.low_stock_quantity == Decimal("10")
        assert settings.checksum

    def test_matches_dataclass_defaults(self):
        loaded = load_settings(environ={})
        defaults = EngineSettings()

        assert loaded.database == defaults.database
        assert loaded.costing == defaults.costing
        assert loaded.alerts == defaults.alerts


class TestParseSettings:

    def test_decimal_strings_stay_exact(self):
        settings = parse_settings(
            {"alerts": {"safety_stock_pct": "0.15", "lead_time_days": 3.3}}, environ={},
        )

        assert settings.alerts.safety_stock_pct == Decimal("0.15")
        assert settings.alerts.lead_time_days == Decimal("3.3")

    def test_item_overrides(self):
        settings = parse_settings(
            {"alerts": {"item_overrides": {"FLOUR": {"low_stock": "50"}}}}, environ={},
        )

        override = settings.alerts.item_overrides["FLOUR"]
        assert override.low_stock == Decimal("50")
        assert override.overstock is None

    def test_unknown_section_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_settings({"warehouses": {}}, environ={})

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigurationError, match="unknown keys"):
            parse_settings({"costing": {"method": "fifo"}}, environ={})

    def test_invalid_cost_method_rejected(self):
        with pytest.raises(ConfigurationError, match="costing.default_method"):
            parse_settings({"costing": {"default_method": "average"}}, environ={})

    def test_invalid_threshold_source_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_settings({"alerts": {"threshold_source": "magic"}}, environ={})

    def test_non_numeric_decimal_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_settings({"alerts": {"low_stock_quantity": "lots"}}, environ={})

    def test_negative_threshold_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_settings({"alerts": {"reorder_quantity": "-1"}}, environ={})


class TestEnvironmentOverrides:

    def test_database_url_override(self):
        settings = parse_settings(
            {}, environ={"INVENTORY_DATABASE_URL": "postgresql://u@h/db"},
        )

        assert settings.database.url == "postgresql://u@h/db"
        assert settings.summary()["database_backend"] == "postgresql"

    def test_log_level_override_is_uppercased(self):
        settings = parse_settings({}, environ={"INVENTORY_LOG_LEVEL": "debug"})

        assert settings.logging.level == "DEBUG"


class TestChecksum:

    def test_same_input_same_checksum(self):
        data = {"costing": {"default_method": "fifo"}}

        assert (
            parse_settings(data, environ={}).checksum
            == parse_settings(dict(data), environ={}).checksum
        )

    def test_different_input_different_checksum(self):
        fifo = parse_settings({"costing": {"default_method": "fifo"}}, environ={})
        lifo = parse_settings({"costing": {"default_method": "lifo"}}, environ={})

        assert fifo.checksum != lifo.checksum

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("costing:\n  default_method: lifo\n")

        settings = load_settings(path, environ={})

        assert settings.costing.default_method == "lifo"
        assert settings.source == str(path)

    def test_non_mapping_file_rejected(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            load_settings(path, environ={})
