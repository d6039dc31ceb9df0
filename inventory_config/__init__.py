"""
Stock ledger configuration.

Runtime entry point is ``load_settings()``; it returns frozen
``EngineSettings`` parsed from YAML with environment overrides applied.
"""

from inventory_config.loader import (
    DEFAULT_SETTINGS_PATH,
    compute_checksum,
    load_settings,
    parse_settings,
)
from inventory_config.schema import (
    AlertSettings,
    CostingSettings,
    DatabaseSettings,
    EngineSettings,
    LoggingSettings,
    ThresholdOverride,
)

__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "compute_checksum",
    "load_settings",
    "parse_settings",
    "AlertSettings",
    "CostingSettings",
    "DatabaseSettings",
    "EngineSettings",
    "LoggingSettings",
    "ThresholdOverride",
]
