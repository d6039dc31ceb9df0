"""
EngineSettings schema.

Typed, frozen view of the stock ledger configuration.  YAML files are
parsed into these types by ``inventory_config.loader``; services receive
the relevant section through their constructors.

Each section validates itself in ``__post_init__`` and raises
``ConfigurationError`` naming the offending field.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from inventory_kernel.exceptions import ConfigurationError

VALID_COST_METHODS = frozenset({"fifo", "lifo", "weighted_average"})
VALID_THRESHOLD_SOURCES = frozenset({"static", "consumption"})
VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings for the ``Database`` handle."""

    url: str = "sqlite:///:memory:"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30

    def __post_init__(self) -> None:
        if not self.url:
            raise ConfigurationError("database.url", "must not be empty")
        if self.pool_size < 1:
            raise ConfigurationError("database.pool_size", "must be at least 1")
        if self.max_overflow < 0:
            raise ConfigurationError("database.max_overflow", "must be non-negative")
        if self.pool_timeout < 1:
            raise ConfigurationError("database.pool_timeout", "must be at least 1")


# ---------------------------------------------------------------------------
# Costing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CostingSettings:
    """
    Cost flow used for valuation.

    ``production_cost_method`` values ingredients consumed by a production
    batch when the recipe does not carry an explicit unit cost.
    """

    default_method: str = "weighted_average"
    production_cost_method: str = "weighted_average"

    def __post_init__(self) -> None:
        for name in ("default_method", "production_cost_method"):
            value = getattr(self, name)
            if value not in VALID_COST_METHODS:
                raise ConfigurationError(
                    f"costing.{name}",
                    f"must be one of {sorted(VALID_COST_METHODS)}, got {value!r}",
                )


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ThresholdOverride:
    """Per-item static thresholds.  Unset fields fall back to the defaults."""

    low_stock: Decimal | None = None
    overstock: Decimal | None = None
    reorder_point: Decimal | None = None


@dataclass(frozen=True)
class AlertSettings:
    """
    Alert threshold policy.

    ``threshold_source`` selects between fixed quantities (``static``) and
    thresholds derived from recent consumption (``consumption``).
    """

    threshold_source: str = "static"

    # Static thresholds
    low_stock_quantity: Decimal = Decimal("10")
    overstock_quantity: Decimal = Decimal("1000")
    reorder_quantity: Decimal = Decimal("5")
    item_overrides: dict[str, ThresholdOverride] = field(default_factory=dict)

    # Consumption-derived thresholds
    consumption_period_days: int = 30
    low_stock_percentage: Decimal = Decimal("0.1")
    overstock_multiplier: Decimal = Decimal("3")
    lead_time_days: Decimal = Decimal("7")
    safety_stock_pct: Decimal = Decimal("0.2")

    def __post_init__(self) -> None:
        if self.threshold_source not in VALID_THRESHOLD_SOURCES:
            raise ConfigurationError(
                "alerts.threshold_source",
                f"must be one of {sorted(VALID_THRESHOLD_SOURCES)}, "
                f"got {self.threshold_source!r}",
            )
        for name in (
            "low_stock_quantity",
            "overstock_quantity",
            "reorder_quantity",
            "low_stock_percentage",
            "overstock_multiplier",
            "lead_time_days",
            "safety_stock_pct",
        ):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"alerts.{name}", "must be non-negative")
        if self.consumption_period_days < 1:
            raise ConfigurationError(
                "alerts.consumption_period_days", "must be at least 1",
            )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"

    def __post_init__(self) -> None:
        if self.level.upper() not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                "logging.level",
                f"must be one of {sorted(VALID_LOG_LEVELS)}, got {self.level!r}",
            )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineSettings:
    """Complete engine configuration with its source checksum."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    costing: CostingSettings = field(default_factory=CostingSettings)
    alerts: AlertSettings = field(default_factory=AlertSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    checksum: str = ""
    source: str | None = None

    def summary(self) -> dict[str, Any]:
        """Loggable view without credentials."""
        return {
            "database_backend": self.database.url.split(":", 1)[0],
            "costing_method": self.costing.default_method,
            "production_cost_method": self.costing.production_cost_method,
            "threshold_source": self.alerts.threshold_source,
            "log_level": self.logging.level,
            "checksum": self.checksum,
            "source": self.source,
        }
