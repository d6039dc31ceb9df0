"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen
``inventory_config.schema`` dataclasses.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Decimal fields are parsed from their YAML text, never through float.
* Unknown keys are rejected with ``ConfigurationError``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  effective settings (after environment overrides).

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values or unknown keys  -> ``ConfigurationError``.

Environment overrides
---------------------
* ``INVENTORY_DATABASE_URL`` replaces ``database.url``.
* ``INVENTORY_LOG_LEVEL`` replaces ``logging.level``.
"""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping

import yaml

from inventory_config.schema import (
    AlertSettings,
    CostingSettings,
    DatabaseSettings,
    EngineSettings,
    LoggingSettings,
    ThresholdOverride,
)
from inventory_kernel.exceptions import ConfigurationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("config.loader")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "sets" / "default.yaml"

ENV_DATABASE_URL = "INVENTORY_DATABASE_URL"
ENV_LOG_LEVEL = "INVENTORY_LOG_LEVEL"

_DECIMAL_FIELDS = {
    "AlertSettings": {
        "low_stock_quantity",
        "overstock_quantity",
        "reorder_quantity",
        "low_stock_percentage",
        "overstock_multiplier",
        "lead_time_days",
        "safety_stock_pct",
    },
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(field_name: str, value: Any) -> Decimal:
    """Parse a Decimal from YAML text, int or float without binary drift."""
    if isinstance(value, bool):
        raise ConfigurationError(field_name, f"expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(field_name, f"expected a number, got {value!r}") from None


def _check_keys(section: str, data: Mapping[str, Any], allowed: set[str]) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ConfigurationError(section, f"unknown keys {unknown}")


def _parse_section(section: str, cls: type, data: Mapping[str, Any] | None):
    data = dict(data or {})
    allowed = {f.name for f in fields(cls)}
    _check_keys(section, data, allowed)
    decimal_fields = _DECIMAL_FIELDS.get(cls.__name__, set())
    for key in list(data):
        if key in decimal_fields:
            data[key] = parse_decimal(f"{section}.{key}", data[key])
    try:
        return cls(**data)
    except TypeError as exc:
        raise ConfigurationError(section, str(exc)) from exc


def parse_threshold_override(item_id: str, data: Mapping[str, Any]) -> ThresholdOverride:
    section = f"alerts.item_overrides.{item_id}"
    _check_keys(section, data, {"low_stock", "overstock", "reorder_point"})
    return ThresholdOverride(
        **{
            key: parse_decimal(f"{section}.{key}", value)
            for key, value in data.items()
            if value is not None
        }
    )


def parse_alert_settings(data: Mapping[str, Any] | None) -> AlertSettings:
    data = dict(data or {})
    overrides_raw = data.pop("item_overrides", None) or {}
    settings = _parse_section("alerts", AlertSettings, data)
    overrides = {
        str(item_id): parse_threshold_override(str(item_id), raw or {})
        for item_id, raw in overrides_raw.items()
    }
    if not overrides:
        return settings
    return AlertSettings(
        **{f.name: getattr(settings, f.name) for f in fields(AlertSettings)
           if f.name != "item_overrides"},
        item_overrides=overrides,
    )


def apply_env_overrides(
    data: dict[str, Any],
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return a copy of ``data`` with environment overrides applied."""
    environ = os.environ if environ is None else environ
    result = {key: dict(value or {}) if isinstance(value, dict) else value
              for key, value in data.items()}
    if environ.get(ENV_DATABASE_URL):
        result.setdefault("database", {})["url"] = environ[ENV_DATABASE_URL]
    if environ.get(ENV_LOG_LEVEL):
        result.setdefault("logging", {})["level"] = environ[ENV_LOG_LEVEL].upper()
    return result


def compute_checksum(data: dict[str, Any]) -> str:
    """
    SHA-256 of the canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_settings(
    data: Mapping[str, Any],
    source: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineSettings:
    """Build ``EngineSettings`` from an already-loaded mapping."""
    _check_keys("settings", data, {"database", "costing", "alerts", "logging"})
    effective = apply_env_overrides(dict(data), environ)

    settings = EngineSettings(
        database=_parse_section("database", DatabaseSettings, effective.get("database")),
        costing=_parse_section("costing", CostingSettings, effective.get("costing")),
        alerts=parse_alert_settings(effective.get("alerts")),
        logging=_parse_section("logging", LoggingSettings, effective.get("logging")),
        checksum=compute_checksum(effective),
        source=source,
    )
    logger.info("settings_loaded", extra=settings.summary())
    return settings


def load_settings(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineSettings:
    """
    Load settings from ``path`` (the bundled default set when omitted).

    Preconditions:
        - ``path`` points to a readable YAML mapping.
    Postconditions:
        - Returns frozen ``EngineSettings`` with ``checksum`` populated.
    """
    resolved = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    raw = load_yaml_file(resolved)
    if not isinstance(raw, dict):
        raise ConfigurationError(str(resolved), "top level must be a mapping")
    return parse_settings(raw, source=str(resolved), environ=environ)
