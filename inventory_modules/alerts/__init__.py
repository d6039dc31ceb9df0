"""
Alerts Module (``inventory_modules.alerts``).

Responsibility
--------------
The Alert Generator: stateless threshold evaluation, pluggable threshold
sources, and the deduplicating alert store.
"""

from inventory_modules.alerts.evaluation import describe, evaluate
from inventory_modules.alerts.models import (
    EVALUATED_ALERT_TYPES,
    Alert,
    AlertCounts,
    AlertGenerationSummary,
    AlertSignal,
    AlertStatistics,
    AlertType,
    BulkResolveResult,
    StockThresholds,
)
from inventory_modules.alerts.selectors import AlertSelector
from inventory_modules.alerts.service import AlertService
from inventory_modules.alerts.thresholds import (
    ConsumptionThresholdSource,
    StaticThresholdSource,
    ThresholdSource,
)

__all__ = [
    "describe",
    "evaluate",
    "EVALUATED_ALERT_TYPES",
    "Alert",
    "AlertCounts",
    "AlertGenerationSummary",
    "AlertSignal",
    "AlertStatistics",
    "AlertType",
    "BulkResolveResult",
    "StockThresholds",
    "AlertSelector",
    "AlertService",
    "ConsumptionThresholdSource",
    "StaticThresholdSource",
    "ThresholdSource",
]
