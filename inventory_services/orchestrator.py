"""
inventory_services.orchestrator -- Central DI container for the stock ledger.

Responsibility:
    Creates every service exactly once per (session, tenant) and wires
    them together from ``EngineSettings``.  No service creates another
    service internally when built through the orchestrator.

Architecture position:
    Services -- top of the stack.  The only place where module services,
    selectors and the valuation service are constructed and composed.

Invariants enforced:
    - Single-instance lifecycle: one StockOperationsService is shared by
      direct callers and the production orchestrator.
    - All services share the same Session, tenant id and Clock.

Failure modes:
    - ConfigurationError if settings carry an unknown threshold source.

Usage:
    orchestrator = InventoryOrchestrator(
        session=session,
        tenant_id="acme",
        settings=load_settings(),
        clock=clock,
        recipes=catalog,
    )
    orchestrator.stock.reserve(...)
    orchestrator.production.complete(...)
    orchestrator.alerts.generate_alerts(actor_id=actor_id)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.orm import Session

from inventory_config.schema import EngineSettings
from inventory_engines.costing import CostMethod
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.exceptions import ConfigurationError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.retry_service import retry_on_contention
from inventory_modules.alerts.service import AlertService
from inventory_modules.alerts.thresholds import (
    ConsumptionThresholdSource,
    StaticThresholdSource,
    ThresholdSource,
)
from inventory_modules.production.recipes import InMemoryRecipeCatalog, RecipeProvider
from inventory_modules.production.service import ProductionBatchService
from inventory_modules.stock.selectors import StockSelector
from inventory_modules.stock.service import StockOperationsService
from inventory_services.valuation_service import ValuationService

logger = get_logger("services.orchestrator")

T = TypeVar("T")


class InventoryOrchestrator:
    """Central factory for the stock ledger services.

    Contract:
        Receives a Session, a tenant id and optional settings, clock and
        recipe provider.  Constructs every service once, in dependency
        order, and exposes them as public attributes.

    Non-goals:
        - Does NOT manage transaction boundaries; each service owns its own.
        - Does NOT own the Session lifecycle.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
        recipes: RecipeProvider | None = None,
    ) -> None:
        self._session = session
        self.tenant_id = tenant_id
        self.settings = settings or EngineSettings()
        self.clock = clock or SystemClock()
        self.recipes = recipes if recipes is not None else InMemoryRecipeCatalog()

        # Read side
        self.stock_selector = StockSelector(session, tenant_id, self.clock)

        # Stock writes (shared with production)
        self.stock = StockOperationsService(session, tenant_id, self.clock)

        self.valuation = ValuationService(
            session,
            tenant_id,
            default_method=CostMethod(self.settings.costing.default_method),
            selector=self.stock_selector,
        )

        self.production = ProductionBatchService(
            session,
            tenant_id,
            self.recipes,
            clock=self.clock,
            cost_method=CostMethod(self.settings.costing.production_cost_method),
            stock_service=self.stock,
        )

        self.thresholds = self._build_threshold_source()
        self.alerts = AlertService(
            session, tenant_id, thresholds=self.thresholds, clock=self.clock,
        )

        logger.info(
            "inventory_orchestrator_ready",
            extra={"tenant_id": tenant_id, **self.settings.summary()},
        )

    def _build_threshold_source(self) -> ThresholdSource:
        alerts = self.settings.alerts
        if alerts.threshold_source == "static":
            return StaticThresholdSource.from_settings(alerts)
        if alerts.threshold_source == "consumption":
            return ConsumptionThresholdSource.from_settings(self.stock_selector, alerts)
        raise ConfigurationError(
            "alerts.threshold_source", f"unknown source {alerts.threshold_source!r}",
        )

    def with_retry(self, operation: Callable[[], T], max_attempts: int = 3) -> T:
        """Run ``operation`` and re-run it from scratch on transient contention."""
        return retry_on_contention(operation, max_attempts=max_attempts)
