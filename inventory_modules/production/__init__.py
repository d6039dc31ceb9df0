"""
Production Module (``inventory_modules.production``).

Responsibility
--------------
The Production Batch Orchestrator: batch lifecycle
(PENDING -> IN_PROGRESS -> COMPLETED, with CANCELLED reachable from the
first two), atomic ingredient-to-output conversion on completion, and
lineage queries over the transaction log.
"""

from inventory_modules.production.models import (
    BatchCompletion,
    BatchHistorySummary,
    BatchIngredientLine,
    BatchStatus,
    BatchTraceability,
    IngredientBatchUsage,
    IngredientConsumption,
    IngredientTraceability,
    ProductBatchHistory,
    ProductionBatch,
)
from inventory_modules.production.recipes import (
    InMemoryRecipeCatalog,
    RecipeDefinition,
    RecipeIngredient,
    RecipeProvider,
)
from inventory_modules.production.selectors import ProductionSelector
from inventory_modules.production.service import ProductionBatchService
from inventory_modules.production.workflows import BATCH_WORKFLOW

__all__ = [
    "BatchCompletion",
    "BatchHistorySummary",
    "BatchIngredientLine",
    "BatchStatus",
    "BatchTraceability",
    "IngredientBatchUsage",
    "IngredientConsumption",
    "IngredientTraceability",
    "ProductBatchHistory",
    "ProductionBatch",
    "InMemoryRecipeCatalog",
    "RecipeDefinition",
    "RecipeIngredient",
    "RecipeProvider",
    "ProductionSelector",
    "ProductionBatchService",
    "BATCH_WORKFLOW",
]
