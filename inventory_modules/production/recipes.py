"""
Recipe definitions consumed by the production orchestrator.

Recipes are owned by the surrounding catalog.  The orchestrator only needs
the ingredient list (quantity per unit of output, optional fixed unit
cost) and the output item, reached through the ``RecipeProvider``
protocol.  ``InMemoryRecipeCatalog`` is the bundled provider.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable

from inventory_kernel.logging_config import get_logger

logger = get_logger("modules.production.recipes")


@dataclass(frozen=True)
class RecipeIngredient:
    """Quantity of one ingredient per unit of output."""
    item_id: str
    quantity: Decimal
    unit_cost: Decimal | None = None

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError(
                f"ingredient quantity must be positive, got {self.quantity} for {self.item_id}"
            )
        if self.unit_cost is not None and self.unit_cost < 0:
            raise ValueError(
                f"ingredient unit_cost cannot be negative, got {self.unit_cost} for {self.item_id}"
            )


@dataclass(frozen=True)
class RecipeDefinition:
    """A recipe as the catalog supplies it."""
    recipe_id: str
    name: str
    output_item_id: str | None
    ingredients: tuple[RecipeIngredient, ...] = ()

    def requirements(self, output_quantity: Decimal) -> dict[str, Decimal]:
        """
        Ingredient quantities needed for ``output_quantity`` units, in
        recipe order.  An ingredient listed twice is summed.
        """
        required: dict[str, Decimal] = {}
        for ingredient in self.ingredients:
            required[ingredient.item_id] = (
                required.get(ingredient.item_id, Decimal("0"))
                + ingredient.quantity * output_quantity
            )
        return required

    def ingredient(self, item_id: str) -> RecipeIngredient | None:
        for ingredient in self.ingredients:
            if ingredient.item_id == item_id:
                return ingredient
        return None


@runtime_checkable
class RecipeProvider(Protocol):
    """Lookup of recipe definitions by id."""

    def get_recipe(self, recipe_id: str) -> RecipeDefinition | None: ...


class InMemoryRecipeCatalog:
    """Dictionary-backed RecipeProvider."""

    def __init__(self, recipes: Iterable[RecipeDefinition] = ()):
        self._recipes: dict[str, RecipeDefinition] = {}
        for recipe in recipes:
            self.register(recipe)

    def register(self, recipe: RecipeDefinition) -> None:
        self._recipes[recipe.recipe_id] = recipe
        logger.debug(
            "recipe_registered",
            extra={
                "recipe_id": recipe.recipe_id,
                "output_item_id": recipe.output_item_id,
                "ingredient_count": len(recipe.ingredients),
            },
        )

    def get_recipe(self, recipe_id: str) -> RecipeDefinition | None:
        return self._recipes.get(recipe_id)

    def __contains__(self, recipe_id: object) -> bool:
        return recipe_id in self._recipes

    def __len__(self) -> int:
        return len(self._recipes)
