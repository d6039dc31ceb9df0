"""
Recipe catalog and batch workflow definition tests.
"""

from decimal import Decimal

import pytest

from inventory_modules.production.recipes import (
    InMemoryRecipeCatalog,
    RecipeDefinition,
    RecipeIngredient,
    RecipeProvider,
)
from inventory_modules.production.workflows import BATCH_WORKFLOW


class TestRecipeDefinition:

    def test_requirements_scale_with_output(self, recipes):
        bread = recipes.get_recipe("R-BREAD")

        assert bread.requirements(Decimal("3")) == {
            "FLOUR": Decimal("6"),
            "WATER": Decimal("3"),
        }

    def test_repeated_ingredient_is_summed(self):
        recipe = RecipeDefinition(
            "R-X", "X", "X",
            (RecipeIngredient("FLOUR", Decimal("1")), RecipeIngredient("FLOUR", Decimal("0.5"))),
        )

        assert recipe.requirements(Decimal("2")) == {"FLOUR": Decimal("3")}

    def test_ingredient_lookup(self, recipes):
        cake = recipes.get_recipe("R-CAKE")

        assert cake.ingredient("FLOUR").unit_cost == Decimal("1.50")
        assert cake.ingredient("SALT") is None

    @pytest.mark.parametrize("quantity, unit_cost", [("0", None), ("1", "-1")])
    def test_invalid_ingredient(self, quantity, unit_cost):
        with pytest.raises(ValueError):
            RecipeIngredient(
                "FLOUR", Decimal(quantity),
                unit_cost=Decimal(unit_cost) if unit_cost else None,
            )


class TestInMemoryRecipeCatalog:

    def test_is_a_recipe_provider(self, recipes):
        assert isinstance(recipes, RecipeProvider)
        assert len(recipes) == 2
        assert "R-BREAD" in recipes

    def test_register_replaces(self, recipes):
        recipes.register(RecipeDefinition("R-BREAD", "Rye", "RYE", (RecipeIngredient("RYE", Decimal("2")),)))

        assert recipes.get_recipe("R-BREAD").output_item_id == "RYE"
        assert len(recipes) == 2

    def test_unknown_recipe(self):
        assert InMemoryRecipeCatalog().get_recipe("R-NONE") is None


class TestBatchWorkflow:

    def test_terminal_states(self):
        assert set(BATCH_WORKFLOW.terminal_states) == {"COMPLETED", "CANCELLED"}

    @pytest.mark.parametrize("from_state, action, to_state", [
        ("PENDING", "start", "IN_PROGRESS"),
        ("PENDING", "cancel", "CANCELLED"),
        ("IN_PROGRESS", "complete", "COMPLETED"),
        ("IN_PROGRESS", "cancel", "CANCELLED"),
    ])
    def test_allowed_transitions(self, from_state, action, to_state):
        assert BATCH_WORKFLOW.transition_for(from_state, action).to_state == to_state

    @pytest.mark.parametrize("from_state, action", [
        ("PENDING", "complete"),
        ("IN_PROGRESS", "start"),
        ("COMPLETED", "cancel"),
        ("CANCELLED", "start"),
    ])
    def test_disallowed_transitions(self, from_state, action):
        assert BATCH_WORKFLOW.transition_for(from_state, action) is None

    def test_only_completion_moves_stock(self):
        movers = [t.action for t in BATCH_WORKFLOW.transitions if t.moves_stock]

        assert movers == ["complete"]
