"""
Mealplan - Shop Node.

Turns the final recipe into a shopping list grouped by store department.
The only stage that leads to END.
"""

import logging

from mealplan.graph.nodes.common import (
    StageContext,
    invoke_and_parse,
    malformed_failure,
    skipped,
)
from mealplan.graph.state import PipelineState
from mealplan.models import ShoppingList
from mealplan.parsing import Malformed, parse_shopping_list
from mealplan.prompts import render_shop_prompt

logger = logging.getLogger(__name__)


async def shop_node(state: PipelineState, ctx: StageContext) -> dict:
    """
    Shop node - last stage of the pipeline.

    An empty recipe yields an empty shopping list without calling the model.
    """
    recipe = state.get("recipe")

    if recipe is None or recipe.is_empty:
        return {
            "shopping_list": ShoppingList.empty(),
            "stage_errors": [skipped("shop", "no recipe to shop for")],
            "visited": ["shop"],
        }

    prompt = render_shop_prompt(recipe, state["preferences"])
    result = await invoke_and_parse(ctx, "shop", prompt, parse_shopping_list)

    if isinstance(result, Malformed):
        failure = malformed_failure(ctx, "shop", result)
        return {
            "shopping_list": ShoppingList.empty(),
            "stage_errors": [failure],
            "visited": ["shop"],
        }

    shopping_list = result.value
    logger.info(
        f"Shop: {shopping_list.item_count} items across {len(shopping_list.departments)} departments"
    )
    return {
        "shopping_list": shopping_list,
        "visited": ["shop"],
    }
