"""
Mealplan - Generate Node.

Drafts a recipe for the user's targets. A reply that never parses leaves the
sentinel empty recipe in state and records the failure, so downstream stages
see an explicit degraded run rather than a crash.
"""

import logging

from mealplan.graph.nodes.common import StageContext, invoke_and_parse, malformed_failure
from mealplan.graph.state import PipelineState
from mealplan.models import Recipe
from mealplan.parsing import Malformed, parse_recipe
from mealplan.prompts import render_generate_prompt

logger = logging.getLogger(__name__)


async def generate_node(state: PipelineState, ctx: StageContext) -> dict:
    """
    Generate node - first stage of the pipeline.

    Args:
        state: Current graph state with preferences
        ctx: Model client and settings

    Returns:
        State update with recipe (revision 0)
    """
    preferences = state["preferences"]
    prompt = render_generate_prompt(preferences, ctx.limits)

    result = await invoke_and_parse(ctx, "generate", prompt, parse_recipe)

    if isinstance(result, Malformed):
        failure = malformed_failure(ctx, "generate", result)
        return {
            "recipe": Recipe.empty(),
            "recipe_revision": 0,
            "stage_errors": [failure],
            "visited": ["generate"],
        }

    recipe = result.value
    logger.info(
        f"Generate: '{recipe.name}' ({recipe.calories:g} kcal, {recipe.protein:g} g protein, "
        f"{len(recipe.ingredients)} ingredients, {recipe.cook_time})"
    )
    return {
        "recipe": recipe,
        "recipe_revision": 0,
        "visited": ["generate"],
    }
