"""
Mealplan - Edit Node.

Revises a recipe that failed validation. The edited recipe replaces the old
one wholesale; the old one moves to recipe_history. Validation results belong
to the old revision, so they are discarded here.
"""

import logging

from mealplan.core.rules import failed_rules
from mealplan.graph.nodes.common import (
    StageContext,
    invoke_and_parse,
    malformed_failure,
    skipped,
)
from mealplan.graph.state import PipelineState
from mealplan.parsing import Malformed, parse_recipe
from mealplan.prompts import render_edit_prompt

logger = logging.getLogger(__name__)


async def edit_node(state: PipelineState, ctx: StageContext) -> dict:
    """
    Edit node - fixes the failed rules of the current recipe.

    Args:
        state: Current graph state with recipe and validation_results
        ctx: Model client and settings

    Returns:
        State update with the new recipe revision, or only the failure record
        when the editor's reply was unusable (the unedited recipe stays)
    """
    recipe = state.get("recipe")
    revisions = state.get("revisions", 0) + 1

    if recipe is None or recipe.is_empty:
        return {
            "revisions": revisions,
            "stage_errors": [skipped("edit", "no recipe to edit")],
            "visited": ["edit"],
        }

    failed = failed_rules(state.get("validation_results", []))
    prompt = render_edit_prompt(recipe, failed, state["preferences"], ctx.limits)

    result = await invoke_and_parse(ctx, "edit", prompt, parse_recipe)

    if isinstance(result, Malformed):
        failure = malformed_failure(ctx, "edit", result)
        return {
            "revisions": revisions,
            "stage_errors": [failure],
            "visited": ["edit"],
        }

    edited = result.value
    new_revision = state.get("recipe_revision", 0) + 1
    logger.info(
        f"Edit: revision {new_revision} '{edited.name}' "
        f"(was '{recipe.name}', fixing {', '.join(r.rule.value for r in failed) or 'nothing reported'})"
    )
    return {
        "recipe": edited,
        "recipe_history": [recipe],
        "recipe_revision": new_revision,
        "validation_results": [],
        "validated_revision": None,
        "revisions": revisions,
        "visited": ["edit"],
    }
