"""
Mealplan - Validate Node.

Checks the current recipe revision against every rule and stamps the results
with that revision. Also home to the conditional edge that follows it.

Validation modes:
- rules: deterministic checks in core.rules (default)
- model: the model judges each rule; an unparseable or incomplete answer
  is fatal for the run
"""

import logging

from mealplan.config import MealPlanSettings
from mealplan.core.routing import EmptyResultsPolicy, condition_for, route
from mealplan.core.rules import ensure_complete, evaluate, failed_rules
from mealplan.exceptions import MalformedResponseError
from mealplan.graph.nodes.common import StageContext, invoke_and_parse, skipped
from mealplan.graph.state import PipelineState
from mealplan.parsing import Malformed, parse_validation_results
from mealplan.prompts import render_validate_prompt

logger = logging.getLogger(__name__)


async def validate_node(state: PipelineState, ctx: StageContext) -> dict:
    """
    Validate node - produces one ValidationResult per rule.

    Args:
        state: Current graph state with recipe and recipe_revision
        ctx: Model client and settings

    Returns:
        State update with validation_results and validated_revision

    Raises:
        MalformedResponseError: model mode, reply never parsed
        ValidationIncompleteError: model mode, rules missing or duplicated
    """
    recipe = state.get("recipe")
    revision = state.get("recipe_revision", 0)

    if recipe is None or recipe.is_empty:
        return {
            "validation_results": [],
            "validated_revision": None,
            "stage_errors": [skipped("validate", "no recipe to validate")],
            "visited": ["validate"],
        }

    if ctx.settings.validation_mode == "model":
        prompt = render_validate_prompt(recipe, state["preferences"], ctx.limits)
        result = await invoke_and_parse(ctx, "validate", prompt, parse_validation_results)
        if isinstance(result, Malformed):
            raise MalformedResponseError("validate", result.reason, result.raw)
        results = ensure_complete(result.value)
    else:
        results = evaluate(recipe, state["preferences"], ctx.limits)

    failed = failed_rules(results)
    if failed:
        logger.info(
            f"Validate: revision {revision} failed {len(failed)}/{len(results)} rules: "
            + ", ".join(r.rule.value for r in failed)
        )
    else:
        logger.info(f"Validate: revision {revision} passed all {len(results)} rules")

    return {
        "validation_results": results,
        "validated_revision": revision,
        "visited": ["validate"],
    }


def make_validation_router(settings: MealPlanSettings):
    """
    Build the conditional edge function that follows validate.

    Results computed against an older recipe revision are stale and are
    treated like an empty result set.
    """
    empty_policy = EmptyResultsPolicy(settings.empty_results_policy)

    def route_after_validate(state: PipelineState) -> str:
        results = state.get("validation_results", [])
        if state.get("validated_revision") != state.get("recipe_revision", 0):
            if results:
                logger.warning("Validate: ignoring results computed for an older recipe revision")
            results = []

        decision = route(results, empty_policy=empty_policy)
        condition = condition_for(
            decision,
            revisions=state.get("revisions", 0),
            max_revisions=settings.max_revisions,
        )
        logger.debug(f"Validate: route={decision.value}, condition={condition.value}")
        return condition.value

    return route_after_validate
