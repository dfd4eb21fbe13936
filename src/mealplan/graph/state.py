"""
Mealplan - Graph State Definition.

The PipelineState is the shared state passed through all nodes.
"""

import operator
from typing import Annotated, TypedDict

from mealplan.models import (
    Recipe,
    ShoppingList,
    StageFailure,
    UserPreferences,
    ValidationResult,
)


# =============================================================================
# Graph State
# =============================================================================


class PipelineState(TypedDict, total=False):
    """
    Shared state passed through all LangGraph nodes.

    This is a TypedDict so LangGraph can merge the partial updates each node
    returns. Annotated fields are append-only.
    """

    # Run identity
    run_id: str

    # Input (read-only)
    preferences: UserPreferences

    # Recipe and its version; every edit bumps recipe_revision
    recipe: Recipe | None
    recipe_revision: int
    recipe_history: Annotated[list[Recipe], operator.add]

    # Validation, only trusted when validated_revision == recipe_revision
    validation_results: list[ValidationResult]
    validated_revision: int | None
    revisions: int  # Edit passes so far

    # Output
    shopping_list: ShoppingList | None

    # Diagnostics
    stage_errors: Annotated[list[StageFailure], operator.add]
    visited: Annotated[list[str], operator.add]


def initial_state(preferences: UserPreferences, run_id: str) -> PipelineState:
    """Build the state a run starts from."""
    return {
        "run_id": run_id,
        "preferences": preferences,
        "recipe": None,
        "recipe_revision": 0,
        "recipe_history": [],
        "validation_results": [],
        "validated_revision": None,
        "revisions": 0,
        "shopping_list": None,
        "stage_errors": [],
        "visited": [],
    }


def degraded_stages(state: PipelineState) -> list[str]:
    """Stages that recorded a failure, in the order they failed, without repeats."""
    stages: list[str] = []
    for failure in state.get("stage_errors", []):
        if failure.stage not in stages:
            stages.append(failure.stage)
    return stages


def is_degraded(state: PipelineState) -> bool:
    return bool(state.get("stage_errors"))
