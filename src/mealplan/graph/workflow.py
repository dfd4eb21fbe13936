"""
Mealplan - Graph Workflow Definition.

This module constructs the LangGraph workflow from the transition table:
Generate → Validate → (Edit) → Shop

The model client and settings are bound to every node when the graph is
created. Each run gets its own run_id, which is also its LangGraph thread_id,
so the MemorySaver checkpoints of concurrent runs never mix.
"""

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable

from langgraph.graph import END, StateGraph

from mealplan.checkpoint import PipelineCheckpoints, get_default_checkpoints
from mealplan.config import MealPlanSettings, get_settings
from mealplan.core.routing import Stage, TransitionTable, build_transition_table
from mealplan.graph.nodes import (
    StageContext,
    edit_node,
    generate_node,
    make_validation_router,
    shop_node,
    validate_node,
)
from mealplan.graph.state import PipelineState, degraded_stages, initial_state
from mealplan.llm.client import ModelClient
from mealplan.models import UserPreferences

logger = logging.getLogger(__name__)

NodeFn = Callable[[PipelineState, StageContext], Awaitable[dict]]

NODES: dict[Stage, NodeFn] = {
    Stage.GENERATE: generate_node,
    Stage.VALIDATE: validate_node,
    Stage.EDIT: edit_node,
    Stage.SHOP: shop_node,
}

# Streaming event emitted when a stage completes
STAGE_EVENTS = {
    Stage.GENERATE.value: "recipe_generated",
    Stage.VALIDATE.value: "recipe_validated",
    Stage.EDIT.value: "recipe_edited",
    Stage.SHOP.value: "shopping_list_generated",
}


def _bind(node: NodeFn, ctx: StageContext):
    async def bound(state: PipelineState) -> dict:
        return await node(state, ctx)

    bound.__name__ = node.__name__
    return bound


def _target(stage: Stage) -> str:
    return END if stage is Stage.END else stage.value


def create_pipeline_graph(
    client: ModelClient,
    settings: MealPlanSettings | None = None,
    table: TransitionTable | None = None,
) -> StateGraph:
    """
    Create the meal-planning LangGraph workflow.

    Flow (edit_once):
        START → generate → validate → shop → END
                              ↓         ↑
                             edit ──────┘

    In revalidate mode edit loops back to validate until max_revisions
    edits have been made.

    Args:
        client: Model client shared by every stage
        settings: Pipeline settings (defaults to get_settings())
        table: Transition table (defaults to one built for settings.revision_mode)

    Returns:
        Uncompiled StateGraph
    """
    settings = settings or get_settings()
    table = table or build_transition_table(settings.revision_mode)
    ctx = StageContext(client=client, settings=settings)

    graph = StateGraph(PipelineState)

    # ==========================================================================
    # Add Nodes
    # ==========================================================================

    for stage in table.stages:
        graph.add_node(stage.value, _bind(NODES[stage], ctx))

    # ==========================================================================
    # Add Edges
    # ==========================================================================

    graph.set_entry_point(table.next(Stage.START).value)

    for stage in table.stages:
        if table.is_conditional(stage):
            graph.add_conditional_edges(
                stage.value,
                make_validation_router(settings),
                {condition.value: _target(target) for condition, target in table.conditions(stage).items()},
            )
        else:
            graph.add_edge(stage.value, _target(table.next(stage)))

    return graph


def compile_pipeline_graph(
    client: ModelClient,
    settings: MealPlanSettings | None = None,
    table: TransitionTable | None = None,
    checkpointer=None,
):
    """
    Compile the pipeline graph for execution.

    Args:
        checkpointer: LangGraph checkpointer, usually a shared MemorySaver

    Returns:
        Compiled graph that can be invoked with state
    """
    return create_pipeline_graph(client, settings, table).compile(checkpointer=checkpointer)


# =============================================================================
# Convenience Functions
# =============================================================================


def _stage_event(node_name: str, update: dict, run_id: str) -> dict:
    event = {"type": STAGE_EVENTS[node_name], "run_id": run_id, "stage": node_name}
    if node_name in (Stage.GENERATE.value, Stage.EDIT.value):
        event["recipe"] = update.get("recipe")
    elif node_name == Stage.VALIDATE.value:
        event["results"] = update.get("validation_results", [])
    elif node_name == Stage.SHOP.value:
        event["shopping_list"] = update.get("shopping_list")
    if update.get("stage_errors"):
        event["errors"] = update["stage_errors"]
    return event


async def run_pipeline_streaming(
    preferences: UserPreferences,
    *,
    client: ModelClient,
    settings: MealPlanSettings | None = None,
    checkpoints: PipelineCheckpoints | None = None,
    run_id: str | None = None,
) -> AsyncIterator[dict]:
    """
    Run the pipeline with streaming updates.

    Yields one event per completed stage:
    - {"type": "recipe_generated", "recipe": Recipe, ...}
    - {"type": "recipe_validated", "results": [ValidationResult, ...], ...}
    - {"type": "recipe_edited", "recipe": Recipe, ...}
    - {"type": "shopping_list_generated", "shopping_list": ShoppingList, ...}
    - {"type": "done", "state": PipelineState, "degraded": [stage, ...]}

    A stage that recorded a failure adds an "errors" list to its event.
    Every event carries the run_id.

    Raises:
        ModelInvocationError: the model call failed
        MalformedResponseError: unusable output under on_malformed="abort",
            or in model validation mode
        ValidationIncompleteError: validation did not cover every rule
    """
    settings = settings or get_settings()
    checkpoints = checkpoints or get_default_checkpoints()
    run_id = run_id or uuid.uuid4().hex

    app = compile_pipeline_graph(client, settings, checkpointer=checkpoints.saver)
    config = checkpoints.track(run_id, app)
    final_state: PipelineState = initial_state(preferences, run_id)

    logger.info(f"Pipeline: starting run {run_id}")

    async for mode, chunk in app.astream(
        final_state, config=config, stream_mode=["updates", "values"]
    ):
        if mode == "updates":
            # chunk is {node_name: node_output}
            for node_name, node_output in chunk.items():
                if node_name not in STAGE_EVENTS:
                    continue
                yield _stage_event(node_name, node_output or {}, run_id)
        elif mode == "values":
            final_state = chunk

    degraded = degraded_stages(final_state)
    if degraded:
        logger.warning(f"Pipeline: run {run_id} finished degraded at {', '.join(degraded)}")
    else:
        logger.info(f"Pipeline: run {run_id} finished")

    yield {
        "type": "done",
        "run_id": run_id,
        "state": final_state,
        "degraded": degraded,
    }


async def run_pipeline(
    preferences: UserPreferences,
    *,
    client: ModelClient,
    settings: MealPlanSettings | None = None,
    checkpoints: PipelineCheckpoints | None = None,
    run_id: str | None = None,
) -> PipelineState:
    """
    Run the pipeline for one set of preferences.

    This is the main entry point.

    Returns:
        Final state, with recipe, validation_results, shopping_list and
        stage_errors (empty unless the run degraded)

    Example:
        state = await run_pipeline(
            UserPreferences(calories_per_meal=500, protein_per_meal=30, allergens=["peanuts"]),
            client=OpenAIModelClient(),
        )
        print(state["shopping_list"])
    """
    final_state: PipelineState | None = None
    async for event in run_pipeline_streaming(
        preferences,
        client=client,
        settings=settings,
        checkpoints=checkpoints,
        run_id=run_id,
    ):
        if event["type"] == "done":
            final_state = event["state"]
    return final_state


def run_pipeline_sync(
    preferences: UserPreferences,
    *,
    client: ModelClient,
    settings: MealPlanSettings | None = None,
    checkpoints: PipelineCheckpoints | None = None,
    run_id: str | None = None,
) -> PipelineState:
    """Blocking wrapper around run_pipeline for scripts and the CLI."""
    return asyncio.run(
        run_pipeline(
            preferences, client=client, settings=settings, checkpoints=checkpoints, run_id=run_id
        )
    )
