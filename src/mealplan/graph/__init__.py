"""
Mealplan - LangGraph Orchestration.

The graph implements: Generate → Validate → (Edit) → Shop
"""

from mealplan.graph.state import PipelineState, degraded_stages, initial_state, is_degraded
from mealplan.graph.workflow import (
    compile_pipeline_graph,
    create_pipeline_graph,
    run_pipeline,
    run_pipeline_streaming,
    run_pipeline_sync,
)

__all__ = [
    # State
    "PipelineState",
    "initial_state",
    "degraded_stages",
    "is_degraded",
    # Workflow
    "create_pipeline_graph",
    "compile_pipeline_graph",
    "run_pipeline",
    "run_pipeline_streaming",
    "run_pipeline_sync",
]
