"""
Mealplan Core - Rule evaluation and revision control.
"""

from mealplan.core.routing import (
    Condition,
    EmptyResultsPolicy,
    RevisionMode,
    Route,
    Stage,
    TransitionTable,
    build_transition_table,
    route,
)
from mealplan.core.rules import RuleLimits, ensure_complete, evaluate, failed_rules

__all__ = [
    # Rules
    "RuleLimits",
    "evaluate",
    "ensure_complete",
    "failed_rules",
    # Routing
    "Stage",
    "Condition",
    "Route",
    "RevisionMode",
    "EmptyResultsPolicy",
    "TransitionTable",
    "build_transition_table",
    "route",
]
