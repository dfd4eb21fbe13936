"""
Mealplan - Revision Controller.

Decides where the pipeline goes after validation and describes the whole
pipeline as an explicit transition table:

    START → generate → validate → [fail? → edit → shop : shop] → END

The table is checked for exhaustiveness when it is built, so a missing or
conflicting edge fails at construction instead of surfacing mid-run.

Revision modes:
- EDIT_ONCE: the editor is trusted once, edit goes straight to shop
- REVALIDATE: edit goes back to validate until the revision budget is spent
"""

from collections.abc import Iterable, Mapping
from enum import Enum

from mealplan.exceptions import TransitionTableError, ValidationIncompleteError
from mealplan.models import ValidationResult


class Stage(str, Enum):
    """Pipeline stages. Values double as LangGraph node names."""

    START = "start"
    GENERATE = "generate"
    VALIDATE = "validate"
    EDIT = "edit"
    SHOP = "shop"
    END = "end"


class Condition(str, Enum):
    """What a stage's outcome looked like."""

    ALWAYS = "always"  # Unconditional edge
    PASSED = "passed"  # Every rule passed
    FAILED = "failed"  # At least one rule failed, revisions left
    EXHAUSTED = "exhausted"  # At least one rule failed, no revisions left


class Route(str, Enum):
    """Routing decision for a validation result set."""

    EDIT = "edit"
    SHOP = "shop"


class RevisionMode(str, Enum):
    EDIT_ONCE = "edit_once"
    REVALIDATE = "revalidate"


class EmptyResultsPolicy(str, Enum):
    """
    What an empty or stale result set means.

    SHOP treats it as "no failures" (the run is flagged as degraded),
    EDIT sends the recipe to the editor, ABORT stops the run.
    """

    SHOP = "shop"
    EDIT = "edit"
    ABORT = "abort"


# Stages whose outgoing edge depends on the validation outcome
CONDITIONAL_STAGES = {
    Stage.VALIDATE: frozenset([Condition.PASSED, Condition.FAILED, Condition.EXHAUSTED]),
}


def route(
    results: Iterable[ValidationResult],
    *,
    empty_policy: EmptyResultsPolicy = EmptyResultsPolicy.SHOP,
) -> Route:
    """
    Decide between editing and shopping.

    Args:
        results: Validation results for the current recipe revision
        empty_policy: How to treat an empty result set

    Returns:
        Route.EDIT if any rule failed, Route.SHOP if all passed

    Raises:
        ValidationIncompleteError: for an empty set under EmptyResultsPolicy.ABORT
    """
    results = list(results)
    if not results:
        if empty_policy is EmptyResultsPolicy.ABORT:
            raise ValidationIncompleteError(
                message="No validation results to route on (empty results policy is 'abort')"
            )
        return Route.EDIT if empty_policy is EmptyResultsPolicy.EDIT else Route.SHOP
    if any(r.status == "fail" for r in results):
        return Route.EDIT
    return Route.SHOP


def condition_for(route_: Route, *, revisions: int, max_revisions: int) -> Condition:
    """Turn a route into the VALIDATE condition, accounting for the revision budget."""
    if route_ is Route.SHOP:
        return Condition.PASSED
    if revisions >= max_revisions:
        return Condition.EXHAUSTED
    return Condition.FAILED


class TransitionTable:
    """
    Stage × Condition → next Stage.

    Raises TransitionTableError on construction unless:
    - every stage except END has outgoing transitions
    - conditional stages cover exactly their conditions
    - every other stage has exactly one ALWAYS transition
    - END is entered only from SHOP
    - every stage is reachable from START
    """

    def __init__(self, transitions: Mapping[tuple[Stage, Condition], Stage]):
        self._transitions = dict(transitions)
        self._check()

    def next(self, stage: Stage, condition: Condition = Condition.ALWAYS) -> Stage:
        try:
            return self._transitions[(stage, condition)]
        except KeyError:
            raise TransitionTableError(
                f"No transition from {stage.value} on {condition.value}"
            ) from None

    def conditions(self, stage: Stage) -> dict[Condition, Stage]:
        """Outgoing transitions of one stage."""
        return {c: target for (s, c), target in self._transitions.items() if s is stage}

    def is_conditional(self, stage: Stage) -> bool:
        return stage in CONDITIONAL_STAGES

    @property
    def stages(self) -> list[Stage]:
        """Stages that do work (START and END excluded), in declaration order."""
        return [s for s in Stage if s not in (Stage.START, Stage.END)]

    def _check(self) -> None:
        for stage in Stage:
            outgoing = set(self.conditions(stage))
            if stage is Stage.END:
                if outgoing:
                    raise TransitionTableError("END must not have outgoing transitions")
                continue
            expected = CONDITIONAL_STAGES.get(stage, frozenset([Condition.ALWAYS]))
            if outgoing != expected:
                missing = sorted(c.value for c in expected - outgoing)
                extra = sorted(c.value for c in outgoing - expected)
                raise TransitionTableError(
                    f"Stage {stage.value}: missing {missing or 'nothing'}, unexpected {extra or 'nothing'}"
                )

        into_end = {s for (s, _), target in self._transitions.items() if target is Stage.END}
        if into_end != {Stage.SHOP}:
            raise TransitionTableError(
                f"END must be entered only from shop, found {sorted(s.value for s in into_end)}"
            )
        if any(target is Stage.START for target in self._transitions.values()):
            raise TransitionTableError("START cannot be a transition target")

        reachable = {Stage.START}
        frontier = [Stage.START]
        while frontier:
            stage = frontier.pop()
            for target in self.conditions(stage).values():
                if target not in reachable:
                    reachable.add(target)
                    frontier.append(target)
        unreachable = set(Stage) - reachable
        if unreachable:
            raise TransitionTableError(
                f"Unreachable stages: {sorted(s.value for s in unreachable)}"
            )


def build_transition_table(mode: RevisionMode | str = RevisionMode.EDIT_ONCE) -> TransitionTable:
    """Build the pipeline's transition table for a revision mode."""
    mode = RevisionMode(mode)
    after_edit = Stage.VALIDATE if mode is RevisionMode.REVALIDATE else Stage.SHOP
    return TransitionTable({
        (Stage.START, Condition.ALWAYS): Stage.GENERATE,
        (Stage.GENERATE, Condition.ALWAYS): Stage.VALIDATE,
        (Stage.VALIDATE, Condition.PASSED): Stage.SHOP,
        (Stage.VALIDATE, Condition.FAILED): Stage.EDIT,
        (Stage.VALIDATE, Condition.EXHAUSTED): Stage.SHOP,
        (Stage.EDIT, Condition.ALWAYS): after_edit,
        (Stage.SHOP, Condition.ALWAYS): Stage.END,
    })
