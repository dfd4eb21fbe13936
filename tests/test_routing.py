"""
Tests for the revision controller: routing decisions and the transition table.
"""

import pytest

from mealplan.core.routing import (
    Condition,
    EmptyResultsPolicy,
    RevisionMode,
    Route,
    Stage,
    TransitionTable,
    build_transition_table,
    condition_for,
    route,
)
from mealplan.core.rules import evaluate
from mealplan.exceptions import TransitionTableError, ValidationIncompleteError
from mealplan.models import RuleName, ValidationResult


def _results(*failing: RuleName) -> list[ValidationResult]:
    return [
        ValidationResult(rule=rule, status="fail" if rule in failing else "pass")
        for rule in RuleName
    ]


def _edit_once_transitions() -> dict:
    return {
        (Stage.START, Condition.ALWAYS): Stage.GENERATE,
        (Stage.GENERATE, Condition.ALWAYS): Stage.VALIDATE,
        (Stage.VALIDATE, Condition.PASSED): Stage.SHOP,
        (Stage.VALIDATE, Condition.FAILED): Stage.EDIT,
        (Stage.VALIDATE, Condition.EXHAUSTED): Stage.SHOP,
        (Stage.EDIT, Condition.ALWAYS): Stage.SHOP,
        (Stage.SHOP, Condition.ALWAYS): Stage.END,
    }


class TestRoute:
    """route() sends any failure to the editor."""

    def test_all_pass_goes_to_shop(self):
        assert route(_results()) is Route.SHOP

    def test_any_failure_goes_to_edit(self):
        assert route(_results(RuleName.ALLERGEN_SAFETY)) is Route.EDIT
        assert route(_results(*RuleName)) is Route.EDIT

    def test_evaluated_recipe(self, passing_recipe, preferences):
        assert route(evaluate(passing_recipe, preferences)) is Route.SHOP

        high = passing_recipe.model_copy(update={"calories": 600})
        assert route(evaluate(high, preferences)) is Route.EDIT

    def test_empty_defaults_to_shop(self):
        assert route([]) is Route.SHOP

    def test_empty_with_edit_policy(self):
        assert route([], empty_policy=EmptyResultsPolicy.EDIT) is Route.EDIT

    def test_empty_with_abort_policy(self):
        with pytest.raises(ValidationIncompleteError):
            route([], empty_policy=EmptyResultsPolicy.ABORT)

    def test_abort_policy_ignores_non_empty(self):
        assert route(_results(), empty_policy=EmptyResultsPolicy.ABORT) is Route.SHOP


class TestConditionFor:
    """The revision budget turns FAILED into EXHAUSTED."""

    def test_shop_is_passed(self):
        assert condition_for(Route.SHOP, revisions=0, max_revisions=1) is Condition.PASSED

    def test_edit_with_budget_left(self):
        assert condition_for(Route.EDIT, revisions=0, max_revisions=1) is Condition.FAILED
        assert condition_for(Route.EDIT, revisions=1, max_revisions=3) is Condition.FAILED

    def test_edit_with_budget_spent(self):
        assert condition_for(Route.EDIT, revisions=1, max_revisions=1) is Condition.EXHAUSTED


class TestTransitionTable:
    """Tables are checked for exhaustiveness when built."""

    def test_edit_once_table(self):
        table = build_transition_table(RevisionMode.EDIT_ONCE)

        assert table.next(Stage.START) is Stage.GENERATE
        assert table.next(Stage.VALIDATE, Condition.FAILED) is Stage.EDIT
        assert table.next(Stage.VALIDATE, Condition.PASSED) is Stage.SHOP
        assert table.next(Stage.EDIT) is Stage.SHOP
        assert table.next(Stage.SHOP) is Stage.END

    def test_revalidate_table(self):
        table = build_transition_table("revalidate")

        assert table.next(Stage.EDIT) is Stage.VALIDATE
        assert table.next(Stage.VALIDATE, Condition.EXHAUSTED) is Stage.SHOP

    def test_only_validate_is_conditional(self):
        table = build_transition_table()

        assert [s for s in table.stages if table.is_conditional(s)] == [Stage.VALIDATE]
        assert set(table.conditions(Stage.VALIDATE)) == {
            Condition.PASSED, Condition.FAILED, Condition.EXHAUSTED,
        }

    def test_unknown_transition(self):
        table = build_transition_table()

        with pytest.raises(TransitionTableError):
            table.next(Stage.GENERATE, Condition.FAILED)

    def test_missing_condition_rejected(self):
        transitions = _edit_once_transitions()
        del transitions[(Stage.VALIDATE, Condition.EXHAUSTED)]

        with pytest.raises(TransitionTableError, match="exhausted"):
            TransitionTable(transitions)

    def test_missing_stage_rejected(self):
        transitions = _edit_once_transitions()
        del transitions[(Stage.EDIT, Condition.ALWAYS)]

        with pytest.raises(TransitionTableError):
            TransitionTable(transitions)

    def test_end_only_from_shop(self):
        transitions = _edit_once_transitions()
        transitions[(Stage.EDIT, Condition.ALWAYS)] = Stage.END

        with pytest.raises(TransitionTableError, match="END"):
            TransitionTable(transitions)

    def test_unreachable_stage_rejected(self):
        transitions = _edit_once_transitions()
        transitions[(Stage.VALIDATE, Condition.FAILED)] = Stage.SHOP

        with pytest.raises(TransitionTableError, match="Unreachable"):
            TransitionTable(transitions)

    def test_invalid_mode(self):
        with pytest.raises(ValueError):
            build_transition_table("edit_forever")
