"""
Tests for settings, prompt rendering and prompt logging.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from mealplan.config import MACRO_TOLERANCE, MealPlanSettings, get_settings, settings
from mealplan.core.rules import RuleLimits
from mealplan.llm.prompt_logger import PromptExchange, PromptLog
from mealplan.models import RuleName, UserPreferences, ValidationResult
from mealplan.prompts import (
    STORE_DEPARTMENTS,
    render_edit_prompt,
    render_generate_prompt,
    render_shop_prompt,
    render_validate_prompt,
)


class TestSettings:
    """Settings come from the environment with safe defaults."""

    def test_defaults(self, test_settings):
        assert test_settings.macro_tolerance == MACRO_TOLERANCE == 0.15
        assert test_settings.max_main_ingredients == 6
        assert test_settings.max_cook_minutes == 20
        assert test_settings.revision_mode == "edit_once"
        assert test_settings.empty_results_policy == "shop"
        assert test_settings.on_malformed == "degrade"
        assert test_settings.validation_mode == "rules"
        assert test_settings.is_development

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("REVISION_MODE", "revalidate")
        monkeypatch.setenv("MAX_REVISIONS", "3")
        monkeypatch.setenv("MACRO_TOLERANCE", "0.1")

        loaded = MealPlanSettings(_env_file=None)

        assert loaded.revision_mode == "revalidate"
        assert loaded.max_revisions == 3
        assert RuleLimits.from_settings(loaded).macro_tolerance == 0.1

    def test_invalid_policy_rejected(self, make_settings):
        with pytest.raises(ValidationError):
            make_settings(empty_results_policy="ignore")

    def test_budget_must_be_positive(self, make_settings):
        with pytest.raises(ValidationError):
            make_settings(max_revisions=0)

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_proxy_reads_settings(self):
        assert settings.openai_model == get_settings().openai_model


class TestUserPreferences:
    """Preferences normalize their term lists."""

    def test_terms_normalized(self):
        prefs = UserPreferences(
            caloriesPerMeal=500,
            proteinPerMeal=30,
            allergens=["Peanuts", "shellfish", "peanuts", " "],
            dietaryPreferences="Vegetarian",
        )

        assert prefs.allergens == ("peanuts", "shellfish")
        assert prefs.dietary_preferences == ("vegetarian",)

    def test_order_does_not_matter(self):
        a = UserPreferences(calories_per_meal=500, protein_per_meal=30, allergens=["a", "b"])
        b = UserPreferences(calories_per_meal=500, protein_per_meal=30, allergens=["b", "a"])

        assert a == b

    def test_calories_must_be_positive(self):
        with pytest.raises(ValidationError):
            UserPreferences(calories_per_meal=0, protein_per_meal=30)


class TestPrompts:
    """Prompts carry the user's requirements and the configured limits."""

    def test_generate(self, preferences):
        prompt = render_generate_prompt(preferences, RuleLimits(), today=date(2026, 10, 19))

        assert "October" in prompt
        assert "Pacific Northwest" in prompt
        assert "chickpeas" in prompt
        assert "±15%" in prompt
        assert "$" not in prompt

    def test_generate_limits_follow_settings(self, preferences):
        prompt = render_generate_prompt(preferences, RuleLimits(max_main_ingredients=4, max_cook_minutes=30))

        assert "4 main ingredients" in prompt
        assert "30 minutes" in prompt

    def test_validate_lists_every_rule(self, passing_recipe, preferences):
        prompt = render_validate_prompt(passing_recipe, preferences, RuleLimits())

        for rule in RuleName:
            assert rule.value in prompt
        assert '"cookTime": "15 minutes"' in prompt

    def test_edit_includes_failure_detail(self, passing_recipe, preferences):
        failed = [ValidationResult(rule=RuleName.CALORIES, status="fail", detail="600 kcal is too much")]

        prompt = render_edit_prompt(passing_recipe, failed, preferences, RuleLimits())

        assert "`calorieComplianceRule`: fail (600 kcal is too much)" in prompt

    def test_shop_lists_departments(self, passing_recipe, preferences):
        prompt = render_shop_prompt(passing_recipe, preferences)

        for department in STORE_DEPARTMENTS:
            assert department in prompt


class TestPromptLog:
    """Each model exchange becomes one numbered markdown file per session."""

    @pytest.fixture
    def log(self, tmp_path):
        return PromptLog(tmp_path / "prompt_logs", enabled=True)

    def test_follows_settings_by_default(self, tmp_path):
        log = PromptLog(tmp_path)

        assert not log.enabled
        assert log.session_dir is None
        assert log.record(PromptExchange(node="generate", model="m", prompt="p")) is None
        assert not any(tmp_path.iterdir())

    def test_enable(self, tmp_path):
        log = PromptLog(tmp_path)

        log.enable()

        assert log.enabled
        assert log.session_dir.parent == tmp_path

    def test_writes_markdown(self, log):
        exchange = PromptExchange(
            node="shop", model="gpt-4o-mini", prompt="List it", response="{}",
            temperature=0.2, elapsed=1.234,
        )

        path = log.record(exchange)

        assert path.name == "01-shop.md"
        text = path.read_text(encoding="utf-8")
        assert text.startswith("# shop (call 1)")
        assert "| Temperature | 0.2 |" in text
        assert "| Elapsed | 1.23s |" in text
        assert "| Outcome | ok |" in text
        assert "List it" in text

    def test_numbers_calls_within_a_session(self, log):
        first = log.record(PromptExchange(node="generate", model="m", prompt="p", response="r"))
        second = log.record(PromptExchange(node="validate", model="m", prompt="p", response="r"))

        assert [first.name, second.name] == ["01-generate.md", "02-validate.md"]
        assert first.parent == second.parent

    def test_records_errors(self, log):
        path = log.record(PromptExchange(node="edit", model="m", prompt="p", error="timeout"))

        text = path.read_text(encoding="utf-8")
        assert "> Failed: timeout" in text
        assert "| Outcome | failed |" in text

    def test_empty_response(self, log):
        path = log.record(PromptExchange(node="edit", model="m", prompt="p", response=""))

        assert "_No text returned._" in path.read_text(encoding="utf-8")

    def test_new_session_restarts_numbering(self, log):
        log.record(PromptExchange(node="generate", model="m", prompt="p", response="r"))

        log.new_session()
        path = log.record(PromptExchange(node="generate", model="m", prompt="p", response="r"))

        assert path.name == "01-generate.md"
