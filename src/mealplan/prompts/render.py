"""
Mealplan - Prompt Rendering.

Each node's prompt is a markdown template under prompts/templates/ with
$placeholders. This module fills them from the run's preferences, the
current recipe and the configured rule limits.
"""

from datetime import date
from functools import lru_cache
from pathlib import Path
from string import Template

from mealplan.core.rules import RuleLimits
from mealplan.models import Recipe, UserPreferences, ValidationResult

TEMPLATE_DIR = Path(__file__).parent / "templates"

# Departments the shopping list is grouped by
STORE_DEPARTMENTS = (
    "Produce",
    "Meat and Seafood",
    "Dairy and Eggs",
    "Bakery",
    "Pantry/Dry Goods",
    "Frozen Foods",
    "Canned Goods",
    "Condiments and Spices",
    "Beverages",
)


@lru_cache
def load_template(name: str) -> Template:
    """Load a prompt template by node name ("generate", "validate", ...)."""
    path = TEMPLATE_DIR / f"{name}.md"
    return Template(path.read_text(encoding="utf-8"))


def _join(terms: tuple[str, ...] | list[str]) -> str:
    return ", ".join(terms) if terms else "none"


def _common_fields(preferences: UserPreferences, limits: RuleLimits) -> dict[str, str]:
    return {
        "calories": f"{preferences.calories_per_meal:g}",
        "protein": f"{preferences.protein_per_meal:g}",
        "allergens": _join(preferences.allergens),
        "dietary": _join(preferences.dietary_preferences),
        "disliked": _join(preferences.disliked_foods),
        "max_ingredients": str(limits.max_main_ingredients),
        "max_minutes": str(limits.max_cook_minutes),
        "tolerance_pct": f"±{limits.macro_tolerance:.0%}",
    }


def render_generate_prompt(
    preferences: UserPreferences,
    limits: RuleLimits,
    today: date | None = None,
) -> str:
    """Prompt for drafting a recipe; the month and region steer it toward seasonal produce."""
    today = today or date.today()
    return load_template("generate").substitute(
        _common_fields(preferences, limits),
        liked=_join(preferences.liked_foods),
        month=today.strftime("%B"),
        region=preferences.location or "anywhere",
    )


def render_validate_prompt(
    recipe: Recipe,
    preferences: UserPreferences,
    limits: RuleLimits,
) -> str:
    return load_template("validate").substitute(
        _common_fields(preferences, limits),
        recipe=recipe.to_prompt_json(),
    )


def _format_failures(failed: list[ValidationResult]) -> str:
    if not failed:
        return "- none reported; re-check every requirement"
    lines = []
    for result in failed:
        line = f"- `{result.rule.value}`: fail"
        if result.detail:
            line += f" ({result.detail})"
        lines.append(line)
    return "\n".join(lines)


def render_edit_prompt(
    recipe: Recipe,
    failed: list[ValidationResult],
    preferences: UserPreferences,
    limits: RuleLimits,
) -> str:
    return load_template("edit").substitute(
        _common_fields(preferences, limits),
        failed_rules=_format_failures(failed),
        recipe=recipe.to_prompt_json(),
    )


def render_shop_prompt(recipe: Recipe, preferences: UserPreferences) -> str:
    return load_template("shop").substitute(
        region=preferences.location or "a typical grocery store",
        departments=", ".join(STORE_DEPARTMENTS),
        recipe=recipe.to_prompt_json(),
    )
