"""
Mealplan - Rule Evaluator.

Checks a recipe against the user's preferences, one ValidationResult per rule.
Every rule is independent and deterministic, so re-validating an unchanged
recipe against unchanged preferences always yields the same results.

Rules:
- ingredientCountRule: at most N main ingredients (seasonings excluded)
- calorieComplianceRule / proteinComplianceRule: within +/- tolerance of target
- allergenSafetyRule: no listed allergen in the recipe's allergens or ingredients
- dietaryComplianceRule: every dietary preference is among the recipe's tags
- ingredientRestrictionRule: no disliked food among the ingredients
- timeManagementRule: cook time at most N minutes
"""

import re
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from mealplan.config import MACRO_TOLERANCE, MAX_COOK_MINUTES, MAX_MAIN_INGREDIENTS
from mealplan.exceptions import ValidationIncompleteError
from mealplan.models import (
    Ingredient,
    Recipe,
    RuleName,
    UserPreferences,
    ValidationResult,
)


@dataclass(frozen=True)
class RuleLimits:
    """Numeric limits the rules check against."""

    max_main_ingredients: int = MAX_MAIN_INGREDIENTS
    macro_tolerance: float = MACRO_TOLERANCE
    max_cook_minutes: int = MAX_COOK_MINUTES

    @classmethod
    def from_settings(cls, settings) -> "RuleLimits":
        return cls(
            max_main_ingredients=settings.max_main_ingredients,
            macro_tolerance=settings.macro_tolerance,
            max_cook_minutes=settings.max_cook_minutes,
        )


# =============================================================================
# Term Matching
# =============================================================================

_WORD = re.compile(r"[a-z]+")


def _tokens(text: str) -> list[str]:
    return _WORD.findall(text.lower())


def _same_word(a: str, b: str) -> bool:
    """Equal, or equal up to a plural suffix (nut/nuts, tomato/tomatoes)."""
    if a == b:
        return True
    short, long = sorted((a, b), key=len)
    return long in (short + "s", short + "es")


def mentions(term: str, text: str) -> bool:
    """
    True if every word of term appears, in order and adjacent, in text.

    "peanut" mentions "Peanut Butter"; "nut" does not mention "coconut".
    """
    needle = _tokens(term)
    haystack = _tokens(text)
    if not needle or len(needle) > len(haystack):
        return False
    for start in range(len(haystack) - len(needle) + 1):
        window = haystack[start : start + len(needle)]
        if all(_same_word(a, b) for a, b in zip(needle, window)):
            return True
    return False


# =============================================================================
# Seasonings
# =============================================================================

# Head nouns that make an ingredient a seasoning
SEASONING_WORDS = frozenset([
    "oil", "salt", "peppercorn", "seasoning", "spray",
])

# Phrases that are seasonings even though their words alone are not
SEASONING_PHRASES = (
    "black pepper", "white pepper", "ground pepper", "cracked pepper",
    "pepper flakes", "chili flakes", "chilli flakes",
    "garlic powder", "onion powder", "chili powder", "curry powder",
    "bay leaf", "bay leaves",
)

# Dried spices that are never the main part of a dish
SPICES = frozenset([
    "paprika", "cumin", "oregano", "cinnamon", "nutmeg", "turmeric",
    "cayenne", "allspice", "coriander",
])

# Herbs only count as seasoning when dried; fresh herbs are ingredients
DRIED_HERBS = frozenset([
    "thyme", "rosemary", "basil", "parsley", "dill", "sage", "tarragon",
])

# Words that end the noun phrase: "tuna in oil", "salt to taste"
_PHRASE_BREAKS = frozenset(["in", "with", "for", "of", "from", "to"])


def _noun_phrase(name: str) -> list[str]:
    """
    Words of the ingredient's own noun phrase.

    Drops anything after a comma or parenthesis and anything from the first
    preposition on, so the last word returned is the head noun.
    """
    words = _tokens(re.split(r"[,(]", name, maxsplit=1)[0])
    for index, word in enumerate(words):
        if word in _PHRASE_BREAKS:
            return words[:index]
    return words


def _ends_with(words: list[str], phrase: str) -> bool:
    tail = _tokens(phrase)
    if len(tail) > len(words):
        return False
    return all(_same_word(a, b) for a, b in zip(tail, words[-len(tail):]))


def is_seasoning(ingredient: Ingredient) -> bool:
    """
    Oils, salt, pepper and basic seasonings don't count toward the ingredient limit.

    Only the head noun decides: "olive oil" and "kosher salt" are seasonings,
    "tuna in oil" and "salt cod" are not.
    """
    words = _noun_phrase(ingredient.name)
    if "and" in words:
        parts = " ".join(words).split(" and ")
        return all(_seasoning_words(_tokens(part)) for part in parts)
    return _seasoning_words(words)


def _seasoning_words(words: list[str]) -> bool:
    if not words:
        return False
    head = words[-1]
    if words == ["pepper"] or head in SEASONING_WORDS or head.rstrip("s") in SEASONING_WORDS:
        return True
    if any(_ends_with(words, phrase) for phrase in SEASONING_PHRASES):
        return True
    if "fresh" in words:
        return False
    if head in SPICES or (head.rstrip("s") == "seed" and any(w in SPICES for w in words)):
        return True
    return "dried" in words and head in DRIED_HERBS


def main_ingredients(recipe: Recipe) -> list[Ingredient]:
    return [i for i in recipe.ingredients if not is_seasoning(i)]


# =============================================================================
# Rule Checks
# =============================================================================

# Each check returns (passed, detail). Detail explains a failure.
RuleCheck = Callable[[Recipe, UserPreferences, RuleLimits], tuple[bool, str | None]]

# A vegan recipe satisfies these preferences too
_IMPLIED_BY = {
    "vegetarian": {"vegan"},
    "pescatarian": {"vegetarian", "vegan"},
    "dairy-free": {"vegan"},
    "egg-free": {"vegan"},
}


def _normalize_tag(tag: str) -> str:
    return "-".join(_tokens(tag))


def _within(actual: float, target: float, tolerance: float) -> bool:
    return abs(actual - target) <= tolerance * target


def check_ingredient_count(recipe, preferences, limits):
    mains = main_ingredients(recipe)
    if len(mains) <= limits.max_main_ingredients:
        return True, None
    return False, (
        f"{len(mains)} main ingredients, limit is {limits.max_main_ingredients}"
    )


def check_calories(recipe, preferences, limits):
    target = preferences.calories_per_meal
    if _within(recipe.calories, target, limits.macro_tolerance):
        return True, None
    return False, (
        f"{recipe.calories:g} kcal is outside {target:g} +/- {limits.macro_tolerance:.0%}"
    )


def check_protein(recipe, preferences, limits):
    target = preferences.protein_per_meal
    if _within(recipe.protein, target, limits.macro_tolerance):
        return True, None
    return False, (
        f"{recipe.protein:g} g protein is outside {target:g} +/- {limits.macro_tolerance:.0%}"
    )


def check_allergens(recipe, preferences, limits):
    declared = [a for a in recipe.allergens if _normalize_tag(a) not in ("", "none")]
    found = []
    for allergen in preferences.allergens:
        if any(mentions(allergen, a) or mentions(a, allergen) for a in declared):
            found.append(allergen)
        elif any(mentions(allergen, i.name) for i in recipe.ingredients):
            found.append(allergen)
    if not found:
        return True, None
    return False, f"contains allergens: {', '.join(found)}"


def check_dietary(recipe, preferences, limits):
    tags = {_normalize_tag(t) for t in recipe.dietary_tags}
    missing = []
    for preference in preferences.dietary_preferences:
        wanted = _normalize_tag(preference)
        if wanted in tags or tags & _IMPLIED_BY.get(wanted, set()):
            continue
        missing.append(preference)
    if not missing:
        return True, None
    return False, f"not tagged as: {', '.join(missing)}"


def check_disliked(recipe, preferences, limits):
    found = [
        food for food in preferences.disliked_foods
        if any(mentions(food, i.name) for i in recipe.ingredients)
    ]
    if not found:
        return True, None
    return False, f"uses disliked foods: {', '.join(found)}"


def check_time(recipe, preferences, limits):
    minutes = recipe.cook_minutes
    if minutes is None:
        return False, f"cook time {recipe.cook_time!r} is not a duration"
    if minutes <= limits.max_cook_minutes:
        return True, None
    return False, f"{minutes:g} minutes, limit is {limits.max_cook_minutes}"


RULE_CHECKS: dict[RuleName, RuleCheck] = {
    RuleName.INGREDIENT_COUNT: check_ingredient_count,
    RuleName.CALORIES: check_calories,
    RuleName.PROTEIN: check_protein,
    RuleName.ALLERGEN_SAFETY: check_allergens,
    RuleName.DIETARY_COMPLIANCE: check_dietary,
    RuleName.INGREDIENT_RESTRICTION: check_disliked,
    RuleName.TIME_MANAGEMENT: check_time,
}


# =============================================================================
# Public API
# =============================================================================


def evaluate(
    recipe: Recipe,
    preferences: UserPreferences,
    limits: RuleLimits | None = None,
) -> list[ValidationResult]:
    """
    Evaluate every rule against a recipe.

    Args:
        recipe: The recipe to check (the empty sentinel is allowed)
        preferences: The user's targets and restrictions
        limits: Numeric limits, defaults to the configured constants

    Returns:
        One ValidationResult per RuleName, in RuleName order
    """
    limits = limits or RuleLimits()
    results = []
    for rule in RuleName:
        passed, detail = RULE_CHECKS[rule](recipe, preferences, limits)
        results.append(
            ValidationResult(rule=rule, status="pass" if passed else "fail", detail=detail)
        )
    return ensure_complete(results)


def ensure_complete(results: Iterable[ValidationResult]) -> list[ValidationResult]:
    """
    Check that a result set covers every rule exactly once.

    Raises:
        ValidationIncompleteError: if any rule is missing or duplicated
    """
    results = list(results)
    counts = Counter(r.rule for r in results)
    missing = [rule.value for rule in RuleName if counts[rule] == 0]
    duplicates = [rule.value for rule, n in counts.items() if n > 1]
    if missing or duplicates:
        raise ValidationIncompleteError(missing=missing, duplicates=duplicates)
    return results


def failed_rules(results: Iterable[ValidationResult]) -> list[ValidationResult]:
    return [r for r in results if not r.passed]
