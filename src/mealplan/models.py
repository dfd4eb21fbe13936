"""
Mealplan - Data Contracts.

The Pydantic models passed between stages. Python attributes
are snake_case; the model-facing JSON keeps camelCase keys (flavorProfile,
cookTime, ...), and both spellings are accepted on input.
"""

import re
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator


# =============================================================================
# Cook Time Parsing
# =============================================================================

_RANGE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:-|–|to)\s*(\d+(?:\.\d+)?)")
_HOURS = re.compile(r"(\d+(?:\.\d+)?)\s*(?:hours|hour|hrs|hr|h)(?![a-z])")
_MINUTES = re.compile(r"(\d+(?:\.\d+)?)\s*(?:minutes|minute|mins|min|m)(?![a-z])")
_BARE_NUMBER = re.compile(r"\s*(\d+(?:\.\d+)?)\s*")


def parse_minutes(text: str) -> float | None:
    """
    Parse a free-form duration into minutes.

    "15 minutes" -> 15, "1 hour 5 min" -> 65, "10-15 minutes" -> 15 (upper
    bound), "12" -> 12. Returns None when nothing recognisable is found.
    """
    lowered = _RANGE.sub(lambda m: m.group(2), text.lower())
    hours = _HOURS.findall(lowered)
    minutes = _MINUTES.findall(lowered)
    if hours or minutes:
        return sum(float(h) for h in hours) * 60 + sum(float(m) for m in minutes)
    bare = _BARE_NUMBER.fullmatch(lowered)
    return float(bare.group(1)) if bare else None


def _to_text(value):
    """Models often emit quantities as numbers; the contract is a string."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:g}"
    return value


# =============================================================================
# Input
# =============================================================================


class UserPreferences(BaseModel):
    """
    What the user wants from one meal.

    Read-only for the whole run. Term collections are lower-cased,
    de-duplicated and sorted so equal preferences compare equal.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    calories_per_meal: float = Field(alias="caloriesPerMeal", gt=0)
    protein_per_meal: float = Field(alias="proteinPerMeal", ge=0)
    allergens: tuple[str, ...] = ()
    dietary_preferences: tuple[str, ...] = Field(default=(), alias="dietaryPreferences")
    liked_foods: tuple[str, ...] = Field(default=(), alias="likedFoods")
    disliked_foods: tuple[str, ...] = Field(default=(), alias="dislikedFoods")
    location: str = ""  # For seasonal produce

    @field_validator(
        "allergens", "dietary_preferences", "liked_foods", "disliked_foods", mode="before"
    )
    @classmethod
    def _normalize_terms(cls, value):
        if value is None:
            return ()
        if isinstance(value, str):
            value = [value]
        return tuple(sorted({str(v).strip().lower() for v in value if str(v).strip()}))


# =============================================================================
# Recipe
# =============================================================================


class Ingredient(BaseModel):
    """One recipe ingredient with its nutritional contribution."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    quantity: str  # Free-form: "1/4", "6", "a handful"
    unit: str = ""
    calories: float
    protein: float
    flavor_profile: str = Field(default="", alias="flavorProfile")

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value):
        return _to_text(value)


class Recipe(BaseModel):
    """
    A complete recipe.

    Produced by the generate stage and replaced wholesale by the edit stage.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    tips: str = ""
    calories: float  # Total for the meal
    protein: float  # Total grams for the meal
    ingredients: list[Ingredient]
    cook_time: str = Field(alias="cookTime")
    instructions: list[str]
    dietary_tags: list[str] = Field(default_factory=list, alias="dietaryTags")
    allergens: list[str] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "Recipe":
        """Sentinel recipe used when the generate stage produced nothing usable."""
        return cls(
            name="",
            calories=0,
            protein=0,
            ingredients=[],
            cook_time="",
            instructions=[],
        )

    @property
    def is_empty(self) -> bool:
        return not self.name and not self.ingredients

    @property
    def cook_minutes(self) -> float | None:
        return parse_minutes(self.cook_time)

    def to_prompt_json(self) -> str:
        """Serialize with model-facing keys for inclusion in a prompt."""
        return self.model_dump_json(by_alias=True, indent=2)


# =============================================================================
# Validation
# =============================================================================


class RuleName(str, Enum):
    """The fixed rule set. Values are the rule ids the model is asked to use."""

    INGREDIENT_COUNT = "ingredientCountRule"
    CALORIES = "calorieComplianceRule"
    PROTEIN = "proteinComplianceRule"
    ALLERGEN_SAFETY = "allergenSafetyRule"
    DIETARY_COMPLIANCE = "dietaryComplianceRule"
    INGREDIENT_RESTRICTION = "ingredientRestrictionRule"
    TIME_MANAGEMENT = "timeManagementRule"


RuleStatus = Literal["pass", "fail"]


class ValidationResult(BaseModel):
    """Outcome of one rule for one recipe revision."""

    rule: RuleName
    status: RuleStatus
    detail: str | None = None  # Why it failed, for the editor and the CLI

    @property
    def passed(self) -> bool:
        return self.status == "pass"


# =============================================================================
# Shopping List
# =============================================================================


class ShoppingItem(BaseModel):
    """A single line on the shopping list."""

    item: str
    quantity: str
    unit: str = ""

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value):
        return _to_text(value)


class ShoppingList(RootModel[dict[str, list[ShoppingItem]]]):
    """Department name -> items to buy there, in order."""

    @classmethod
    def empty(cls) -> "ShoppingList":
        return cls({})

    @property
    def is_empty(self) -> bool:
        return not any(self.root.values())

    @property
    def departments(self) -> list[str]:
        return list(self.root)

    @property
    def item_count(self) -> int:
        return sum(len(items) for items in self.root.values())


# =============================================================================
# Stage Failures
# =============================================================================


class StageFailure(BaseModel):
    """
    Record of a stage that did not produce a trustworthy output.

    Any entry in PipelineState.stage_errors marks the run as degraded.
    """

    stage: str
    kind: Literal["malformed_response", "validation_incomplete", "skipped"]
    reason: str
    raw: str | None = None  # Truncated model output, when there was one
