"""
Pytest configuration and fixtures for Mealplan tests.
"""

import json
import os

import pytest

# Set test environment before importing mealplan modules
os.environ["MEALPLAN_ENV"] = "development"
os.environ["MEALPLAN_LOG_PROMPTS"] = "0"
os.environ.setdefault("OPENAI_API_KEY", "sk-test")

from mealplan.checkpoint import PipelineCheckpoints  # noqa: E402
from mealplan.config import MealPlanSettings, get_settings  # noqa: E402
from mealplan.models import Recipe, UserPreferences  # noqa: E402


class StubModelClient:
    """
    ModelClient test double.

    Replies come from a per-node script. A list is consumed one reply per call
    and its last reply repeats; an Exception is raised instead of returned.
    Every call is recorded as (node, prompt).
    """

    def __init__(self, replies: dict | None = None):
        self.replies = {node: list(r) if isinstance(r, list) else [r] for node, r in (replies or {}).items()}
        self.calls: list[tuple[str, str]] = []

    async def invoke(self, prompt: str, *, node: str = "unknown") -> str:
        self.calls.append((node, prompt))
        script = self.replies.get(node)
        if not script:
            raise AssertionError(f"No stub reply scripted for node '{node}'")
        reply = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    def nodes_called(self) -> list[str]:
        return [node for node, _ in self.calls]


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Each test reads a fresh environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_settings():
    """Build settings without reading a .env file."""

    def _make(**overrides) -> MealPlanSettings:
        return MealPlanSettings(_env_file=None, **overrides)

    return _make


@pytest.fixture
def test_settings(make_settings):
    return make_settings()


@pytest.fixture
def checkpoints():
    return PipelineCheckpoints()


@pytest.fixture
def preferences():
    """A vegetarian, peanut-allergic user who dislikes mushrooms."""
    return UserPreferences(
        calories_per_meal=500,
        protein_per_meal=30,
        allergens=["peanuts"],
        dietary_preferences=["vegetarian"],
        liked_foods=["chickpeas"],
        disliked_foods=["mushrooms"],
        location="Pacific Northwest",
    )


@pytest.fixture
def passing_recipe_data():
    """Recipe JSON (model-facing keys) that satisfies every rule for `preferences`."""
    return {
        "name": "Chickpea Spinach Skillet",
        "description": "Crispy chickpeas with wilted spinach and feta.",
        "tips": "Dry the chickpeas well so they crisp.",
        "calories": 520,
        "protein": 31,
        "ingredients": [
            {"name": "chickpeas", "quantity": "1", "unit": "can", "calories": 280, "protein": 15, "flavorProfile": "nutty"},
            {"name": "baby spinach", "quantity": 3, "unit": "cups", "calories": 20, "protein": 3, "flavorProfile": "earthy"},
            {"name": "feta cheese", "quantity": "60", "unit": "g", "calories": 160, "protein": 9, "flavorProfile": "salty"},
            {"name": "cherry tomatoes", "quantity": "1", "unit": "cup", "calories": 30, "protein": 1, "flavorProfile": "sweet"},
            {"name": "red onion", "quantity": "1/2", "unit": "", "calories": 20, "protein": 1, "flavorProfile": "sharp"},
            {"name": "olive oil", "quantity": "1", "unit": "tbsp", "calories": 10, "protein": 0, "flavorProfile": "fruity"},
            {"name": "salt", "quantity": "1", "unit": "pinch", "calories": 0, "protein": 0},
            {"name": "black pepper", "quantity": "1", "unit": "pinch", "calories": 0, "protein": 0},
        ],
        "cookTime": "15 minutes",
        "instructions": [
            "Heat the oil and crisp the chickpeas.",
            "Add onion and tomatoes, cook until soft.",
            "Wilt the spinach and top with feta.",
        ],
        "dietaryTags": ["vegetarian"],
        "allergens": ["dairy"],
    }


@pytest.fixture
def passing_recipe(passing_recipe_data):
    return Recipe.model_validate(passing_recipe_data)


@pytest.fixture
def failing_recipe_data(passing_recipe_data):
    """Same dish with too many main ingredients and mushrooms."""
    data = json.loads(json.dumps(passing_recipe_data))
    data["name"] = "Loaded Chickpea Skillet"
    data["ingredients"] += [
        {"name": "cremini mushrooms", "quantity": "100", "unit": "g", "calories": 0, "protein": 0},
        {"name": "zucchini", "quantity": "1", "unit": "", "calories": 0, "protein": 0},
    ]
    return data


@pytest.fixture
def shopping_list_data():
    return {
        "Produce": [
            {"item": "baby spinach", "quantity": "3", "unit": "cups"},
            {"item": "cherry tomatoes", "quantity": "1", "unit": "cup"},
            {"item": "red onion", "quantity": "1", "unit": ""},
        ],
        "Dairy and Eggs": [
            {"item": "feta cheese", "quantity": "60", "unit": "g"},
        ],
        "Canned Goods": [
            {"item": "chickpeas", "quantity": "1", "unit": "can"},
        ],
    }


@pytest.fixture
def stub_client(passing_recipe_data, shopping_list_data):
    """Client whose generate stage returns a passing recipe."""
    return StubModelClient({
        "generate": json.dumps(passing_recipe_data),
        "shop": json.dumps(shopping_list_data),
    })
