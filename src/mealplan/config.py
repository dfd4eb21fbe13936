"""
Mealplan - Configuration and settings.

MealPlanSettings holds model access, logging, and the pipeline's rule limits.
The rule limits live here so there is exactly one authoritative tolerance.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Rule limits. Every rule check and every prompt reads these through settings.
MACRO_TOLERANCE = 0.15  # Calories and protein, +/- fraction of target
MAX_MAIN_INGREDIENTS = 6  # Oils, salt, pepper and basic seasonings excluded
MAX_COOK_MINUTES = 20


class MealPlanSettings(BaseSettings):
    """
    Settings for a pipeline run.

    Loaded from the environment and an optional .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI (only required by OpenAIModelClient)
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    request_timeout_seconds: float = Field(default=60.0, gt=0)

    # Application
    mealplan_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Prompt logging
    # MEALPLAN_LOG_PROMPTS=1 - log to local files (dev only)
    mealplan_log_prompts: bool = False

    # Rule limits
    macro_tolerance: float = Field(default=MACRO_TOLERANCE, ge=0, lt=1)
    max_main_ingredients: int = Field(default=MAX_MAIN_INGREDIENTS, ge=1)
    max_cook_minutes: int = Field(default=MAX_COOK_MINUTES, ge=1)

    # Revision control
    revision_mode: Literal["edit_once", "revalidate"] = "edit_once"
    max_revisions: int = Field(default=1, ge=1)
    empty_results_policy: Literal["shop", "edit", "abort"] = "shop"

    # Model output handling
    on_malformed: Literal["degrade", "abort"] = "degrade"
    malformed_retries: int = Field(default=1, ge=0)
    validation_mode: Literal["rules", "model"] = "rules"

    @property
    def is_development(self) -> bool:
        return self.mealplan_env == "development"

    @property
    def is_production(self) -> bool:
        return self.mealplan_env == "production"


@lru_cache
def get_settings() -> MealPlanSettings:
    """Get cached MealPlanSettings instance."""
    return MealPlanSettings()


class _SettingsProxy:
    """Lazy proxy so importing this module never reads the environment."""

    _instance: MealPlanSettings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
