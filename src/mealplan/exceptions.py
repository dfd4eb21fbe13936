"""
Mealplan - Exception types.

Every failure a caller can act on has its own type so a run never degrades
into an indistinguishable empty result.
"""


class MealPlanError(Exception):
    """Base exception for the meal-planning pipeline."""


class ModelInvocationError(MealPlanError):
    """Raised when the model call itself fails (network, auth, quota)."""

    def __init__(self, message: str, *, retryable: bool = False):
        self.retryable = retryable
        super().__init__(message)


class MalformedResponseError(MealPlanError):
    """Raised when model output cannot be parsed into the stage's schema."""

    def __init__(self, stage: str, reason: str, raw: str = ""):
        self.stage = stage
        self.reason = reason
        self.raw = raw
        super().__init__(f"Malformed response at stage '{stage}': {reason}")


class ValidationIncompleteError(MealPlanError):
    """Raised when a validation result set does not cover every rule exactly once."""

    def __init__(self, missing: list[str] | None = None, duplicates: list[str] | None = None, message: str | None = None):
        self.missing = missing or []
        self.duplicates = duplicates or []
        if message is None:
            parts = []
            if self.missing:
                parts.append(f"missing: {', '.join(self.missing)}")
            if self.duplicates:
                parts.append(f"duplicated: {', '.join(self.duplicates)}")
            message = "Incomplete validation results (" + "; ".join(parts) + ")"
        super().__init__(message)


class TransitionTableError(MealPlanError):
    """Raised when a stage transition table is not exhaustive or not well formed."""
