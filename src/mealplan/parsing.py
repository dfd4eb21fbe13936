"""
Mealplan - Schema Validator.

Turns raw model text into the typed output of a stage. Every parser returns
either Parsed(value) or Malformed(raw, reason) and never raises, so each
caller has to decide explicitly what a malformed response means.

Parsing steps:
1. Strip code-fence markers (```json ... ```)
2. Decode JSON (falling back to the outermost {...} or [...] span)
3. Check the decoded data against the stage's Pydantic model
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from mealplan.models import Recipe, RuleName, ShoppingList, ValidationResult

T = TypeVar("T")

# Longest raw text kept on a Malformed result / StageFailure
RAW_PREVIEW_CHARS = 500

_FENCED_BLOCK = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)
_FENCE_MARKER = re.compile(r"```(?:json|JSON)?")


@dataclass(frozen=True)
class Parsed(Generic[T]):
    """A stage output that matched its schema."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Malformed:
    """A stage output that did not match its schema."""

    raw: str
    reason: str

    @property
    def ok(self) -> bool:
        return False

    @property
    def preview(self) -> str:
        return truncate(self.raw)


ParseResult = Parsed[T] | Malformed


def truncate(text: str, limit: int = RAW_PREVIEW_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + f"... [{len(text) - limit} more chars]"


def strip_code_fences(text: str) -> str:
    """
    Remove incidental markdown formatting around a JSON payload.

    A fenced block wins if there is one; stray fence markers are dropped.
    """
    block = _FENCED_BLOCK.search(text)
    if block:
        return block.group(1).strip()
    return _FENCE_MARKER.sub("", text).strip()


def _outermost_json_span(text: str) -> str | None:
    """The widest {...} or [...] slice, for replies wrapped in prose."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return None
    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end <= start:
        return None
    return text[start : end + 1]


def load_json(text: str) -> Any:
    """
    Decode model output as JSON.

    Raises:
        ValueError: if no JSON payload can be decoded
    """
    cleaned = strip_code_fences(text)
    if not cleaned:
        raise ValueError("empty response")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as first_error:
        span = _outermost_json_span(cleaned)
        if span is None or span == cleaned:
            raise ValueError(f"invalid JSON: {first_error}") from first_error
        try:
            return json.loads(span)
        except json.JSONDecodeError:
            raise ValueError(f"invalid JSON: {first_error}") from first_error


def _summarize(error: ValidationError) -> str:
    """First few schema errors as one line."""
    parts = []
    for item in error.errors()[:3]:
        location = ".".join(str(p) for p in item["loc"]) or "<root>"
        parts.append(f"{location}: {item['msg']}")
    more = error.error_count() - len(parts)
    if more > 0:
        parts.append(f"and {more} more")
    return "schema mismatch (" + "; ".join(parts) + ")"


# =============================================================================
# Stage Parsers
# =============================================================================


def parse_recipe(text: str) -> ParseResult[Recipe]:
    """
    Parse a generated or edited recipe.

    Accepts a recipe object or a non-empty array of them (first one wins).
    """
    try:
        data = load_json(text)
    except ValueError as e:
        return Malformed(raw=text, reason=str(e))

    if isinstance(data, list):
        if not data:
            return Malformed(raw=text, reason="empty recipe array")
        data = data[0]
    if isinstance(data, dict) and set(data) == {"recipe"}:
        data = data["recipe"]
    if not isinstance(data, dict):
        return Malformed(raw=text, reason=f"expected a recipe object, got {type(data).__name__}")

    try:
        return Parsed(Recipe.model_validate(data))
    except ValidationError as e:
        return Malformed(raw=text, reason=_summarize(e))


_RULES_BY_KEY = {rule.value.lower(): rule for rule in RuleName}


def _rule_from(key: Any) -> RuleName | None:
    return _RULES_BY_KEY.get(str(key).strip().lower())


def parse_validation_results(text: str) -> ParseResult[list[ValidationResult]]:
    """
    Parse a model-produced validation result set.

    Accepts the array form [{"rule": ..., "status": ...}], the same array
    nested once ([[...]]), or the object form {"ingredientCountRule": "pass"}.
    Completeness is not checked here; see core.rules.ensure_complete.
    """
    try:
        data = load_json(text)
    except ValueError as e:
        return Malformed(raw=text, reason=str(e))

    if isinstance(data, list) and len(data) == 1 and isinstance(data[0], list):
        data = data[0]
    if isinstance(data, dict):
        data = [{"rule": k, "status": v} for k, v in data.items()]
    if not isinstance(data, list):
        return Malformed(raw=text, reason=f"expected a list of results, got {type(data).__name__}")

    results = []
    for entry in data:
        if not isinstance(entry, dict) or "rule" not in entry or "status" not in entry:
            return Malformed(raw=text, reason=f"result without rule/status: {entry!r}")
        rule = _rule_from(entry["rule"])
        if rule is None:
            return Malformed(raw=text, reason=f"unknown rule {entry['rule']!r}")
        status = str(entry["status"]).strip().lower()
        if status not in ("pass", "fail"):
            return Malformed(raw=text, reason=f"invalid status {entry['status']!r} for {rule.value}")
        try:
            results.append(ValidationResult(rule=rule, status=status, detail=entry.get("detail")))
        except ValidationError as e:
            return Malformed(raw=text, reason=_summarize(e))
    return Parsed(results)


def parse_shopping_list(text: str) -> ParseResult[ShoppingList]:
    """
    Parse a shopping list: {"Produce": [{"item", "quantity", "unit"}], ...}.

    A one-element array around the mapping is unwrapped.
    """
    try:
        data = load_json(text)
    except ValueError as e:
        return Malformed(raw=text, reason=str(e))

    if isinstance(data, list):
        if len(data) != 1:
            return Malformed(raw=text, reason=f"expected one shopping list, got {len(data)}")
        data = data[0]
    if isinstance(data, dict) and set(data) == {"shopping_list"}:
        data = data["shopping_list"]
    if not isinstance(data, dict):
        return Malformed(raw=text, reason=f"expected a department mapping, got {type(data).__name__}")

    try:
        return Parsed(ShoppingList.model_validate(data))
    except ValidationError as e:
        return Malformed(raw=text, reason=_summarize(e))
