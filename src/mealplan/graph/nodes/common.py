"""
Mealplan - Shared node plumbing.

StageContext carries what every node needs besides the state: the model
client and the settings. It is bound to the nodes when the graph is built.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from mealplan.config import MealPlanSettings
from mealplan.core.rules import RuleLimits
from mealplan.exceptions import MalformedResponseError
from mealplan.llm.client import ModelClient
from mealplan.models import StageFailure
from mealplan.parsing import Malformed, ParseResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageContext:
    """Dependencies injected into every node."""

    client: ModelClient
    settings: MealPlanSettings

    @property
    def limits(self) -> RuleLimits:
        return RuleLimits.from_settings(self.settings)


async def invoke_and_parse(
    ctx: StageContext,
    node: str,
    prompt: str,
    parser: Callable[[str], ParseResult],
) -> ParseResult:
    """
    Call the model and parse its reply, re-asking on malformed output.

    The model is asked at most 1 + settings.malformed_retries times.
    Model invocation errors are not caught; they end the run.
    """
    attempts = 1 + ctx.settings.malformed_retries
    result: ParseResult = Malformed(raw="", reason="model was not called")
    for attempt in range(1, attempts + 1):
        raw = await ctx.client.invoke(prompt, node=node)
        result = parser(raw)
        if not isinstance(result, Malformed):
            return result
        logger.warning(
            f"{node.title()}: malformed response (attempt {attempt}/{attempts}): {result.reason}"
        )
    return result


def malformed_failure(ctx: StageContext, node: str, result: Malformed) -> StageFailure:
    """
    Apply the malformed-output policy.

    Returns the StageFailure to record when degrading.

    Raises:
        MalformedResponseError: when settings.on_malformed is "abort"
    """
    if ctx.settings.on_malformed == "abort":
        raise MalformedResponseError(node, result.reason, result.raw)
    logger.warning(f"{node.title()}: continuing with an empty result ({result.reason})")
    return StageFailure(
        stage=node,
        kind="malformed_response",
        reason=result.reason,
        raw=result.preview,
    )


def skipped(node: str, reason: str) -> StageFailure:
    logger.warning(f"{node.title()}: skipped, {reason}")
    return StageFailure(stage=node, kind="skipped", reason=reason)
