"""
Mealplan - Model Client.

The pipeline only ever needs one capability from a language model:
invoke(prompt) -> text. Nodes receive a ModelClient explicitly, so tests can
pass a stub that returns canned text.

OpenAIModelClient is the production implementation. SDK failures are
re-raised as ModelInvocationError, flagged retryable for timeouts, connection
errors, rate limits and server errors.
"""

import logging
import time
from typing import Protocol, runtime_checkable

import openai
from openai import AsyncOpenAI

from mealplan.config import MealPlanSettings, get_settings
from mealplan.exceptions import ModelInvocationError
from mealplan.llm.model_router import get_node_config
from mealplan.llm.prompt_logger import PromptExchange, prompt_log

logger = logging.getLogger(__name__)


@runtime_checkable
class ModelClient(Protocol):
    """Anything that can turn a prompt into response text."""

    async def invoke(self, prompt: str, *, node: str = "unknown") -> str:
        ...


def is_retryable(error: Exception) -> bool:
    """Transient failures the caller may retry; auth and request errors are not."""
    if isinstance(error, (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError)):
        return True
    if isinstance(error, openai.APIStatusError):
        return error.status_code >= 500
    return False


class OpenAIModelClient:
    """
    ModelClient backed by the OpenAI chat completions API.

    Each call sends the prompt as a single user message, with the node's
    temperature from the model router and the configured request timeout.
    """

    def __init__(
        self,
        settings: MealPlanSettings | None = None,
        *,
        client: AsyncOpenAI | None = None,
    ):
        self._settings = settings or get_settings()
        if client is None:
            if not self._settings.openai_api_key:
                raise ModelInvocationError("OPENAI_API_KEY is not configured", retryable=False)
            client = AsyncOpenAI(
                api_key=self._settings.openai_api_key,
                timeout=self._settings.request_timeout_seconds,
            )
        self._client = client

    async def invoke(self, prompt: str, *, node: str = "unknown") -> str:
        config = get_node_config(node, self._settings.openai_model)
        model = config["model"]
        exchange = PromptExchange(
            node=node, model=model, prompt=prompt, temperature=config["temperature"]
        )
        started = time.perf_counter()

        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=config["temperature"],
            )
        except openai.OpenAIError as e:
            retryable = is_retryable(e)
            logger.error(f"{node}: model call failed ({type(e).__name__}, retryable={retryable}): {e}")
            exchange.error = str(e)
            exchange.elapsed = time.perf_counter() - started
            prompt_log.record(exchange)
            raise ModelInvocationError(f"Model call failed at {node}: {e}", retryable=retryable) from e

        content = response.choices[0].message.content if response.choices else None
        text = content or ""

        exchange.response = text
        exchange.elapsed = time.perf_counter() - started
        prompt_log.record(exchange)
        return text
