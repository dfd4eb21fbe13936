"""
Mealplan - Model Client.

Provides the invoke(prompt) -> text boundary to the language model.
"""

from mealplan.llm.client import ModelClient, OpenAIModelClient
from mealplan.llm.model_router import get_node_config

__all__ = [
    "ModelClient",
    "OpenAIModelClient",
    "get_node_config",
]
