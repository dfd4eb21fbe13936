"""
Mealplan - Model Router.

Per-node model configuration. Every node uses the configured chat model;
what differs is how deterministic each node should be.
"""

from typing import TypedDict


class ModelConfig(TypedDict, total=False):
    """Configuration for model calls."""

    model: str
    temperature: float


DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TEMPERATURE = 0.5

# Node-specific temperature overrides
# Lower = more deterministic, higher = more creative
NODE_TEMPERATURE: dict[str, float] = {
    "generate": 0.7,  # Recipes should have some variety
    "validate": 0.0,  # Pass/fail must be repeatable
    "edit": 0.3,  # Minimal, targeted changes
    "shop": 0.2,  # Consolidation, no creativity needed
}


def get_node_config(node: str, model: str | None = None) -> ModelConfig:
    """
    Get model configuration for a specific node.

    Args:
        node: Node name ("generate", "validate", "edit", "shop")
        model: Model name, defaults to DEFAULT_MODEL

    Returns:
        Model configuration tuned for the node
    """
    return {
        "model": model or DEFAULT_MODEL,
        "temperature": NODE_TEMPERATURE.get(node, DEFAULT_TEMPERATURE),
    }
