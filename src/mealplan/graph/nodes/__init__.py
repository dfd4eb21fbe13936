"""
Mealplan - Graph Nodes.

Nodes:
- generate: Draft a recipe for the user's targets
- validate: Check the recipe against every rule
- edit: Revise a recipe that failed validation
- shop: Build the shopping list for the final recipe
"""

from mealplan.graph.nodes.common import StageContext
from mealplan.graph.nodes.edit import edit_node
from mealplan.graph.nodes.generate import generate_node
from mealplan.graph.nodes.shop import shop_node
from mealplan.graph.nodes.validate import make_validation_router, validate_node

__all__ = [
    "StageContext",
    "generate_node",
    "validate_node",
    "edit_node",
    "shop_node",
    "make_validation_router",
]
