"""
Mealplan Prompts - Template loading and rendering per node.
"""

from mealplan.prompts.render import (
    STORE_DEPARTMENTS,
    load_template,
    render_edit_prompt,
    render_generate_prompt,
    render_shop_prompt,
    render_validate_prompt,
)

__all__ = [
    "STORE_DEPARTMENTS",
    "load_template",
    "render_generate_prompt",
    "render_validate_prompt",
    "render_edit_prompt",
    "render_shop_prompt",
]
