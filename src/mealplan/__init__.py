"""
Mealplan - A LangGraph-based meal-planning pipeline.

Stages:
- Generate: Draft a recipe for the user's targets
- Validate: Check the recipe against nutrition and dietary rules
- Edit: Revise a recipe that failed validation
- Shop: Turn the final recipe into a shopping list
"""

__version__ = "0.3.0"
