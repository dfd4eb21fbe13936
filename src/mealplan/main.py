"""
Mealplan - CLI Entry Point.

Usage:
    mealplan plan --calories 500 --protein 30     Plan one meal
    mealplan plan --prefs prefs.json --strict     Plan from a preferences file
    mealplan health                               Check configuration
    mealplan --help                               Show help
"""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table

app = typer.Typer(
    name="mealplan",
    help="Mealplan - Generate, check and shop for a single meal.",
    add_completion=False,
)
console = Console()


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr so they never mix with rendered output."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # Quiet down noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def load_preferences(
    prefs_file: Path | None,
    calories: float | None,
    protein: float | None,
    allergens: list[str] | None,
    diets: list[str] | None,
    likes: list[str] | None,
    dislikes: list[str] | None,
    location: str | None,
):
    """
    Build UserPreferences from a JSON file, command-line options, or both.

    Options override values read from the file.
    """
    from mealplan.models import UserPreferences

    data: dict = {}
    if prefs_file is not None:
        data = json.loads(prefs_file.read_text(encoding="utf-8"))

    # Keyed by alias; an alias wins over a field name when a file uses both.
    # Zero is a real value; an unused repeatable option arrives as an empty list.
    overrides = {
        "caloriesPerMeal": calories,
        "proteinPerMeal": protein,
        "allergens": allergens,
        "dietaryPreferences": diets,
        "likedFoods": likes,
        "dislikedFoods": dislikes,
        "location": location,
    }
    data.update({key: value for key, value in overrides.items() if value is not None and value != []})
    return UserPreferences.model_validate(data)


# =============================================================================
# Rendering
# =============================================================================


def render_recipe(recipe) -> None:
    if recipe is None or recipe.is_empty:
        console.print("[red]No recipe was produced.[/red]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Ingredient")
    table.add_column("Amount", justify="right")
    table.add_column("kcal", justify="right")
    table.add_column("Protein", justify="right")
    for ingredient in recipe.ingredients:
        table.add_row(
            ingredient.name,
            f"{ingredient.quantity} {ingredient.unit}".strip(),
            f"{ingredient.calories:g}",
            f"{ingredient.protein:g} g",
        )

    steps = "\n".join(f"{i}. {step}" for i, step in enumerate(recipe.instructions, 1))
    body = (
        f"{recipe.description}\n\n"
        f"[bold]{recipe.calories:g} kcal[/bold] · [bold]{recipe.protein:g} g protein[/bold] · "
        f"{recipe.cook_time}\n"
    )
    console.print(Panel.fit(body.strip(), title=recipe.name, border_style="green"))
    console.print(table)
    if steps:
        console.print(f"\n[bold]Instructions[/bold]\n{steps}")
    if recipe.tips:
        console.print(f"\n[dim]Tip: {recipe.tips}[/dim]")


def render_validation(results) -> None:
    if not results:
        console.print("\n[yellow]No validation results for the final recipe.[/yellow]")
        return

    table = Table(title="Validation", show_header=True, header_style="bold")
    table.add_column("Rule")
    table.add_column("Status")
    table.add_column("Detail")
    for result in results:
        status = "[green]pass[/green]" if result.passed else "[red]fail[/red]"
        table.add_row(result.rule.value, status, result.detail or "")
    console.print()
    console.print(table)


def render_shopping_list(shopping_list) -> None:
    if shopping_list is None or shopping_list.is_empty:
        console.print("\n[yellow]Shopping list is empty.[/yellow]")
        return

    console.print("\n[bold]Shopping List[/bold]")
    for department, items in shopping_list.root.items():
        if not items:
            continue
        console.print(f"\n[bold blue]{department}[/bold blue]")
        for item in items:
            console.print(f"  • {item.item}: {item.quantity} {item.unit}".rstrip())


# =============================================================================
# Commands
# =============================================================================


@app.command()
def plan(
    calories: Optional[float] = typer.Option(None, "--calories", "-c", help="Calories per meal"),
    protein: Optional[float] = typer.Option(None, "--protein", "-p", help="Protein grams per meal"),
    allergen: Optional[List[str]] = typer.Option(None, "--allergen", "-a", help="Allergen to avoid (repeatable)"),
    diet: Optional[List[str]] = typer.Option(None, "--diet", "-d", help="Dietary preference (repeatable)"),
    like: Optional[List[str]] = typer.Option(None, "--like", help="Liked food (repeatable)"),
    dislike: Optional[List[str]] = typer.Option(None, "--dislike", help="Disliked food (repeatable)"),
    location: Optional[str] = typer.Option(None, "--location", help="Region for seasonal produce"),
    prefs_file: Optional[Path] = typer.Option(None, "--prefs", help="JSON file with preferences", exists=True, dir_okay=False),
    strict: bool = typer.Option(False, "--strict", help="Exit with code 1 if any stage degraded"),
    log_prompts: bool = typer.Option(False, "--log-prompts", "-l", help="Log all LLM prompts to prompt_logs/"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Generate a recipe, check it, fix it if needed, and build a shopping list."""
    from pydantic import ValidationError

    from mealplan.config import get_settings
    from mealplan.exceptions import MealPlanError
    from mealplan.graph import degraded_stages, run_pipeline_sync
    from mealplan.llm import OpenAIModelClient
    from mealplan.llm.prompt_logger import prompt_log

    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)

    if log_prompts:
        prompt_log.enable()

    try:
        preferences = load_preferences(
            prefs_file, calories, protein, allergen, diet, like, dislike, location
        )
    except (ValidationError, json.JSONDecodeError) as e:
        console.print(f"[red]Invalid preferences: {e}[/red]")
        raise typer.Exit(2)

    try:
        client = OpenAIModelClient(settings)
        with Live(Spinner("dots", text="Planning..."), console=console, transient=True):
            state = run_pipeline_sync(preferences, client=client, settings=settings)
    except MealPlanError as e:
        console.print(f"\n[red]❌ {type(e).__name__}: {e}[/red]")
        raise typer.Exit(1)

    render_recipe(state.get("recipe"))
    render_validation(state.get("validation_results", []))
    render_shopping_list(state.get("shopping_list"))

    degraded = degraded_stages(state)
    if degraded:
        console.print("\n[yellow]⚠️  Degraded run:[/yellow]")
        for failure in state.get("stage_errors", []):
            console.print(f"   {failure.stage} ({failure.kind}): {failure.reason}")

    log_dir = prompt_log.session_dir
    if log_dir:
        console.print(f"\n[dim]📝 Prompts logged to: {log_dir}[/dim]")

    if strict and degraded:
        raise typer.Exit(1)


@app.command()
def health() -> None:
    """Check configuration."""
    from mealplan.config import get_settings
    from mealplan.core.routing import build_transition_table

    console.print("\n[bold]Mealplan Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("✅ Configuration loaded")
        console.print(f"   Environment: {settings.mealplan_env}")
        console.print(f"   Log level: {settings.log_level}")
        console.print(f"   Model: {settings.openai_model}")

        if settings.openai_api_key and settings.openai_api_key.startswith("sk-"):
            console.print("✅ OpenAI API key configured")
        elif settings.openai_api_key:
            console.print("⚠️  OpenAI API key may be invalid")
        else:
            console.print("❌ OpenAI API key missing")
            raise typer.Exit(1)

        build_transition_table(settings.revision_mode)
        console.print(
            f"✅ Pipeline: {settings.revision_mode}, {settings.validation_mode} validation, "
            f"max {settings.max_revisions} revision(s)"
        )
        console.print(
            f"   Limits: ±{settings.macro_tolerance:.0%} macros, "
            f"{settings.max_main_ingredients} main ingredients, {settings.max_cook_minutes} min"
        )

        console.print("\n[green]All checks passed![/green]")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[red]❌ Configuration error: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with required variables.[/dim]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from mealplan import __version__

    console.print(f"Mealplan version {__version__}")


if __name__ == "__main__":
    app()
