"""Preference inspection and recompute commands."""

import asyncio
from typing import List, Tuple

import typer
from rich.table import Table

from ..models import RecomputeResult, UserCategoryPreference
from ..taxonomy import CategoryTree
from .context import console, load_cli_config, open_engine


def print_preferences(
    user_id: int,
    preferences: List[UserCategoryPreference],
    tree: CategoryTree,
) -> None:
    """Print preferences grouped by hierarchy level."""
    table = Table(title=f"Category Preferences for user {user_id}")
    table.add_column("Level", justify="right")
    table.add_column("Category", style="cyan")
    table.add_column("Score", justify="right", style="bold")
    table.add_column("Clicks", justify="right")
    table.add_column("Impressions", justify="right")
    table.add_column("CTR", justify="right")
    table.add_column("Propagated", style="dim")

    def sort_key(p: UserCategoryPreference) -> Tuple[int, float]:
        level = p.level or tree.level(p.category_id) or 0
        return level, -p.score

    for pref in sorted(preferences, key=sort_key):
        node = tree.get(pref.category_id)
        name = node.name if node and node.name else str(pref.category_id)
        level = pref.level or tree.level(pref.category_id)
        table.add_row(
            str(level) if level else "-",
            name,
            f"{pref.score:.4f}",
            str(pref.click_count),
            str(pref.impression_count),
            f"{pref.ctr:.1%}" if pref.impression_count else "-",
            "yes" if pref.is_propagated else "",
        )

    console.print(table)


def preferences_command(
    ctx: typer.Context,
    user_id: int = typer.Argument(..., help="User to inspect"),
) -> None:
    """Print a user's stored category preferences."""
    config = load_cli_config(ctx)

    async def run() -> Tuple[List[UserCategoryPreference], CategoryTree]:
        async with open_engine(config) as engine:
            preferences = await engine.get_preferences(user_id)
            tree = await engine.taxonomy.get_tree()
            return preferences, tree

    preferences, tree = asyncio.run(run())
    if not preferences:
        console.print(f"[yellow]No preferences stored for user {user_id}[/yellow]")
        return
    print_preferences(user_id, preferences, tree)


def recompute_command(
    ctx: typer.Context,
    user_id: int = typer.Argument(..., help="User to recompute"),
) -> None:
    """Recompute a user's preferences and profile now."""
    config = load_cli_config(ctx)

    async def run() -> Tuple[RecomputeResult, CategoryTree]:
        async with open_engine(config) as engine:
            result = await engine.recompute(user_id)
            tree = await engine.taxonomy.get_tree()
            return result, tree

    result, tree = asyncio.run(run())
    console.print(
        f"✅ Recomputed user {user_id}: {result.updated} categories, "
        f"{result.propagated} propagated, {len(result.penalized)} penalized"
    )
    if result.excluded:
        console.print(f"[yellow]Excluded invalid categories: {result.excluded}[/yellow]")
    if result.profile is not None:
        state = "enabled" if result.profile.prediction_enabled else "not yet enabled"
        console.print(f"  Click prediction {state} ({result.profile.total_interactions} interactions)")
    if result.preferences:
        print_preferences(user_id, result.preferences, tree)
