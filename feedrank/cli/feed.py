"""Feed command implementation."""

import asyncio

import typer

from ..models import FeedResult
from ..pipeline import print_stage_summary
from ..ranking import print_feed_summary
from .context import console, load_cli_config, open_engine


def feed_command(
    ctx: typer.Context,
    user_id: int = typer.Argument(..., help="User to build the feed for"),
    limit: int = typer.Option(50, "--limit", "-n", help="Number of items"),
    offset: int = typer.Option(0, "--offset", help="Items to skip"),
    titles: bool = typer.Option(True, "--titles/--no-titles", help="Show article titles"),
    stages: bool = typer.Option(False, "--stages", help="Show the pipeline stage report"),
) -> None:
    """Print a user's ranked feed."""
    config = load_cli_config(ctx)

    async def run() -> FeedResult:
        async with open_engine(config) as engine:
            return await engine.get_feed(user_id, limit=limit, offset=offset)

    try:
        result = asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        raise typer.Exit(1)

    print_feed_summary(result, titles=titles)
    if stages:
        print_stage_summary(result.stages)
    if not result.items:
        console.print("[yellow]No content available[/yellow]")
