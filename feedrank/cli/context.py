"""Shared setup for CLI commands."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from ..config import Config
from ..db import Database, PostgresStore, validate_connection
from ..pipeline import FeedEngine

console = Console()


def setup_logging(level: str) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def load_cli_config(ctx: typer.Context) -> Config:
    """Config manager for the --config path given to the app."""
    obj = ctx.obj or {}
    config_path: Optional[Path] = obj.get("config_path")
    return Config(config_path)


@asynccontextmanager
async def open_engine(config: Config) -> AsyncIterator[FeedEngine]:
    """Open the database pool and yield a started engine."""
    db = Database(config.get_db_config())
    await db.open()
    try:
        if not await validate_connection(db):
            console.print("[red]❌ Database connection failed![/red]")
            console.print("Please check your database configuration and ensure Postgres is running.")
            raise typer.Exit(1)
        engine = FeedEngine.from_store(PostgresStore(db), config.engine)
        async with engine:
            yield engine
    finally:
        await db.close()
