"""Init command implementation."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from ..config import DEFAULT_CONFIG_PATH, ConfigModel, save_config
from ..db import Database, init_database, validate_connection

console = Console()


async def _init_schema(db_config: dict) -> bool:
    db = Database(db_config)
    await db.open()
    try:
        if not await validate_connection(db):
            return False
        await init_database(db)
        return True
    finally:
        await db.close()


def init_command(
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config-path",
        help="Where to write the configuration file",
    ),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("feedrank", "--db-name", help="Database name"),
    db_user: str = typer.Option("feedrank_user", "--db-user", help="Database user"),
    create_schema: bool = typer.Option(
        True,
        "--schema/--no-schema",
        help="Create the database schema",
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config file"),
) -> None:
    """Write the default configuration and initialize the database."""
    console.print(Panel.fit("feedrank - Initialization", style="bold blue"))

    if config_path.exists() and not force:
        console.print(f"[yellow]Config already exists: {config_path} (use --force to overwrite)[/yellow]")
    else:
        config = ConfigModel(
            postgres={
                "host": db_host,
                "port": db_port,
                "database": db_name,
                "user": db_user,
                "password_env": "FEEDRANK_DB_PASSWORD",
            },
        )
        save_config(config, config_path)
        console.print(f"✅ Created config: {config_path}")

    if not create_schema:
        return

    console.print("\n[bold]Initializing database schema...[/bold]")
    db_config = {
        "host": db_host,
        "port": db_port,
        "database": db_name,
        "user": db_user,
        "password_env": "FEEDRANK_DB_PASSWORD",
    }
    try:
        ok = asyncio.run(_init_schema(db_config))
    except Exception as e:
        console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
        raise typer.Exit(1)

    if not ok:
        console.print(
            "[red]❌ Database connection failed![/red]\n"
            "Please ensure Postgres is running and credentials are correct.\n"
            "Set the password via environment variable: [bold]export FEEDRANK_DB_PASSWORD=your_password[/bold]"
        )
        raise typer.Exit(1)

    console.print(
        Panel(
            f"[green]✅ feedrank initialized successfully![/green]\n\n"
            f"Configuration: {config_path}\n\n"
            f"Next steps:\n"
            f"1. Set database password: [bold]export FEEDRANK_DB_PASSWORD=your_password[/bold]\n"
            f"2. Run: [bold]feedrank feed USER_ID[/bold]",
            style="green",
        )
    )
