"""Main CLI application."""

from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from .context import load_cli_config, setup_logging
from .feed import feed_command
from .init import init_command
from .preferences import preferences_command, recompute_command

app = typer.Typer(
    name="feedrank",
    help="Personalized feed ranking engine",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config.yaml (default: ~/.config/feedrank/config.yaml)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Personalized feed ranking engine."""
    ctx.obj = {"config_path": config_path}
    if ctx.invoked_subcommand == "init":
        level = "INFO"
    else:
        try:
            level = load_cli_config(ctx).config.logging.level
        except (FileNotFoundError, ValueError):
            level = "INFO"
    setup_logging("DEBUG" if verbose else level)


# Register commands
app.command("init")(init_command)
app.command("feed")(feed_command)
app.command("preferences")(preferences_command)
app.command("recompute")(recompute_command)


if __name__ == "__main__":
    app()
