"""
adminrelay config - Configuration management commands.

Usage:
    adminrelay config show
    adminrelay config show relay --json
    adminrelay config init [--force]
    adminrelay config path
"""

import json
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

from adminrelay.config import ConfigurationError, load_config, save_yaml_file
from adminrelay.config.loader import default_config_dict
from adminrelay.storage.paths import get_global_config_path

app = typer.Typer(
    name="config",
    help="Configuration management.",
)

console = Console()


@app.command()
def show(
    section: Annotated[
        str | None,
        typer.Argument(
            help="Config section to show (e.g., 'relay', 'discord.category_id').",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Config file to read.",
        ),
    ] = None,
) -> None:
    """Show the effective configuration. The bot token is masked."""
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)

    config_dict = config.model_dump(mode="json")
    if config_dict["discord"]["bot_token"]:
        config_dict["discord"]["bot_token"] = "********"

    value = config_dict
    if section:
        value = config_dict.get(section)
        if value is None:
            console.print(f"[red]Section '{section}' not found in configuration.[/red]")
            raise typer.Exit(1)

    if json_output:
        output = json.dumps(value, indent=2, default=str)
        console.print(Syntax(output, "json", theme="monokai"))
        return

    output = yaml.dump(value, default_flow_style=False, sort_keys=False, allow_unicode=True)
    if section:
        console.print(Panel(Syntax(output, "yaml", theme="monokai"), title=f"[cyan]{section}[/cyan]"))
    else:
        console.print(Syntax(output, "yaml", theme="monokai"))


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite an existing config file.",
        ),
    ] = False,
) -> None:
    """Write a default config file."""
    config_path = get_global_config_path()
    if config_path.exists() and not force:
        console.print(f"[yellow]Config already exists: {config_path}[/yellow]")
        console.print("[dim]Use --force to overwrite it.[/dim]")
        raise typer.Exit(1)

    try:
        save_yaml_file(config_path, default_config_dict())
    except ConfigurationError as e:
        console.print(f"[red]Failed to save configuration: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Created {config_path}[/green]")
    console.print("[dim]Set discord.category_id and export DISCORD_BOT_TOKEN before running 'adminrelay serve'.[/dim]")


@app.command()
def path() -> None:
    """Print the config file location."""
    console.print(str(get_global_config_path()), soft_wrap=True, highlight=False)
