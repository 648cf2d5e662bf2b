"""
Main Typer application for the adminrelay CLI.

This module defines the root CLI application and registers all command groups.
"""

from typing import Annotated

import typer

from adminrelay import __version__
from adminrelay.cli.commands import config, serve
from adminrelay.cli.output import print_info

# Create the main Typer app
app = typer.Typer(
    name="adminrelay",
    help="Admin live chat between game players and Discord.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        print_info(f"adminrelay version [green]{__version__}[/green]")
        raise typer.Exit()


# noinspection PyUnusedLocal
@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    [bold blue]adminrelay[/bold blue] - Admin live chat relay

    Players call for help with a chat command; a private Discord channel is
    opened for them and messages are relayed both ways until an admin closes it.
    """


# Register commands
app.command("serve")(serve.serve)
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
