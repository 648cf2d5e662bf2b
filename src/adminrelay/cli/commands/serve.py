"""
adminrelay serve - Run the admin live chat relay.

Usage:
    adminrelay serve
    adminrelay serve --config ./adminrelay.yaml --log-level DEBUG
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.logging import RichHandler

from adminrelay.audit import AuditLogger
from adminrelay.cli.output import console, print_error, print_info, print_success
from adminrelay.config import Config, ConfigurationError, load_config
from adminrelay.relay import CommandFront, EventRouter, RelayContext, RemoteUnavailable, SessionRelay
from adminrelay.relay.adapters import ConsoleGameTransport, DiscordGateway
from adminrelay.storage.paths import ensure_directory, expand_path

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str, log_file: Optional[str] = None) -> None:
    """Send log records to the console through Rich, and optionally to a file."""
    handlers: list[logging.Handler] = [
        RichHandler(console=console, rich_tracebacks=True, show_path=False)
    ]
    if log_file:
        path = expand_path(log_file)
        ensure_directory(path.parent)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )


async def run_relay(config: Config) -> bool:
    """Run the relay until the console quits.

    Returns:
        False if the relay could not be activated
    """
    gateway = DiscordGateway(config.discord.bot_token, config.discord.log_level)
    game = ConsoleGameTransport(console)
    audit = AuditLogger.from_config(config.audit)
    context = RelayContext(config=config, gateway=gateway, game=game, audit=audit)

    relay = SessionRelay(context)
    router = EventRouter(context, relay)
    commands = CommandFront(context, relay)

    router.start()
    try:
        await gateway.start()
        # The ready event is queued by now; wait for the startup sequence
        await context.events.join()
        if not context.ready:
            print_error(f"Relay activation failed: {context.activation_error}")
            return False

        print_success(
            f"Relay ready, {len(context.directory)} open chat(s). "
            f"Players use /{config.relay.help_command} and /{config.relay.reply_command}"
        )
        await game.run(commands)
        return True
    finally:
        logger.info("Shutting down relay")
        await relay.shutdown()
        audit.log_relay_stopped(len(context.directory))
        await router.stop()
        if gateway.is_running:
            await gateway.stop()
        audit.close()


def serve(
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Config file to use instead of ~/.adminrelay/config.yaml.",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-l",
            help="Log level: DEBUG, INFO, WARNING, ERROR or CRITICAL.",
        ),
    ] = None,
) -> None:
    """Connect to Discord and relay live chats for console players."""
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        print_error(f"Configuration error: {e}")
        raise typer.Exit(1)

    if not config.discord.bot_token:
        print_error("discord.bot_token is not configured")
        print_info("Set DISCORD_BOT_TOKEN or ADMINRELAY_DISCORD_BOT_TOKEN")
        raise typer.Exit(1)

    configure_logging(log_level or config.logging.level, config.logging.file)

    try:
        ok = asyncio.run(run_relay(config))
    except RemoteUnavailable as e:
        print_error(str(e))
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Relay stopped[/yellow]")
        return

    if not ok:
        raise typer.Exit(1)
