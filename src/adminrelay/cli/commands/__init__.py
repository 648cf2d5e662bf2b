"""CLI command modules."""

from adminrelay.cli.commands import config, serve

__all__ = ["config", "serve"]
