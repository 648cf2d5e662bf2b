"""Transport implementations."""

from adminrelay.relay.adapters.console import ConsoleGameTransport
from adminrelay.relay.adapters.discord import DiscordGateway

__all__ = [
    "ConsoleGameTransport",
    "DiscordGateway",
]
