"""
Relay exceptions for adminrelay.

Configuration problems found at startup are reported with
adminrelay.config.ConfigurationError; everything raised at runtime derives
from RelayError.
"""


class RelayError(Exception):
    """Base exception for relay errors."""

    pass


class RemoteUnavailable(RelayError):
    """The remote platform could not serve the request (transient)."""

    pass


class NameConflict(RelayError):
    """A channel with the requested name already exists."""

    def __init__(self, name: str):
        super().__init__(f"Channel already exists: {name}")
        self.name = name


class ChannelNotFound(RelayError):
    """The remote channel does not exist (any more)."""

    def __init__(self, channel_id: str):
        super().__init__(f"Channel not found: {channel_id}")
        self.channel_id = channel_id


class PlayerNotFound(RelayError):
    """The game side cannot resolve the player."""

    def __init__(self, player_id: str):
        super().__init__(f"Player not found: {player_id}")
        self.player_id = player_id


class PlayerNotConnected(PlayerNotFound):
    """The player is known but no longer connected."""

    pass
