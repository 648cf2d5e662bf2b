"""Session channel naming.

A session channel is named ``<player_id>_<bot_id>``. The name alone is
enough to rebuild the directory after a restart, and the bot id keeps two
bots sharing a category from picking up each other's channels.

Bot ids are snowflakes and never contain the separator, so a name is split
at its last separator and player ids may contain it freely.
"""

import re
from typing import Optional

SEPARATOR = "_"

# Discord lowercases channel names and replaces anything else
_CHANNEL_SAFE = re.compile(r"^[a-z0-9_-]+$")
MAX_CHANNEL_NAME_LENGTH = 100


def make_channel_name(player_id: str, bot_id: str) -> str:
    """Derive the channel name for a player's session."""
    return f"{player_id}{SEPARATOR}{bot_id}"


def is_channel_safe(player_id: str, bot_id: str) -> bool:
    """Whether the channel name of `player_id` comes back from Discord unchanged."""
    if not _CHANNEL_SAFE.match(player_id):
        return False
    return len(make_channel_name(player_id, bot_id)) <= MAX_CHANNEL_NAME_LENGTH


def parse_channel_name(name: str) -> Optional[tuple[str, str]]:
    """Split a channel name into ``(player_id, bot_id)``.

    Returns:
        The pair, or None if the name is not a session channel name
    """
    player_id, separator, bot_id = name.rpartition(SEPARATOR)
    if not separator or not player_id or not bot_id:
        return None
    return player_id, bot_id


def owned_player_id(name: str, bot_id: str) -> Optional[str]:
    """Player id of a session channel created by `bot_id`, or None."""
    parsed = parse_channel_name(name)
    if parsed is None or parsed[1] != bot_id:
        return None
    return parsed[0]
