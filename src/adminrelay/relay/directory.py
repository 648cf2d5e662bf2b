"""Channel directory: the authoritative player <-> channel mapping."""

import logging
from typing import Optional

from adminrelay.relay.models import Session, SessionState

logger = logging.getLogger(__name__)


class ChannelDirectory:
    """Maps player ids to session channels and back.

    The directory is the only record of live sessions. Both directions are
    plain dicts updated together inside one synchronous call, so a lookup
    running on the event loop never observes a half-applied mutation.
    Only SessionRelay mutates it.
    """

    def __init__(self) -> None:
        self._by_player: dict[str, Session] = {}
        self._by_channel: dict[str, str] = {}

    def insert(self, player_id: str, channel_id: str) -> Session:
        """Register a new session.

        Raises:
            ValueError: If the player or the channel is already mapped
        """
        if player_id in self._by_player:
            raise ValueError(f"Player {player_id} already has a session")
        if channel_id in self._by_channel:
            raise ValueError(f"Channel {channel_id} already belongs to a session")

        session = Session(player_id=player_id, channel_id=channel_id)
        self._by_player[player_id] = session
        self._by_channel[channel_id] = player_id
        logger.debug(f"Directory insert: {session}")
        return session

    def get(self, player_id: str) -> Optional[Session]:
        """Get the session of a player, whatever its state."""
        return self._by_player.get(player_id)

    def find_by_player(self, player_id: str) -> Optional[str]:
        """Channel id of the player's session, or None."""
        session = self._by_player.get(player_id)
        return session.channel_id if session else None

    def find_by_channel(self, channel_id: str) -> Optional[str]:
        """Player id owning a channel, or None."""
        return self._by_channel.get(channel_id)

    def mark_closing(self, player_id: str) -> Optional[Session]:
        """Move a session to CLOSING. Returns the session, or None if absent."""
        session = self._by_player.get(player_id)
        if session is not None:
            session.state = SessionState.CLOSING
        return session

    def remove(self, player_id: str) -> Optional[Session]:
        """Remove a session. Returns the removed session, or None."""
        session = self._by_player.pop(player_id, None)
        if session is not None:
            self._by_channel.pop(session.channel_id, None)
            logger.debug(f"Directory remove: {session}")
        return session

    def sessions(self) -> list[Session]:
        """All sessions, oldest first."""
        return sorted(self._by_player.values(), key=lambda s: s.created_at)

    def __len__(self) -> int:
        return len(self._by_player)

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._by_player
