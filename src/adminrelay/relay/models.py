"""Data models for the admin live chat relay."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class SessionState(str, Enum):
    """Lifecycle state of a live chat session."""

    ACTIVE = "active"
    CLOSING = "closing"


class Session(BaseModel):
    """A live pairing of one player with one remote channel."""

    player_id: str
    channel_id: str
    state: SessionState = SessionState.ACTIVE
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    def __str__(self) -> str:
        """String representation for logging."""
        return f"{self.player_id} -> #{self.channel_id} ({self.state.value})"


class ChannelKind(str, Enum):
    """Remote channel kinds the relay cares about."""

    TEXT = "text"
    CATEGORY = "category"
    OTHER = "other"


class ChannelInfo(BaseModel):
    """A remote channel as seen by the relay."""

    id: str
    name: str
    parent_id: Optional[str] = None
    kind: ChannelKind = ChannelKind.TEXT


class GuildInfo(BaseModel):
    """A guild (workspace) the bot is a member of."""

    id: str
    name: str = ""


class RemoteMessage(BaseModel):
    """A message posted in a remote channel."""

    id: str
    channel_id: str
    author_id: str
    author_name: str
    content: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    def __str__(self) -> str:
        """String representation for logging."""
        return f"[#{self.channel_id}] {self.author_name}: {self.content[:50]}"


class LinkButton(BaseModel):
    """A link button attached to a remote message."""

    label: str
    url: str


class Player(BaseModel):
    """A connected player on the game side."""

    player_id: str
    display_name: str

    def __str__(self) -> str:
        return f"{self.display_name} ({self.player_id})"


# =============================================================================
# Operation results
# =============================================================================


class StartResult(str, Enum):
    """Outcome of starting a live chat."""

    STARTED = "started"
    ALREADY_ACTIVE = "already_active"
    PLAYER_NOT_FOUND = "player_not_found"
    INVALID_PLAYER_ID = "invalid_player_id"


class StopResult(str, Enum):
    """Outcome of stopping a live chat."""

    STOPPED = "stopped"
    NO_SESSION = "no_session"


class ReplyResult(str, Enum):
    """Outcome of a player reply."""

    SENT = "sent"
    NO_SESSION = "no_session"
    NOT_ENOUGH_CONTEXT = "not_enough_context"


# =============================================================================
# Events delivered to the EventRouter
# =============================================================================


class GatewayReadyEvent(BaseModel):
    """The remote connection is ready; carries the guilds the bot is in."""

    kind: Literal["gateway_ready"] = "gateway_ready"
    guilds: list[GuildInfo] = Field(default_factory=list)
    bot_id: str


class ChannelCreatedEvent(BaseModel):
    """A channel appeared on the remote platform."""

    kind: Literal["channel_created"] = "channel_created"
    channel: ChannelInfo


class ChannelDeletedEvent(BaseModel):
    """A channel was removed from the remote platform."""

    kind: Literal["channel_deleted"] = "channel_deleted"
    channel: ChannelInfo


class InboundMessageEvent(BaseModel):
    """A message arrived in a subscribed session channel."""

    kind: Literal["inbound_message"] = "inbound_message"
    message: RemoteMessage


class PlayerDisconnectedEvent(BaseModel):
    """A player left the game server."""

    kind: Literal["player_disconnected"] = "player_disconnected"
    player_id: str
    reason: Optional[str] = None


RelayEvent = Annotated[
    Union[
        GatewayReadyEvent,
        ChannelCreatedEvent,
        ChannelDeletedEvent,
        InboundMessageEvent,
        PlayerDisconnectedEvent,
    ],
    Field(discriminator="kind"),
]
