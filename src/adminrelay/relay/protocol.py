"""Transport protocol definitions.

The relay talks to two transports: the remote messaging platform hosting the
session channels (TransportGateway) and the game server's player chat
(GameTransport). Both push lifecycle events to the relay through a sink
bound at startup; neither keeps its own copy of the session mapping.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from adminrelay.relay.models import ChannelInfo, LinkButton, Player, RelayEvent, RemoteMessage

logger = logging.getLogger(__name__)

EventSink = Callable[[RelayEvent], None]
InboundCallback = Callable[[RemoteMessage], None]


class Subscription:
    """Handle for an inbound-message subscription on one channel."""

    def __init__(self, gateway: "TransportGateway", channel_id: str) -> None:
        self._gateway = gateway
        self.channel_id = channel_id

    @property
    def active(self) -> bool:
        return self._gateway.is_subscribed(self.channel_id)

    def cancel(self) -> None:
        """Stop receiving messages for this channel."""
        self._gateway.unsubscribe(self.channel_id)


class TransportGateway(ABC):
    """Abstract base class for the remote messaging platform.

    Implementations translate platform objects into the relay models and
    report ChannelCreatedEvent, ChannelDeletedEvent and GatewayReadyEvent
    through the bound sink. Inbound messages are delivered only for channels
    with an active subscription.
    """

    def __init__(self) -> None:
        """Initialize the gateway."""
        self._running = False
        self._sink: Optional[EventSink] = None
        self._subscriptions: dict[str, InboundCallback] = {}

    @property
    @abstractmethod
    def bot_id(self) -> str:
        """Stable identity of this bot, embedded in session channel names."""
        ...

    @property
    def is_running(self) -> bool:
        """Check if the gateway is currently connected."""
        return self._running

    def bind(self, sink: EventSink) -> None:
        """Set where lifecycle events are delivered."""
        self._sink = sink

    def _emit(self, event: RelayEvent) -> None:
        if self._sink is None:
            logger.debug(f"Dropping {event.kind} event, no sink bound")
            return
        self._sink(event)

    @abstractmethod
    async def start(self) -> None:
        """Connect to the platform and wait until it is ready."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Disconnect from the platform."""
        ...

    @abstractmethod
    async def list_channels(self, guild_id: str) -> list[ChannelInfo]:
        """List every channel of a guild."""
        ...

    @abstractmethod
    async def create_channel(self, name: str, parent_id: str) -> ChannelInfo:
        """Create a text channel under a category.

        Raises:
            NameConflict: If a channel with this name already exists
            RemoteUnavailable: If the platform refused or could not be reached
        """
        ...

    @abstractmethod
    async def delete_channel(self, channel_id: str) -> None:
        """Delete a channel.

        Raises:
            ChannelNotFound: If the channel is already gone
            RemoteUnavailable: If the platform refused or could not be reached
        """
        ...

    @abstractmethod
    async def send_message(
        self,
        channel_id: str,
        content: str,
        buttons: Optional[list[LinkButton]] = None,
    ) -> str:
        """Post a message into a channel.

        Returns:
            Platform message ID of the sent message

        Raises:
            RemoteUnavailable: If sending fails
        """
        ...

    @abstractmethod
    async def fetch_recent_messages(self, channel_id: str, limit: int) -> list[RemoteMessage]:
        """Fetch up to `limit` most recent messages of a channel, newest first.

        Raises:
            RemoteUnavailable: If the history cannot be read
        """
        ...

    @abstractmethod
    async def acknowledge_message(self, channel_id: str, message_id: str, marker: str) -> None:
        """Put a visual receipt marker (reaction) on a message."""
        ...

    def subscribe_inbound(self, channel_id: str, on_message: InboundCallback) -> Subscription:
        """Deliver messages posted in `channel_id` to `on_message`.

        Subscribing twice to the same channel replaces the callback.
        """
        self._subscriptions[channel_id] = on_message
        logger.debug(f"Subscribed to channel {channel_id}")
        return Subscription(self, channel_id)

    def unsubscribe(self, channel_id: str) -> None:
        """Drop the subscription for a channel, if any."""
        if self._subscriptions.pop(channel_id, None) is not None:
            logger.debug(f"Unsubscribed from channel {channel_id}")

    def is_subscribed(self, channel_id: str) -> bool:
        return channel_id in self._subscriptions

    def _dispatch_inbound(self, message: RemoteMessage) -> bool:
        """Hand a platform message to its channel subscriber.

        Returns:
            True if a subscriber received the message
        """
        callback = self._subscriptions.get(message.channel_id)
        if callback is None:
            return False
        callback(message)
        return True


class GameTransport(ABC):
    """Abstract base class for the game server's player chat.

    Implementations report PlayerDisconnectedEvent through the bound sink.
    """

    def __init__(self) -> None:
        self._sink: Optional[EventSink] = None

    def bind(self, sink: EventSink) -> None:
        """Set where lifecycle events are delivered."""
        self._sink = sink

    def _emit(self, event: RelayEvent) -> None:
        if self._sink is None:
            logger.debug(f"Dropping {event.kind} event, no sink bound")
            return
        self._sink(event)

    @abstractmethod
    async def resolve_player(self, player_id: str) -> Optional[Player]:
        """Find a connected player by id, or None."""
        ...

    @abstractmethod
    async def send_chat_line(self, player: Player, text: str) -> None:
        """Show a chat line to a player.

        Raises:
            PlayerNotConnected: If the player left in the meantime
        """
        ...

    def has_permission(self, player_id: str, permission: str) -> bool:
        """Check a player permission.

        Default implementation grants everything. Game servers with a
        permission system should override this.
        """
        return True

    def format_output(self, text: str) -> str:
        """Convert relay markup (``[#rrggbb]...[/#]``) to the game's markup.

        Default implementation returns the text unchanged.
        """
        return text
