"""Event router: drains the relay event queue and dispatches into SessionRelay."""

import asyncio
import logging
from typing import Optional

from adminrelay.config import ConfigurationError
from adminrelay.relay.context import RelayContext
from adminrelay.relay.exceptions import PlayerNotConnected
from adminrelay.relay.models import (
    ChannelCreatedEvent,
    ChannelDeletedEvent,
    ChannelInfo,
    ChannelKind,
    GatewayReadyEvent,
    GuildInfo,
    InboundMessageEvent,
    PlayerDisconnectedEvent,
    RelayEvent,
)
from adminrelay.relay.naming import owned_player_id
from adminrelay.relay.session import SessionRelay

logger = logging.getLogger(__name__)


class EventRouter:
    """Routes platform and game lifecycle events to the session relay.

    The router:
    1. Runs the startup sequence once the remote connection is ready
    2. Adopts session channels it did not create itself (restart recovery)
    3. Drops sessions whose channel was deleted by someone else
    4. Closes the chat of players leaving the game
    5. Forwards inbound channel messages in arrival order
    """

    def __init__(self, context: RelayContext, relay: SessionRelay) -> None:
        self._ctx = context
        self._relay = relay
        self._started = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Queue processing
    # ------------------------------------------------------------------

    def start(self) -> asyncio.Task:
        """Start draining the event queue in a background task."""
        task = self._task
        if task is not None and not task.done():
            logger.warning("Event router is already running")
            return task
        self._task = task = asyncio.create_task(self.run(), name="event-router")
        return task

    async def stop(self) -> None:
        """Stop draining the queue. Queued events are left unprocessed."""
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    async def run(self) -> None:
        """Process events one at a time, in arrival order, forever."""
        queue = self._ctx.events
        logger.info("Event router started")
        try:
            while True:
                event = await queue.get()
                try:
                    await self.dispatch(event)
                finally:
                    queue.task_done()
        except asyncio.CancelledError:
            logger.info("Event router stopped")
            raise

    async def dispatch(self, event: RelayEvent) -> None:
        """Handle one event. Handler errors are logged, never raised."""
        try:
            if isinstance(event, InboundMessageEvent):
                await self._on_inbound_message(event)
            elif isinstance(event, PlayerDisconnectedEvent):
                await self._on_player_disconnected(event)
            elif isinstance(event, ChannelCreatedEvent):
                await self._on_channel_created(event)
            elif isinstance(event, ChannelDeletedEvent):
                await self._on_channel_deleted(event)
            elif isinstance(event, GatewayReadyEvent):
                await self._on_gateway_ready(event)
            else:
                logger.warning(f"Unknown event: {event!r}")
        except Exception as e:
            logger.error(f"Error handling {getattr(event, 'kind', event)} event: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Startup sequence
    # ------------------------------------------------------------------

    async def startup(self, guilds: list[GuildInfo]) -> int:
        """Validate the remote setup and recover existing session channels.

        Args:
            guilds: Guilds the bot is a member of

        Returns:
            Number of sessions recovered from existing channels

        Raises:
            ConfigurationError: If no single guild can be chosen or the
                configured category is missing or not a category
        """
        ctx = self._ctx
        guild = self._select_guild(guilds)

        category_id = ctx.category_id
        if category_id is None:
            raise ConfigurationError("discord.category_id is not configured")

        channels = await ctx.gateway.list_channels(guild.id)
        category = next((c for c in channels if c.id == category_id), None)
        if category is None or category.kind != ChannelKind.CATEGORY:
            raise ConfigurationError(f'Category with ID "{category_id}" doesn\'t exist!')

        ctx.guild_id = guild.id
        adopted = 0
        for channel in channels:
            if channel.parent_id == category_id and await self._adopt(channel):
                adopted += 1

        ctx.ready = True
        ctx.activation_error = None
        logger.info(
            f"Relay ready in guild {guild.name or guild.id}, "
            f"category {category.name}, {adopted} open chat(s) recovered"
        )
        if ctx.audit:
            ctx.audit.log_relay_started(guild.id, category_id, adopted)
        return adopted

    def _select_guild(self, guilds: list[GuildInfo]) -> GuildInfo:
        if not guilds:
            raise ConfigurationError(
                "Your bot was not found in any discord servers. "
                "Please invite it to a server and restart."
            )

        guild_id = self._ctx.config.guild_id
        if guild_id is None:
            if len(guilds) == 1:
                return guilds[0]
            raise ConfigurationError(
                f"The bot is in {len(guilds)} servers; set discord.guild_id to pick one."
            )

        for guild in guilds:
            if guild.id == guild_id:
                return guild
        raise ConfigurationError(
            "Failed to find a matching guild for the Discord Server Id. "
            "Please make sure your guild Id is correct and the bot is in the discord server."
        )

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _on_gateway_ready(self, event: GatewayReadyEvent) -> None:
        if self._started:
            logger.debug("Gateway resumed, startup already done")
            return
        self._started = True

        try:
            await self.startup(event.guilds)
        except ConfigurationError as e:
            self._ctx.ready = False
            self._ctx.activation_error = str(e)
            logger.error(f"Relay activation failed: {e}")
            if self._ctx.audit:
                self._ctx.audit.log_startup_failed(str(e))

    async def _on_channel_created(self, event: ChannelCreatedEvent) -> None:
        if not self._ctx.ready:
            return
        await self._adopt(event.channel)

    async def _on_channel_deleted(self, event: ChannelDeletedEvent) -> None:
        ctx = self._ctx
        channel = event.channel
        if not ctx.ready or channel.parent_id != ctx.category_id:
            return

        player_id = ctx.directory.find_by_channel(channel.id) or owned_player_id(
            channel.name, ctx.bot_id
        )
        if player_id is None:
            return

        removed = await self._relay.forget_channel(player_id, channel.id)
        if removed is None and ctx.directory.get(player_id) is not None:
            # Stale channel; the player already chats elsewhere
            return

        player = await ctx.game.resolve_player(player_id)
        if player is None:
            return
        try:
            await ctx.game.send_chat_line(player, ctx.message("ChatClosed"))
        except PlayerNotConnected:
            logger.debug(f"Player {player_id} left before the close notice")

    async def _on_player_disconnected(self, event: PlayerDisconnectedEvent) -> None:
        await self._relay.stop_session(event.player_id, event.reason)

    async def _on_inbound_message(self, event: InboundMessageEvent) -> None:
        message = event.message
        await self._relay.route_inbound(
            message.channel_id,
            message.author_name,
            message.content,
            message_id=message.id,
        )

    async def _adopt(self, channel: ChannelInfo) -> bool:
        ctx = self._ctx
        if channel.parent_id != ctx.category_id or channel.kind != ChannelKind.TEXT:
            return False
        player_id = owned_player_id(channel.name, ctx.bot_id)
        if player_id is None:
            return False
        return await self._relay.adopt_channel(player_id, channel.id)
