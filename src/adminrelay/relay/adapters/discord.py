"""Discord gateway for session channels, using discord.py."""

import asyncio
import logging
from typing import Any, Optional

import discord
from discord.ext import commands

from adminrelay.relay.exceptions import ChannelNotFound, NameConflict, RemoteUnavailable
from adminrelay.relay.models import (
    ChannelCreatedEvent,
    ChannelDeletedEvent,
    ChannelInfo,
    ChannelKind,
    GatewayReadyEvent,
    GuildInfo,
    LinkButton,
    RemoteMessage,
)
from adminrelay.relay.protocol import TransportGateway

logger = logging.getLogger(__name__)

# Discord message length limit
MAX_MESSAGE_LENGTH = 2000

# Discord extension log levels mapped onto the "discord" library logger
LOG_LEVELS = {
    "verbose": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "exception": logging.CRITICAL,
    "off": logging.CRITICAL + 10,
}


class DiscordGateway(TransportGateway):
    """Discord bot gateway using the Gateway WebSocket.

    Maintains a persistent WebSocket to Discord. Needs the Guilds, Server
    Members and Message Content intents.

    Configuration:
        - bot_token: Discord bot token
        - log_level: Verbosity of the discord.py library logger
    """

    def __init__(self, bot_token: str, log_level: str = "info") -> None:
        """Initialize the Discord gateway.

        Args:
            bot_token: Discord bot token
            log_level: One of verbose, debug, info, warning, error, exception, off
        """
        super().__init__()

        self._bot_token = bot_token
        logging.getLogger("discord").setLevel(LOG_LEVELS.get(log_level, logging.INFO))

        intents = discord.Intents.default()
        intents.guilds = True
        intents.members = True
        intents.messages = True
        intents.message_content = True

        self._bot = commands.Bot(command_prefix=commands.when_mentioned, intents=intents)
        self._ready_event = asyncio.Event()
        self._run_task: Optional[asyncio.Task] = None

        self._bot.add_listener(self._on_ready, "on_ready")
        self._bot.add_listener(self._on_message, "on_message")
        self._bot.add_listener(self._on_guild_channel_create, "on_guild_channel_create")
        self._bot.add_listener(self._on_guild_channel_delete, "on_guild_channel_delete")

    @property
    def bot_id(self) -> str:
        """The bot user's snowflake, available once connected."""
        user = self._bot.user
        return str(user.id) if user else ""

    async def start(self) -> None:
        """Start the Discord bot and wait until the gateway is ready.

        Raises:
            RemoteUnavailable: If the bot cannot log in or connect
        """
        if self._running:
            logger.warning("Discord gateway already running")
            return

        logger.info("Starting Discord gateway")
        self._run_task = asyncio.create_task(self._bot.start(self._bot_token), name="discord-gateway")
        ready_task = asyncio.create_task(self._ready_event.wait())

        await asyncio.wait({self._run_task, ready_task}, return_when=asyncio.FIRST_COMPLETED)
        if not ready_task.done():
            ready_task.cancel()
            error = self._run_task.exception()
            raise RemoteUnavailable(f"Discord connection failed: {error}") from error

        self._running = True
        logger.info(f"Discord gateway connected as {self._bot.user}")

    async def stop(self) -> None:
        """Stop the Discord bot."""
        if not self._running:
            logger.warning("Discord gateway not running")
            return

        logger.info("Stopping Discord gateway")
        await self._bot.close()
        if self._run_task is not None:
            await asyncio.gather(self._run_task, return_exceptions=True)
        self._running = False
        logger.info("Discord gateway stopped")

    # ------------------------------------------------------------------
    # Gateway events
    # ------------------------------------------------------------------

    async def _on_ready(self) -> None:
        """Called when the bot is ready (again after each reconnect)."""
        guilds = [GuildInfo(id=str(g.id), name=g.name) for g in self._bot.guilds]
        logger.info(f"Discord bot logged in as {self._bot.user} in {len(guilds)} guild(s)")
        self._ready_event.set()
        self._emit(GatewayReadyEvent(guilds=guilds, bot_id=self.bot_id))

    async def _on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return
        if not message.content:
            return
        self._dispatch_inbound(self._to_message(message))

    async def _on_guild_channel_create(self, channel: discord.abc.GuildChannel) -> None:
        self._emit(ChannelCreatedEvent(channel=self._to_channel(channel)))

    async def _on_guild_channel_delete(self, channel: discord.abc.GuildChannel) -> None:
        self.unsubscribe(str(channel.id))
        self._emit(ChannelDeletedEvent(channel=self._to_channel(channel)))

    # ------------------------------------------------------------------
    # TransportGateway operations
    # ------------------------------------------------------------------

    async def list_channels(self, guild_id: str) -> list[ChannelInfo]:
        """List every channel of a guild from the gateway cache."""
        guild = self._bot.get_guild(int(guild_id))
        if guild is None:
            raise RemoteUnavailable(f"Guild not available: {guild_id}")
        return [self._to_channel(channel) for channel in guild.channels]

    async def create_channel(self, name: str, parent_id: str) -> ChannelInfo:
        """Create a text channel under the session category."""
        category = self._bot.get_channel(int(parent_id))
        if not isinstance(category, discord.CategoryChannel):
            raise RemoteUnavailable(f"Category not available: {parent_id}")

        if discord.utils.get(category.guild.text_channels, name=name) is not None:
            raise NameConflict(name)

        try:
            channel = await category.create_text_channel(name, reason="Admin live chat")
        except discord.HTTPException as e:
            raise RemoteUnavailable(f"Failed to create channel {name}: {e}") from e

        logger.debug(f"Created channel #{channel.name} ({channel.id})")
        return self._to_channel(channel)

    async def delete_channel(self, channel_id: str) -> None:
        """Delete a session channel."""
        channel = await self._resolve_channel(channel_id)
        try:
            await channel.delete(reason="Admin live chat closed")
        except discord.NotFound as e:
            raise ChannelNotFound(channel_id) from e
        except discord.HTTPException as e:
            raise RemoteUnavailable(f"Failed to delete channel {channel_id}: {e}") from e

    async def send_message(
        self,
        channel_id: str,
        content: str,
        buttons: Optional[list[LinkButton]] = None,
    ) -> str:
        """Send a message, split into chunks past Discord's length limit.

        Link buttons are attached to the last chunk.
        """
        channel = await self._resolve_channel(channel_id)

        chunks = [
            content[i : i + MAX_MESSAGE_LENGTH] for i in range(0, len(content), MAX_MESSAGE_LENGTH)
        ] or [""]

        kwargs: dict[str, Any] = {}
        if buttons:
            view = discord.ui.View()
            for button in buttons:
                view.add_item(
                    discord.ui.Button(label=button.label, url=button.url, style=discord.ButtonStyle.link)
                )
            kwargs["view"] = view

        try:
            sent = None
            for index, chunk in enumerate(chunks):
                last = index == len(chunks) - 1
                sent = await channel.send(chunk, **(kwargs if last else {}))
        except discord.HTTPException as e:
            raise RemoteUnavailable(f"Failed to send Discord message: {e}") from e

        return str(sent.id) if sent else ""

    async def fetch_recent_messages(self, channel_id: str, limit: int) -> list[RemoteMessage]:
        """Fetch the channel history, newest first."""
        channel = await self._resolve_channel(channel_id)
        try:
            return [self._to_message(m) async for m in channel.history(limit=limit)]
        except discord.HTTPException as e:
            raise RemoteUnavailable(f"Failed to read history of {channel_id}: {e}") from e

    async def acknowledge_message(self, channel_id: str, message_id: str, marker: str) -> None:
        """React to a message with the receipt marker."""
        channel = await self._resolve_channel(channel_id)
        try:
            await channel.get_partial_message(int(message_id)).add_reaction(marker)
        except discord.HTTPException as e:
            raise RemoteUnavailable(f"Failed to react to {message_id}: {e}") from e

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _resolve_channel(self, channel_id: str) -> discord.TextChannel:
        try:
            snowflake = int(channel_id)
        except ValueError as e:
            raise ChannelNotFound(channel_id) from e

        channel = self._bot.get_channel(snowflake)
        if channel is None:
            try:
                channel = await self._bot.fetch_channel(snowflake)
            except discord.NotFound as e:
                raise ChannelNotFound(channel_id) from e
            except discord.HTTPException as e:
                raise RemoteUnavailable(f"Failed to fetch channel {channel_id}: {e}") from e

        if not isinstance(channel, discord.TextChannel):
            raise ChannelNotFound(channel_id)
        return channel

    @staticmethod
    def _to_channel(channel: Any) -> ChannelInfo:
        if isinstance(channel, discord.CategoryChannel):
            kind = ChannelKind.CATEGORY
        elif isinstance(channel, discord.TextChannel):
            kind = ChannelKind.TEXT
        else:
            kind = ChannelKind.OTHER

        parent_id = getattr(channel, "category_id", None)
        return ChannelInfo(
            id=str(channel.id),
            name=channel.name,
            parent_id=str(parent_id) if parent_id else None,
            kind=kind,
        )

    @staticmethod
    def _to_message(message: discord.Message) -> RemoteMessage:
        return RemoteMessage(
            id=str(message.id),
            channel_id=str(message.channel.id),
            author_id=str(message.author.id),
            author_name=message.author.name,
            content=message.content,
            timestamp=message.created_at,
        )
