"""Session relay: creates, tears down and forwards admin live chats.

SessionRelay is the only component that mutates the ChannelDirectory.
Lifecycle operations (start, stop, delayed delete, adopt, forget) for one
player run under that player's lock, so a stop racing a start can never
leave a channel without a directory entry.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from adminrelay.relay.context import RelayContext
from adminrelay.relay.directory import ChannelDirectory
from adminrelay.relay.exceptions import (
    ChannelNotFound,
    NameConflict,
    PlayerNotConnected,
    RelayError,
    RemoteUnavailable,
)
from adminrelay.relay.locks import KeyedLock
from adminrelay.relay.models import (
    InboundMessageEvent,
    LinkButton,
    Player,
    RemoteMessage,
    ReplyResult,
    Session,
    StartResult,
    StopResult,
)
from adminrelay.relay.naming import is_channel_safe, make_channel_name
from adminrelay.relay.protocol import Subscription
from adminrelay.relay.scheduler import DeletionScheduler

logger = logging.getLogger(__name__)

# A failed channel deletion is attempted this many times in total
MAX_DELETE_ATTEMPTS = 2


class SessionRelay:
    """Orchestrates live chat sessions between players and session channels."""

    def __init__(
        self,
        context: RelayContext,
        scheduler: Optional[DeletionScheduler] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the relay.

        Args:
            context: Shared relay state and transports
            scheduler: Scheduler for delayed channel deletion
            clock: Source of the local time stamped on player replies
        """
        self._ctx = context
        self._locks = KeyedLock()
        self._scheduler = scheduler or DeletionScheduler()
        self._clock = clock
        self._subscriptions: dict[str, Subscription] = {}

    @property
    def directory(self) -> ChannelDirectory:
        return self._ctx.directory

    @property
    def scheduler(self) -> DeletionScheduler:
        return self._scheduler

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def start_session(self, player_id: str) -> StartResult:
        """Open a live chat for a player.

        Raises:
            RemoteUnavailable: If the relay is not activated or the channel
                could not be created. No session is registered in that case.
        """
        ctx = self._ctx
        if not ctx.ready:
            raise RemoteUnavailable("Relay is not ready")
        if not is_channel_safe(player_id, ctx.bot_id):
            logger.warning(f"Player ID {player_id!r} cannot be used in a channel name")
            return StartResult.INVALID_PLAYER_ID

        async with self._locks.hold(player_id):
            existing = ctx.directory.get(player_id)
            if existing is not None:
                logger.info(f"Player {player_id} already has an open chat: {existing}")
                return StartResult.ALREADY_ACTIVE

            player = await ctx.game.resolve_player(player_id)
            if player is None:
                logger.warning(f"Player with ID {player_id} wasn't found")
                return StartResult.PLAYER_NOT_FOUND

            name = make_channel_name(player_id, ctx.bot_id)
            try:
                channel = await ctx.gateway.create_channel(name, ctx.category_id or "")
            except NameConflict:
                logger.warning(f"Channel {name} already exists, treating it as an open chat")
                return StartResult.ALREADY_ACTIVE

            session = ctx.directory.insert(player_id, channel.id)
            self._subscribe(channel.id)
            logger.info(f"Started live chat {session}")
            if ctx.audit:
                ctx.audit.log_session_started(player_id, channel.id)

            await self._announce(player, channel.id)

        return StartResult.STARTED

    async def stop_session(self, player_id: str, reason: Optional[str] = None) -> StopResult:
        """Close a player's live chat.

        Posts a closing notice and deletes the channel after the grace
        delay. A channel that is already gone is dropped right away. Returns
        NO_SESSION if there is no session or it is already closing.
        """
        ctx = self._ctx
        async with self._locks.hold(player_id):
            session = ctx.directory.get(player_id)
            if session is None or not session.is_active:
                return StopResult.NO_SESSION

            ctx.directory.mark_closing(player_id)
            logger.info(f"Closing live chat {session}" + (f": {reason}" if reason else ""))
            if ctx.audit:
                ctx.audit.log_session_closing(player_id, session.channel_id, reason)

            delay = ctx.config.relay.grace_delay
            notice = ctx.message("ChannelClosing", f"{delay:g}")
            if reason:
                notice += ctx.message("ChannelClosingReason", reason)
            try:
                await ctx.gateway.send_message(session.channel_id, notice)
            except ChannelNotFound:
                self._forget(player_id, session.channel_id)
                return StopResult.STOPPED
            except RemoteUnavailable as e:
                logger.warning(f"Could not post closing notice in #{session.channel_id}: {e}")

            self._schedule_deletion(player_id, session.channel_id, attempt=1)

        return StopResult.STOPPED

    async def route_inbound(
        self,
        channel_id: str,
        sender_name: str,
        text: str,
        message_id: Optional[str] = None,
    ) -> None:
        """Forward an operator message from a session channel to its player."""
        ctx = self._ctx
        relay_config = ctx.config.relay

        player_id = ctx.directory.find_by_channel(channel_id)
        if player_id is None:
            logger.debug(f"Ignoring message in #{channel_id}: not a session channel")
            return

        if text == relay_config.close_token:
            logger.info(f"{sender_name} closed the chat of player {player_id}")
            await self.stop_session(player_id)
            return

        content = text
        if relay_config.show_operator_username:
            content = ctx.message("OperatorPrefix", sender_name) + content
        line = ctx.message("CallAdminMessageLayout", content, relay_config.reply_command)

        if not await self._deliver(player_id, line):
            logger.info(f"Player {player_id} is not connected, closing their chat")
            await self.stop_session(player_id, ctx.message("NotConnected"))
            return

        if ctx.audit:
            ctx.audit.log_message_relayed(player_id, sender_name, text)

        if message_id is not None:
            try:
                await ctx.gateway.acknowledge_message(
                    channel_id, message_id, relay_config.acknowledge_marker
                )
            except RelayError as e:
                logger.warning(f"Could not acknowledge message {message_id}: {e}")

    async def reply(self, player_id: str, text: str) -> ReplyResult:
        """Post a player's message into their session channel.

        The reply is only accepted once an operator has written at least
        once, approximated by the channel holding min_messages_for_reply
        messages (the announcement plus one answer). If the channel turns
        out to be gone, the session is dropped and NO_SESSION returned.

        Raises:
            RemoteUnavailable: If the relay is not activated or the channel
                cannot be read or written
        """
        ctx = self._ctx
        relay_config = ctx.config.relay
        if not ctx.ready:
            raise RemoteUnavailable("Relay is not ready")

        session = ctx.directory.get(player_id)
        if session is None or not session.is_active:
            return ReplyResult.NO_SESSION

        player = await ctx.game.resolve_player(player_id)
        name = player.display_name if player else player_id
        try:
            history = await ctx.gateway.fetch_recent_messages(
                session.channel_id, relay_config.history_limit
            )
            if len(history) < relay_config.min_messages_for_reply:
                return ReplyResult.NOT_ENOUGH_CONTEXT

            stamp = self._clock().strftime("%H:%M")
            await ctx.gateway.send_message(
                session.channel_id, ctx.message("ReplyRelayed", stamp, name, text)
            )
        except ChannelNotFound:
            await self.forget_channel(player_id, session.channel_id)
            return ReplyResult.NO_SESSION

        if ctx.audit:
            ctx.audit.log_reply_sent(player_id, text)
        return ReplyResult.SENT

    # ------------------------------------------------------------------
    # Operations used by the EventRouter
    # ------------------------------------------------------------------

    async def adopt_channel(self, player_id: str, channel_id: str) -> bool:
        """Register a session channel discovered on the remote side.

        Used at startup to recover sessions left by a previous run, and
        when the platform reports a channel creation.

        Returns:
            True if a new session was registered
        """
        ctx = self._ctx
        async with self._locks.hold(player_id):
            session = ctx.directory.get(player_id)
            if session is not None:
                if session.channel_id == channel_id:
                    self._subscribe(channel_id)
                else:
                    logger.warning(
                        f"Ignoring channel #{channel_id}: player {player_id} "
                        f"already chats in #{session.channel_id}"
                    )
                return False

            if ctx.directory.find_by_channel(channel_id) is not None:
                return False

            session = ctx.directory.insert(player_id, channel_id)
            self._subscribe(channel_id)
            logger.info(f"Adopted existing live chat {session}")
            if ctx.audit:
                ctx.audit.log_channel_adopted(player_id, channel_id)
            return True

    async def forget_channel(self, player_id: str, channel_id: str) -> Optional[Session]:
        """Drop the session of a channel that no longer exists remotely.

        Returns:
            The removed session, or None if the channel had none
        """
        async with self._locks.hold(player_id):
            return self._forget(player_id, channel_id)

    async def shutdown(self) -> None:
        """Cancel the grace delays and delete closing channels right away."""
        await self._scheduler.cancel_all()
        for session in self.directory.sessions():
            if session.is_active:
                continue
            await self._delete_channel(session.player_id, session.channel_id, attempt=MAX_DELETE_ATTEMPTS)
        for subscription in list(self._subscriptions.values()):
            subscription.cancel()
        self._subscriptions.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _announce(self, player: Player, channel_id: str) -> None:
        ctx = self._ctx
        relay_config = ctx.config.relay

        buttons: list[LinkButton] = []
        if relay_config.profile_url_template:
            url = relay_config.profile_url_template.format(player_id=player.player_id)
            buttons.append(LinkButton(label=relay_config.profile_button_label, url=url))

        try:
            await ctx.gateway.send_message(
                channel_id,
                ctx.message("ChannelOpened", player.display_name),
                buttons=buttons or None,
            )
        except RelayError as e:
            logger.warning(f"Could not post announcement in #{channel_id}: {e}")

    def _forget(self, player_id: str, channel_id: str) -> Optional[Session]:
        # Caller holds the player's lock
        ctx = self._ctx
        self._scheduler.cancel(channel_id)
        session = ctx.directory.get(player_id)
        if session is None or session.channel_id != channel_id:
            self._unsubscribe(channel_id)
            return None

        self._drop(player_id)
        logger.info(f"Channel #{channel_id} is gone, removed {session}")
        if ctx.audit:
            ctx.audit.log_channel_deleted_externally(player_id, channel_id)
        return session

    async def _deliver(self, player_id: str, text: str) -> bool:
        player = await self._ctx.game.resolve_player(player_id)
        if player is None:
            return False
        try:
            await self._ctx.game.send_chat_line(player, text)
        except PlayerNotConnected:
            return False
        return True

    def _schedule_deletion(self, player_id: str, channel_id: str, attempt: int) -> None:
        self._scheduler.schedule(
            channel_id,
            self._ctx.config.relay.grace_delay,
            lambda: self._delete_channel(player_id, channel_id, attempt),
        )

    async def _delete_channel(self, player_id: str, channel_id: str, attempt: int) -> None:
        ctx = self._ctx
        async with self._locks.hold(player_id):
            session = ctx.directory.get(player_id)
            if session is None or session.channel_id != channel_id or session.is_active:
                logger.debug(f"Skipping deletion of #{channel_id}: session changed")
                return

            try:
                await ctx.gateway.delete_channel(channel_id)
            except ChannelNotFound:
                logger.debug(f"Channel #{channel_id} is already gone")
            except RemoteUnavailable as e:
                if attempt < MAX_DELETE_ATTEMPTS:
                    logger.warning(f"Deleting #{channel_id} failed, retrying once: {e}")
                    self._schedule_deletion(player_id, channel_id, attempt + 1)
                    return
                logger.error(f"Giving up deleting #{channel_id}, dropping the session anyway: {e}")

            self._drop(player_id)
            logger.info(f"Closed live chat of player {player_id}")
            if ctx.audit:
                ctx.audit.log_session_closed(player_id, channel_id)

    def _drop(self, player_id: str) -> None:
        session = self._ctx.directory.remove(player_id)
        if session is not None:
            self._unsubscribe(session.channel_id)

    def _subscribe(self, channel_id: str) -> None:
        self._subscriptions[channel_id] = self._ctx.gateway.subscribe_inbound(
            channel_id, self._on_inbound
        )

    def _unsubscribe(self, channel_id: str) -> None:
        subscription = self._subscriptions.pop(channel_id, None)
        if subscription is not None:
            subscription.cancel()
        else:
            self._ctx.gateway.unsubscribe(channel_id)

    def _on_inbound(self, message: RemoteMessage) -> None:
        self._ctx.post(InboundMessageEvent(message=message))
