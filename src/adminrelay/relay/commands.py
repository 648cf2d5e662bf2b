"""Player-facing commands: call for help and reply.

Every outcome, including remote failures, becomes a localized reply line;
nothing raised by the relay escapes to the game server.
"""

import logging
from typing import Optional

from adminrelay.relay.context import RelayContext
from adminrelay.relay.exceptions import RelayError
from adminrelay.relay.models import ReplyResult, StartResult
from adminrelay.relay.session import SessionRelay

logger = logging.getLogger(__name__)


class CommandFront:
    """Maps chat commands to SessionRelay operations."""

    def __init__(self, context: RelayContext, relay: SessionRelay) -> None:
        self._ctx = context
        self._relay = relay

    @property
    def command_names(self) -> list[str]:
        """Names of the enabled commands, without the leading slash."""
        relay_config = self._ctx.config.relay
        names = [relay_config.help_command]
        if relay_config.reply_command:
            names.append(relay_config.reply_command)
        return names

    async def handle(self, player_id: str, command: str, args: list[str]) -> Optional[str]:
        """Run a chat command.

        Args:
            player_id: Player issuing the command
            command: Command name, with or without the leading slash
            args: Whitespace-separated arguments

        Returns:
            The reply for the player, or None if the command is not ours
        """
        relay_config = self._ctx.config.relay
        name = command.lstrip("/").lower()

        if name == relay_config.help_command.lower():
            return await self.call_for_help(player_id)
        if relay_config.reply_command and name == relay_config.reply_command.lower():
            return await self.reply(player_id, args)
        return None

    async def call_for_help(self, player_id: str) -> str:
        """Open a live chat with the admins."""
        ctx = self._ctx

        if not ctx.game.has_permission(player_id, ctx.config.relay.permission):
            return ctx.message("NoPermission")
        if not ctx.ready:
            return ctx.message("CallAdminNotAvailable")

        try:
            result = await self._relay.start_session(player_id)
        except RelayError as e:
            logger.warning(f"Could not open a chat for player {player_id}: {e}")
            return ctx.message("CallAdminNotAvailable")

        if result == StartResult.STARTED:
            return ctx.message("CallAdminSuccess")
        if result == StartResult.ALREADY_ACTIVE:
            return ctx.message("CallAdminAlreadyCalled")
        return ctx.message("CallAdminNotAvailable")

    async def reply(self, player_id: str, args: list[str]) -> str:
        """Send a message to the admins in the player's live chat."""
        ctx = self._ctx
        reply_command = ctx.config.relay.reply_command

        if not ctx.ready:
            return ctx.message("ReplyNotAvailable", reply_command)
        if not args:
            return ctx.message("ReplyCommandUsage", reply_command)

        text = " ".join(args)
        try:
            result = await self._relay.reply(player_id, text)
        except RelayError as e:
            logger.warning(f"Could not relay reply of player {player_id}: {e}")
            return ctx.message("ReplyNotAvailable", reply_command)

        if result == ReplyResult.NO_SESSION:
            return ctx.message("ReplyNoLiveChatInProgress")
        if result == ReplyResult.NOT_ENOUGH_CONTEXT:
            return ctx.message("ReplyWaitForAdminResponse")

        player = await ctx.game.resolve_player(player_id)
        name = player.display_name if player else player_id
        return ctx.message("ReplyMessageSent", name, text)
