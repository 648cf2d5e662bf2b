"""Unit tests for player chat commands."""

from unittest.mock import AsyncMock

import pytest

from adminrelay.relay.commands import CommandFront
from adminrelay.relay.context import RelayContext
from adminrelay.relay.exceptions import RemoteUnavailable
from adminrelay.relay.session import SessionRelay
from tests.conftest import FakeGame, FakeGateway

ALICE = "76561198000000001"


class TestCallForHelp:
    """Tests for /calladmin."""

    @pytest.mark.asyncio
    async def test_success(self, commands: CommandFront, relay: SessionRelay) -> None:
        """Test calling the admins opens a chat."""
        reply = await commands.handle(ALICE, "/calladmin", [])

        assert "Admins have been notified" in reply
        assert ALICE in relay.directory

    @pytest.mark.asyncio
    async def test_already_called(self, commands: CommandFront) -> None:
        """Test calling twice."""
        await commands.handle(ALICE, "calladmin", [])

        reply = await commands.handle(ALICE, "calladmin", [])

        assert "already notified the admins" in reply

    @pytest.mark.asyncio
    async def test_command_name_is_case_insensitive(self, commands: CommandFront) -> None:
        """Test command names match regardless of case."""
        reply = await commands.handle(ALICE, "/CallAdmin", [])

        assert "Admins have been notified" in reply

    @pytest.mark.asyncio
    async def test_no_permission(
        self, commands: CommandFront, game: FakeGame, gateway: FakeGateway
    ) -> None:
        """Test players without the permission are refused."""
        game.denied.add(ALICE)

        reply = await commands.handle(ALICE, "calladmin", [])

        assert reply == "You do not have permission to use /calladmin."
        assert gateway.create_calls == 0

    @pytest.mark.asyncio
    async def test_not_ready(self, commands: CommandFront, context: RelayContext) -> None:
        """Test the command before activation."""
        context.ready = False

        reply = await commands.handle(ALICE, "calladmin", [])

        assert reply == "/calladmin is not available yet."

    @pytest.mark.asyncio
    async def test_remote_failure(self, commands: CommandFront, gateway: FakeGateway) -> None:
        """Test a failed channel creation is reported as unavailable."""
        gateway.fail_create = True

        reply = await commands.handle(ALICE, "calladmin", [])

        assert reply == "/calladmin is not available yet."

    @pytest.mark.asyncio
    async def test_unsafe_player_id(self, commands: CommandFront, game: FakeGame) -> None:
        """Test a player whose id cannot name a channel is told the command is unavailable."""
        game.connect("Alice Smith", "Alice")

        reply = await commands.handle("Alice Smith", "calladmin", [])

        assert reply == "/calladmin is not available yet."

    @pytest.mark.asyncio
    async def test_unknown_command(self, commands: CommandFront) -> None:
        """Test commands that are not ours return None."""
        assert await commands.handle(ALICE, "/kit", ["starter"]) is None

    def test_command_names(self, commands: CommandFront) -> None:
        """Test the enabled command names."""
        assert commands.command_names == ["calladmin", "r"]


class TestReply:
    """Tests for /r."""

    @pytest.mark.asyncio
    async def test_usage(self, commands: CommandFront) -> None:
        """Test /r without a message shows the usage."""
        reply = await commands.handle(ALICE, "/r", [])

        assert reply == "Usage: /r [message]"

    @pytest.mark.asyncio
    async def test_no_live_chat(self, commands: CommandFront) -> None:
        """Test /r without a chat."""
        reply = await commands.handle(ALICE, "/r", ["hello"])

        assert reply == "You have no live chat in progress."

    @pytest.mark.asyncio
    async def test_wait_for_admin(self, commands: CommandFront) -> None:
        """Test /r before an admin answered."""
        await commands.handle(ALICE, "calladmin", [])

        reply = await commands.handle(ALICE, "/r", ["hello"])

        assert "Wait until an admin responds." in reply

    @pytest.mark.asyncio
    async def test_message_sent(
        self, commands: CommandFront, relay: SessionRelay, gateway: FakeGateway
    ) -> None:
        """Test /r after an admin answered."""
        await commands.handle(ALICE, "calladmin", [])
        channel_id = relay.directory.find_by_player(ALICE)
        gateway.operator_says(channel_id, "Yes?")

        reply = await commands.handle(ALICE, "/r", ["there", "is", "a", "bug"])

        assert reply == "[#00C851]Your message has been sent to the admins[/#]\nAlice: there is a bug"
        assert gateway.messages_in(channel_id)[-1] == "(09:05) Alice: there is a bug"

    @pytest.mark.asyncio
    async def test_not_ready(self, commands: CommandFront, context: RelayContext) -> None:
        """Test /r before activation."""
        context.ready = False

        reply = await commands.handle(ALICE, "/r", ["hello"])

        assert reply == "/r is not available yet."

    @pytest.mark.asyncio
    async def test_remote_failure(self, context: RelayContext, relay: SessionRelay) -> None:
        """Test a platform failure during /r is reported as unavailable."""
        relay.reply = AsyncMock(side_effect=RemoteUnavailable("down"))  # type: ignore[method-assign]
        commands = CommandFront(context, relay)

        reply = await commands.handle(ALICE, "/r", ["hello"])

        assert reply == "/r is not available yet."

    @pytest.mark.asyncio
    async def test_channel_vanished(
        self, commands: CommandFront, relay: SessionRelay, gateway: FakeGateway
    ) -> None:
        """Test /r into a channel deleted without notice ends the chat."""
        await commands.handle(ALICE, "calladmin", [])
        channel_id = relay.directory.find_by_player(ALICE)
        gateway.operator_says(channel_id, "Yes?")
        del gateway.channels[channel_id]

        reply = await commands.handle(ALICE, "/r", ["hello"])

        assert reply == "You have no live chat in progress."
        assert ALICE not in relay.directory
        assert "Admins have been notified" in await commands.handle(ALICE, "calladmin", [])
