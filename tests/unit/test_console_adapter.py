"""Unit tests for the console game transport."""

import io
from unittest.mock import AsyncMock

import pytest
from rich.console import Console

from adminrelay.relay.adapters.console import ConsoleGameTransport
from adminrelay.relay.exceptions import PlayerNotConnected
from adminrelay.relay.models import Player, PlayerDisconnectedEvent


def make_transport() -> tuple[ConsoleGameTransport, io.StringIO]:
    output = io.StringIO()
    console = Console(file=output, width=200, color_system=None)
    return ConsoleGameTransport(console), output


class TestConsoleGameTransport:
    """Test ConsoleGameTransport functionality."""

    @pytest.mark.asyncio
    async def test_connect_and_resolve(self) -> None:
        transport, _ = make_transport()
        transport.connect("p1", "Alice")

        player = await transport.resolve_player("p1")

        assert player == Player(player_id="p1", display_name="Alice")
        assert await transport.resolve_player("p2") is None

    def test_disconnect_emits_event(self) -> None:
        """Test leaving players are reported to the relay."""
        transport, _ = make_transport()
        events: list[object] = []
        transport.bind(events.append)
        transport.connect("p1", "Alice")

        assert transport.disconnect("p1", "Timed out") is True
        assert transport.disconnect("p1") is False

        assert events == [PlayerDisconnectedEvent(player_id="p1", reason="Timed out")]

    @pytest.mark.asyncio
    async def test_send_chat_line(self) -> None:
        transport, output = make_transport()
        player = transport.connect("p1", "Alice")

        await transport.send_chat_line(player, "[#00C851]Hello[/#] [world]")

        assert "Alice" in output.getvalue()
        assert "Hello [world]" in output.getvalue()

    @pytest.mark.asyncio
    async def test_send_to_disconnected_player(self) -> None:
        transport, _ = make_transport()
        player = transport.connect("p1", "Alice")
        transport.disconnect("p1")

        with pytest.raises(PlayerNotConnected):
            await transport.send_chat_line(player, "hello")

    def test_permissions(self) -> None:
        """Test explicit permission sets and the grant-all default."""
        transport, _ = make_transport()
        transport.connect("p1", "Alice")
        transport.connect("p2", "Bob", permissions={"other.perm"})

        assert transport.has_permission("p1", "adminrelay.use")
        assert not transport.has_permission("p2", "adminrelay.use")
        assert not transport.has_permission("p3", "adminrelay.use")

    def test_format_output(self) -> None:
        """Test game markup becomes Rich markup and other brackets are escaped."""
        transport, _ = make_transport()

        formatted = transport.format_output("[#9C0000]Admin[/#] <size=11>/r [message]</size>")

        assert formatted == "[#9c0000]Admin[/] /r \\[message]"


class TestConsoleInput:
    """Tests for typed console commands."""

    @pytest.mark.asyncio
    async def test_join_and_leave(self) -> None:
        transport, output = make_transport()
        commands = AsyncMock()

        assert await transport.handle_line("join 7656 Alice Smith", commands)
        assert transport.players[0].display_name == "Alice Smith"

        assert await transport.handle_line("leave 7656 rage quit", commands)
        assert transport.players == []

    @pytest.mark.asyncio
    async def test_player_command(self) -> None:
        """Test a player command is handed to the command front."""
        transport, output = make_transport()
        commands = AsyncMock()
        commands.handle.return_value = "Admins have been notified"
        transport.connect("p1", "Alice")

        await transport.handle_line("p1 /calladmin", commands)
        await transport.handle_line("p1 /r need help", commands)

        commands.handle.assert_any_await("p1", "/calladmin", [])
        commands.handle.assert_any_await("p1", "/r", ["need", "help"])
        assert "Admins have been notified" in output.getvalue()

    @pytest.mark.asyncio
    async def test_unknown_command(self) -> None:
        transport, output = make_transport()
        commands = AsyncMock()
        commands.handle.return_value = None
        transport.connect("p1", "Alice")

        await transport.handle_line("p1 /kit", commands)

        assert "Unknown command" in output.getvalue()

    @pytest.mark.asyncio
    async def test_command_for_unknown_player(self) -> None:
        transport, output = make_transport()
        commands = AsyncMock()

        await transport.handle_line("p9 /calladmin", commands)

        commands.handle.assert_not_awaited()
        assert "No player p9" in output.getvalue()

    @pytest.mark.asyncio
    async def test_quit(self) -> None:
        transport, _ = make_transport()

        assert await transport.handle_line("quit", AsyncMock()) is False
        assert await transport.handle_line("", AsyncMock()) is True

    @pytest.mark.asyncio
    async def test_who(self) -> None:
        transport, output = make_transport()
        transport.connect("p1", "Alice")

        await transport.handle_line("who", AsyncMock())

        assert "Alice" in output.getvalue()
