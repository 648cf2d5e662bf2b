"""
Pytest configuration and fixtures for adminrelay tests.
"""

import asyncio
import itertools
import tempfile
from collections.abc import Generator
from datetime import datetime
from pathlib import Path
from typing import Optional

import pytest
from typer.testing import CliRunner

from adminrelay.config import AuditLogConfig, Config, DiscordConfig, RelayConfig
from adminrelay.relay.commands import CommandFront
from adminrelay.relay.context import RelayContext
from adminrelay.relay.exceptions import (
    ChannelNotFound,
    NameConflict,
    PlayerNotConnected,
    RemoteUnavailable,
)
from adminrelay.relay.models import (
    ChannelCreatedEvent,
    ChannelDeletedEvent,
    ChannelInfo,
    ChannelKind,
    GatewayReadyEvent,
    GuildInfo,
    LinkButton,
    Player,
    PlayerDisconnectedEvent,
    RemoteMessage,
)
from adminrelay.relay.protocol import GameTransport, TransportGateway
from adminrelay.relay.router import EventRouter
from adminrelay.relay.session import SessionRelay

BOT_ID = "999"
GUILD_ID = "1"
CATEGORY_ID = "100"


class FakeGateway(TransportGateway):
    """In-memory remote platform with one guild."""

    def __init__(self, bot_id: str = BOT_ID) -> None:
        super().__init__()
        self._bot_id = bot_id
        self._ids = itertools.count(1000)
        self.guilds = [GuildInfo(id=GUILD_ID, name="Test Server")]
        self.channels: dict[str, ChannelInfo] = {}
        self.history: dict[str, list[RemoteMessage]] = {}
        self.sent: list[tuple[str, str, Optional[list[LinkButton]]]] = []
        self.reactions: list[tuple[str, str, str]] = []
        self.deleted: list[str] = []
        self.create_calls = 0
        self.fail_create = False
        self.fail_send = False
        self.delete_failures = 0
        self.add_channel(CATEGORY_ID, "Admin Chats", kind=ChannelKind.CATEGORY)

    @property
    def bot_id(self) -> str:
        return self._bot_id

    def add_channel(
        self,
        channel_id: str,
        name: str,
        parent_id: Optional[str] = None,
        kind: ChannelKind = ChannelKind.TEXT,
    ) -> ChannelInfo:
        channel = ChannelInfo(id=channel_id, name=name, parent_id=parent_id, kind=kind)
        self.channels[channel_id] = channel
        self.history.setdefault(channel_id, [])
        return channel

    def channel_named(self, name: str) -> Optional[ChannelInfo]:
        return next((c for c in self.channels.values() if c.name == name), None)

    def operator_says(self, channel_id: str, text: str, author: str = "Admin") -> bool:
        """Simulate an operator posting in a channel."""
        message = RemoteMessage(
            id=str(next(self._ids)),
            channel_id=channel_id,
            author_id="42",
            author_name=author,
            content=text,
        )
        self.history.setdefault(channel_id, []).append(message)
        return self._dispatch_inbound(message)

    def messages_in(self, channel_id: str) -> list[str]:
        return [content for cid, content, _ in self.sent if cid == channel_id]

    async def start(self) -> None:
        self._running = True
        self._emit(GatewayReadyEvent(guilds=self.guilds, bot_id=self.bot_id))

    async def stop(self) -> None:
        self._running = False

    async def list_channels(self, guild_id: str) -> list[ChannelInfo]:
        return list(self.channels.values())

    async def create_channel(self, name: str, parent_id: str) -> ChannelInfo:
        self.create_calls += 1
        await asyncio.sleep(0)
        if self.fail_create:
            raise RemoteUnavailable("create failed")
        if self.channel_named(name) is not None:
            raise NameConflict(name)
        channel = self.add_channel(str(next(self._ids)), name, parent_id=parent_id)
        self._emit(ChannelCreatedEvent(channel=channel))
        return channel

    async def delete_channel(self, channel_id: str) -> None:
        await asyncio.sleep(0)
        if self.delete_failures > 0:
            self.delete_failures -= 1
            raise RemoteUnavailable("delete failed")
        channel = self.channels.pop(channel_id, None)
        if channel is None:
            raise ChannelNotFound(channel_id)
        self.history.pop(channel_id, None)
        self.deleted.append(channel_id)
        self._emit(ChannelDeletedEvent(channel=channel))

    async def send_message(
        self,
        channel_id: str,
        content: str,
        buttons: Optional[list[LinkButton]] = None,
    ) -> str:
        if self.fail_send:
            raise RemoteUnavailable("send failed")
        if channel_id not in self.channels:
            raise ChannelNotFound(channel_id)
        message = RemoteMessage(
            id=str(next(self._ids)),
            channel_id=channel_id,
            author_id=self._bot_id,
            author_name="relay-bot",
            content=content,
        )
        self.history[channel_id].append(message)
        self.sent.append((channel_id, content, buttons))
        return message.id

    async def fetch_recent_messages(self, channel_id: str, limit: int) -> list[RemoteMessage]:
        if channel_id not in self.channels:
            raise ChannelNotFound(channel_id)
        return list(reversed(self.history[channel_id]))[:limit]

    async def acknowledge_message(self, channel_id: str, message_id: str, marker: str) -> None:
        self.reactions.append((channel_id, message_id, marker))


class FakeGame(GameTransport):
    """In-memory game server recording every chat line."""

    def __init__(self) -> None:
        super().__init__()
        self.players: dict[str, Player] = {}
        self.lines: list[tuple[str, str]] = []
        self.denied: set[str] = set()

    def connect(self, player_id: str, name: str) -> Player:
        player = Player(player_id=player_id, display_name=name)
        self.players[player_id] = player
        return player

    def disconnect(self, player_id: str, reason: Optional[str] = None) -> None:
        self.players.pop(player_id, None)
        self._emit(PlayerDisconnectedEvent(player_id=player_id, reason=reason))

    def lines_for(self, player_id: str) -> list[str]:
        return [text for pid, text in self.lines if pid == player_id]

    async def resolve_player(self, player_id: str) -> Optional[Player]:
        return self.players.get(player_id)

    async def send_chat_line(self, player: Player, text: str) -> None:
        if player.player_id not in self.players:
            raise PlayerNotConnected(player.player_id)
        self.lines.append((player.player_id, self.format_output(text)))

    def has_permission(self, player_id: str, permission: str) -> bool:
        return player_id not in self.denied


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_adminrelay_home(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point ADMINRELAY_HOME at an empty temporary directory."""
    home = temp_dir / ".adminrelay"
    home.mkdir()
    monkeypatch.setenv("ADMINRELAY_HOME", str(home))
    return home


@pytest.fixture
def relay_config() -> Config:
    """Configuration with a short grace delay and no audit trail."""
    return Config(
        discord=DiscordConfig(bot_token="token", category_id=int(CATEGORY_ID)),
        relay=RelayConfig(grace_delay=0.01),
        audit=AuditLogConfig(enable=False),
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def game() -> FakeGame:
    game = FakeGame()
    game.connect("76561198000000001", "Alice")
    game.connect("76561198000000002", "Bob")
    return game


@pytest.fixture
def context(relay_config: Config, gateway: FakeGateway, game: FakeGame) -> RelayContext:
    """A context that already went through the startup sequence."""
    ctx = RelayContext(config=relay_config, gateway=gateway, game=game)
    ctx.guild_id = GUILD_ID
    ctx.ready = True
    return ctx


@pytest.fixture
def relay(context: RelayContext) -> SessionRelay:
    return SessionRelay(context, clock=lambda: datetime(2024, 5, 1, 9, 5))


@pytest.fixture
def router(context: RelayContext, relay: SessionRelay) -> EventRouter:
    return EventRouter(context, relay)


@pytest.fixture
def commands(context: RelayContext, relay: SessionRelay) -> CommandFront:
    return CommandFront(context, relay)
