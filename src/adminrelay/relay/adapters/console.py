"""Console game transport.

Stands in for the game server when running the relay from a terminal:
players join and leave through typed commands, and chat lines addressed to
them are printed with Rich.
"""

import asyncio
import logging
import re
from typing import TYPE_CHECKING, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from adminrelay.relay.exceptions import PlayerNotConnected
from adminrelay.relay.models import Player, PlayerDisconnectedEvent
from adminrelay.relay.protocol import GameTransport

if TYPE_CHECKING:
    from adminrelay.relay.commands import CommandFront

logger = logging.getLogger(__name__)

# Game chat markup: [#rrggbb]...[/#] colours and <size=N>...</size>
_MARKUP = re.compile(r"\[#([0-9a-fA-F]{6})\]|\[/#\]|</?size(?:=\d+)?>")

USAGE = """\
Commands:
  join <id> <name>           connect a player
  leave <id> [reason]        disconnect a player
  <id> /<command> [args]     run a chat command as a player
  who                        list connected players
  quit                       stop the relay"""


class ConsoleGameTransport(GameTransport):
    """Game transport backed by an in-memory player list and a Rich console."""

    def __init__(self, console: Optional[Console] = None) -> None:
        super().__init__()
        self._console = console or Console()
        self._players: dict[str, Player] = {}
        self._permissions: dict[str, Optional[set[str]]] = {}

    @property
    def players(self) -> list[Player]:
        return list(self._players.values())

    def connect(
        self,
        player_id: str,
        display_name: str,
        permissions: Optional[set[str]] = None,
    ) -> Player:
        """Connect a player.

        Args:
            player_id: Player id (e.g. a SteamID64)
            display_name: Name shown to operators
            permissions: Granted permissions, or None to grant everything
        """
        player = Player(player_id=player_id, display_name=display_name)
        self._players[player_id] = player
        self._permissions[player_id] = permissions
        logger.info(f"Player connected: {player}")
        return player

    def disconnect(self, player_id: str, reason: Optional[str] = None) -> bool:
        """Disconnect a player and report it to the relay.

        Returns:
            True if the player was connected
        """
        player = self._players.pop(player_id, None)
        self._permissions.pop(player_id, None)
        if player is None:
            return False
        logger.info(f"Player disconnected: {player}" + (f" ({reason})" if reason else ""))
        self._emit(PlayerDisconnectedEvent(player_id=player_id, reason=reason))
        return True

    async def resolve_player(self, player_id: str) -> Optional[Player]:
        return self._players.get(player_id)

    async def send_chat_line(self, player: Player, text: str) -> None:
        if player.player_id not in self._players:
            raise PlayerNotConnected(player.player_id)
        self._console.print(f"[bold cyan]→ {escape(player.display_name)}[/bold cyan] {self.format_output(text)}")

    def has_permission(self, player_id: str, permission: str) -> bool:
        if player_id not in self._players:
            return False
        granted = self._permissions.get(player_id)
        return granted is None or permission in granted

    def format_output(self, text: str) -> str:
        """Convert game chat markup to Rich markup, escaping everything else."""
        parts: list[str] = []
        position = 0
        for match in _MARKUP.finditer(text):
            parts.append(escape(text[position : match.start()]))
            token = match.group(0)
            if match.group(1):
                parts.append(f"[#{match.group(1).lower()}]")
            elif token == "[/#]":
                parts.append("[/]")
            position = match.end()
        parts.append(escape(text[position:]))
        return "".join(parts)

    # ------------------------------------------------------------------
    # Interactive input
    # ------------------------------------------------------------------

    async def handle_line(self, line: str, commands: "CommandFront") -> bool:
        """Execute one line of console input.

        Returns:
            False when the console asked to quit
        """
        words = line.split()
        if not words:
            return True

        head = words[0].lower()
        if head in ("quit", "exit"):
            return False
        if head == "help":
            self._console.print(escape(USAGE))
        elif head == "who":
            self._print_players()
        elif head == "join":
            if len(words) < 3:
                self._console.print("[red]Usage: join <id> <name>[/red]")
            else:
                player = self.connect(words[1], " ".join(words[2:]))
                self._console.print(f"[green]{escape(str(player))} joined[/green]")
        elif head == "leave":
            if len(words) < 2:
                self._console.print("[red]Usage: leave <id> [reason][/red]")
            elif not self.disconnect(words[1], " ".join(words[2:]) or None):
                self._console.print(f"[red]No player {escape(words[1])}[/red]")
        elif len(words) >= 2 and words[1].startswith("/"):
            await self._run_command(words[0], words[1], words[2:], commands)
        else:
            self._console.print(f"[red]Unknown input: {escape(line.strip())}[/red] (type 'help')")
        return True

    async def run(self, commands: "CommandFront", prompt: str = "> ") -> None:
        """Read console input until quit or end of input."""
        self._console.print(escape(USAGE))
        while True:
            try:
                line = await asyncio.to_thread(self._console.input, prompt)
            except EOFError:
                break
            if not await self.handle_line(line, commands):
                break

    async def _run_command(
        self, player_id: str, command: str, args: list[str], commands: "CommandFront"
    ) -> None:
        player = self._players.get(player_id)
        if player is None:
            self._console.print(f"[red]No player {escape(player_id)}[/red]")
            return

        reply = await commands.handle(player_id, command, args)
        if reply is None:
            self._console.print(f"[red]Unknown command: {escape(command)}[/red]")
            return
        try:
            await self.send_chat_line(player, reply)
        except PlayerNotConnected:
            logger.debug(f"Player {player_id} left before the command reply")

    def _print_players(self) -> None:
        table = Table(title="Connected players")
        table.add_column("ID")
        table.add_column("Name")
        for player in self._players.values():
            table.add_row(player.player_id, player.display_name)
        self._console.print(table)
