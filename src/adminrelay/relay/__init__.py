"""Admin live chat relay.

Pairs a game player with a dedicated text channel on the remote platform and
forwards messages both ways until the chat is closed.

Architecture:
    Transports → event queue → EventRouter → SessionRelay → ChannelDirectory
    Player commands → CommandFront → SessionRelay

Key Components:
    - TransportGateway / GameTransport: Abstract transports
    - SessionRelay: Session lifecycle and message forwarding
    - EventRouter: Startup sequence and lifecycle event handling
    - CommandFront: Player chat commands
    - ChannelDirectory: Bijective player/channel mapping
"""

from adminrelay.relay.commands import CommandFront
from adminrelay.relay.context import RelayContext
from adminrelay.relay.directory import ChannelDirectory
from adminrelay.relay.exceptions import (
    ChannelNotFound,
    NameConflict,
    PlayerNotConnected,
    PlayerNotFound,
    RelayError,
    RemoteUnavailable,
)
from adminrelay.relay.models import (
    ReplyResult,
    Session,
    SessionState,
    StartResult,
    StopResult,
)
from adminrelay.relay.protocol import GameTransport, TransportGateway
from adminrelay.relay.router import EventRouter
from adminrelay.relay.session import SessionRelay

__all__ = [
    "ChannelDirectory",
    "ChannelNotFound",
    "CommandFront",
    "EventRouter",
    "GameTransport",
    "NameConflict",
    "PlayerNotConnected",
    "PlayerNotFound",
    "RelayContext",
    "RelayError",
    "RemoteUnavailable",
    "ReplyResult",
    "Session",
    "SessionRelay",
    "SessionState",
    "StartResult",
    "StopResult",
    "TransportGateway",
]
