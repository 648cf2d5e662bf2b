"""Process-wide relay state, passed explicitly to the relay components."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from adminrelay.audit import AuditLogger
from adminrelay.config import Config
from adminrelay.relay.directory import ChannelDirectory
from adminrelay.relay.localization import MessageCatalog
from adminrelay.relay.models import RelayEvent
from adminrelay.relay.protocol import GameTransport, TransportGateway

logger = logging.getLogger(__name__)


@dataclass
class RelayContext:
    """Everything SessionRelay, EventRouter and CommandFront share.

    Creating the context binds both transports to its event queue, so every
    lifecycle event ends up in one FIFO drained by the EventRouter.
    """

    config: Config
    gateway: TransportGateway
    game: GameTransport
    directory: ChannelDirectory = field(default_factory=ChannelDirectory)
    catalog: MessageCatalog = field(init=False)
    audit: Optional[AuditLogger] = None
    events: asyncio.Queue = field(default_factory=asyncio.Queue)

    # Filled in by the startup sequence
    guild_id: Optional[str] = None
    ready: bool = False
    activation_error: Optional[str] = None

    def __post_init__(self) -> None:
        self.catalog = MessageCatalog(self.config.messages)
        self.gateway.bind(self.post)
        self.game.bind(self.post)

    @property
    def bot_id(self) -> str:
        return self.gateway.bot_id

    @property
    def category_id(self) -> Optional[str]:
        return self.config.category_id

    def post(self, event: RelayEvent) -> None:
        """Queue an event for the EventRouter without blocking."""
        self.events.put_nowait(event)

    def message(self, key: str, *args: object) -> str:
        """Format a catalog message."""
        return self.catalog.format(key, *args)
