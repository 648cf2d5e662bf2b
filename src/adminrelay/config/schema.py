"""
Pydantic configuration schema for adminrelay.

This module defines all configuration models with validation. A loaded
Config is treated as an immutable value for the lifetime of the process.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DiscordLogLevel = Literal["verbose", "debug", "info", "warning", "error", "exception", "off"]

# =============================================================================
# Discord Configuration
# =============================================================================


class DiscordConfig(BaseModel):
    """Discord bot connection configuration.

    Uses the Gateway WebSocket connection (standard for Discord bots).
    The bot needs the Server Members and Message Content intents.
    """

    model_config = ConfigDict(frozen=True)

    bot_token: str = ""
    # Optional if the bot is only in one guild
    guild_id: int | None = None
    # Category under which the per-player channels are created
    category_id: int | None = None
    log_level: DiscordLogLevel = "info"


# =============================================================================
# Relay Configuration
# =============================================================================


class RelayConfig(BaseModel):
    """Admin live chat behaviour."""

    model_config = ConfigDict(frozen=True)

    help_command: str = "calladmin"
    reply_command: str = "r"
    permission: str = "adminrelay.use"
    show_operator_username: bool = False
    close_token: str = "!close"
    grace_delay: float = Field(default=5.0, ge=0.0)
    history_limit: int = Field(default=50, ge=2, le=100)
    min_messages_for_reply: int = Field(default=2, ge=1)
    acknowledge_marker: str = "✅"
    profile_url_template: str | None = "https://steamcommunity.com/profiles/{player_id}"
    profile_button_label: str = "View steam profile"


# =============================================================================
# Logging & Audit Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Process logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: str | None = None


class AuditLogConfig(BaseModel):
    """Audit trail configuration."""

    model_config = ConfigDict(frozen=True)

    enable: bool = True
    path: str = "~/.adminrelay/audit.jsonl"
    max_size_mb: int = Field(default=50, ge=1)
    include_messages: bool = True
    hash_messages: bool = False
    buffer_size: int = Field(default=20, ge=1)
    flush_interval_seconds: int = Field(default=5, ge=0)


# =============================================================================
# Root Configuration Model
# =============================================================================


class Config(BaseModel):
    """
    Root configuration model for adminrelay.

    Configuration is loaded from the YAML config file and environment
    variables, merged in order of priority.
    """

    model_config = ConfigDict(frozen=True)

    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    audit: AuditLogConfig = Field(default_factory=AuditLogConfig)
    # Localized string overrides, keyed by message name
    messages: dict[str, str] = Field(default_factory=dict)

    @property
    def category_id(self) -> str | None:
        """The session category id as used by the transports."""
        if self.discord.category_id is None:
            return None
        return str(self.discord.category_id)

    @property
    def guild_id(self) -> str | None:
        """The configured guild id, if any."""
        if self.discord.guild_id is None:
            return None
        return str(self.discord.guild_id)
