"""
Configuration management for adminrelay.

Exposes the pydantic schema and the YAML/environment loader.
"""

from adminrelay.config.loader import (
    ConfigurationError,
    load_config,
    load_yaml_file,
    merge_dicts,
    save_yaml_file,
)
from adminrelay.config.schema import (
    AuditLogConfig,
    Config,
    DiscordConfig,
    LoggingConfig,
    RelayConfig,
)

__all__ = [
    "AuditLogConfig",
    "Config",
    "ConfigurationError",
    "DiscordConfig",
    "LoggingConfig",
    "RelayConfig",
    "load_config",
    "load_yaml_file",
    "merge_dicts",
    "save_yaml_file",
]
