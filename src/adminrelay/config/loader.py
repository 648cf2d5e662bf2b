"""
Configuration loader for adminrelay.

Loads and merges configuration from multiple sources:
1. Default values
2. Config file (~/.adminrelay/config.yaml, or an explicit path)
3. Environment variables (ADMINRELAY_<SECTION>_<KEY>)

String values of the form ``${NAME}`` are replaced with the value of the
environment variable NAME, so secrets such as the bot token can stay out of
the config file.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from adminrelay.config.schema import Config
from adminrelay.storage.paths import get_global_config_path

ENV_PREFIX = "ADMINRELAY_"

_ENV_REFERENCE = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$")


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Layer `override` on top of `base` without mutating either.

    Nested sections are merged key by key; a None value in `override`
    removes the key.
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            merged.pop(key, None)
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed configuration dictionary ({} if the file does not exist).

    Raises:
        ConfigurationError: If the file cannot be read or parsed.
    """
    try:
        with open(path, encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(f"Top level of {path} must be a mapping")
    return content


def save_yaml_file(path: Path, config: dict[str, Any]) -> None:
    """
    Save a configuration dictionary to a YAML file.

    Args:
        path: Path to the YAML file.
        config: Configuration dictionary to save.

    Raises:
        ConfigurationError: If the file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
    except OSError as e:
        raise ConfigurationError(f"Cannot write {path}: {e}") from e


def apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    ADMINRELAY_<SECTION>_<KEY>=<value> sets ``<section>.<key>``; the section
    is the first word, the rest is the key, so
    ADMINRELAY_DISCORD_BOT_TOKEN maps to ``discord.bot_token``.

    Args:
        config: Configuration dictionary to modify.

    Returns:
        Configuration with environment overrides applied.
    """
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX) or key == "ADMINRELAY_HOME":
            continue

        section, _, name = key[len(ENV_PREFIX) :].lower().partition("_")
        if not section or not name:
            continue

        target = config.get(section)
        if not isinstance(target, dict):
            target = config[section] = {}
        target[name] = _parse_env_value(value)

    return config


def _parse_env_value(value: str) -> Any:
    """
    Parse an environment variable value to the appropriate type.

    Args:
        value: String value from environment.

    Returns:
        Parsed value (bool, int, float, or string).
    """
    if value.lower() in ("true", "yes", "on"):
        return True
    if value.lower() in ("false", "no", "off"):
        return False

    if re.match(r"^-?\d+$", value):
        return int(value)

    if re.match(r"^-?\d+\.\d+$", value):
        return float(value)

    return value


def expand_env_references(value: Any) -> Any:
    """
    Replace ``${NAME}`` strings with environment values, recursively.

    Args:
        value: A config value (dict, list or scalar).

    Returns:
        The value with references expanded. Unset variables become "".
    """
    if isinstance(value, dict):
        return {k: expand_env_references(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env_references(v) for v in value]
    if isinstance(value, str):
        match = _ENV_REFERENCE.match(value.strip())
        if match:
            return os.environ.get(match.group(1), "")
    return value


def load_config(config_path: Path | None = None, skip_env: bool = False) -> Config:
    """
    Load and merge configuration from all sources.

    Args:
        config_path: Config file to read. Defaults to ~/.adminrelay/config.yaml.
        skip_env: Skip environment variable overrides.

    Returns:
        Merged and validated Config object.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    config_dict = Config().model_dump()

    path = config_path or get_global_config_path()
    if config_path is not None and not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    config_dict = merge_dicts(config_dict, load_yaml_file(path))

    if not skip_env:
        config_dict = apply_env_overrides(config_dict)

    config_dict = expand_env_references(config_dict)

    try:
        return Config.model_validate(config_dict)
    except Exception as e:
        raise ConfigurationError(f"Configuration validation failed: {e}") from e


def default_config_dict() -> dict[str, Any]:
    """Return the default configuration as a plain dictionary, for `config init`."""
    data = Config().model_dump(mode="json")
    data["discord"]["bot_token"] = "${DISCORD_BOT_TOKEN}"
    return data
