"""
Path utilities for adminrelay.

Resolves the home directory that holds the configuration file and the
audit trail.
"""

import os
from pathlib import Path


def get_adminrelay_home() -> Path:
    """
    Get the adminrelay home directory.

    Resolution order:
    1. ADMINRELAY_HOME environment variable
    2. Default: ~/.adminrelay

    Returns:
        Path to the adminrelay home directory.
    """
    env_home = os.environ.get("ADMINRELAY_HOME")
    if env_home:
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".adminrelay"


def get_global_config_path() -> Path:
    """
    Get the path to the configuration file.

    Returns:
        Path to ~/.adminrelay/config.yaml
    """
    return get_adminrelay_home() / "config.yaml"


def expand_path(path: str | Path) -> Path:
    """
    Expand a path string, handling ~ and environment variables.

    Args:
        path: Path string or Path object.

    Returns:
        Expanded and resolved Path.
    """
    if isinstance(path, str):
        path = os.path.expandvars(path)
        path = os.path.expanduser(path)
    return Path(path).resolve()


def ensure_directory(path: Path, mode: int = 0o755) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path.
        mode: Permissions for newly created directories.

    Returns:
        The directory path.
    """
    path.mkdir(parents=True, exist_ok=True, mode=mode)
    return path
