"""Storage utilities for adminrelay."""

from adminrelay.storage.paths import (
    ensure_directory,
    expand_path,
    get_adminrelay_home,
    get_global_config_path,
)

__all__ = [
    "ensure_directory",
    "expand_path",
    "get_adminrelay_home",
    "get_global_config_path",
]
