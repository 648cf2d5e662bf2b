"""
adminrelay - Admin live chat between game players and Discord

Bridges a game server's player chat and a Discord guild so a player and the
server admins can talk privately in a per-player text channel.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("adminrelay")
except PackageNotFoundError:
    __version__ = "1.0.0"

__all__ = [
    "__version__",
]
