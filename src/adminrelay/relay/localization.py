"""Message catalog for player-facing and channel-facing text.

Player-facing strings may use ``[#rrggbb]...[/#]`` colour markup and
``<size=N>`` tags; the game transport converts them with format_output.
"""

import logging
from collections.abc import Mapping
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_MESSAGES: dict[str, str] = {
    # Shown to players
    "CallAdminNotAvailable": "/calladmin is not available yet.",
    "CallAdminSuccess": "[#00C851]Admins have been notified, they'll get in touch with you as fast as possible.[/#]",
    "CallAdminAlreadyCalled": "[#ff4444]You've already notified the admins, please wait until an admin responds.[/#]",
    "CallAdminMessageLayout": "[#9c0000]Admin Live Chat[/#] - <size=11>[#dadada]Reply by typing:[/#] [#bd8f8f]/{1} [message][/#]</size>\n{0}",
    "OperatorPrefix": "[#c9c9c9]{0}: [/#]",
    "ReplyNotAvailable": "/{0} is not available yet.",
    "ReplyCommandUsage": "Usage: /{0} [message]",
    "ReplyNoLiveChatInProgress": "You have no live chat in progress.",
    "ReplyWaitForAdminResponse": "[#ff4444]Wait until an admin responds.[/#]",
    "ReplyMessageSent": "[#00C851]Your message has been sent to the admins[/#]\n{0}: {1}",
    "ChatClosed": "[#55aaff]An admin closed the live chat.[/#]",
    "NoPermission": "You do not have permission to use /calladmin.",
    # Posted in session channels
    "ChannelOpened": "@here New chat opened!\nYou are now talking to `{0}`",
    "ChannelClosing": "Closing the chat in {0} seconds...",
    "ChannelClosingReason": "\nReason: {0}",
    "ReplyRelayed": "({0}) {1}: {2}",
    "NotConnected": "User is not connected",
}


class MessageCatalog:
    """Looks up message templates by key and formats them."""

    def __init__(self, overrides: Optional[Mapping[str, str]] = None) -> None:
        self._messages = dict(DEFAULT_MESSAGES)
        if overrides:
            unknown = set(overrides) - set(DEFAULT_MESSAGES)
            if unknown:
                logger.warning(f"Ignoring unknown message keys: {', '.join(sorted(unknown))}")
            self._messages.update({k: v for k, v in overrides.items() if k in DEFAULT_MESSAGES})

    def get(self, key: str) -> str:
        """Raw template for `key`.

        Raises:
            KeyError: If the key is not a known message
        """
        return self._messages[key]

    def format(self, key: str, *args: Any) -> str:
        """Format the template for `key` with positional arguments.

        A template that does not match its arguments (e.g. a broken override)
        is logged and returned unformatted rather than raising.
        """
        template = self.get(key)
        try:
            return template.format(*args)
        except (IndexError, KeyError, ValueError) as e:
            logger.error(f"Cannot format message {key!r}: {e}")
            return template

    def keys(self) -> list[str]:
        return list(self._messages)
