"""Telegram notification adapter.

Delivers chat items and the MOTD to two chats with a send-then-edit
pattern: the plain text always lands first, the rich formatting is an edit
that may fail on its own.
"""

from __future__ import annotations

import logging
from typing import Any, Union

from adapters.notification_formatting import (
    format_item,
    format_item_plain,
    format_motd,
    format_motd_plain,
    telethon_parse_mode,
)
from core.config import NotificationConfig
from core.models import ChatItem, MotdEntry

LOGGER = logging.getLogger(__name__)

ChatTarget = Union[str, int]


class TelegramNotifier:
    """Notifier adapter that posts to Telegram chats through a Telethon client."""

    def __init__(
        self,
        client,
        items_chat: ChatTarget,
        motd_chat: ChatTarget,
        config: NotificationConfig,
    ) -> None:
        self._client = client
        self._items_chat = items_chat
        self._motd_chat = motd_chat
        self._config = config
        self._parse_mode = telethon_parse_mode(config.format)

    async def deliver(self, chat: ChatTarget, text: str) -> Any:
        """Send unformatted text and return the sent message."""

        return await self._client.send_message(chat, text, parse_mode=None, link_preview=False)

    async def reformat(self, message: Any, rich_text: str) -> bool:
        """Edit a delivered message into its formatted form."""

        try:
            await message.edit(rich_text, parse_mode=self._parse_mode, link_preview=False)
        except Exception as exc:
            # Delivery already succeeded; a failed edit leaves the plain text.
            LOGGER.warning("Could not format message %s: %s", getattr(message, "id", "?"), exc)
            return False
        return True

    async def send_item(self, item: ChatItem) -> None:
        message = await self.deliver(self._items_chat, format_item_plain(item))
        await self.reformat(message, format_item(item, self._config))

    async def send_motd(self, motd: MotdEntry) -> None:
        message = await self.deliver(self._motd_chat, format_motd_plain(motd))
        await self.reformat(message, format_motd(motd, self._config))
