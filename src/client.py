"""Telegram client factory for the spectrum relay.

The same client delivers notifications and answers chat commands. It is
signed in either as a bot (BOT_TOKEN) or as a user (interactive login).
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient

from get_session import authorize


def build_client() -> TelegramClient:
    """Create a Telethon client from environment variables.

    The session name defaults to "relay" to create a local .session file.
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    session_name = os.getenv("SESSION_NAME", "relay")

    # Fail fast on missing credentials to avoid an ambiguous login prompt.
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")

    logging.getLogger(__name__).info("Initializing Telegram client")

    return TelegramClient(session_name, int(api_id), api_hash)


async def sign_in(client: TelegramClient, method: str) -> None:
    """Connect and sign in according to the configured notification method."""

    if method == "bot":
        bot_token = os.getenv("BOT_TOKEN")
        if not bot_token:
            raise RuntimeError("BOT_TOKEN is required when notification_method=bot")
        await client.start(bot_token=bot_token)
        return
    if method == "user":
        await client.connect()
        await authorize(client)
        return
    raise RuntimeError("notification_method must be 'bot' or 'user'")
