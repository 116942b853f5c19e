"""Telegram bot client factory for onair.

Each configured bot gets its own Telethon client and session file. Clients
are started explicitly so it is obvious when a session is created and when
it ends.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient


def build_bot_client(bot_name: str) -> TelegramClient:
    """Create a Telethon client for one bot from environment variables.

    API_ID/API_HASH identify the Telegram application; the session file is
    named after the bot so several bots can run side by side.
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    session_prefix = os.getenv("SESSION_NAME", "onair")

    # Fail fast on missing credentials rather than prompting.
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")

    logging.getLogger(__name__).info("Initializing Telegram client for bot %s", bot_name)

    return TelegramClient(f"{session_prefix}-{bot_name}", int(api_id), api_hash)


async def start_bot_client(client: TelegramClient, bot_token: str) -> TelegramClient:
    """Log the client in as a bot."""

    await client.start(bot_token=bot_token)
    return client
