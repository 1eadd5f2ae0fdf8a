"""Telegram client factory for wallrelay.

Both the delivery bot and the controller bot are Telethon clients logged in
with a bot token. Each bot gets its own session file so that restarting one
never invalidates the other.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient

from core.errors import ConfigurationError


def build_client(session_name: str) -> TelegramClient:
    """Create a Telethon client from environment variables.

    We read API_ID/API_HASH via python-dotenv to keep secrets out of the repo.
    ``SESSION_NAME`` prefixes the session file so several deployments can
    share one working directory.
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    prefix = os.getenv("SESSION_NAME", "wallrelay")

    # Fail fast on missing credentials to avoid an ambiguous login error.
    if not api_id or not api_hash:
        raise ConfigurationError("Missing API_ID or API_HASH in environment")

    logging.getLogger(__name__).info("Initializing Telegram client %s", session_name)

    return TelegramClient(f"{prefix}-{session_name}", int(api_id), api_hash)
