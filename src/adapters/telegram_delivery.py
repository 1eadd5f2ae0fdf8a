"""Telegram channel delivery adapter.

Posts images to the destination channel through a bot account. Telegram
downloads the image itself from the URL, so no bytes pass through us.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Union

from telethon import TelegramClient, errors

from client import build_client
from core.config import require_values
from core.errors import DeliveryError

LOGGER = logging.getLogger(__name__)


def parse_peer(value: str) -> Union[int, str]:
    """Return a numeric chat id as int, anything else (usernames, links) as-is."""

    value = value.strip()
    if value.lstrip("-").isdigit():
        return int(value)
    return value


class TelegramChannelDelivery:
    """Delivery adapter that posts photos to a Telegram channel as a bot."""

    def __init__(
        self,
        bot_token: Optional[str],
        channel_id: Optional[str],
        client_factory: Callable[[str], TelegramClient] = build_client,
        session_name: str = "delivery",
    ) -> None:
        self._bot_token = bot_token
        self._channel_id = channel_id
        self._client_factory = client_factory
        self._session_name = session_name
        self._client: Optional[TelegramClient] = None
        self._entity: Any = None

    async def start(self) -> None:
        require_values({"TG_TOKEN": self._bot_token, "TG_CHANNEL_ID": self._channel_id})

        client = self._client_factory(self._session_name)
        self._client = client
        await client.start(bot_token=self._bot_token)
        self._entity = await client.get_entity(parse_peer(str(self._channel_id)))
        LOGGER.info("Delivery bot connected to channel %s", self._channel_id)

    async def send_photo(self, url: str, caption: Optional[str] = None) -> None:
        if self._client is None:
            raise DeliveryError("Telegram delivery is not started")
        try:
            await self._client.send_file(self._entity, url, caption=caption)
        except errors.RPCError as exc:
            raise DeliveryError(f"Telegram rejected {url}: {exc}") from exc

    async def stop(self) -> None:
        client = self._client
        self._client = None
        self._entity = None
        if client is not None:
            await client.disconnect()
