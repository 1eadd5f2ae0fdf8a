"""VK wall feed adapter.

Fetches the latest posts of a community wall through the VK API ``wall.get``
method using an aiohttp session owned by the adapter.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

from adapters.vk_mapper import owner_params, parse_wall_response
from core.config import require_values
from core.errors import FeedError
from core.models import FeedItem

LOGGER = logging.getLogger(__name__)

VK_API_URL = "https://api.vk.com/method/wall.get"
DEFAULT_API_VERSION = "5.199"
# wall.get refuses larger pages.
MAX_PAGE_SIZE = 100


class VkWallFeed:
    """Feed adapter reading the most recent posts from a VK community wall."""

    def __init__(
        self,
        token: Optional[str],
        group_id: Optional[str],
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 10.0,
    ) -> None:
        self._token = token
        self._group_id = group_id
        self._api_version = api_version
        self._timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        require_values({"VK_TOKEN": self._token, "VK_GROUP_ID": self._group_id})
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout)
            )
        LOGGER.info("VK feed ready for wall %s", self._group_id)

    async def fetch_recent(self, count: int) -> list[FeedItem]:
        if self._session is None or self._session.closed:
            raise FeedError("VK feed is not started")

        params = {
            **owner_params(str(self._group_id)),
            "count": max(1, min(count, MAX_PAGE_SIZE)),
            "access_token": self._token,
            "v": self._api_version,
        }
        try:
            async with self._session.get(VK_API_URL, params=params) as response:
                response.raise_for_status()
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise FeedError(f"VK request failed: {exc}") from exc

        items = parse_wall_response(payload)
        LOGGER.debug("Fetched %s posts from wall %s", len(items), self._group_id)
        return items

    async def stop(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
