"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for feed and delivery adapters so that
the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Optional, Protocol

from core.models import FeedItem


class FeedPort(Protocol):
    """Source feed operations required by the core pipeline."""

    async def start(self) -> None:
        ...

    async def fetch_recent(self, count: int) -> list[FeedItem]:
        ...

    async def stop(self) -> None:
        ...


class DeliveryPort(Protocol):
    """Destination channel operations required by the core pipeline."""

    async def start(self) -> None:
        ...

    async def send_photo(self, url: str, caption: Optional[str] = None) -> None:
        ...

    async def stop(self) -> None:
        ...
