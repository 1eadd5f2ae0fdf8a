"""New-item detection and image forwarding.

For one fetched page the forwarder enforces a strict order:
1) Sort items by id, newest first
2) Skip ids the ledger has already seen
3) Mark the item seen before any delivery attempt
4) Pick the widest rendition of every image attachment
5) Deliver the images in order, caption on the first one only
6) Pace every delivery call and isolate failures per item
7) Fold the results into RunStats

Marking before delivery means a failed item is never retried. This favors
avoiding duplicates in the channel over guaranteed delivery.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Optional

from core.captions import build_caption
from core.ledger import SeenLedger
from core.models import FeedItem, PhotoSize, RunStats, TickResult
from core.ports import DeliveryPort

LOGGER = logging.getLogger(__name__)


def select_largest(sizes: Iterable[PhotoSize]) -> Optional[PhotoSize]:
    """Return the widest size; the first one wins on equal widths."""

    best: Optional[PhotoSize] = None
    for size in sizes:
        if best is None or size.width > best.width:
            best = size
    return best


def image_urls(item: FeedItem) -> list[str]:
    """Return the delivery URL of every image attachment, in attachment order."""

    urls: list[str] = []
    for attachment in item.attachments:
        if not attachment.is_image:
            continue
        largest = select_largest(attachment.sizes)
        if largest is None or not largest.url:
            LOGGER.warning("Item %s has an image without usable sizes", item.id)
            continue
        urls.append(largest.url)
    return urls


class Forwarder:
    """Forwards the images of new feed items to the delivery port."""

    def __init__(
        self,
        delivery: DeliveryPort,
        pacing_delay: float = 1.0,
        caption_chars: int = 200,
        caption_placeholder: str = "No description",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._delivery = delivery
        self._pacing_delay = pacing_delay
        self._caption_chars = caption_chars
        self._caption_placeholder = caption_placeholder
        self._sleep = sleep

    async def process(
        self,
        items: Iterable[FeedItem],
        ledger: SeenLedger,
        stats: RunStats,
        tick_time: datetime,
        is_active: Optional[Callable[[], bool]] = None,
    ) -> TickResult:
        """Process one page and return how many items got at least one image out."""

        calls = 0
        sent = 0
        failed = 0
        new_items = 0
        items_forwarded = 0
        halted = False

        for item in sorted(items, key=lambda entry: entry.id, reverse=True):
            if is_active is not None and not is_active():
                LOGGER.info("Bridge stopped mid-tick, leaving remaining items untouched")
                break
            if not ledger.is_new(item.id):
                LOGGER.debug("Item %s already seen", item.id)
                continue

            ledger.mark_seen(item.id)
            new_items += 1

            urls = image_urls(item)
            if not urls:
                LOGGER.debug("Item %s has no images", item.id)
                continue

            delivered = 0
            for index, url in enumerate(urls):
                if calls:
                    await self._sleep(self._pacing_delay)
                    # Stop may land during the pause; the delivery port is gone by then.
                    if is_active is not None and not is_active():
                        halted = True
                        break
                calls += 1
                caption = None
                if index == 0:
                    caption = build_caption(item, self._caption_chars, self._caption_placeholder)
                try:
                    await self._delivery.send_photo(url, caption=caption)
                except Exception:
                    failed += 1
                    LOGGER.exception(
                        "Delivery of image %s/%s for item %s failed, abandoning the item",
                        index + 1,
                        len(urls),
                        item.id,
                    )
                    break
                delivered += 1

            sent += delivered
            if delivered:
                items_forwarded += 1
                LOGGER.info("Item %s forwarded (%s/%s images)", item.id, delivered, len(urls))
            if halted:
                LOGGER.info("Bridge stopped mid-tick, leaving remaining items untouched")
                break

        stats.last_poll_at = tick_time
        stats.last_seen_id = ledger.highest_seen_id
        stats.images_sent += sent

        return TickResult(
            items_forwarded=items_forwarded,
            images_sent=sent,
            images_failed=failed,
            new_items=new_items,
        )

