"""Seen-item ledger (core domain)."""

from __future__ import annotations

from typing import Iterable

from core.models import FeedItem


class SeenLedger:
    """In-memory record of item ids that were already accepted as new.

    ``highest_seen_id`` stays at 0 until a baseline is established. The set
    only grows; a ledger lives for a single run.
    """

    def __init__(self) -> None:
        self.seen_ids: set[int] = set()
        self.highest_seen_id = 0

    def seed(self, items: Iterable[FeedItem]) -> None:
        """Mark a freshly fetched page as seen so the backlog is never forwarded."""

        for item in items:
            self.mark_seen(item.id)

    def is_new(self, item_id: int) -> bool:
        return item_id not in self.seen_ids

    def mark_seen(self, item_id: int) -> None:
        self.seen_ids.add(item_id)
        if item_id > self.highest_seen_id:
            self.highest_seen_id = item_id

    def __len__(self) -> int:
        return len(self.seen_ids)
