"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

ATTACHMENT_IMAGE = "image"


@dataclass(frozen=True)
class PhotoSize:
    """One rendition of an image as offered by the source."""

    width: int
    height: int
    url: str


@dataclass(frozen=True)
class Attachment:
    """Typed attachment of a feed item.

    Only the image kind carries sizes; other kinds keep their source tag so
    they can be logged and skipped.
    """

    kind: str
    sizes: tuple[PhotoSize, ...] = ()

    @property
    def is_image(self) -> bool:
        return self.kind == ATTACHMENT_IMAGE


@dataclass(frozen=True)
class FeedItem:
    """A single post fetched from the source collection."""

    id: int
    published_at: datetime
    text: str
    attachments: tuple[Attachment, ...] = ()


@dataclass
class RunStats:
    """Counters for the current run, owned by the lifecycle controller."""

    running: bool = False
    images_sent: int = 0
    started_at: Optional[datetime] = None
    last_poll_at: Optional[datetime] = None
    last_seen_id: int = 0
    last_error: Optional[str] = None


@dataclass(frozen=True)
class TickResult:
    """Outcome of processing one fetched page."""

    items_forwarded: int = 0
    images_sent: int = 0
    images_failed: int = 0
    new_items: int = 0


@dataclass(frozen=True)
class StatusSnapshot:
    """Read-only view of RunStats plus derived uptime."""

    state: str
    running: bool
    images_sent: int
    started_at: Optional[datetime]
    last_poll_at: Optional[datetime]
    last_seen_id: int
    uptime: str
    last_error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        def iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "state": self.state,
            "running": self.running,
            "images_sent": self.images_sent,
            "started_at": iso(self.started_at),
            "last_poll_at": iso(self.last_poll_at),
            "last_seen_id": self.last_seen_id,
            "uptime": self.uptime,
            "last_error": self.last_error,
        }


@dataclass(frozen=True)
class CommandResult:
    """Result of a control-plane command."""

    success: bool
    message: str
    details: dict[str, Any] = field(default_factory=dict)
