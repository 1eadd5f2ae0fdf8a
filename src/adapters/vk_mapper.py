"""VK-to-core wall post mapping adapter.

This keeps VK API payload details out of the core pipeline.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Union

from core.errors import FeedError
from core.models import ATTACHMENT_IMAGE, Attachment, FeedItem, PhotoSize

VK_PHOTO = "photo"


def owner_params(group_id: str) -> dict[str, Union[int, str]]:
    """Return wall.get addressing params for a numeric id or a screen name."""

    value = group_id.strip()
    digits = value.lstrip("-")
    if digits.isdigit():
        # Community walls are addressed by a negative owner id.
        return {"owner_id": -int(digits)}
    return {"domain": value.lstrip("@")}


def _build_sizes(raw_sizes: list[dict[str, Any]]) -> tuple[PhotoSize, ...]:
    sizes = []
    for raw in raw_sizes:
        url = raw.get("url") or raw.get("src")
        if not url:
            continue
        sizes.append(
            PhotoSize(
                width=int(raw.get("width") or 0),
                height=int(raw.get("height") or 0),
                url=url,
            )
        )
    return tuple(sizes)


def build_attachment(raw: dict[str, Any]) -> Attachment:
    kind = raw.get("type", "unknown")
    if kind != VK_PHOTO:
        return Attachment(kind=kind)
    photo = raw.get(VK_PHOTO) or {}
    return Attachment(kind=ATTACHMENT_IMAGE, sizes=_build_sizes(photo.get("sizes") or []))


def build_item(raw: dict[str, Any]) -> FeedItem:
    """Build a core FeedItem from one wall.get post object."""

    return FeedItem(
        id=int(raw["id"]),
        published_at=datetime.fromtimestamp(int(raw.get("date") or 0), tz=timezone.utc),
        text=raw.get("text") or "",
        attachments=tuple(build_attachment(entry) for entry in raw.get("attachments") or []),
    )


def parse_wall_response(payload: dict[str, Any]) -> list[FeedItem]:
    """Turn a wall.get response body into feed items, raising on API errors."""

    error = payload.get("error")
    if error:
        code = error.get("error_code", "?")
        message = error.get("error_msg", "unknown error")
        raise FeedError(f"VK API error {code}: {message}")

    response = payload.get("response")
    if not isinstance(response, dict):
        raise FeedError("VK API returned no response body")
    return [build_item(raw) for raw in response.get("items") or []]
