"""Caption formatting for forwarded images."""

from __future__ import annotations

from core.models import FeedItem

ELLIPSIS = "..."


def excerpt(text: str, max_chars: int, placeholder: str) -> str:
    """Clip text to max_chars, marking the cut; blank text becomes the placeholder."""

    if not text or not text.strip():
        return placeholder
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + ELLIPSIS


def build_caption(item: FeedItem, max_chars: int, placeholder: str) -> str:
    timestamp = item.published_at.astimezone().strftime("%H:%M:%S %d-%m-%Y")
    return f"{timestamp}\n\n{excerpt(item.text, max_chars, placeholder)}"
