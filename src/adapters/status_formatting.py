"""Shared status and command-reply formatting helpers.

Keeping formatting here keeps controller-bot replies consistent and easy to
adjust without touching the transport code.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from core.models import CommandResult, StatusSnapshot

RUNNING_LABEL = "🟢 Running"
STOPPED_LABEL = "🔴 Stopped"


def escape_md(value: str) -> str:
    for ch in r"*_[`":
        value = value.replace(ch, f"\\{ch}")
    return value


def _format_time(value: Optional[datetime]) -> str:
    if value is None:
        return "never"
    return value.astimezone().strftime("%H:%M:%S %d-%m-%Y")


def format_status(snapshot: StatusSnapshot) -> str:
    """Create the Markdown status message sent by the controller bot."""

    if snapshot.running:
        state = RUNNING_LABEL
    elif snapshot.state == "stopped":
        state = STOPPED_LABEL
    else:
        state = snapshot.state.capitalize()

    lines = [
        f"**Bridge status:** {state}",
        f"**Images sent:** {snapshot.images_sent}",
        f"**Uptime:** {snapshot.uptime}",
        f"**Last poll:** {_format_time(snapshot.last_poll_at)}",
        f"**Last seen post:** {snapshot.last_seen_id or '-'}",
    ]
    if snapshot.last_error:
        lines.extend(["", "**Last error:**", escape_md(snapshot.last_error)])
    return "\n".join(lines)


def format_command_result(result: CommandResult) -> str:
    marker = "✅" if result.success else "❌"
    return f"{marker} {escape_md(result.message)}"
