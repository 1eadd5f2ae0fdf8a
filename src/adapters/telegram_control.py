"""Telegram controller bot.

A separate bot account that lets the admin drive the bridge from a chat.
It only translates commands into BridgeController calls; stopping the bridge
never stops this bot.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from telethon import TelegramClient, events

from adapters.status_formatting import format_command_result, format_status
from client import build_client
from core.config import require_values
from core.lifecycle import BridgeController

LOGGER = logging.getLogger(__name__)

# Chat command -> controller action.
ACTIONS = {
    "run": "start",
    "halt": "stop",
    "restart": "restart",
    "check": "check",
}

HELP_TEXT = "\n".join(
    [
        "Bridge controller is active.",
        "",
        "/status - show bridge status",
        "/run - start forwarding",
        "/halt - stop forwarding",
        "/restart - restart the bridge",
        "/check - poll the wall right now",
    ]
)


def parse_command(text: str) -> Optional[str]:
    """Return the bare command name of ``/cmd@botname args``, or None."""

    if not text or not text.startswith("/"):
        return None
    parts = text[1:].split(maxsplit=1)
    if not parts:
        return None
    name = parts[0].split("@", 1)[0].lower()
    return name or None


class TelegramCommandBot:
    """Controller bot answering admin commands with bridge actions."""

    def __init__(
        self,
        controller: BridgeController,
        bot_token: Optional[str],
        admin_id: Optional[str],
        client_factory: Callable[[str], TelegramClient] = build_client,
        session_name: str = "controller",
    ) -> None:
        self._controller = controller
        self._bot_token = bot_token
        self._admin_id = admin_id
        self._client_factory = client_factory
        self._session_name = session_name
        self._client: Optional[TelegramClient] = None

    async def start(self) -> None:
        require_values({"TG_CONTROLLER_TOKEN": self._bot_token, "TG_ADMIN_ID": self._admin_id})
        client = self._client_factory(self._session_name)
        self._client = client
        await client.start(bot_token=self._bot_token)
        client.add_event_handler(self._on_message, events.NewMessage(incoming=True, pattern=r"^/"))
        LOGGER.info("Controller bot listening for commands")

    async def stop(self) -> None:
        client = self._client
        self._client = None
        if client is not None:
            await client.disconnect()

    def is_admin(self, sender_id: Optional[int]) -> bool:
        return sender_id is not None and str(sender_id) == str(self._admin_id).strip()

    async def reply_for(self, command: str, sender_id: Optional[int]) -> Optional[str]:
        """Return the reply text for a command, or None to stay silent."""

        if command in {"start", "help"}:
            return HELP_TEXT
        if command != "status" and command not in ACTIONS:
            return None
        if not self.is_admin(sender_id):
            LOGGER.warning("Rejected /%s from non-admin %s", command, sender_id)
            return "Access denied."
        if command == "status":
            return format_status(self._controller.status())

        result = await self._controller.handle_command(ACTIONS[command])
        return format_command_result(result)

    async def _on_message(self, event) -> None:
        try:
            command = parse_command(event.raw_text or "")
            if command is None:
                return
            reply = await self.reply_for(command, event.sender_id)
            if reply:
                await event.reply(reply)
        except Exception:
            LOGGER.exception("Error while handling controller command")
