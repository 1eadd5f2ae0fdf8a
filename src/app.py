"""Application entry point for the wallrelay bridge."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.http_api import serve
from adapters.telegram_control import TelegramCommandBot
from adapters.telegram_delivery import TelegramChannelDelivery
from adapters.vk_feed import VkWallFeed
from core.config import PipelineConfig
from core.lifecycle import BridgeController

NAME = "WALLRELAY"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/wallrelay.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.CONFIG_DIR, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    # Telethon is chatty at INFO about reconnects.
    logging.getLogger("telethon").setLevel(max(level, logging.WARNING))


def _build_controller() -> BridgeController:
    feed = VkWallFeed(
        token=settings.VK_TOKEN,
        group_id=settings.VK_GROUP_ID,
        api_version=settings.VK_API_VERSION,
        timeout=settings.VK_TIMEOUT_SECONDS,
    )
    delivery = TelegramChannelDelivery(
        bot_token=settings.TG_TOKEN,
        channel_id=settings.TG_CHANNEL_ID,
    )
    config = PipelineConfig(
        poll_interval=settings.POLL_INTERVAL_SECONDS,
        page_size=settings.PAGE_SIZE,
        pacing_delay=settings.PACING_DELAY_SECONDS,
        restart_delay=settings.RESTART_DELAY_SECONDS,
        caption_chars=settings.CAPTION_CHARS,
        caption_placeholder=settings.CAPTION_PLACEHOLDER,
    )
    return BridgeController(feed, delivery, config)


def _install_signal_handlers(shutdown: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops lack add_signal_handler; Ctrl+C still raises.
            pass


async def _serve(autostart: bool, http_enabled: bool, bot_enabled: bool) -> None:
    logger = logging.getLogger(__name__)
    controller = _build_controller()
    shutdown = asyncio.Event()
    _install_signal_handlers(shutdown)

    runner = None
    command_bot = None
    try:
        if http_enabled:
            runner = await serve(controller, settings.HTTP_HOST, settings.HTTP_PORT)

        if bot_enabled:
            command_bot = TelegramCommandBot(
                controller,
                bot_token=settings.TG_CONTROLLER_TOKEN,
                admin_id=settings.TG_ADMIN_ID,
            )
            try:
                await command_bot.start()
            except Exception:
                logger.exception("Controller bot failed to start, continuing without it")
                await command_bot.stop()
                command_bot = None

        if autostart:
            try:
                await controller.start()
            except Exception:
                # Stay up so the control plane can retry after fixing config.
                logger.exception("Bridge did not start")

        logger.info("wallrelay is up. Waiting for commands...")
        await shutdown.wait()
    finally:
        logger.info("Shutting down")
        await controller.stop()
        await controller.scheduler.wait_closed()
        if command_bot is not None:
            await command_bot.stop()
        if runner is not None:
            await runner.cleanup()


def _run(args: argparse.Namespace) -> None:
    _print_banner()
    _configure_logging()
    logging.getLogger(__name__).info("Starting wallrelay")

    autostart = settings.AUTOSTART and not args.no_autostart
    http_enabled = settings.HTTP_ENABLED and not args.no_http
    bot_enabled = settings.CONTROL_BOT_ENABLED and not args.no_bot
    try:
        asyncio.run(_serve(autostart, http_enabled, bot_enabled))
    except KeyboardInterrupt:
        pass


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="wallrelay")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Start the bridge and its control plane")
    run_parser.add_argument("--no-autostart", action="store_true", help="Wait for a start command")
    run_parser.add_argument("--no-http", action="store_true", help="Disable the HTTP control API")
    run_parser.add_argument("--no-bot", action="store_true", help="Disable the controller bot")

    args = parser.parse_args(argv)
    if args.command is None:
        args = parser.parse_args(["run", *(argv or [])])
    _run(args)


if __name__ == "__main__":
    main()
