"""Application entry point for the onair bridge."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
from logging.handlers import RotatingFileHandler
from typing import Mapping, Optional

from art import tprint
from dotenv import load_dotenv
from telethon import TelegramClient, events

import settings
from adapters.json_storage import JsonStateStore
from adapters.notification_formatting import format_live_notification
from adapters.telegram_dispatcher import TelegramDispatcher
from adapters.telegram_mapper import build_forwarded_message
from adapters.twitch_status import TwitchStatusSource
from client import build_bot_client, start_bot_client
from core.config import ChannelConfig
from core.forwards import ForwardTracker
from core.reconciler import NotificationReconciler
from core.scheduler import PollScheduler

NAME = "ONAIR"
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
    # Bot tokens and the Twitch secret are always masked.
    names = list(settings.BOTS.values()) + [settings.TWITCH_CLIENT_SECRET_ENV]
    redact_cfg = config.get("redact", {}) if config else {}
    if redact_cfg.get("enabled", False):
        names.extend(redact_cfg.get("patterns", []))
    values = []
    for name in names:
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", True):
        return

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
        path = file_cfg.get("path", "logs/onair.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
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


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"{name} is required in the environment")
    return value


def _resolve_bot_tokens(channels: Mapping[str, ChannelConfig]) -> dict[str, str]:
    """Return tokens for every bot a channel routes through.

    A channel naming an unknown bot is a configuration error.
    """

    tokens: dict[str, str] = {}
    for channel in channels.values():
        env_name = settings.BOTS.get(channel.bot)
        if not env_name:
            raise RuntimeError(f"Unknown bot {channel.bot!r} for channel {channel.name}")
        tokens[channel.bot] = _required_env(env_name)
    return tokens


def _register_forward_handler(client: TelegramClient, tracker: ForwardTracker) -> None:
    logger = logging.getLogger(__name__)

    # Forwards are handled on the same loop as the sweep and share the store lock.
    @client.on(events.NewMessage(incoming=True))
    async def handler(event) -> None:
        try:
            forwarded = build_forwarded_message(event.message)
            if forwarded is None:
                return
            await tracker.handle(forwarded)
        except Exception:
            logger.exception("Error while processing inbound message")


def _install_signal_handlers(scheduler: PollScheduler) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.stop)
        except NotImplementedError:
            # Windows event loops do not support add_signal_handler.
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(scheduler.stop))


async def _run_async(once: bool) -> None:
    logger = logging.getLogger(__name__)

    channels = settings.CHANNELS
    bot_tokens = _resolve_bot_tokens(channels)
    logger.info("%s channels are configured across %s bots", len(channels), len(bot_tokens))

    # A broken state file aborts startup instead of silently resetting.
    store = JsonStateStore(settings.STATE_PATH)
    store.load(channels)

    status_source = TwitchStatusSource(
        client_id=_required_env(settings.TWITCH_CLIENT_ID_ENV),
        client_secret=_required_env(settings.TWITCH_CLIENT_SECRET_ENV),
    )
    clients: dict[str, TelegramClient] = {}
    try:
        for bot_name, token in bot_tokens.items():
            clients[bot_name] = await start_bot_client(build_bot_client(bot_name), token)
            logger.info("Bot %s connected", bot_name)

        dispatchers = {name: TelegramDispatcher(client, name) for name, client in clients.items()}
        reconciler = NotificationReconciler(
            status_source=status_source,
            dispatchers=dispatchers,
            store=store,
            formatter=format_live_notification,
            announce_attempts=settings.POLLING.announce_attempts,
        )
        scheduler = PollScheduler(
            reconciler=reconciler,
            store=store,
            channels=channels,
            polling=settings.POLLING,
            channels_provider=settings.load_channels,
        )

        if once:
            await scheduler.sweep()
            return

        tracker = ForwardTracker(store, lambda: scheduler.channels)
        for client in clients.values():
            _register_forward_handler(client, tracker)

        _install_signal_handlers(scheduler)
        logger.info("Polling every %ss", settings.POLLING.interval_seconds)
        await scheduler.run_forever()
    finally:
        await status_source.close()
        for client in clients.values():
            await client.disconnect()
        logger.info("Shutdown complete")


def _run(once: bool = False) -> None:
    _print_banner()
    load_dotenv()
    _configure_logging()
    logging.getLogger(__name__).info("Starting onair")
    asyncio.run(_run_async(once))


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="onair")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Poll Twitch and keep notifications up to date")
    subparsers.add_parser("once", help="Run a single sweep and exit")

    args = parser.parse_args(argv)
    if args.command == "once":
        _run(once=True)
        return
    _run()


if __name__ == "__main__":
    main()
