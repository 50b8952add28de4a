"""Application entry point for the mediarelay bot."""

from __future__ import annotations

import argparse
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv
from telethon import events

import settings
from adapters.pixiv import PixivClient, PixivPlatform
from adapters.telegram_mapper import build_channel_post, build_linked_message
from adapters.telegram_transport import TelethonTransport
from adapters.twitter import TwitterClient, TwitterPlatform
from client import build_client
from core.config import ExchangeConfig, FetchConfig, RetryPolicy, ThumbnailConfig
from core.correlation import CorrelationHandler
from core.dispatcher import Dispatcher
from core.exchange import ExchangeStore
from core.processor import ChannelPostProcessor

NAME = "MEDIARELAY"
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
        path = file_cfg.get("path", "logs/mediarelay.log")
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
    # Telethon logs every update at INFO; keep our own messages readable.
    logging.getLogger("telethon").setLevel(max(level, logging.WARNING))


def _build_platforms() -> tuple[list, list]:
    """Return (platform adapters, HTTP clients to close on shutdown)."""

    platforms = []
    clients = []
    if settings.PIXIV_ENABLED:
        pixiv_client = PixivClient(os.getenv("PIXIV_PHPSESSID", ""), timeout=settings.HTTP_TIMEOUT)
        platforms.append(
            PixivPlatform(
                pixiv_client,
                RetryPolicy(attempts=settings.PIXIV_RETRY_ATTEMPTS, delay=settings.PIXIV_RETRY_DELAY),
            )
        )
        clients.append(pixiv_client)
    if settings.TWITTER_ENABLED:
        twitter_client = TwitterClient(timeout=settings.HTTP_TIMEOUT)
        platforms.append(
            TwitterPlatform(
                twitter_client,
                RetryPolicy(attempts=settings.TWITTER_RETRY_ATTEMPTS, delay=settings.TWITTER_RETRY_DELAY),
            )
        )
        clients.append(twitter_client)
    return platforms, clients


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting mediarelay")

    load_dotenv()
    platforms, http_clients = _build_platforms()
    if not platforms:
        raise RuntimeError("No platform is enabled in config.json")
    logger.info("Enabled platforms - %s", ", ".join(platform.name for platform in platforms))

    fetch_config = FetchConfig(
        max_concurrency=settings.FETCH_MAX_CONCURRENCY,
        max_media_per_post=settings.FETCH_MAX_MEDIA_PER_POST,
    )
    exchange_config = ExchangeConfig(
        ttl_seconds=settings.EXCHANGE_TTL_SECONDS,
        sweep_interval=settings.EXCHANGE_SWEEP_INTERVAL,
        lookup_timeout=settings.EXCHANGE_LOOKUP_TIMEOUT,
        poll_interval=settings.EXCHANGE_POLL_INTERVAL,
    )
    thumbnail_config = ThumbnailConfig(size=settings.THUMBNAIL_SIZE)

    client = build_client()
    me = client.loop.run_until_complete(client.get_me())
    logger.info("Authorized as bot @%s (%s)", getattr(me, "username", ""), me.id)

    transport = TelethonTransport(client, me.id)
    store = ExchangeStore(ttl_seconds=exchange_config.ttl_seconds)
    processors = [ChannelPostProcessor(platform, transport, store, fetch_config) for platform in platforms]
    correlator = CorrelationHandler(platforms, transport, store, exchange_config, thumbnail_config)
    dispatcher = Dispatcher(processors, correlator)

    # Single handler keeps Telethon integration minimal; channel posts and
    # discussion-group messages are told apart by the post flag.
    @client.on(events.NewMessage(incoming=True))
    async def handler(event) -> None:
        try:
            message = event.message
            if message.post:
                await dispatcher.dispatch_channel_post(build_channel_post(message))
            else:
                await dispatcher.dispatch_linked_message(build_linked_message(message))
        except Exception:
            logger.exception("Error while processing message")

    sweeper = client.loop.create_task(store.run_sweeper(exchange_config.sweep_interval))

    logger.info("Client connected. Listening for incoming messages...")
    try:
        client.run_until_disconnected()
    finally:
        sweeper.cancel()
        for http_client in http_clients:
            client.loop.run_until_complete(http_client.aclose())


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="mediarelay")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the relay bot")

    parser.parse_args(argv)
    _run()


if __name__ == "__main__":
    main()
