"""Telegram client factory for mediarelay.

The relay runs as a bot account, so the client is authorized with a bot
token as soon as it is built. The caller owns the rest of the lifecycle
(run_until_disconnected) so shutdown stays explicit.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient

LOGGER = logging.getLogger(__name__)


def _require_env(*names: str) -> list[str]:
    values = [os.getenv(name) for name in names]
    missing = [name for name, value in zip(names, values) if not value]
    if missing:
        raise RuntimeError(f"Missing {', '.join(missing)} in environment")
    return values


def build_client() -> TelegramClient:
    """Create and start a bot-authorized Telethon client from the environment.

    API_ID/API_HASH identify the application and BOT_TOKEN the bot account;
    all three are read via python-dotenv. SESSION_NAME defaults to
    "mediarelay", which keeps the bot session in a local .session file.
    """

    load_dotenv()

    # Fail fast before touching the network.
    api_id, api_hash, bot_token = _require_env("API_ID", "API_HASH", "BOT_TOKEN")
    session_name = os.getenv("SESSION_NAME", "mediarelay")

    LOGGER.info("Initializing Telegram bot client (session %s)", session_name)
    client = TelegramClient(session_name, int(api_id), api_hash)
    client.start(bot_token=bot_token)
    return client
