"""Static configuration for mediarelay.

All user-editable settings (platforms, fetch limits, exchange lifetime,
thumbnails, logging) live in a single JSON file for quick edits without
touching Python. Secrets stay in the environment (.env).
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# config.json sits next to src/ unless MEDIARELAY_CONFIG points elsewhere.
CONFIG_PATH = os.getenv("MEDIARELAY_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _platform_settings(name: str, default_attempts: int) -> tuple[bool, int, float]:
    """Return (enabled, retry attempts, retry delay) for one platform."""

    entry = _CONFIG.get("platforms", {}).get(name, {})
    retry = entry.get("retry", {})
    return (
        bool(entry.get("enabled", True)),
        int(retry.get("attempts", default_attempts)),
        float(retry.get("delay", 1.0)),
    )


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Per-platform retry policies for detail lookups. Twitter's guest API fails
# far more often than Pixiv's cookie-authenticated one, hence the defaults.
PIXIV_ENABLED, PIXIV_RETRY_ATTEMPTS, PIXIV_RETRY_DELAY = _platform_settings("pixiv", 1)
TWITTER_ENABLED, TWITTER_RETRY_ATTEMPTS, TWITTER_RETRY_DELAY = _platform_settings("twitter", 10)

# Timeout for every upstream HTTP request, in seconds.
HTTP_TIMEOUT = float(_CONFIG.get("http", {}).get("timeout", 30.0))

# Media fan-out limits for one channel post.
_fetch = _CONFIG.get("fetch", {})
FETCH_MAX_CONCURRENCY = int(_fetch.get("max_concurrency", 4))
FETCH_MAX_MEDIA_PER_POST = int(_fetch.get("max_media_per_post", 4))

# Exchange store lifetime and the bounded wait used by the forward handler.
_exchange = _CONFIG.get("exchange", {})
EXCHANGE_TTL_SECONDS = float(_exchange.get("ttl_seconds", 600))
EXCHANGE_SWEEP_INTERVAL = float(_exchange.get("sweep_interval", 60))
EXCHANGE_LOOKUP_TIMEOUT = float(_exchange.get("lookup_timeout", 3.0))
EXCHANGE_POLL_INTERVAL = float(_exchange.get("poll_interval", 0.1))

THUMBNAIL_SIZE = int(_CONFIG.get("thumbnails", {}).get("size", 320))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
