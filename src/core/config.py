"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-delay retry settings for one upstream platform.

    ``attempts`` counts total calls, so ``attempts=1`` means no retry.
    """

    attempts: int = 1
    delay: float = 1.0


@dataclass(frozen=True)
class FetchConfig:
    """Media fan-out settings for the channel post pipeline."""

    max_concurrency: int = 4
    max_media_per_post: int = 4


@dataclass(frozen=True)
class ExchangeConfig:
    """Lifetime and lookup settings for the exchange store."""

    ttl_seconds: float = 600.0
    sweep_interval: float = 60.0
    lookup_timeout: float = 3.0
    poll_interval: float = 0.1


@dataclass(frozen=True)
class ThumbnailConfig:
    size: int = 320
