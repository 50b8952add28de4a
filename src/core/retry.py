"""Fixed-delay retry helper for upstream detail lookups."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from core.config import RetryPolicy

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


async def attempt_with_delay(policy: RetryPolicy, call: Callable[[], Awaitable[T]]) -> T:
    """Await ``call`` until it returns without raising.

    Sleeps ``policy.delay`` seconds between attempts and re-raises the last
    error once ``policy.attempts`` calls have failed. A ``None`` result is a
    normal return, not a failure.
    """

    attempts = max(1, policy.attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await call()
        except Exception as exc:
            if attempt == attempts:
                raise
            LOGGER.debug("Attempt %s/%s failed: %s; retrying in %.1fs", attempt, attempts, exc, policy.delay)
            await asyncio.sleep(policy.delay)
    raise AssertionError("unreachable")
