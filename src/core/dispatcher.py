"""Routes mapped Telegram events to the core handlers."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List

from core.correlation import CorrelationHandler
from core.models import ChannelPost, LinkedMessage
from core.processor import ChannelPostProcessor

LOGGER = logging.getLogger(__name__)


class Dispatcher:
    """Fan one event out to every handler registered for its type."""

    def __init__(self, processors: Iterable[ChannelPostProcessor], correlator: CorrelationHandler) -> None:
        self._processors: List[ChannelPostProcessor] = list(processors)
        self._correlator = correlator

    async def dispatch_channel_post(self, post: ChannelPost) -> None:
        results = await asyncio.gather(
            *(processor.handle(post) for processor in self._processors),
            return_exceptions=True,
        )
        for processor, result in zip(self._processors, results):
            if isinstance(result, Exception):
                LOGGER.error(
                    "Error while processing channel post %s with %s",
                    post.message_id,
                    processor.platform.name,
                    exc_info=result,
                )

    async def dispatch_linked_message(self, message: LinkedMessage) -> None:
        try:
            await self._correlator.handle(message)
        except Exception:
            LOGGER.exception("Error while processing linked message %s", message.message_id)
