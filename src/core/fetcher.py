"""Concurrent media fetching for the channel post pipeline.

Every descriptor becomes one task; each task downloads the regular and the
original rendition side by side. Tasks share a semaphore so a large post
cannot open an unbounded number of connections.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from core.models import MediaDescriptor, MediaItem

LOGGER = logging.getLogger(__name__)

FetchBinary = Callable[[str], Awaitable[bytes]]


class MediaFetcher:
    """Fetch media renditions concurrently, keeping input order."""

    def __init__(self, fetch_binary: FetchBinary, max_concurrency: int = 4) -> None:
        self._fetch_binary = fetch_binary
        self._max_concurrency = max(1, max_concurrency)

    async def fetch_all(self, descriptors: Sequence[MediaDescriptor]) -> List[MediaItem]:
        """Return the successfully fetched items in their original order.

        An item counts only if both renditions were downloaded; a failed item
        is logged and dropped without affecting its siblings.
        """

        if not descriptors:
            return []

        semaphore = asyncio.Semaphore(self._max_concurrency)
        slots: List[Optional[MediaItem]] = await asyncio.gather(
            *(self._fetch_one(descriptor, semaphore) for descriptor in descriptors)
        )
        return [item for item in slots if item is not None]

    async def _fetch_one(
        self,
        descriptor: MediaDescriptor,
        semaphore: asyncio.Semaphore,
    ) -> Optional[MediaItem]:
        async with semaphore:
            regular, original = await asyncio.gather(
                self._fetch_binary(descriptor.regular_url),
                self._fetch_binary(descriptor.original_url),
                return_exceptions=True,
            )

        for label, result, url in (
            ("regular", regular, descriptor.regular_url),
            ("original", original, descriptor.original_url),
        ):
            if isinstance(result, BaseException):
                LOGGER.error("Failed to fetch %s %s rendition from %s: %s", descriptor.kind.value, label, url, result)
                return None

        LOGGER.debug("Fetched %s from %s", descriptor.kind.value, descriptor.source_url)
        return MediaItem(
            kind=descriptor.kind,
            regular_body=regular,
            original_body=original,
            source_url=descriptor.source_url,
            width=descriptor.width,
            height=descriptor.height,
            original_url=descriptor.original_url,
        )
