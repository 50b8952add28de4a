"""Core channel post pipeline.

This module is integration-agnostic. It only relies on ports for the Telegram
transport and the content platform, so the same pipeline serves Pixiv and
Twitter posts:

1) Skip forwarded posts and text that is not a platform link
2) Fetch the content detail (platform retry policy)
3) Fetch media concurrently, dropping failed items
4) Publish one album with the caption on the first item
5) Store the exchange record keyed by the album's first message
6) Delete the original link post (best effort)
"""

from __future__ import annotations

import logging
from typing import Optional

from core.config import FetchConfig
from core.exchange import ExchangeKey, ExchangeRecord, ExchangeStore
from core.fetcher import MediaFetcher
from core.identifiers import normalize_url
from core.models import ChannelPost
from core.ports import ContentPlatformPort, TransportPort
from core.publisher import Publisher, PublishResult
from core.retry import attempt_with_delay

LOGGER = logging.getLogger(__name__)


class ChannelPostProcessor:
    """Replaces a platform link post with an album of the linked media."""

    def __init__(
        self,
        platform: ContentPlatformPort,
        transport: TransportPort,
        store: ExchangeStore,
        fetch_config: FetchConfig,
    ) -> None:
        self._platform = platform
        self._transport = transport
        self._store = store
        self._fetch = fetch_config
        self._fetcher = MediaFetcher(platform.fetch_binary, fetch_config.max_concurrency)
        self._publisher = Publisher(transport)

    @property
    def platform(self) -> ContentPlatformPort:
        return self._platform

    async def handle(self, post: ChannelPost) -> Optional[PublishResult]:
        """Process one channel post; returns the publish result when a record was stored."""

        if post.is_forwarded:
            return None

        content_id = self._platform.extract_id(post.text)
        if content_id is None:
            return None
        source_url = normalize_url(post.text) or post.text
        name = self._platform.name

        try:
            detail = await attempt_with_delay(self._platform.retry, lambda: self._platform.fetch_detail(content_id))
        except Exception as exc:
            LOGGER.error("Failed to fetch %s detail %s (chat %s): %s", name, content_id, post.thread_id, exc)
            return None
        if detail is None:
            LOGGER.warning("%s content %s not found (chat %s)", name, content_id, post.thread_id)
            return None

        descriptors = detail.media[: self._fetch.max_media_per_post]
        if not descriptors:
            LOGGER.warning("No media found in %s content %s", name, content_id)
            return None

        LOGGER.info("%s content %s found, fetching %s media...", name, content_id, len(descriptors))
        media = await self._fetcher.fetch_all(descriptors)
        if not media:
            LOGGER.warning("No media could be fetched for %s content %s", name, content_id)
            return None
        LOGGER.info("%s/%s media fetched for %s content %s, sending to telegram...", len(media), len(descriptors), name, content_id)

        caption = self._platform.build_caption(detail, source_url)
        try:
            result = await self._publisher.publish(
                post.thread_id,
                content_id,
                media,
                caption=caption,
                fallback_text=post.text,
            )
        except Exception as exc:
            LOGGER.error("Failed to publish %s content %s to chat %s: %s", name, content_id, post.thread_id, exc)
            return None

        key = ExchangeKey(thread_id=result.thread_id, message_id=result.message_id)
        self._store.assign(
            key,
            ExchangeRecord(
                platform=name,
                content_id=content_id,
                author_name=detail.author_name,
                media=media,
                source_urls=[item.source_url for item in media],
            ),
        )
        LOGGER.info("%s media of %s content %s sent to %s (%s)", len(media), name, content_id, post.thread_title, key)

        try:
            await self._transport.delete_message(post.thread_id, post.message_id)
        except Exception as exc:
            LOGGER.error("Failed to delete original post %s in chat %s: %s", post.message_id, post.thread_id, exc)

        return result
