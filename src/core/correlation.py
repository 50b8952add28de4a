"""Discussion-group republish of full-resolution media.

When Telegram automatically forwards a published album into the channel's
linked discussion group, this handler finds the exchange record written at
publish time and replies to the forward with the original renditions as
documents. The record is removed on every exit path once it was found.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from core.config import ExchangeConfig, ThumbnailConfig
from core.exchange import ExchangeKey, ExchangeRecord, ExchangeStore
from core.models import LinkedMessage, MediaKind, OutboundAttachment
from core.ports import ContentPlatformPort, TransportPort
from core.thumbnails import make_thumbnail

LOGGER = logging.getLogger(__name__)


class CorrelationHandler:
    """Correlates auto-forwarded album messages with their exchange records."""

    def __init__(
        self,
        platforms: Iterable[ContentPlatformPort],
        transport: TransportPort,
        store: ExchangeStore,
        exchange_config: ExchangeConfig,
        thumbnail_config: ThumbnailConfig,
    ) -> None:
        self._platforms: Dict[str, ContentPlatformPort] = {platform.name: platform for platform in platforms}
        self._transport = transport
        self._store = store
        self._exchange = exchange_config
        self._thumbnails = thumbnail_config

    async def handle(self, message: LinkedMessage) -> bool:
        """Process one discussion-group message; returns True if media was republished."""

        if not message.is_automatic_forward:
            return False
        if message.origin_chat_id is None or message.origin_message_id is None:
            return False

        key = ExchangeKey(thread_id=message.origin_chat_id, message_id=message.origin_message_id)
        # Unrelated forwards never get a record; not finding one is expected.
        found = await self._store.wait_for(
            key,
            timeout=self._exchange.lookup_timeout,
            poll_interval=self._exchange.poll_interval,
        )
        if found is None:
            return False

        try:
            record = self._store.claim(key)
            if record is None:
                return False
            return await self._republish(key, record, message)
        finally:
            self._store.cleanup(key)

    async def _republish(self, key: ExchangeKey, record: ExchangeRecord, message: LinkedMessage) -> bool:
        platform = self._platforms.get(record.platform)
        if platform is None:
            LOGGER.error("No platform adapter registered for %s (%s)", record.platform, key)
            return False

        if not await self._has_permissions(key, message):
            return False

        LOGGER.info("Linked channel message received for %s %s, generating thumbnails...", record.platform, record.content_id)
        thumbnails = await self._build_thumbnails(key, record)

        attachments: List[OutboundAttachment] = []
        for index, item in enumerate(record.media):
            filename = platform.document_filename(record, index)
            attachments.append(
                OutboundAttachment(
                    kind=item.kind,
                    body=item.original_body,
                    filename=filename,
                    thumbnail=thumbnails[index],
                    as_document=True,
                )
            )
            LOGGER.debug("Prepared document %s (%s bytes)", filename, len(item.original_body))

        try:
            await self._transport.send_album(message.thread_id, attachments, reply_to=message.message_id)
        except Exception as exc:
            LOGGER.error("Failed to send documents for %s to chat %s: %s", key, message.thread_id, exc)
            return False

        LOGGER.info("%s files sent as comment of channel post in discussion group %s", len(attachments), message.thread_id)
        record.release_media()
        return True

    async def _has_permissions(self, key: ExchangeKey, message: LinkedMessage) -> bool:
        bot_id = self._transport.bot_id
        try:
            origin = await self._transport.get_chat_member(key.thread_id, bot_id)
        except Exception as exc:
            LOGGER.error("Failed to query bot membership in channel %s: %s", key.thread_id, exc)
            return False
        if not origin.is_admin:
            LOGGER.warning("Received a forward from channel %s where the bot is not an administrator, ignoring", key.thread_id)
            return False

        try:
            destination = await self._transport.get_chat_member(message.thread_id, bot_id)
        except Exception as exc:
            LOGGER.error("Failed to query bot membership in discussion group %s: %s", message.thread_id, exc)
            return False
        if not destination.is_admin and not destination.can_send_media:
            LOGGER.error("Bot cannot send media in discussion group %s", message.thread_id)
            return False
        return True

    async def _build_thumbnails(self, key: ExchangeKey, record: ExchangeRecord) -> List[Optional[bytes]]:
        thumbnails: List[Optional[bytes]] = [None] * len(record.media)
        for index, item in enumerate(record.media):
            if item.kind is not MediaKind.PHOTO:
                continue
            try:
                thumbnails[index] = await asyncio.to_thread(make_thumbnail, item.regular_body, self._thumbnails.size)
            except Exception as exc:
                LOGGER.error("Failed to build thumbnail %s for %s: %s", index, key, exc)
        return thumbnails
