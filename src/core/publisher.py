"""Album publishing for fetched media."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from typing import Sequence
from urllib.parse import urlsplit

from core.models import MediaItem, OutboundAttachment
from core.ports import TransportPort

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishResult:
    """Identifiers Telegram assigned to the first message of the album."""

    thread_id: int
    message_id: int


def _basename(url: str) -> str:
    return posixpath.basename(urlsplit(url).path)


class Publisher:
    """Send fetched media as one native album with a single caption."""

    def __init__(self, transport: TransportPort) -> None:
        self._transport = transport

    async def publish(
        self,
        thread_id: int,
        content_id: str,
        media: Sequence[MediaItem],
        caption: str,
        fallback_text: str,
    ) -> PublishResult:
        """Send the album and return where its first message landed.

        Transport errors propagate unchanged; the album is either accepted as
        a whole or not at all.
        """

        if not media:
            raise ValueError("Cannot publish an empty album")

        attachments = []
        for index, item in enumerate(media):
            attachment = OutboundAttachment(
                kind=item.kind,
                body=item.regular_body,
                filename=f"{content_id}-{_basename(item.source_url)}",
                # Telegram shows one caption per album, taken from the first item.
                caption=(caption or fallback_text) if index == 0 else "",
                width=item.width,
                height=item.height,
            )
            LOGGER.debug("Prepared %s %s (%s bytes)", item.kind.value, attachment.filename, len(attachment.body))
            attachments.append(attachment)

        sent = await self._transport.send_album(thread_id, attachments)
        first = sent[0]
        return PublishResult(thread_id=first.thread_id, message_id=first.message_id)
