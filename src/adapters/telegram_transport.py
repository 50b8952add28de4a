"""Telethon transport adapter.

Implements the core TransportPort on top of a bot-authorized TelegramClient.
Albums are built from pre-uploaded InputMedia so every document can carry
its own thumbnail, which ``send_file`` alone does not support for albums.
"""

from __future__ import annotations

import logging
import mimetypes
from typing import Optional, Sequence

from telethon import TelegramClient
from telethon.tl import types

from core.models import ChatMember, MediaKind, MemberRole, OutboundAttachment, SentMessage

LOGGER = logging.getLogger(__name__)


class TelethonTransport:
    """TransportPort backed by Telethon."""

    def __init__(self, client: TelegramClient, bot_id: int) -> None:
        self._client = client
        self._bot_id = bot_id

    @property
    def bot_id(self) -> int:
        return self._bot_id

    async def _to_input_media(self, attachment: OutboundAttachment):
        handle = await self._client.upload_file(attachment.body, file_name=attachment.filename)
        filename_attr = types.DocumentAttributeFilename(file_name=attachment.filename)

        if attachment.as_document:
            thumb = None
            if attachment.thumbnail:
                thumb = await self._client.upload_file(
                    attachment.thumbnail,
                    file_name=f"thumbnail-{attachment.filename}",
                )
            mime_type = mimetypes.guess_type(attachment.filename)[0] or "application/octet-stream"
            return types.InputMediaUploadedDocument(
                file=handle,
                mime_type=mime_type,
                attributes=[filename_attr],
                thumb=thumb,
                force_file=True,
            )

        if attachment.kind is MediaKind.VIDEO:
            return types.InputMediaUploadedDocument(
                file=handle,
                mime_type="video/mp4",
                attributes=[
                    types.DocumentAttributeVideo(
                        duration=0,
                        w=attachment.width,
                        h=attachment.height,
                        supports_streaming=True,
                    ),
                    filename_attr,
                ],
            )

        return types.InputMediaUploadedPhoto(file=handle)

    async def send_album(
        self,
        thread_id: int,
        attachments: Sequence[OutboundAttachment],
        reply_to: Optional[int] = None,
    ) -> list[SentMessage]:
        """Upload every attachment and send them as one grouped message."""

        media = [await self._to_input_media(attachment) for attachment in attachments]
        captions = [attachment.caption for attachment in attachments]
        sent = await self._client.send_file(
            thread_id,
            media,
            caption=captions,
            parse_mode="html",
            reply_to=reply_to,
        )
        if not isinstance(sent, list):
            sent = [sent]
        LOGGER.debug("Sent album of %s items to %s", len(sent), thread_id)
        return [SentMessage(thread_id=message.chat_id, message_id=message.id) for message in sent]

    async def delete_message(self, thread_id: int, message_id: int) -> None:
        await self._client.delete_messages(thread_id, [message_id])

    async def get_chat_member(self, thread_id: int, user_id: int) -> ChatMember:
        permissions = await self._client.get_permissions(thread_id, user_id)
        rights = getattr(permissions.participant, "banned_rights", None)

        if permissions.is_creator:
            role = MemberRole.CREATOR
        elif permissions.is_admin:
            role = MemberRole.ADMINISTRATOR
        elif permissions.has_left:
            role = MemberRole.LEFT
        elif permissions.is_banned:
            role = MemberRole.BANNED if rights and rights.view_messages else MemberRole.RESTRICTED
        else:
            role = MemberRole.MEMBER

        if role in (MemberRole.CREATOR, MemberRole.ADMINISTRATOR):
            can_send_media = True
        elif role is MemberRole.RESTRICTED:
            can_send_media = not getattr(rights, "send_media", False)
        elif role is MemberRole.MEMBER:
            # Plain members inherit the chat's default restrictions.
            entity = await self._client.get_entity(thread_id)
            defaults = getattr(entity, "default_banned_rights", None)
            can_send_media = not (defaults and getattr(defaults, "send_media", False))
        else:
            can_send_media = False

        return ChatMember(role=role, can_send_media=can_send_media)
