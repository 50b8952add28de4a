"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the Telegram transport and for the
content platforms so the core can be exercised with fakes in tests.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from core.config import RetryPolicy
from core.exchange import ExchangeRecord
from core.models import ChatMember, ContentDetail, OutboundAttachment, SentMessage


class TransportPort(Protocol):
    """Telegram operations required by the core pipeline."""

    @property
    def bot_id(self) -> int:
        ...

    async def send_album(
        self,
        thread_id: int,
        attachments: Sequence[OutboundAttachment],
        reply_to: Optional[int] = None,
    ) -> list[SentMessage]:
        ...

    async def delete_message(self, thread_id: int, message_id: int) -> None:
        ...

    async def get_chat_member(self, thread_id: int, user_id: int) -> ChatMember:
        ...


class ContentPlatformPort(Protocol):
    """One upstream content platform (Pixiv, Twitter)."""

    name: str
    retry: RetryPolicy

    def extract_id(self, text: str) -> Optional[str]:
        ...

    async def fetch_detail(self, content_id: str) -> Optional[ContentDetail]:
        ...

    async def fetch_binary(self, url: str) -> bytes:
        ...

    def build_caption(self, detail: ContentDetail, source_url: str) -> str:
        ...

    def document_filename(self, record: ExchangeRecord, index: int) -> str:
        ...
