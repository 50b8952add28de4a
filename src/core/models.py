"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to Telethon or to the upstream platforms' JSON payloads.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional


class MediaKind(str, enum.Enum):
    PHOTO = "photo"
    VIDEO = "video"


@dataclass(frozen=True)
class ChannelPost:
    """A post published in a watched channel."""

    text: str
    thread_id: int
    thread_title: str
    message_id: int
    forwarded_from_user: Optional[int] = None
    forwarded_from_chat: Optional[int] = None

    @property
    def is_forwarded(self) -> bool:
        return self.forwarded_from_user is not None or self.forwarded_from_chat is not None


@dataclass(frozen=True)
class LinkedMessage:
    """A message seen in a discussion group, possibly an automatic forward."""

    is_automatic_forward: bool
    thread_id: int
    message_id: int
    origin_chat_id: Optional[int] = None
    origin_message_id: Optional[int] = None


@dataclass(frozen=True)
class MediaDescriptor:
    """Where to fetch one media item from, before any bytes are downloaded."""

    kind: MediaKind
    regular_url: str
    original_url: str
    source_url: str
    width: int = 0
    height: int = 0


@dataclass
class MediaItem:
    """One fetched media resource with both renditions in memory."""

    kind: MediaKind
    regular_body: bytes
    original_body: bytes
    source_url: str
    width: int = 0
    height: int = 0
    original_url: str = ""

    def release(self) -> None:
        self.regular_body = b""
        self.original_body = b""


@dataclass(frozen=True)
class ContentDetail:
    """Platform-neutral view of an upstream post (illustration or tweet)."""

    content_id: str
    author_name: str
    author_id: str = ""
    author_display_name: str = ""
    text: str = ""
    tags: List[str] = field(default_factory=list)
    media: List[MediaDescriptor] = field(default_factory=list)


class MemberRole(str, enum.Enum):
    CREATOR = "creator"
    ADMINISTRATOR = "administrator"
    MEMBER = "member"
    RESTRICTED = "restricted"
    LEFT = "left"
    BANNED = "banned"


@dataclass(frozen=True)
class ChatMember:
    """The bot's membership in one chat, as far as permission checks need it."""

    role: MemberRole
    can_send_media: bool

    @property
    def is_admin(self) -> bool:
        return self.role in (MemberRole.CREATOR, MemberRole.ADMINISTRATOR)


@dataclass(frozen=True)
class OutboundAttachment:
    """One entry of an outbound album.

    ``as_document`` sends the body as a generic file so Telegram does not
    recompress it.
    """

    kind: MediaKind
    body: bytes
    filename: str
    caption: str = ""
    thumbnail: Optional[bytes] = None
    as_document: bool = False
    width: int = 0
    height: int = 0


@dataclass(frozen=True)
class SentMessage:
    thread_id: int
    message_id: int
