"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

from typing import Optional, Tuple

from telethon import utils
from telethon.tl.custom import Message
from telethon.tl.types import PeerChannel, PeerChat, PeerUser

from core.models import ChannelPost, LinkedMessage


def _chat_title(message: Message) -> str:
    chat = getattr(message, "chat", None)
    title = getattr(chat, "title", None)
    return str(title) if title else ""


def _forward_sources(message: Message) -> Tuple[Optional[int], Optional[int]]:
    """Return (forwarded-from user id, forwarded-from chat id)."""

    fwd = getattr(message, "fwd_from", None)
    if fwd is None:
        return None, None
    from_id = getattr(fwd, "from_id", None)
    if isinstance(from_id, PeerUser):
        return from_id.user_id, None
    if isinstance(from_id, (PeerChannel, PeerChat)):
        return None, utils.get_peer_id(from_id)
    return None, None


def build_channel_post(message: Message) -> ChannelPost:
    """Build a core ChannelPost from a Telethon channel Message."""

    forwarded_user, forwarded_chat = _forward_sources(message)
    return ChannelPost(
        text=message.raw_text or "",
        thread_id=message.chat_id,
        thread_title=_chat_title(message),
        message_id=message.id,
        forwarded_from_user=forwarded_user,
        forwarded_from_chat=forwarded_chat,
    )


def _is_automatic_forward(fwd) -> bool:
    # Telegram marks the copy it posts into a linked discussion group with the
    # channel as both the forward source and the "saved from" peer.
    from_id = getattr(fwd, "from_id", None)
    saved_from = getattr(fwd, "saved_from_peer", None)
    if not isinstance(from_id, PeerChannel) or not isinstance(saved_from, PeerChannel):
        return False
    return from_id.channel_id == saved_from.channel_id and getattr(fwd, "saved_from_msg_id", None) is not None


def build_linked_message(message: Message) -> LinkedMessage:
    """Build a core LinkedMessage from a Telethon group Message."""

    fwd = getattr(message, "fwd_from", None)
    origin_chat_id = None
    origin_message_id = None
    if fwd is not None:
        origin_peer = getattr(fwd, "saved_from_peer", None) or getattr(fwd, "from_id", None)
        if isinstance(origin_peer, (PeerChannel, PeerChat)):
            origin_chat_id = utils.get_peer_id(origin_peer)
        origin_message_id = getattr(fwd, "saved_from_msg_id", None) or getattr(fwd, "channel_post", None)

    return LinkedMessage(
        is_automatic_forward=fwd is not None and _is_automatic_forward(fwd),
        thread_id=message.chat_id,
        message_id=message.id,
        origin_chat_id=origin_chat_id,
        origin_message_id=origin_message_id,
    )
