from __future__ import annotations

import asyncio
from typing import Optional, Sequence

import pytest

from core.models import MediaItem, MediaKind, OutboundAttachment, SentMessage
from core.publisher import Publisher


class FakeTransport:
    bot_id = 1

    def __init__(self) -> None:
        self.sent: list[tuple[int, list[OutboundAttachment], Optional[int]]] = []

    async def send_album(
        self,
        thread_id: int,
        attachments: Sequence[OutboundAttachment],
        reply_to: Optional[int] = None,
    ) -> list[SentMessage]:
        self.sent.append((thread_id, list(attachments), reply_to))
        return [SentMessage(thread_id=thread_id, message_id=700 + index) for index in range(len(attachments))]


def _item(name: str) -> MediaItem:
    return MediaItem(
        kind=MediaKind.PHOTO,
        regular_body=f"regular-{name}".encode(),
        original_body=f"original-{name}".encode(),
        source_url=f"https://i.pximg.net/img-master/{name}.jpg?x=1",
    )


def test_publish_sends_one_album_with_caption_on_first_item() -> None:
    transport = FakeTransport()
    result = asyncio.run(
        Publisher(transport).publish(-100123, "555", [_item("a"), _item("b")], caption="<b>hi</b>", fallback_text="link")
    )

    assert (result.thread_id, result.message_id) == (-100123, 700)
    assert len(transport.sent) == 1
    thread_id, attachments, reply_to = transport.sent[0]
    assert thread_id == -100123
    assert reply_to is None
    assert [a.caption for a in attachments] == ["<b>hi</b>", ""]
    assert [a.filename for a in attachments] == ["555-a.jpg", "555-b.jpg"]
    assert attachments[0].body == b"regular-a"
    assert not any(a.as_document for a in attachments)


def test_publish_falls_back_to_post_text_without_caption() -> None:
    transport = FakeTransport()
    asyncio.run(Publisher(transport).publish(-1, "1", [_item("a")], caption="", fallback_text="original link"))
    assert transport.sent[0][1][0].caption == "original link"


def test_publish_rejects_empty_album() -> None:
    with pytest.raises(ValueError):
        asyncio.run(Publisher(FakeTransport()).publish(-1, "1", [], caption="c", fallback_text="t"))
