from __future__ import annotations

import asyncio
from typing import Optional, Sequence

from adapters.pixiv import PixivPlatform
from core.config import FetchConfig, RetryPolicy
from core.exchange import ExchangeKey, ExchangeStore
from core.models import ChannelPost, ChatMember, MemberRole, OutboundAttachment, SentMessage
from core.processor import ChannelPostProcessor

PAGE_URLS = [
    {
        "regular": "https://i.pximg.net/img-master/img/2024/01/01/123_p0_master1200.jpg",
        "original": "https://i.pximg.net/img-original/img/2024/01/01/123_p0.png",
    },
    {
        "regular": "https://i.pximg.net/img-master/img/2024/01/01/123_p1_master1200.jpg",
        "original": "https://i.pximg.net/img-original/img/2024/01/01/123_p1.png",
    },
]


class FakePixivClient:
    def __init__(
        self,
        detail: Optional[dict] = None,
        pages: Optional[list[dict]] = None,
        failing_urls: set[str] = frozenset(),
        detail_error: Optional[Exception] = None,
    ) -> None:
        self.detail = detail
        self.pages = pages or []
        self.failing_urls = failing_urls
        self.detail_error = detail_error
        self.detail_calls = 0

    async def illust_detail(self, illust_id: str) -> Optional[dict]:
        self.detail_calls += 1
        if self.detail_error is not None:
            raise self.detail_error
        return self.detail

    async def illust_pages(self, illust_id: str) -> list[dict]:
        return self.pages

    async def get_image(self, url: str) -> bytes:
        if url in self.failing_urls:
            raise RuntimeError(f"cannot fetch {url}")
        return url.encode()


class FakeTransport:
    bot_id = 1

    def __init__(self, send_error: Optional[Exception] = None) -> None:
        self.sent: list[tuple[int, list[OutboundAttachment], Optional[int]]] = []
        self.deleted: list[tuple[int, int]] = []
        self.send_error = send_error

    async def send_album(
        self,
        thread_id: int,
        attachments: Sequence[OutboundAttachment],
        reply_to: Optional[int] = None,
    ) -> list[SentMessage]:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((thread_id, list(attachments), reply_to))
        return [SentMessage(thread_id=thread_id, message_id=500 + index) for index in range(len(attachments))]

    async def delete_message(self, thread_id: int, message_id: int) -> None:
        self.deleted.append((thread_id, message_id))

    async def get_chat_member(self, thread_id: int, user_id: int) -> ChatMember:
        return ChatMember(role=MemberRole.ADMINISTRATOR, can_send_media=True)


def _detail() -> dict:
    return {
        "title": "Sunset <study>",
        "userId": "42",
        "userName": "alice",
        "tags": {"tags": [{"tag": "original"}, {"tag": "sci-fi"}]},
    }


def _pages() -> list[dict]:
    return [{"urls": urls, "width": 1200, "height": 1600} for urls in PAGE_URLS]


def _post(text: str = "https://www.pixiv.net/en/artworks/123", **kwargs) -> ChannelPost:
    return ChannelPost(
        text=text,
        thread_id=-100123,
        thread_title="Art channel",
        message_id=10,
        **kwargs,
    )


def _processor(client: FakePixivClient, transport: FakeTransport, store: ExchangeStore, retry: RetryPolicy = RetryPolicy()):
    return ChannelPostProcessor(PixivPlatform(client, retry), transport, store, FetchConfig())


def test_pixiv_post_is_replaced_with_album() -> None:
    client = FakePixivClient(detail=_detail(), pages=_pages())
    transport = FakeTransport()
    store = ExchangeStore()

    result = asyncio.run(_processor(client, transport, store).handle(_post()))

    assert result is not None
    assert len(transport.sent) == 1
    thread_id, attachments, reply_to = transport.sent[0]
    assert thread_id == -100123
    assert reply_to is None
    assert len(attachments) == 2
    caption = attachments[0].caption
    assert '<a href="https://www.pixiv.net/users/42">alice</a>' in caption
    assert "Sunset &lt;study&gt;" in caption
    assert "#original #scifi" in caption
    assert 'from <a href="https://www.pixiv.net/en/artworks/123">Pixiv</a>' in caption
    assert attachments[1].caption == ""
    assert attachments[0].body == PAGE_URLS[0]["regular"].encode()

    assert transport.deleted == [(-100123, 10)]

    record = store.load(ExchangeKey(thread_id=-100123, message_id=500))
    assert record is not None
    assert record.platform == "pixiv"
    assert record.content_id == "123"
    assert record.author_name == "alice"
    assert record.source_urls == [urls["regular"] for urls in PAGE_URLS]
    assert record.media[1].original_body == PAGE_URLS[1]["original"].encode()


def test_partial_fetch_failure_publishes_survivors() -> None:
    client = FakePixivClient(detail=_detail(), pages=_pages(), failing_urls={PAGE_URLS[0]["original"]})
    transport = FakeTransport()
    store = ExchangeStore()

    asyncio.run(_processor(client, transport, store).handle(_post()))

    attachments = transport.sent[0][1]
    assert len(attachments) == 1
    assert attachments[0].caption
    record = store.load(ExchangeKey(thread_id=-100123, message_id=500))
    assert record.source_urls == [PAGE_URLS[1]["regular"]]


def test_all_fetches_failing_leaves_post_untouched() -> None:
    failing = {urls["regular"] for urls in PAGE_URLS}
    client = FakePixivClient(detail=_detail(), pages=_pages(), failing_urls=failing)
    transport = FakeTransport()
    store = ExchangeStore()

    result = asyncio.run(_processor(client, transport, store).handle(_post()))

    assert result is None
    assert transport.sent == []
    assert transport.deleted == []
    assert len(store) == 0


def test_forwarded_post_is_ignored() -> None:
    client = FakePixivClient(detail=_detail(), pages=_pages())
    transport = FakeTransport()
    store = ExchangeStore()

    result = asyncio.run(_processor(client, transport, store).handle(_post(forwarded_from_chat=-100999)))

    assert result is None
    assert client.detail_calls == 0
    assert transport.sent == []


def test_post_without_link_is_ignored() -> None:
    client = FakePixivClient(detail=_detail(), pages=_pages())
    transport = FakeTransport()

    result = asyncio.run(_processor(client, transport, ExchangeStore()).handle(_post(text="good morning")))

    assert result is None
    assert client.detail_calls == 0


def test_missing_illust_is_not_published() -> None:
    client = FakePixivClient(detail=None)
    transport = FakeTransport()

    result = asyncio.run(_processor(client, transport, ExchangeStore()).handle(_post()))

    assert result is None
    assert transport.sent == []
    assert transport.deleted == []


def test_detail_errors_are_retried_then_abandoned() -> None:
    client = FakePixivClient(detail_error=RuntimeError("upstream down"))
    transport = FakeTransport()

    result = asyncio.run(
        _processor(client, transport, ExchangeStore(), retry=RetryPolicy(attempts=3, delay=0)).handle(_post())
    )

    assert result is None
    assert client.detail_calls == 3
    assert transport.sent == []


def test_publish_failure_keeps_original_post() -> None:
    client = FakePixivClient(detail=_detail(), pages=_pages())
    transport = FakeTransport(send_error=RuntimeError("flood wait"))
    store = ExchangeStore()

    result = asyncio.run(_processor(client, transport, store).handle(_post()))

    assert result is None
    assert transport.deleted == []
    assert len(store) == 0


def test_media_count_is_capped() -> None:
    pages = [
        {"urls": {"regular": f"https://i.pximg.net/r/{index}.jpg", "original": f"https://i.pximg.net/o/{index}.png"}}
        for index in range(6)
    ]
    client = FakePixivClient(detail=_detail(), pages=pages)
    transport = FakeTransport()
    processor = ChannelPostProcessor(
        PixivPlatform(client, RetryPolicy()),
        transport,
        ExchangeStore(),
        FetchConfig(max_media_per_post=4),
    )

    asyncio.run(processor.handle(_post()))

    assert len(transport.sent[0][1]) == 4
