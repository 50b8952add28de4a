from __future__ import annotations

from telethon.tl.types import PeerChannel, PeerChat, PeerUser

from adapters.telegram_mapper import build_channel_post, build_linked_message


class DummyChat:
    def __init__(self, title: "str | None" = None) -> None:
        self.title = title


class DummyForward:
    def __init__(
        self,
        *,
        from_id=None,
        saved_from_peer=None,
        saved_from_msg_id: "int | None" = None,
        channel_post: "int | None" = None,
    ) -> None:
        self.from_id = from_id
        self.saved_from_peer = saved_from_peer
        self.saved_from_msg_id = saved_from_msg_id
        self.channel_post = channel_post


class DummyMessage:
    def __init__(
        self,
        *,
        chat_id: int,
        message_id: int,
        text: "str | None" = "",
        chat: "DummyChat | None" = None,
        fwd_from: "DummyForward | None" = None,
    ) -> None:
        self.chat_id = chat_id
        self.id = message_id
        self.raw_text = text
        self.chat = chat
        self.fwd_from = fwd_from


def test_build_channel_post_plain_message() -> None:
    message = DummyMessage(
        chat_id=-100123,
        message_id=10,
        text="https://www.pixiv.net/artworks/1",
        chat=DummyChat(title="Art"),
    )
    post = build_channel_post(message)
    assert post.text == "https://www.pixiv.net/artworks/1"
    assert post.thread_id == -100123
    assert post.thread_title == "Art"
    assert post.message_id == 10
    assert not post.is_forwarded


def test_build_channel_post_without_text_or_title() -> None:
    post = build_channel_post(DummyMessage(chat_id=-100123, message_id=10, text=None))
    assert post.text == ""
    assert post.thread_title == ""


def test_build_channel_post_forwarded_from_user() -> None:
    message = DummyMessage(
        chat_id=-100123,
        message_id=10,
        fwd_from=DummyForward(from_id=PeerUser(user_id=55)),
    )
    post = build_channel_post(message)
    assert post.forwarded_from_user == 55
    assert post.forwarded_from_chat is None
    assert post.is_forwarded


def test_build_channel_post_forwarded_from_channel() -> None:
    message = DummyMessage(
        chat_id=-100123,
        message_id=10,
        fwd_from=DummyForward(from_id=PeerChannel(channel_id=1234567777)),
    )
    post = build_channel_post(message)
    assert post.forwarded_from_chat == -1001234567777
    assert post.is_forwarded


def test_build_linked_message_automatic_forward() -> None:
    message = DummyMessage(
        chat_id=-100999,
        message_id=77,
        fwd_from=DummyForward(
            from_id=PeerChannel(channel_id=1234567890),
            saved_from_peer=PeerChannel(channel_id=1234567890),
            saved_from_msg_id=500,
            channel_post=500,
        ),
    )
    linked = build_linked_message(message)
    assert linked.is_automatic_forward
    assert linked.thread_id == -100999
    assert linked.message_id == 77
    assert linked.origin_chat_id == -1001234567890
    assert linked.origin_message_id == 500


def test_build_linked_message_manual_channel_forward() -> None:
    message = DummyMessage(
        chat_id=-100999,
        message_id=78,
        fwd_from=DummyForward(from_id=PeerChannel(channel_id=1234567890), channel_post=500),
    )
    linked = build_linked_message(message)
    assert not linked.is_automatic_forward
    assert linked.origin_chat_id == -1001234567890
    assert linked.origin_message_id == 500


def test_build_linked_message_from_basic_group_forward() -> None:
    message = DummyMessage(
        chat_id=-100999,
        message_id=79,
        fwd_from=DummyForward(from_id=PeerChat(chat_id=5)),
    )
    linked = build_linked_message(message)
    assert not linked.is_automatic_forward
    assert linked.origin_chat_id == -5
    assert linked.origin_message_id is None


def test_build_linked_message_plain_group_message() -> None:
    linked = build_linked_message(DummyMessage(chat_id=-100999, message_id=80, text="nice"))
    assert not linked.is_automatic_forward
    assert linked.origin_chat_id is None
    assert linked.origin_message_id is None
