from __future__ import annotations

from telethon.tl.types import PeerChannel, PeerUser

from adapters.telegram_mapper import build_forwarded_message


class DummyForward:
    def __init__(
        self,
        from_id=None,
        channel_post: "int | None" = None,
        saved_from_peer=None,
        saved_from_msg_id: "int | None" = None,
    ) -> None:
        self.from_id = from_id
        self.channel_post = channel_post
        self.saved_from_peer = saved_from_peer
        self.saved_from_msg_id = saved_from_msg_id


class DummyMessage:
    def __init__(self, *, chat_id: int, message_id: int, fwd_from=None) -> None:
        self.chat_id = chat_id
        self.id = message_id
        self.fwd_from = fwd_from


def test_channel_post_forward_is_mapped() -> None:
    message = DummyMessage(
        chat_id=-1000000000456,
        message_id=99,
        fwd_from=DummyForward(from_id=PeerChannel(channel_id=123), channel_post=7),
    )

    forwarded = build_forwarded_message(message)

    assert forwarded is not None
    assert forwarded.chat_id == -1000000000456
    assert forwarded.message_id == 99
    assert forwarded.origin_chat_id == -1000000000123
    assert forwarded.origin_message_id == 7


def test_saved_from_peer_is_used_as_fallback() -> None:
    message = DummyMessage(
        chat_id=-1000000000456,
        message_id=100,
        fwd_from=DummyForward(saved_from_peer=PeerChannel(channel_id=123), saved_from_msg_id=8),
    )

    forwarded = build_forwarded_message(message)

    assert forwarded is not None
    assert forwarded.origin_chat_id == -1000000000123
    assert forwarded.origin_message_id == 8


def test_plain_and_user_forwards_are_ignored() -> None:
    plain = DummyMessage(chat_id=-1000000000456, message_id=1)
    from_user = DummyMessage(
        chat_id=-1000000000456,
        message_id=2,
        fwd_from=DummyForward(from_id=PeerUser(user_id=5)),
    )

    assert build_forwarded_message(plain) is None
    assert build_forwarded_message(from_user) is None
