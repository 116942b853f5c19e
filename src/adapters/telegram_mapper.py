"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the forward tracker.
"""

from __future__ import annotations

from typing import Optional

from telethon import utils
from telethon.tl.custom import Message
from telethon.tl.types import PeerChannel

from core.models import ForwardedMessage


def _origin_from_forward(message: Message) -> Optional[tuple[int, int]]:
    fwd_from = getattr(message, "fwd_from", None)
    if fwd_from is None:
        return None

    # Channel posts carry the origin post id; user forwards do not.
    channel_post = getattr(fwd_from, "channel_post", None)
    from_id = getattr(fwd_from, "from_id", None)
    if channel_post and isinstance(from_id, PeerChannel):
        return utils.get_peer_id(from_id), channel_post

    saved_peer = getattr(fwd_from, "saved_from_peer", None)
    saved_msg_id = getattr(fwd_from, "saved_from_msg_id", None)
    if saved_msg_id and isinstance(saved_peer, PeerChannel):
        return utils.get_peer_id(saved_peer), saved_msg_id
    return None


def build_forwarded_message(message: Message) -> Optional[ForwardedMessage]:
    """Return a ForwardedMessage for channel forwards, or None for anything else."""

    origin = _origin_from_forward(message)
    if origin is None:
        return None
    origin_chat_id, origin_message_id = origin
    return ForwardedMessage(
        chat_id=message.chat_id,
        message_id=message.id,
        origin_chat_id=origin_chat_id,
        origin_message_id=origin_message_id,
    )
