"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class StreamStatus:
    """One observation of a channel's live status."""

    live: bool
    stream_id: Optional[str] = None
    title: Optional[str] = None
    user_name: Optional[str] = None

    @classmethod
    def offline(cls) -> "StreamStatus":
        return cls(live=False)


@dataclass
class ReconciliationState:
    """Persisted per-channel notification state.

    Message maps are keyed by destination chat id. A ``None`` value means the
    destination is known but has no live notification to edit or unpin.
    ``retry_stream_id``/``retry_count`` count failed announcements of one
    stream; ``unpinned_groups`` lists groups whose notification failed to pin.
    """

    last_stream_id: Optional[str] = None
    last_title: Optional[str] = None
    channel_messages: Dict[int, Optional[int]] = field(default_factory=dict)
    group_messages: Dict[int, Optional[int]] = field(default_factory=dict)
    retry_stream_id: Optional[str] = None
    retry_count: int = 0
    unpinned_groups: List[int] = field(default_factory=list)

    def pending_unpins(self) -> Dict[int, int]:
        return {
            group_id: message_id
            for group_id, message_id in self.group_messages.items()
            if message_id is not None
        }


@dataclass(frozen=True)
class ForwardedMessage:
    """An inbound group message that forwards a channel post."""

    chat_id: int
    message_id: int
    origin_chat_id: int
    origin_message_id: int
