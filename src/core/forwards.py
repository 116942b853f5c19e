"""Inbound forward tracking.

When a channel post shows up in a linked group as a forward (for example the
automatic copy Telegram makes in a discussion group), the copy is recorded as
that group's live message so it gets unpinned when the stream ends.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Optional

from core.config import ChannelConfig
from core.models import ForwardedMessage
from core.ports import StateStorePort

LOGGER = logging.getLogger(__name__)


class ForwardTracker:
    """Records forwarded copies of known channel notifications."""

    def __init__(
        self,
        store: StateStorePort,
        channels_provider: Callable[[], Mapping[str, ChannelConfig]],
    ) -> None:
        self._store = store
        self._channels_provider = channels_provider

    async def handle(self, forwarded: ForwardedMessage) -> Optional[str]:
        """Record the forward if it matches a notification; return the channel name."""

        async with self._store.lock:
            tracked = self._store.names()
            for channel in self._channels_provider().values():
                if forwarded.chat_id not in channel.group_ids or channel.name not in tracked:
                    continue
                state = self._store.get(channel.name)
                if state.channel_messages.get(forwarded.origin_chat_id) != forwarded.origin_message_id:
                    continue
                if state.group_messages.get(forwarded.chat_id) is not None:
                    LOGGER.debug("Group %s already tracked for %s", forwarded.chat_id, channel.name)
                    return None

                state.group_messages[forwarded.chat_id] = forwarded.message_id
                self._store.write()
                LOGGER.info(
                    "Recorded forwarded notification %s in %s for %s",
                    forwarded.message_id,
                    forwarded.chat_id,
                    channel.name,
                )
                return channel.name
        return None
