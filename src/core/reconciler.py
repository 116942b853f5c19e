"""Notification reconciliation.

This module is integration-agnostic. Given a channel's configured
destinations, its persisted state, and a fresh status observation, it decides
which messages to send, edit, pin, or unpin and records the outcome.

The state object is mutated in place and written after every destination
that changed, so a crash mid fan-out loses at most one destination's worth of
progress.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping

from core.config import ChannelConfig
from core.errors import EntityResolutionError, MessageNotFoundError
from core.models import ReconciliationState, StreamStatus
from core.ports import DispatcherPort, StateStorePort, StatusSourcePort

LOGGER = logging.getLogger(__name__)

Formatter = Callable[[StreamStatus], str]


class NotificationReconciler:
    """Keeps destination messages in line with a channel's live status."""

    def __init__(
        self,
        status_source: StatusSourcePort,
        dispatchers: Mapping[str, DispatcherPort],
        store: StateStorePort,
        formatter: Formatter,
        announce_attempts: int = 3,
    ) -> None:
        self._status_source = status_source
        self._dispatchers = dict(dispatchers)
        self._store = store
        self._formatter = formatter
        self._announce_attempts = max(1, announce_attempts)

    async def reconcile(self, channel: ChannelConfig) -> None:
        """Look up the channel's status and apply it.

        Resolution failures raise before any state or destination is touched.
        """

        LOGGER.info("Checking channel %s", channel.name)
        user_id = await self._status_source.resolve_user_id(channel.name)
        if not user_id:
            raise EntityResolutionError(channel.name)
        LOGGER.debug("Channel %s has user id %s", channel.name, user_id)

        status = await self._status_source.get_live_status(user_id)
        await self.apply(channel, status)

    async def apply(self, channel: ChannelConfig, status: StreamStatus) -> None:
        """Apply one status observation to the channel's destinations."""

        dispatcher = self._dispatcher_for(channel)
        state = self._store.get(channel.name)

        if not status.live:
            await self._handle_offline(channel, state, dispatcher)
            return

        LOGGER.info("%s is online: %s", channel.name, status.title)
        same_session = state.last_stream_id is not None and state.last_stream_id == status.stream_id
        if same_session and state.unpinned_groups:
            await self._retry_pins(channel, state, dispatcher)

        if state.last_title is not None and state.last_title == status.title:
            LOGGER.info("Already notified %s with this title, skipping", channel.name)
            return

        text = self._formatter(status)
        if same_session:
            await self._edit_existing(channel, state, status, dispatcher, text)
            return

        await self._announce(channel, state, status, dispatcher, text)

    def _dispatcher_for(self, channel: ChannelConfig) -> DispatcherPort:
        try:
            return self._dispatchers[channel.bot]
        except KeyError:
            raise RuntimeError(f"Unknown bot {channel.bot!r} for channel {channel.name}") from None

    async def _unpin_group(
        self,
        channel: ChannelConfig,
        state: ReconciliationState,
        dispatcher: DispatcherPort,
        group_id: int,
        message_id: int,
    ) -> bool:
        """Unpin one group notification and clear its entry.

        Returns False, leaving the entry in place, when the unpin failed.
        """

        try:
            await dispatcher.unpin(group_id, message_id)
            LOGGER.info("Unpinned notification %s in %s", message_id, group_id)
        except MessageNotFoundError:
            LOGGER.info("Notification %s in %s is already gone", message_id, group_id)
        except Exception:
            LOGGER.exception("Failed to unpin %s in %s for %s", message_id, group_id, channel.name)
            return False
        state.group_messages[group_id] = None
        if group_id in state.unpinned_groups:
            state.unpinned_groups.remove(group_id)
        self._store.write()
        return True

    async def _handle_offline(
        self,
        channel: ChannelConfig,
        state: ReconciliationState,
        dispatcher: DispatcherPort,
    ) -> None:
        pending = state.pending_unpins()
        if (
            state.last_stream_id is None
            and state.last_title is None
            and state.retry_stream_id is None
            and not pending
        ):
            LOGGER.debug("%s is still offline", channel.name)
            return

        LOGGER.info("%s is offline", channel.name)
        for group_id, message_id in pending.items():
            await self._unpin_group(channel, state, dispatcher, group_id, message_id)

        # Direct channel messages stay as they are; only the session markers reset.
        state.last_stream_id = None
        state.last_title = None
        state.retry_stream_id = None
        state.retry_count = 0
        state.unpinned_groups.clear()
        self._store.write()

    async def _retry_pins(
        self,
        channel: ChannelConfig,
        state: ReconciliationState,
        dispatcher: DispatcherPort,
    ) -> None:
        for group_id in list(state.unpinned_groups):
            message_id = state.group_messages.get(group_id)
            if message_id is not None:
                try:
                    await dispatcher.pin(group_id, message_id)
                except Exception:
                    LOGGER.exception("Pin retry failed for %s in %s for %s", message_id, group_id, channel.name)
                    continue
                LOGGER.info("Pinned notification %s in %s", message_id, group_id)
            state.unpinned_groups.remove(group_id)
        self._store.write()

    async def _edit_existing(
        self,
        channel: ChannelConfig,
        state: ReconciliationState,
        status: StreamStatus,
        dispatcher: DispatcherPort,
        text: str,
    ) -> None:
        LOGGER.info("Title changed for %s, updating notifications", channel.name)
        failed = False
        for messages in (state.channel_messages, state.group_messages):
            for destination_id, message_id in list(messages.items()):
                if message_id is None:
                    LOGGER.warning(
                        "No message id recorded for %s in %s, skipping edit",
                        channel.name,
                        destination_id,
                    )
                    continue
                try:
                    await dispatcher.edit(destination_id, message_id, text)
                except MessageNotFoundError:
                    LOGGER.warning(
                        "Notification %s in %s was deleted, dropping it", message_id, destination_id
                    )
                    messages[destination_id] = None
                except Exception:
                    LOGGER.exception(
                        "Failed to edit %s in %s for %s", message_id, destination_id, channel.name
                    )
                    failed = True

        if failed:
            # Keep the old title so the next sweep retries the edit.
            LOGGER.warning("Some edits failed for %s, will retry", channel.name)
        else:
            state.last_title = status.title
        self._store.write()

    async def _announce(
        self,
        channel: ChannelConfig,
        state: ReconciliationState,
        status: StreamStatus,
        dispatcher: DispatcherPort,
        text: str,
    ) -> None:
        attempt = 1
        if state.retry_stream_id is not None and state.retry_stream_id == status.stream_id:
            attempt = state.retry_count + 1
        LOGGER.info("New stream detected for %s, notifying (attempt %s)", channel.name, attempt)
        if _prune_destinations(channel, state):
            self._store.write()

        failed = False
        for channel_id in channel.channel_ids:
            try:
                message_id = await dispatcher.send(channel_id, text)
            except Exception:
                LOGGER.exception("Failed to notify %s in %s", channel.name, channel_id)
                failed = True
                continue
            state.channel_messages[channel_id] = message_id
            self._store.write()

        for group_id in channel.group_ids:
            # The previous pin is released before its id is replaced.
            previous = state.group_messages.get(group_id)
            if previous is not None and not await self._unpin_group(
                channel, state, dispatcher, group_id, previous
            ):
                failed = True
                continue
            try:
                message_id = await dispatcher.send(group_id, text)
            except Exception:
                LOGGER.exception("Failed to notify %s in %s", channel.name, group_id)
                failed = True
                continue
            state.group_messages[group_id] = message_id
            self._store.write()
            try:
                await dispatcher.pin(group_id, message_id)
            except Exception:
                LOGGER.exception("Failed to pin %s in %s for %s", message_id, group_id, channel.name)
                state.unpinned_groups.append(group_id)
                self._store.write()

        if failed and attempt < self._announce_attempts:
            # Session markers stay behind so the next sweep repeats the fan-out.
            state.retry_stream_id = status.stream_id
            state.retry_count = attempt
            self._store.write()
            LOGGER.warning("Notification for %s was incomplete, will retry", channel.name)
            return
        if failed:
            LOGGER.warning(
                "Notification for %s still incomplete after %s attempts, giving up", channel.name, attempt
            )

        state.last_stream_id = status.stream_id
        state.last_title = status.title
        state.retry_stream_id = None
        state.retry_count = 0
        self._store.write()


def _prune_destinations(channel: ChannelConfig, state: ReconciliationState) -> bool:
    """Drop entries for destinations no longer configured."""

    removed = False
    for messages, configured in (
        (state.channel_messages, channel.channel_ids),
        (state.group_messages, channel.group_ids),
    ):
        stale = [destination_id for destination_id in messages if destination_id not in configured]
        for destination_id in stale:
            LOGGER.info("Dropping %s from %s, no longer configured", destination_id, channel.name)
            del messages[destination_id]
            removed = True
    state.unpinned_groups[:] = [group_id for group_id in state.unpinned_groups if group_id in channel.group_ids]
    return removed
