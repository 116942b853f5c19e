"""Polling scheduler.

Runs one reconciliation sweep over every tracked channel per interval. Each
channel gets a hard time budget, and any failure is logged and confined to
that channel so the rest of the sweep still runs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Mapping

from core.config import ChannelConfig, PollingConfig
from core.errors import EntityResolutionError
from core.ports import StateStorePort
from core.reconciler import NotificationReconciler

LOGGER = logging.getLogger(__name__)

ChannelsProvider = Callable[[], Mapping[str, ChannelConfig]]


class PollScheduler:
    """Drives the reconciler on a fixed interval until stopped."""

    def __init__(
        self,
        reconciler: NotificationReconciler,
        store: StateStorePort,
        channels: Mapping[str, ChannelConfig],
        polling: PollingConfig,
        channels_provider: "ChannelsProvider | None" = None,
    ) -> None:
        self._reconciler = reconciler
        self._store = store
        self._channels: Dict[str, ChannelConfig] = dict(channels)
        self._polling = polling
        self._channels_provider = channels_provider
        self._stop_event = asyncio.Event()

    @property
    def channels(self) -> Dict[str, ChannelConfig]:
        return self._channels

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request shutdown; wakes the idle sleep but lets a running sweep finish."""

        if not self._stop_event.is_set():
            LOGGER.info("Stop requested")
        self._stop_event.set()

    async def run_forever(self) -> None:
        loop = asyncio.get_running_loop()
        while not self.stopping:
            started = loop.time()
            try:
                await self.sweep()
            except Exception:
                LOGGER.exception("Sweep failed")

            if self.stopping:
                break
            delay = max(0.0, self._polling.interval_seconds - (loop.time() - started))
            await self._sleep(delay)
        LOGGER.info("Scheduler stopped")

    async def _sleep(self, delay: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def sweep(self) -> None:
        """Reconcile every configured channel once, one at a time."""

        self._refresh_channels()
        async with self._store.lock:
            removed = self._store.prune(self._channels)
            if removed:
                LOGGER.info("Removed state for %s", ", ".join(sorted(removed)))
            self._store.ensure(self._channels)

        LOGGER.debug("Starting sweep over %s channels", len(self._channels))
        for channel in list(self._channels.values()):
            await self._reconcile_one(channel)

    async def _reconcile_one(self, channel: ChannelConfig) -> None:
        timeout = self._polling.entity_timeout_seconds
        try:
            async with self._store.lock:
                await asyncio.wait_for(self._reconciler.reconcile(channel), timeout=timeout)
        except asyncio.TimeoutError:
            LOGGER.warning("Update for %s timed out after %ss", channel.name, timeout)
        except EntityResolutionError as error:
            LOGGER.warning("Skipping %s: %s", channel.name, error)
        except Exception:
            LOGGER.exception("Update for %s failed", channel.name)

    def _refresh_channels(self) -> None:
        if self._channels_provider is None:
            return
        try:
            self._channels = dict(self._channels_provider())
        except Exception:
            LOGGER.exception("Failed to reload channel config, keeping previous")
