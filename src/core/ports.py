"""Ports (interfaces) used by the core.

Ports define the minimal contracts for the status source, the message
dispatcher, and the state store so the core can run against fakes in tests
and against Twitch/Telegram in production.
"""

from __future__ import annotations

import asyncio
from typing import Iterable, Optional, Protocol

from core.models import ReconciliationState, StreamStatus


class StatusSourcePort(Protocol):
    """Live status lookups required by the reconciler."""

    async def resolve_user_id(self, name: str) -> Optional[str]:
        ...

    async def get_live_status(self, user_id: str) -> StreamStatus:
        ...


class DispatcherPort(Protocol):
    """Message operations required by the reconciler.

    ``unpin`` and ``edit`` raise ``MessageNotFoundError`` when the message is
    gone; any other exception is treated as a transient destination failure.
    """

    async def send(self, destination_id: int, text: str) -> int:
        ...

    async def edit(self, destination_id: int, message_id: int, text: str) -> None:
        ...

    async def pin(self, destination_id: int, message_id: int) -> None:
        ...

    async def unpin(self, destination_id: int, message_id: int) -> None:
        ...


class StateStorePort(Protocol):
    """Snapshot persistence required by the reconciler and scheduler."""

    lock: asyncio.Lock

    def get(self, name: str) -> ReconciliationState:
        ...

    def names(self) -> set[str]:
        ...

    def ensure(self, names: Iterable[str]) -> None:
        ...

    def prune(self, names: Iterable[str]) -> set[str]:
        ...

    def write(self) -> None:
        ...
