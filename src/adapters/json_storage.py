"""JSON snapshot storage adapter.

Implements the core StateStorePort with a single JSON document keyed by
channel name. Every write replaces the whole file.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from typing import Dict, Iterable, Optional

from core.errors import StateStoreError
from core.models import ReconciliationState

LOGGER = logging.getLogger(__name__)


def _load_messages(raw: Optional[dict]) -> Dict[int, Optional[int]]:
    messages: Dict[int, Optional[int]] = {}
    for destination_id, message_id in (raw or {}).items():
        messages[int(destination_id)] = int(message_id) if message_id is not None else None
    return messages


def state_from_dict(raw: dict) -> ReconciliationState:
    """Build a state record, filling defaults for missing fields."""

    return ReconciliationState(
        last_stream_id=raw.get("lastStreamId"),
        last_title=raw.get("lastTitle"),
        channel_messages=_load_messages(raw.get("channelMessages")),
        group_messages=_load_messages(raw.get("groupMessages")),
        retry_stream_id=raw.get("retryStreamId"),
        retry_count=int(raw.get("retryCount") or 0),
        unpinned_groups=[int(group_id) for group_id in raw.get("unpinnedGroups") or []],
    )


def state_to_dict(state: ReconciliationState) -> dict:
    return {
        "lastStreamId": state.last_stream_id,
        "lastTitle": state.last_title,
        "channelMessages": {str(k): v for k, v in state.channel_messages.items()},
        "groupMessages": {str(k): v for k, v in state.group_messages.items()},
        "retryStreamId": state.retry_stream_id,
        "retryCount": state.retry_count,
        "unpinnedGroups": list(state.unpinned_groups),
    }


class JsonStateStore:
    """In-memory mirror of the snapshot file with explicit writes."""

    def __init__(self, path: str) -> None:
        self._path = path
        self._states: Dict[str, ReconciliationState] = {}
        # Shared by the scheduler and the inbound forward handler.
        self.lock = asyncio.Lock()

    @property
    def path(self) -> str:
        return self._path

    def load(self, names: Iterable[str] = ()) -> None:
        """Read the snapshot and create default records for new channels.

        A missing file starts empty; an unreadable one raises StateStoreError.
        """

        raw: dict = {}
        if os.path.exists(self._path):
            try:
                with open(self._path, "r", encoding="utf-8") as handle:
                    raw = json.load(handle) or {}
            except (OSError, ValueError) as error:
                raise StateStoreError(f"Cannot read state file {self._path}: {error}") from error
            if not isinstance(raw, dict):
                raise StateStoreError(f"State file {self._path} must contain a JSON object")

        try:
            self._states = {name: state_from_dict(entry or {}) for name, entry in raw.items()}
        except (AttributeError, TypeError, ValueError) as error:
            raise StateStoreError(f"Malformed state in {self._path}: {error}") from error
        LOGGER.info("Loaded state for %s channels from %s", len(self._states), self._path)

        self.ensure(names)
        self.write()

    def get(self, name: str) -> ReconciliationState:
        if name not in self._states:
            self._states[name] = ReconciliationState()
        return self._states[name]

    def names(self) -> set[str]:
        return set(self._states)

    def ensure(self, names: Iterable[str]) -> None:
        """Create default records for channels that have none yet."""

        added = [name for name in names if name not in self._states]
        for name in added:
            self._states[name] = ReconciliationState()
        if added:
            LOGGER.info("Tracking new channels: %s", ", ".join(added))
            self.write()

    def prune(self, names: Iterable[str]) -> set[str]:
        """Drop records for channels no longer configured and return their names."""

        keep = set(names)
        removed = {name for name in self._states if name not in keep}
        for name in removed:
            del self._states[name]
        if removed:
            self.write()
        return removed

    def snapshot(self) -> dict:
        return {name: state_to_dict(state) for name, state in self._states.items()}

    def write(self) -> None:
        """Replace the snapshot file atomically."""

        directory = os.path.dirname(os.path.abspath(self._path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".state-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self.snapshot(), handle, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
