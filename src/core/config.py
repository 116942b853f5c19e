"""Core configuration dataclasses.

We keep config file loading outside the core, but these dataclasses define
the shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Tuple


@dataclass(frozen=True)
class ChannelConfig:
    """Destinations a tracked channel is mirrored to."""

    name: str
    channel_ids: Tuple[int, ...]
    group_ids: Tuple[int, ...]
    bot: str


@dataclass(frozen=True)
class PollingConfig:
    """Sweep timing and announcement retry settings."""

    interval_seconds: float = 30.0
    entity_timeout_seconds: float = 15.0
    announce_attempts: int = 3


def _normalize_ids(values: Iterable) -> Tuple[int, ...]:
    ids = []
    for value in values:
        if value in (None, "", 0):
            continue
        chat_id = int(value)
        if chat_id not in ids:
            ids.append(chat_id)
    return tuple(ids)


def build_channel_configs(raw_channels: Mapping[str, dict]) -> Dict[str, ChannelConfig]:
    """Normalize the ``channels`` config block.

    Accepts both the list form (``channel_ids``/``group_ids``) and the older
    single-destination form (``channelId``/``groupId``).
    """

    channels: Dict[str, ChannelConfig] = {}
    for name, entry in raw_channels.items():
        if not entry.get("enabled", True):
            continue
        bot = entry.get("bot")
        if not bot:
            raise ValueError(f"Channel {name!r} has no bot configured")

        channel_ids = list(entry.get("channel_ids", []) or [])
        group_ids = list(entry.get("group_ids", []) or [])
        if "channelId" in entry:
            channel_ids.append(entry["channelId"])
        if "groupId" in entry:
            group_ids.append(entry["groupId"])

        channels[name] = ChannelConfig(
            name=name,
            channel_ids=_normalize_ids(channel_ids),
            group_ids=_normalize_ids(group_ids),
            bot=str(bot),
        )
    return channels
