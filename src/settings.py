"""Static configuration for onair.

Tracked channels, bot routing, polling, and logging live in a single JSON
file so they can be edited without touching Python. Secrets stay in the
environment.
"""

import json
import os

from core.config import ChannelConfig, PollingConfig, build_channel_configs

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.getenv("ONAIR_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def load_channels() -> dict[str, ChannelConfig]:
    """Re-read the channels block so edits apply at the next sweep."""

    return build_channel_configs(_load_json_config().get("channels", {}))


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Tracked Twitch logins and the chats each one is mirrored to.
CHANNELS = build_channel_configs(_CONFIG.get("channels", {}))

# Bot name -> name of the environment variable holding its token.
BOTS = dict(_CONFIG.get("bots", {}))

# Sweep timing; Twitch status is polled, never pushed.
_polling = _CONFIG.get("polling", {})
POLLING = PollingConfig(
    interval_seconds=float(_polling.get("interval_seconds", 30)),
    entity_timeout_seconds=float(_polling.get("entity_timeout_seconds", 15)),
    announce_attempts=int(_polling.get("announce_attempts", 3)),
)

# Where the JSON state snapshot is written.
STATE_PATH = _resolve_path(_CONFIG.get("state_path", "state.json"))

# Twitch app credentials are read from the environment at startup.
TWITCH_CLIENT_ID_ENV = "TWITCH_CLIENT_ID"
TWITCH_CLIENT_SECRET_ENV = "TWITCH_CLIENT_SECRET"

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
