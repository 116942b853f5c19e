"""Notification formatting helpers.

Keeping formatting here keeps the message template identical for sends and
edits across every destination.
"""

from __future__ import annotations

import html
import secrets
from typing import Optional

from core.models import StreamStatus

STATUS_LABEL = "IN ONDA"
STREAM_BASE_URL = "https://twitch.tv"


def build_stream_link(user_name: str, token: Optional[str] = None) -> str:
    """Return the HTML deep link for a channel.

    The ``rid`` query token is random per render so Telegram does not reuse a
    cached link preview from an earlier stream.
    """

    rid = token if token is not None else secrets.token_hex(5)
    safe_user = html.escape(user_name)
    return f"<a href='{STREAM_BASE_URL}/{safe_user}?rid={rid}'>twitch.tv/{safe_user}</a>"


def format_live_notification(status: StreamStatus, token: Optional[str] = None) -> str:
    """Return the HTML notification for a live stream."""

    if not status.user_name:
        raise ValueError("Live status is missing the channel user name")
    title = html.escape(status.title or "")
    return f"{title} | {STATUS_LABEL} | {build_stream_link(status.user_name, token)}"
