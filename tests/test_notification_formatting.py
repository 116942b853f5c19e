from __future__ import annotations

import re

import pytest

from adapters.notification_formatting import build_stream_link, format_live_notification
from core.models import StreamStatus


def test_format_live_notification_template() -> None:
    status = StreamStatus(live=True, stream_id="1", title="Hello", user_name="foo")

    message = format_live_notification(status, token="abcdef0123")

    assert message == (
        "Hello | IN ONDA | "
        "<a href='https://twitch.tv/foo?rid=abcdef0123'>twitch.tv/foo</a>"
    )


def test_title_markup_is_escaped() -> None:
    status = StreamStatus(live=True, stream_id="1", title="<b>R&D</b> 'live'", user_name="foo")

    message = format_live_notification(status, token="00")

    assert message.startswith("&lt;b&gt;R&amp;D&lt;/b&gt; &#x27;live&#x27; | IN ONDA")
    assert "<b>" not in message


def test_link_token_changes_per_render() -> None:
    first = build_stream_link("foo")
    second = build_stream_link("foo")

    tokens = [re.search(r"rid=([0-9a-f]+)", link).group(1) for link in (first, second)]
    assert all(len(token) == 10 for token in tokens)
    assert tokens[0] != tokens[1]


def test_missing_user_name_is_rejected() -> None:
    with pytest.raises(ValueError):
        format_live_notification(StreamStatus(live=True, stream_id="1", title="Hello"))
