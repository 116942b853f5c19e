from __future__ import annotations

import pytest

from core.config import build_channel_configs


def test_list_form_is_normalized() -> None:
    channels = build_channel_configs(
        {
            "foo": {"channel_ids": [-1001, "-1001", -1002], "group_ids": [-2001], "bot": "main"},
        }
    )

    foo = channels["foo"]
    assert foo.channel_ids == (-1001, -1002)
    assert foo.group_ids == (-2001,)
    assert foo.bot == "main"


def test_single_destination_form_is_accepted() -> None:
    channels = build_channel_configs(
        {
            "foo": {"channelId": -1001, "groupId": -2001, "bot": "main"},
            "bar": {"channelId": 0, "groupId": -2002, "bot": "main"},
        }
    )

    assert channels["foo"].channel_ids == (-1001,)
    assert channels["foo"].group_ids == (-2001,)
    assert channels["bar"].channel_ids == ()


def test_disabled_channels_are_skipped() -> None:
    channels = build_channel_configs({"foo": {"group_ids": [-2001], "bot": "main", "enabled": False}})

    assert channels == {}


def test_missing_bot_is_rejected() -> None:
    with pytest.raises(ValueError, match="no bot"):
        build_channel_configs({"foo": {"group_ids": [-2001]}})
