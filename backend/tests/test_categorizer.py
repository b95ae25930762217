"""Tests for channel validation, deduplication and categorization."""

from __future__ import annotations

import logging

import pytest

from chat_workspace.channels.categorizer import (
    build_channel_view,
    categorize_channels,
    filter_valid_channels,
    find_channel_by_id,
    get_available_users_for_new_dm,
    is_self_channel,
    normalize_self_channel_members,
    remove_duplicate_channels,
)
from conftest import channel, user

U1 = user("u1")


def test_end_to_end_example() -> None:
    channels = [
        channel("c1", ["u1", "u2"], dm=True),
        channel("c1dup", ["u2", "u1"], dm=True),
        channel("c2", ["u1", "u3"]),
    ]
    cleaned = remove_duplicate_channels(filter_valid_channels(channels, U1))
    direct = [c for c in cleaned if c.is_direct_message]
    assert len(direct) == 1
    assert direct[0].channel_id in {"c1", "c1dup"}

    result = categorize_channels(cleaned, U1)
    assert [c.channel_id for c in result.regular_channels] == ["c2"]
    assert result.direct_message_channels == direct
    assert result.self_channel is None


def test_dedup_is_idempotent() -> None:
    channels = [
        channel("a", ["u1", "u2"], dm=True),
        channel("b", ["u2", "u1"], dm=True),
        channel("c", ["u1", "u3"], dm=True),
        channel("d", ["u3", "u1"], dm=True),
        channel("e", ["u1", "u1"], dm=True),
    ]
    once = remove_duplicate_channels(channels)
    assert [c.channel_id for c in once] == ["a", "c", "e"]
    assert remove_duplicate_channels(once) == once


def test_dedup_keeps_regular_channels_with_same_members() -> None:
    channels = [channel("x", ["u1", "u2"]), channel("y", ["u2", "u1"])]
    assert remove_duplicate_channels(channels) == channels


@pytest.mark.parametrize("members", [["u1"], ["u1", "u2", "u3"]])
def test_malformed_direct_messages_are_filtered(members: list[str], caplog: pytest.LogCaptureFixture) -> None:
    record = channel("bad", members, dm=True)
    with caplog.at_level(logging.WARNING):
        assert filter_valid_channels([record], U1) == []
    assert "bad" in caplog.text


def test_filter_drops_empty_member_and_foreign_pairs() -> None:
    records = [
        channel("empty", ["u1", ""], dm=True),
        channel("foreign", ["u2", "u3"], dm=True),
        channel("ok", ["u1", "u2"], dm=True),
        channel("group", ["u2", "u3"]),
    ]
    kept = filter_valid_channels(records, U1)
    assert [c.channel_id for c in kept] == ["ok", "group"]


def test_filter_without_current_user_drops_all_direct_messages() -> None:
    records = [channel("ok", ["u1", "u2"], dm=True), channel("group", ["u1"])]
    assert [c.channel_id for c in filter_valid_channels(records, None)] == ["group"]


def test_self_channel_detection() -> None:
    assert is_self_channel(channel("s", ["u1", "u1"], dm=True), U1)
    assert not is_self_channel(channel("d", ["u1", "u2"], dm=True), U1)
    assert is_self_channel(channel("legacy", ["u1"], dm=True), U1)


def test_partition_is_disjoint() -> None:
    channels = [
        channel("g1", ["u1", "u2"]),
        channel("g2", ["u2", "u3"]),
        channel("d1", ["u1", "u2"], dm=True),
        channel("s1", ["u1", "u1"], dm=True),
    ]
    result = categorize_channels(channels, U1)
    ids = (
        [c.channel_id for c in result.regular_channels]
        + [c.channel_id for c in result.direct_message_channels]
        + ([result.self_channel.channel_id] if result.self_channel else [])
    )
    assert sorted(ids) == ["d1", "g1", "s1"]
    assert len(ids) == len(set(ids))


def test_categorize_handles_missing_inputs() -> None:
    empty = categorize_channels(None, U1)
    assert empty.regular_channels == [] and empty.direct_message_channels == []
    assert categorize_channels([channel("g", ["u1"])], None).regular_channels == []


def test_build_view_and_lookup() -> None:
    channels = [
        channel("g1", ["u1", "u2"]),
        channel("d1", ["u1", "u2"], dm=True),
        channel("d2", ["u2", "u1"], dm=True),
        channel("s1", ["u1", "u1"], dm=True),
    ]
    view = build_channel_view(channels, U1)
    assert [c.channel_id for c in view.direct_message_channels] == ["d1"]
    assert view.self_channel is not None and view.self_channel.channel_id == "s1"

    args = (view.regular_channels, view.direct_message_channels, view.self_channel)
    assert find_channel_by_id("g1", *args).channel_id == "g1"
    assert find_channel_by_id("s1", *args).channel_id == "s1"
    assert find_channel_by_id("d2", *args) is None
    assert find_channel_by_id("missing", None, None, None) is None


def test_available_users_for_new_dm() -> None:
    users = [user("u1"), user("u2"), user("u3")]
    direct = [channel("d1", ["u1", "u2"], dm=True)]
    assert [u.uid for u in get_available_users_for_new_dm(users, direct)] == ["u3"]
    assert get_available_users_for_new_dm(None, direct) == []


def test_normalize_self_channel_members() -> None:
    legacy = channel("s", ["u1"], dm=True)
    assert normalize_self_channel_members(legacy).channel_members == ["u1", "u1"]
    assert legacy.channel_members == ["u1"]
    group = channel("g", ["u1"])
    assert normalize_self_channel_members(group) is group
