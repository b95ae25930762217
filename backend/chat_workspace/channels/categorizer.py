"""Channel validation, deduplication and categorization."""

from __future__ import annotations

import dataclasses
from typing import Iterable, Sequence

from chat_workspace.core.logging import get_logger
from chat_workspace.core.metrics import MALFORMED_CHANNELS
from chat_workspace.models.entities import CategorizedChannelSet, ChannelRecord, UserIdentity

logger = get_logger(__name__)

PAIR_SEPARATOR = "|"


def _current_uid(current_user: UserIdentity | None) -> str | None:
    return current_user.uid if current_user is not None else None


def _drop(channel: ChannelRecord, reason: str, message: str) -> bool:
    MALFORMED_CHANNELS.labels(reason=reason).inc()
    logger.warning(message, channel.channel_id)
    return False


def is_valid_direct_message(channel: ChannelRecord, current_user: UserIdentity | None) -> bool:
    """Exactly two non-empty member ids, one of which is the current user."""
    members = channel.channel_members
    if len(members) != 2:
        return _drop(channel, "member_count", "Dropping direct message %s: expected 2 members")
    if not all(members):
        return _drop(channel, "empty_member", "Dropping direct message %s: empty member id")
    uid = _current_uid(current_user)
    if uid is None or uid not in members:
        return _drop(channel, "not_member", "Dropping direct message %s: current user is not a member")
    return True


def filter_valid_channels(
    channels: Iterable[ChannelRecord] | None,
    current_user: UserIdentity | None,
) -> list[ChannelRecord]:
    """Drop malformed direct-message records; other channels pass through."""
    return [
        channel
        for channel in channels or ()
        if not channel.is_direct_message or is_valid_direct_message(channel, current_user)
    ]


def pair_key(channel: ChannelRecord) -> str:
    return PAIR_SEPARATOR.join(sorted(channel.channel_members))


def remove_duplicate_channels(channels: Iterable[ChannelRecord] | None) -> list[ChannelRecord]:
    """Keep the first direct message per member pair, preserving order."""
    seen: set[str] = set()
    unique: list[ChannelRecord] = []
    for channel in channels or ():
        if channel.is_direct_message:
            key = pair_key(channel)
            if key in seen:
                continue
            seen.add(key)
        unique.append(channel)
    return unique


def is_self_channel(channel: ChannelRecord, current_user: UserIdentity | None) -> bool:
    members = channel.channel_members
    if len(members) == 1:
        return True
    uid = _current_uid(current_user)
    return len(members) == 2 and uid is not None and all(member == uid for member in members)


def categorize_channels(
    channels: Iterable[ChannelRecord] | None,
    current_user: UserIdentity | None,
) -> CategorizedChannelSet:
    """Split the channels the current user belongs to into regular, direct and self."""
    result = CategorizedChannelSet()
    uid = _current_uid(current_user)
    if uid is None:
        return result
    for channel in channels or ():
        if uid not in channel.channel_members:
            continue
        if not channel.is_direct_message:
            result.regular_channels.append(channel)
        elif is_self_channel(channel, current_user):
            result.self_channel = channel
        else:
            result.direct_message_channels.append(channel)
    return result


def build_channel_view(
    channels: Sequence[ChannelRecord] | None,
    current_user: UserIdentity | None,
) -> CategorizedChannelSet:
    """Validate, deduplicate and categorize a raw channel listing for one user."""
    cleaned = remove_duplicate_channels(filter_valid_channels(channels, current_user))
    return categorize_channels(cleaned, current_user)


def find_channel_by_id(
    channel_id: str,
    channels: Sequence[ChannelRecord] | None,
    direct_message_channels: Sequence[ChannelRecord] | None,
    self_channel: ChannelRecord | None,
) -> ChannelRecord | None:
    for channel in channels or ():
        if channel.channel_id == channel_id:
            return channel
    for channel in direct_message_channels or ():
        if channel.channel_id == channel_id:
            return channel
    if self_channel is not None and self_channel.channel_id == channel_id:
        return self_channel
    return None


def get_available_users_for_new_dm(
    all_users: Iterable[UserIdentity] | None,
    direct_message_channels: Sequence[ChannelRecord] | None,
) -> list[UserIdentity]:
    """Users that no existing direct message already includes."""
    taken: set[str] = set()
    for channel in direct_message_channels or ():
        taken.update(channel.channel_members)
    return [user for user in all_users or () if user.uid not in taken]


def normalize_self_channel_members(channel: ChannelRecord) -> ChannelRecord:
    """Rewrite a single-member direct message into the canonical ``[uid, uid]`` form."""
    if channel.is_direct_message and len(channel.channel_members) == 1:
        uid = channel.channel_members[0]
        return dataclasses.replace(channel, channel_members=[uid, uid])
    return channel


__all__ = [
    "filter_valid_channels",
    "is_valid_direct_message",
    "remove_duplicate_channels",
    "pair_key",
    "is_self_channel",
    "categorize_channels",
    "build_channel_view",
    "find_channel_by_id",
    "get_available_users_for_new_dm",
    "normalize_self_channel_members",
]
