"""Channel search over regular (non direct-message) channels."""

from __future__ import annotations

from typing import Iterable

from chat_workspace.models.dto import ChannelResult
from chat_workspace.models.entities import ChannelRecord
from chat_workspace.search.context import SearchContext
from chat_workspace.utils.text import matches_any


def filter_channels(channels: Iterable[ChannelRecord], term: str) -> list[ChannelRecord]:
    return [
        channel
        for channel in channels
        if not channel.is_direct_message
        and matches_any(term, channel.channel_name, channel.channel_description)
    ]


def to_channel_result(channel: ChannelRecord) -> ChannelResult:
    return ChannelResult(
        channel_id=channel.channel_id,
        channel_name=channel.channel_name,
        channel_description=channel.channel_description,
        channel_members=list(channel.channel_members),
    )


async def search_channels(term: str, ctx: SearchContext) -> list[ChannelResult]:
    channels = await ctx.documents.list_channels()
    return [to_channel_result(channel) for channel in filter_channels(channels, term)]


__all__ = ["search_channels", "filter_channels", "to_channel_result"]
