"""Thread reply search."""

from __future__ import annotations

import asyncio
from typing import Iterable

from chat_workspace.models.dto import MessageResult
from chat_workspace.models.entities import ChannelRecord, MessageRecord
from chat_workspace.search.context import SearchContext, gather_flat
from chat_workspace.search.messages import enrich, filter_messages


def filter_messages_with_threads(messages: Iterable[MessageRecord]) -> list[MessageRecord]:
    return [message for message in messages if message.has_thread]


async def _reply_results(
    parent: MessageRecord,
    channel: ChannelRecord,
    term: str,
    ctx: SearchContext,
) -> list[MessageResult]:
    replies = filter_messages(await ctx.thread_messages(channel, parent), term)
    results = await asyncio.gather(
        *(enrich(reply, channel, ctx, replied_message_id=parent.message_id) for reply in replies)
    )
    for result in results:
        result.replier_name = result.user_name
    return list(results)


async def _channel_results(channel: ChannelRecord, term: str, ctx: SearchContext) -> list[MessageResult]:
    parents = filter_messages_with_threads(await ctx.messages(channel))
    return await gather_flat(parents, lambda parent: _reply_results(parent, channel, term, ctx))


async def search_threads(term: str, ctx: SearchContext) -> list[MessageResult]:
    channels = await ctx.documents.list_channels()
    readable = [channel for channel in channels if ctx.can_read(channel)]
    return await gather_flat(readable, lambda channel: _channel_results(channel, term, ctx))


__all__ = ["search_threads", "filter_messages_with_threads"]
