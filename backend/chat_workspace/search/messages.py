"""Message and direct-message search."""

from __future__ import annotations

import asyncio
from typing import Iterable

from chat_workspace.models.dto import MessageResult
from chat_workspace.models.entities import ChannelRecord, MessageRecord, PresenceStatus, UserIdentity
from chat_workspace.search.context import SearchContext, gather_flat
from chat_workspace.utils.text import contains_casefold


def filter_messages(messages: Iterable[MessageRecord], term: str) -> list[MessageRecord]:
    return [message for message in messages if contains_casefold(message.text, term)]


def other_participant(channel: ChannelRecord, current_uid: str) -> str | None:
    """First member of a direct message that is not the current user."""
    for member in channel.channel_members:
        if member and member != current_uid:
            return member
    return None


def to_message_result(
    message: MessageRecord,
    channel: ChannelRecord,
    author: UserIdentity | None,
    status: PresenceStatus | None,
    **extra: str | None,
) -> MessageResult:
    return MessageResult(
        message_id=message.message_id,
        message_author_id=message.uid,
        message_content=message.text,
        time=message.timestamp,
        channel_id=channel.channel_id,
        channel_name=channel.channel_name,
        user_name=author.user_name if author else "",
        email=author.email if author else "",
        photo_url=author.photo_url if author else "",
        status=status,
        **extra,
    )


async def enrich(
    message: MessageRecord,
    channel: ChannelRecord,
    ctx: SearchContext,
    **extra: str | None,
) -> MessageResult:
    author, status = await asyncio.gather(
        ctx.users.get_user(message.uid),
        ctx.presence_status(message.uid),
    )
    return to_message_result(message, channel, author, status, **extra)


async def _channel_results(channel: ChannelRecord, term: str, ctx: SearchContext) -> list[MessageResult]:
    matched = filter_messages(await ctx.messages(channel), term)
    return list(await asyncio.gather(*(enrich(message, channel, ctx) for message in matched)))


async def search_messages(term: str, ctx: SearchContext) -> list[MessageResult]:
    channels = await ctx.documents.list_channels()
    regular = [channel for channel in channels if not channel.is_direct_message]
    return await gather_flat(regular, lambda channel: _channel_results(channel, term, ctx))


async def _direct_message_results(
    channel: ChannelRecord,
    term: str,
    ctx: SearchContext,
    current_uid: str,
) -> list[MessageResult]:
    other_uid = other_participant(channel, current_uid)
    if other_uid is None:
        return []
    messages, other = await asyncio.gather(ctx.messages(channel), ctx.users.get_user(other_uid))
    matched = filter_messages(messages, term)
    other_name = other.user_name if other else ""
    return list(
        await asyncio.gather(
            *(
                enrich(
                    message,
                    channel,
                    ctx,
                    direct_message_user_id=other_uid,
                    direct_message_user_name=other_name,
                )
                for message in matched
            )
        )
    )


async def search_direct_messages(term: str, ctx: SearchContext) -> list[MessageResult]:
    if ctx.current_user is None:
        return []
    current_uid = ctx.current_user.uid
    channels = await ctx.documents.list_channels()
    direct = [channel for channel in channels if channel.is_direct_message and ctx.can_read(channel)]
    return await gather_flat(direct, lambda channel: _direct_message_results(channel, term, ctx, current_uid))


__all__ = [
    "search_messages",
    "search_direct_messages",
    "filter_messages",
    "other_participant",
    "to_message_result",
    "enrich",
]
