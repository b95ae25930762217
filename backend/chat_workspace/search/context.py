"""Shared state handed to every sub-search of one query."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, TypeVar

from chat_workspace.core.config import Settings
from chat_workspace.models.entities import ChannelRecord, MessageRecord, PresenceStatus, UserIdentity
from chat_workspace.presence.cache import read_presence_status
from chat_workspace.stores.base import DocumentStore, RealtimeStore
from chat_workspace.users.lookup import UserLookup

T = TypeVar("T")
R = TypeVar("R")


@dataclass(slots=True)
class SearchContext:
    documents: DocumentStore
    users: UserLookup
    presence: RealtimeStore
    settings: Settings
    current_user: UserIdentity | None = None
    fanout: asyncio.Semaphore | None = None

    def __post_init__(self) -> None:
        if self.fanout is None:
            self.fanout = asyncio.Semaphore(self.settings.search_fanout_limit)

    async def presence_status(self, uid: str) -> PresenceStatus | None:
        """Read at query time; statuses are never cached per result."""
        return await read_presence_status(self.presence, self.settings.presence_root, uid)

    async def messages(self, channel: ChannelRecord) -> list[MessageRecord]:
        async with self.fanout:
            return await self.documents.list_messages(channel.channel_id)

    async def thread_messages(self, channel: ChannelRecord, parent: MessageRecord) -> list[MessageRecord]:
        async with self.fanout:
            return await self.documents.list_thread_messages(channel.channel_id, parent.message_id)

    def can_read(self, channel: ChannelRecord) -> bool:
        """Regular channels are public; direct messages only to their members."""
        if not channel.is_direct_message:
            return True
        return self.current_user is not None and self.current_user.uid in channel.channel_members


async def gather_flat(items: Iterable[T], fn: Callable[[T], Awaitable[list[R]]]) -> list[R]:
    """Run ``fn`` over ``items`` concurrently and concatenate results in input order."""
    batches = await asyncio.gather(*(fn(item) for item in items))
    return [result for batch in batches for result in batch]
