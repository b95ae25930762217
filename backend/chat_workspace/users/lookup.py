"""Cached user lookups shared by search and the HTTP service."""

from __future__ import annotations

import asyncio
from typing import Iterable

from chat_workspace.core.logging import get_logger
from chat_workspace.models.entities import UserIdentity
from chat_workspace.stores.base import DocumentStore

logger = get_logger(__name__)


class UserLookup:
    """Per-session user cache.

    Found users are cached until ``clear``; misses are not, so a user that
    appears later resolves on the next call. Concurrent lookups of the same
    uid share one fetch.
    """

    def __init__(self, documents: DocumentStore, batch_size: int = 10) -> None:
        self._documents = documents
        self._batch_size = max(1, batch_size)
        self._cache: dict[str, UserIdentity] = {}
        self._inflight: dict[str, asyncio.Task[UserIdentity | None]] = {}

    def __contains__(self, uid: object) -> bool:
        return uid in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    async def get_user(self, uid: str | None) -> UserIdentity | None:
        if not uid:
            return None
        cached = self._cache.get(uid)
        if cached is not None:
            return cached
        task = self._inflight.get(uid)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._fetch(uid))
            self._inflight[uid] = task
            task.add_done_callback(lambda done, key=uid: self._forget(key, done))
        return await asyncio.shield(task)

    async def get_users_by_ids(self, uids: Iterable[str] | None) -> list[UserIdentity]:
        """Resolve many uids, batching store reads; unknown ids are omitted."""
        unique = list(dict.fromkeys(uid for uid in uids or () if uid))
        missing = [uid for uid in unique if uid not in self._cache]
        for start in range(0, len(missing), self._batch_size):
            batch = missing[start : start + self._batch_size]
            for user in await self._documents.get_users(batch):
                self._cache[user.uid] = user
        return [self._cache[uid] for uid in unique if uid in self._cache]

    def prime(self, users: Iterable[UserIdentity]) -> None:
        for user in users:
            self._cache[user.uid] = user

    def clear_user(self, uid: str) -> None:
        self._cache.pop(uid, None)

    def clear(self) -> None:
        self._cache.clear()

    async def _fetch(self, uid: str) -> UserIdentity | None:
        user = await self._documents.get_user(uid)
        if user is None:
            logger.debug("User %s not found", uid)
        else:
            self._cache[uid] = user
        return user

    def _forget(self, uid: str, task: asyncio.Task[UserIdentity | None]) -> None:
        if self._inflight.get(uid) is task:
            del self._inflight[uid]


__all__ = ["UserLookup"]
