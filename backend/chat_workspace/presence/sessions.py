"""Server-side registry of client presence sessions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from chat_workspace.core.config import Settings
from chat_workspace.core.errors import UnknownSessionError
from chat_workspace.core.logging import get_logger, log_context
from chat_workspace.presence.scheduler import AsyncioScheduler, Scheduler
from chat_workspace.presence.tracker import PresenceTracker
from chat_workspace.stores.realtime import InMemoryRealtimeStore, RealtimeConnection

logger = get_logger(__name__)


@dataclass(slots=True)
class PresenceSession:
    tracker: PresenceTracker
    connection: RealtimeConnection


class PresenceSessionRegistry:
    """One tracker and realtime connection per signed-in uid."""

    def __init__(
        self,
        server: InMemoryRealtimeStore,
        settings: Settings | None = None,
        scheduler_factory: Callable[[], Scheduler] = AsyncioScheduler,
    ) -> None:
        self._server = server
        self._settings = settings or Settings()
        self._scheduler_factory = scheduler_factory
        self._sessions: dict[str, PresenceSession] = {}

    def __contains__(self, uid: object) -> bool:
        return uid in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    async def open(self, uid: str, visible: bool = True) -> PresenceSession:
        existing = self._sessions.get(uid)
        if existing is not None:
            return existing
        connection = self._server.connect()
        tracker = PresenceTracker(uid, connection, self._scheduler_factory(), self._settings, visible=visible)
        session = PresenceSession(tracker=tracker, connection=connection)
        self._sessions[uid] = session
        await tracker.start()
        logger.info("Presence session opened", extra=log_context(uid=uid))
        return session

    def get(self, uid: str) -> PresenceSession:
        try:
            return self._sessions[uid]
        except KeyError:
            raise UnknownSessionError(uid) from None

    async def close(self, uid: str) -> None:
        """Sign-out: write offline, then release the connection."""
        session = self._sessions.pop(uid, None)
        if session is None:
            raise UnknownSessionError(uid)
        await session.tracker.stop(write_offline=True)
        await session.connection.close()
        logger.info("Presence session closed", extra=log_context(uid=uid))

    async def disconnect(self, uid: str) -> None:
        """Connection lost without a goodbye: the stored disconnect rule takes over."""
        session = self._sessions.pop(uid, None)
        if session is None:
            raise UnknownSessionError(uid)
        await session.tracker.stop(write_offline=False)
        await session.connection.drop()
        logger.info("Presence session dropped", extra=log_context(uid=uid))

    async def close_all(self) -> None:
        for uid in list(self._sessions):
            await self.close(uid)


__all__ = ["PresenceSession", "PresenceSessionRegistry"]
