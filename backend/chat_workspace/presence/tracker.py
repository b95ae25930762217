"""Write side of presence: derive online/away/offline from client events."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Coroutine

from chat_workspace.core.config import Settings
from chat_workspace.core.logging import get_logger, log_context
from chat_workspace.core.metrics import PRESENCE_WRITES
from chat_workspace.models.entities import PresenceStatus
from chat_workspace.presence.debounce import Debouncer
from chat_workspace.presence.scheduler import Scheduler
from chat_workspace.stores.base import SERVER_TIMESTAMP, RealtimeStore

logger = get_logger(__name__)


class PresenceEvent(str, Enum):
    CONNECTIVITY_LOST = "offline"
    CONNECTIVITY_RESTORED = "online"
    FOCUS = "focus"
    BLUR = "blur"
    VISIBILITY_CHANGE = "visibilitychange"
    ACTIVITY = "activity"
    UNLOAD = "beforeunload"


# Raw input events that are merged into a single debounced ACTIVITY signal.
ACTIVITY_SOURCES = frozenset({"click", "keypress", "pointermove", "mousemove", "scroll", "touchstart"})


def presence_payload(status: PresenceStatus) -> dict[str, Any]:
    return {"status": status.value, "timestamp": SERVER_TIMESTAMP, "lastSeen": SERVER_TIMESTAMP}


def parse_event(name: str | PresenceEvent) -> PresenceEvent:
    if isinstance(name, PresenceEvent):
        return name
    if name in ACTIVITY_SOURCES:
        return PresenceEvent.ACTIVITY
    return PresenceEvent(name)


class PresenceTracker:
    """Per-client presence state machine.

    Every transition is a single fire-and-forget upsert of
    ``{status, timestamp, lastSeen}`` to ``{presence_root}/{uid}``. Failed
    writes are logged and not retried; the next qualifying event or the
    store-side disconnect rule repairs the record. Must be driven from a
    running event loop.
    """

    def __init__(
        self,
        uid: str,
        store: RealtimeStore,
        scheduler: Scheduler,
        settings: Settings | None = None,
        visible: bool = True,
    ) -> None:
        settings = settings or Settings()
        self.uid = uid
        self.path = f"{settings.presence_root}/{uid}"
        self._store = store
        self._visible = visible
        self._started = False
        self._last_written: PresenceStatus | None = None
        self._pending: set[asyncio.Task[None]] = set()
        self._reconnect = Debouncer(scheduler, settings.reconnect_debounce_seconds, self._on_reconnect_settled, "reconnect")
        self._focus = Debouncer(scheduler, settings.focus_debounce_seconds, self._on_focus_settled, "focus")
        self._visibility = Debouncer(scheduler, settings.focus_debounce_seconds, self._on_visible_settled, "visibility")
        self._activity = Debouncer(scheduler, settings.activity_debounce_seconds, self._on_activity_settled, "activity")
        self._away = Debouncer(scheduler, settings.away_timeout_seconds, self._on_away_timeout, "away")

    @property
    def status(self) -> PresenceStatus | None:
        """Last status successfully written; ``None`` before the first write."""
        return self._last_written

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def started(self) -> bool:
        return self._started

    @property
    def away_pending(self) -> bool:
        return self._away.pending

    async def start(self) -> None:
        """Authentication succeeded: go online, then arm the disconnect fallback."""
        self._started = True
        await self._write_now(PresenceStatus.ONLINE)
        try:
            await self._store.on_disconnect_set(self.path, presence_payload(PresenceStatus.OFFLINE))
        except Exception:
            logger.warning("Failed to register disconnect rule for %s", self.uid, exc_info=True)

    async def stop(self, write_offline: bool = True) -> None:
        """Sign-out: cancel timers and, unless the connection is already gone, go offline."""
        self._cancel_timers()
        self._started = False
        if write_offline:
            await self._write_now(PresenceStatus.OFFLINE)
            try:
                await self._store.cancel_on_disconnect(self.path)
            except Exception:
                logger.warning("Failed to cancel disconnect rule for %s", self.uid, exc_info=True)
        await self.drain()

    async def drain(self) -> None:
        """Wait for in-flight writes, including ones spawned while waiting."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def dispatch(self, event: str | PresenceEvent, visible: bool | None = None) -> None:
        kind = parse_event(event)
        if kind is PresenceEvent.CONNECTIVITY_LOST:
            self.handle_connectivity_lost()
        elif kind is PresenceEvent.CONNECTIVITY_RESTORED:
            self.handle_connectivity_restored()
        elif kind is PresenceEvent.FOCUS:
            self.handle_focus()
        elif kind is PresenceEvent.BLUR:
            self.handle_blur()
        elif kind is PresenceEvent.VISIBILITY_CHANGE:
            self.handle_visibility_change(self._visible if visible is None else visible)
        elif kind is PresenceEvent.ACTIVITY:
            self.handle_activity()
        elif kind is PresenceEvent.UNLOAD:
            self.handle_unload()

    def handle_connectivity_lost(self) -> None:
        # No online or away write may land after the offline one.
        self._cancel_timers()
        self._write(PresenceStatus.OFFLINE)

    def handle_connectivity_restored(self) -> None:
        self._reconnect.trigger()

    def handle_focus(self) -> None:
        self._away.cancel()
        self._focus.trigger()

    def handle_blur(self) -> None:
        self._away.trigger()

    def handle_visibility_change(self, visible: bool) -> None:
        self._visible = visible
        if visible:
            self._visibility.trigger()
        else:
            self._visibility.cancel()

    def handle_activity(self) -> None:
        self._activity.trigger()

    def handle_unload(self) -> None:
        self._cancel_timers()
        self._write(PresenceStatus.OFFLINE)

    # Timer callbacks --------------------------------------------------

    def _on_reconnect_settled(self) -> None:
        self._write(PresenceStatus.ONLINE)

    def _on_focus_settled(self) -> None:
        self._write(PresenceStatus.ONLINE)

    def _on_visible_settled(self) -> None:
        if self._visible:
            self._write(PresenceStatus.ONLINE)

    def _on_activity_settled(self) -> None:
        self._away.cancel()
        self._spawn(self._resume_if_away())

    def _on_away_timeout(self) -> None:
        if not self._visible:
            self._write(PresenceStatus.AWAY)

    # Writes -----------------------------------------------------------

    async def _resume_if_away(self) -> None:
        try:
            current = await self._store.get(self.path)
        except Exception:
            logger.warning("Failed to read presence for %s", self.uid, exc_info=True)
            return
        if isinstance(current, dict) and current.get("status") == PresenceStatus.AWAY.value:
            await self._write_now(PresenceStatus.ONLINE)

    def _write(self, status: PresenceStatus) -> None:
        self._spawn(self._write_now(status))

    async def _write_now(self, status: PresenceStatus) -> None:
        try:
            await self._store.set(self.path, presence_payload(status))
        except Exception:
            PRESENCE_WRITES.labels(status=status.value, outcome="failed").inc()
            logger.warning(
                "Presence write failed",
                exc_info=True,
                extra=log_context(uid=self.uid, status=status.value),
            )
            return
        PRESENCE_WRITES.labels(status=status.value, outcome="ok").inc()
        self._last_written = status
        logger.debug("Presence set", extra=log_context(uid=self.uid, status=status.value))

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _cancel_timers(self) -> None:
        for debouncer in (self._reconnect, self._focus, self._visibility, self._activity, self._away):
            debouncer.cancel()


__all__ = ["PresenceTracker", "PresenceEvent", "ACTIVITY_SOURCES", "presence_payload", "parse_event"]
