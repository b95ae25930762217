"""Read side of presence: one subscription to the whole presence table."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from chat_workspace.core.config import Settings
from chat_workspace.core.errors import MalformedRecordError
from chat_workspace.core.logging import get_logger
from chat_workspace.core.metrics import ONLINE_USERS
from chat_workspace.models.entities import PresenceRecord, PresenceStatus
from chat_workspace.stores.base import RealtimeStore, Unsubscribe

logger = get_logger(__name__)

PresenceListener = Callable[[dict[str, PresenceRecord]], None]


class PresenceCache:
    """Broadcast cache of every user's presence, fed by a single listener."""

    def __init__(self, store: RealtimeStore, settings: Settings | None = None) -> None:
        self._store = store
        self._root = (settings or Settings()).presence_root
        self._records: dict[str, PresenceRecord] = {}
        self._listeners: list[PresenceListener] = []
        self._unsubscribe: Unsubscribe | None = None

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._root, self._on_snapshot)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def clear(self) -> None:
        """Logout: drop the subscription and every cached record."""
        self.stop()
        self._records = {}
        ONLINE_USERS.set(0)

    def get(self, uid: str) -> PresenceRecord | None:
        return self._records.get(uid)

    def status_of(self, uid: str) -> PresenceStatus | None:
        record = self._records.get(uid)
        return record.status if record else None

    def is_online(self, uid: str) -> bool:
        return self.status_of(uid) is PresenceStatus.ONLINE

    def online_user_ids(self) -> list[str]:
        return [uid for uid, record in self._records.items() if record.status is PresenceStatus.ONLINE]

    def online_count(self) -> int:
        return len(self.online_user_ids())

    def snapshot(self) -> dict[str, PresenceRecord]:
        return dict(self._records)

    def add_listener(self, listener: PresenceListener) -> Unsubscribe:
        self._listeners.append(listener)
        listener(self.snapshot())

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _on_snapshot(self, value: Any) -> None:
        records: dict[str, PresenceRecord] = {}
        if isinstance(value, Mapping):
            for uid, raw in value.items():
                try:
                    records[uid] = PresenceRecord.from_mapping(raw, uid)
                except MalformedRecordError as exc:
                    logger.warning("Ignoring presence entry: %s", exc)
        self._records = records
        ONLINE_USERS.set(self.online_count())
        for listener in list(self._listeners):
            try:
                listener(self.snapshot())
            except Exception:
                logger.exception("Presence listener failed")


async def read_presence_status(store: RealtimeStore, root: str, uid: str) -> PresenceStatus | None:
    """One-shot presence read used where a live cache is not wanted."""
    if not uid:
        return None
    try:
        raw = await store.get(f"{root}/{uid}")
    except Exception:
        logger.warning("Failed to read presence for %s", uid, exc_info=True)
        return None
    if raw is None:
        return None
    try:
        return PresenceRecord.from_mapping(raw, uid).status
    except MalformedRecordError:
        return None


__all__ = ["PresenceCache", "PresenceListener", "read_presence_status"]
