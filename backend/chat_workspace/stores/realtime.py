"""In-process realtime key-value tree used by the local workspace service."""

from __future__ import annotations

import copy
import itertools
from typing import Any, Callable

from chat_workspace.core.logging import get_logger
from chat_workspace.stores.base import SERVER_TIMESTAMP, Unsubscribe, ValueCallback
from chat_workspace.utils.time import now_ms

logger = get_logger(__name__)

Path = tuple[str, ...]


def split_path(path: str) -> Path:
    return tuple(part for part in path.strip("/").split("/") if part)


def _is_prefix(prefix: Path, path: Path) -> bool:
    return path[: len(prefix)] == prefix


class InMemoryRealtimeStore:
    """Server side of the tree: holds data, listeners and disconnect rules."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        self._root: dict[str, Any] = {}
        self._listeners: dict[int, tuple[Path, ValueCallback]] = {}
        self._listener_ids = itertools.count()
        self._connection_ids = itertools.count(1)

    def connect(self) -> "RealtimeConnection":
        """Open a client handle; each handle owns its disconnect rules."""
        return RealtimeConnection(self, next(self._connection_ids))

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def read(self, path: str) -> Any:
        node: Any = self._root
        for part in split_path(path):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return copy.deepcopy(node)

    def write(self, path: str, value: Any) -> None:
        parts = split_path(path)
        resolved = self._resolve(value)
        if not parts:
            self._root = resolved if isinstance(resolved, dict) else {}
        elif resolved is None:
            self._delete(parts)
        else:
            node = self._root
            for part in parts[:-1]:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = {}
                    node[part] = child
                node = child
            node[parts[-1]] = resolved
        self._notify(parts)

    def add_listener(self, path: str, callback: ValueCallback) -> Unsubscribe:
        listener_id = next(self._listener_ids)
        self._listeners[listener_id] = (split_path(path), callback)
        callback(self.read(path))

        def unsubscribe() -> None:
            self._listeners.pop(listener_id, None)

        return unsubscribe

    def _delete(self, parts: Path) -> None:
        trail: list[tuple[dict[str, Any], str]] = []
        node = self._root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                return
            trail.append((node, part))
            node = child
        node.pop(parts[-1], None)
        # Prune parents left empty by the delete.
        for parent, key in reversed(trail):
            if parent[key]:
                break
            del parent[key]

    def _resolve(self, value: Any) -> Any:
        if value == SERVER_TIMESTAMP:
            return self._clock()
        if isinstance(value, dict):
            return {key: self._resolve(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._resolve(item) for item in value]
        return value

    def _notify(self, changed: Path) -> None:
        for listener_path, callback in list(self._listeners.values()):
            if _is_prefix(listener_path, changed) or _is_prefix(changed, listener_path):
                try:
                    callback(self.read("/".join(listener_path)))
                except Exception:
                    logger.exception("Realtime listener for %s failed", "/".join(listener_path))


class RealtimeConnection:
    """Client handle implementing the ``RealtimeStore`` protocol."""

    def __init__(self, server: InMemoryRealtimeStore, connection_id: int) -> None:
        self.server = server
        self.connection_id = connection_id
        self._disconnect_writes: dict[str, Any] = {}
        self._subscriptions: list[Unsubscribe] = []
        self.connected = True

    async def get(self, path: str) -> Any:
        return self.server.read(path)

    async def set(self, path: str, value: Any) -> None:
        self.server.write(path, value)

    def subscribe(self, path: str, callback: ValueCallback) -> Unsubscribe:
        unsubscribe = self.server.add_listener(path, callback)
        self._subscriptions.append(unsubscribe)
        return unsubscribe

    async def on_disconnect_set(self, path: str, value: Any) -> None:
        self._disconnect_writes["/".join(split_path(path))] = copy.deepcopy(value)

    async def cancel_on_disconnect(self, path: str) -> None:
        self._disconnect_writes.pop("/".join(split_path(path)), None)

    @property
    def pending_disconnect_paths(self) -> list[str]:
        return sorted(self._disconnect_writes)

    async def drop(self) -> None:
        """Simulate an ungraceful disconnect: the server applies the registered writes."""
        if not self.connected:
            return
        self.connected = False
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()
        writes, self._disconnect_writes = self._disconnect_writes, {}
        for path, value in writes.items():
            logger.info("Applying disconnect rule for %s", path)
            self.server.write(path, value)

    async def close(self) -> None:
        """Graceful shutdown: listeners are released and disconnect rules discarded."""
        self.connected = False
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()
        self._disconnect_writes.clear()


__all__ = ["InMemoryRealtimeStore", "RealtimeConnection", "split_path"]
