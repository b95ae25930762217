"""
Contracts for the hosted stores the workspace reads from and writes to.

Two backends sit behind these protocols:

- a realtime key-value tree (``presence/{uid}``) with subtree subscriptions
  and server-applied "on disconnect" writes;
- a document database holding ``users``, ``channels``, channel
  ``messages`` and per-message ``thread`` replies.

Protocols are structural, so test doubles only need the methods a
component actually calls.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, Sequence, runtime_checkable

from chat_workspace.models.entities import ChannelRecord, MessageRecord, UserIdentity

# Placeholder resolved to the store's clock when a write is applied.
SERVER_TIMESTAMP: dict[str, str] = {".sv": "timestamp"}

Unsubscribe = Callable[[], None]
ValueCallback = Callable[[Any], None]


@runtime_checkable
class RealtimeStore(Protocol):
    """Client handle on the realtime key-value tree."""

    async def get(self, path: str) -> Any:
        """Read the value at ``path`` once; ``None`` when absent."""
        ...

    async def set(self, path: str, value: Any) -> None:
        """Replace the value at ``path``; ``None`` deletes it."""
        ...

    def subscribe(self, path: str, callback: ValueCallback) -> Unsubscribe:
        """Deliver the subtree value now and after every change beneath ``path``."""
        ...

    async def on_disconnect_set(self, path: str, value: Any) -> None:
        """Register a write the server applies if this client drops without cleanup."""
        ...

    async def cancel_on_disconnect(self, path: str) -> None:
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Read side of the document database."""

    async def list_channels(self) -> list[ChannelRecord]:
        """All channels, newest first."""
        ...

    async def list_channels_for_member(self, uid: str) -> list[ChannelRecord]:
        ...

    async def get_channel(self, channel_id: str) -> ChannelRecord | None:
        ...

    async def list_messages(self, channel_id: str) -> list[MessageRecord]:
        """Messages of a channel, oldest first."""
        ...

    async def list_thread_messages(self, channel_id: str, message_id: str) -> list[MessageRecord]:
        ...

    async def list_users(self) -> list[UserIdentity]:
        ...

    async def get_user(self, uid: str) -> UserIdentity | None:
        ...

    async def get_users(self, uids: Sequence[str]) -> list[UserIdentity]:
        """Membership query over ``users.uid``."""
        ...


__all__ = [
    "SERVER_TIMESTAMP",
    "RealtimeStore",
    "DocumentStore",
    "Unsubscribe",
    "ValueCallback",
]
