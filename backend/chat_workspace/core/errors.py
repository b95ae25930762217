"""Exception hierarchy for the chat workspace."""

from __future__ import annotations


class ChatWorkspaceError(Exception):
    """Base class for all package errors."""


class MalformedRecordError(ChatWorkspaceError, ValueError):
    """Raised when a raw store record is missing required fields."""

    def __init__(self, kind: str, detail: str, record_id: str | None = None) -> None:
        self.kind = kind
        self.detail = detail
        self.record_id = record_id
        label = f"{kind} {record_id}" if record_id else kind
        super().__init__(f"Malformed {label}: {detail}")


class SnapshotFormatError(ChatWorkspaceError):
    """Raised when a workspace snapshot file cannot be parsed."""


class UnknownSessionError(ChatWorkspaceError, LookupError):
    """Raised when no presence session is registered for a user."""


__all__ = [
    "ChatWorkspaceError",
    "MalformedRecordError",
    "SnapshotFormatError",
    "UnknownSessionError",
]
