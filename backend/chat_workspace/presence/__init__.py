"""Presence tracking: write-side state machine and read-side cache."""

from .cache import PresenceCache, read_presence_status
from .debounce import Debouncer, DebounceState
from .scheduler import AsyncioScheduler, ManualScheduler
from .tracker import PresenceEvent, PresenceTracker

__all__ = [
    "PresenceCache",
    "PresenceTracker",
    "PresenceEvent",
    "Debouncer",
    "DebounceState",
    "AsyncioScheduler",
    "ManualScheduler",
    "read_presence_status",
]
