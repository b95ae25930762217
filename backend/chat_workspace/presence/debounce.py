"""Restartable one-shot timer modelled as an explicit idle/pending/fired machine."""

from __future__ import annotations

from enum import Enum
from typing import Callable

from chat_workspace.presence.scheduler import Scheduler, TimerHandle


class DebounceState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    FIRED = "fired"


class Debouncer:
    """Fire ``callback`` once ``delay`` seconds after the most recent trigger."""

    def __init__(
        self,
        scheduler: Scheduler,
        delay: float,
        callback: Callable[[], None],
        name: str = "debounce",
    ) -> None:
        self.scheduler = scheduler
        self.delay = delay
        self.name = name
        self._callback = callback
        self._handle: TimerHandle | None = None
        self._state = DebounceState.IDLE

    @property
    def state(self) -> DebounceState:
        return self._state

    @property
    def pending(self) -> bool:
        return self._state is DebounceState.PENDING

    def trigger(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self.scheduler.call_later(self.delay, self._fire)
        self._state = DebounceState.PENDING

    def cancel(self) -> bool:
        """Drop a pending fire; returns whether one was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        self._state = DebounceState.IDLE
        return True

    def _fire(self) -> None:
        self._handle = None
        self._state = DebounceState.FIRED
        self._callback()

    def __repr__(self) -> str:
        return f"Debouncer(name={self.name!r}, delay={self.delay}, state={self._state.value})"


__all__ = ["Debouncer", "DebounceState"]
