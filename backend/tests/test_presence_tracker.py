"""Tests for the presence state machine, driven by a virtual clock."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from chat_workspace.core.config import Settings
from chat_workspace.core.metrics import REGISTRY
from chat_workspace.models.entities import PresenceStatus
from chat_workspace.presence.scheduler import ManualScheduler
from chat_workspace.presence.tracker import PresenceEvent, PresenceTracker, parse_event
from chat_workspace.stores.realtime import InMemoryRealtimeStore

PATH = "presence/u1"


class RecordingStore:
    """``RealtimeStore`` double that keeps every status written."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.data: dict[str, Any] = {}
        self.statuses: list[str] = []
        self.disconnect: dict[str, Any] = {}
        self.reads = 0

    async def get(self, path: str) -> Any:
        self.reads += 1
        return self.data.get(path)

    async def set(self, path: str, value: Any) -> None:
        if self.fail:
            raise ConnectionError("store unavailable")
        self.data[path] = value
        self.statuses.append(value["status"])

    def subscribe(self, path, callback):  # pragma: no cover - unused by the tracker
        raise NotImplementedError

    async def on_disconnect_set(self, path: str, value: Any) -> None:
        self.disconnect[path] = value

    async def cancel_on_disconnect(self, path: str) -> None:
        self.disconnect.pop(path, None)


@pytest.fixture
def clock() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


def make_tracker(store, clock, **kwargs) -> PresenceTracker:
    return PresenceTracker("u1", store, clock, Settings(), **kwargs)


async def settle(tracker: PresenceTracker, clock: ManualScheduler, seconds: float) -> None:
    clock.advance(seconds)
    await tracker.drain()


@pytest.mark.asyncio
async def test_start_goes_online_and_arms_disconnect_rule(store: RecordingStore, clock: ManualScheduler) -> None:
    tracker = make_tracker(store, clock)
    assert tracker.status is None
    await tracker.start()
    assert store.statuses == ["online"]
    assert store.disconnect[PATH]["status"] == "offline"
    assert tracker.status is PresenceStatus.ONLINE


@pytest.mark.asyncio
async def test_reconnect_burst_collapses_to_one_write(store: RecordingStore, clock: ManualScheduler) -> None:
    tracker = make_tracker(store, clock)
    for _ in range(5):
        tracker.dispatch("online")
        clock.advance(0.2)
    await tracker.drain()
    assert store.statuses == []
    await settle(tracker, clock, 1.0)
    assert store.statuses == ["online"]


@pytest.mark.asyncio
async def test_blur_then_focus_never_writes_away(store: RecordingStore, clock: ManualScheduler) -> None:
    tracker = make_tracker(store, clock, visible=False)
    tracker.dispatch(PresenceEvent.BLUR)
    await settle(tracker, clock, 10)
    tracker.dispatch(PresenceEvent.FOCUS)
    await settle(tracker, clock, 60)
    assert "away" not in store.statuses
    assert store.statuses == ["online"]


@pytest.mark.asyncio
async def test_blur_while_hidden_writes_away_once(store: RecordingStore, clock: ManualScheduler) -> None:
    tracker = make_tracker(store, clock)
    tracker.dispatch("visibilitychange", visible=False)
    tracker.dispatch("blur")
    await settle(tracker, clock, 29.9)
    assert store.statuses == []
    await settle(tracker, clock, 0.2)
    await settle(tracker, clock, 120)
    assert store.statuses == ["away"]


@pytest.mark.asyncio
async def test_away_timeout_skipped_while_visible(store: RecordingStore, clock: ManualScheduler) -> None:
    tracker = make_tracker(store, clock, visible=True)
    tracker.dispatch("blur")
    assert tracker.away_pending
    await settle(tracker, clock, 31)
    assert store.statuses == []
    assert not tracker.away_pending


@pytest.mark.asyncio
async def test_activity_cancels_away_timer(store: RecordingStore, clock: ManualScheduler) -> None:
    tracker = make_tracker(store, clock, visible=False)
    tracker.dispatch("blur")
    await settle(tracker, clock, 5)
    tracker.dispatch("mousemove")
    await settle(tracker, clock, 1.0)
    assert not tracker.away_pending
    await settle(tracker, clock, 60)
    assert "away" not in store.statuses


@pytest.mark.asyncio
async def test_activity_while_away_reads_once_and_goes_online(store: RecordingStore, clock: ManualScheduler) -> None:
    store.data[PATH] = {"status": "away"}
    tracker = make_tracker(store, clock)
    for source in ("click", "keypress", "scroll"):
        tracker.dispatch(source)
    await settle(tracker, clock, 1.0)
    assert store.reads == 1
    assert store.statuses == ["online"]


@pytest.mark.asyncio
async def test_activity_while_online_writes_nothing(store: RecordingStore, clock: ManualScheduler) -> None:
    store.data[PATH] = {"status": "online"}
    tracker = make_tracker(store, clock)
    tracker.dispatch("activity")
    await settle(tracker, clock, 1.0)
    assert store.statuses == []


@pytest.mark.asyncio
async def test_connectivity_lost_cancels_pending_online(store: RecordingStore, clock: ManualScheduler) -> None:
    tracker = make_tracker(store, clock)
    tracker.dispatch("online")
    tracker.dispatch("focus")
    tracker.dispatch("offline")
    await settle(tracker, clock, 5)
    assert store.statuses == ["offline"]


@pytest.mark.asyncio
async def test_connectivity_lost_cancels_away_and_activity(store: RecordingStore, clock: ManualScheduler) -> None:
    store.data[PATH] = {"status": "away"}
    tracker = make_tracker(store, clock)
    tracker.dispatch("blur")
    tracker.dispatch("visibilitychange", visible=False)
    tracker.dispatch("keypress")
    tracker.dispatch("offline")
    assert not tracker.away_pending
    await settle(tracker, clock, 31)
    assert store.statuses == ["offline"]
    assert store.reads == 0


@pytest.mark.asyncio
async def test_visibility_hidden_cancels_pending_online(store: RecordingStore, clock: ManualScheduler) -> None:
    tracker = make_tracker(store, clock, visible=False)
    tracker.dispatch("visibilitychange", visible=True)
    tracker.dispatch("visibilitychange", visible=False)
    await settle(tracker, clock, 5)
    assert store.statuses == []
    tracker.dispatch("visibilitychange", visible=True)
    await settle(tracker, clock, 0.5)
    assert store.statuses == ["online"]


@pytest.mark.asyncio
async def test_unload_cancels_timers_and_goes_offline(store: RecordingStore, clock: ManualScheduler) -> None:
    tracker = make_tracker(store, clock, visible=False)
    tracker.dispatch("blur")
    tracker.dispatch("online")
    tracker.dispatch("beforeunload")
    await settle(tracker, clock, 60)
    assert store.statuses == ["offline"]
    assert clock.pending == 0


@pytest.mark.asyncio
async def test_stop_writes_offline_and_cancels_rule(store: RecordingStore, clock: ManualScheduler) -> None:
    tracker = make_tracker(store, clock)
    await tracker.start()
    tracker.dispatch("blur")
    await tracker.stop()
    assert store.statuses == ["online", "offline"]
    assert PATH not in store.disconnect
    assert not tracker.started
    assert clock.pending == 0


@pytest.mark.asyncio
async def test_failed_write_is_logged_not_raised(clock: ManualScheduler, caplog: pytest.LogCaptureFixture) -> None:
    before = REGISTRY.get_sample_value(
        "chatws_presence_writes_total", {"status": "online", "outcome": "failed"}
    ) or 0.0
    tracker = make_tracker(RecordingStore(fail=True), clock)
    with caplog.at_level(logging.WARNING):
        await tracker.start()
    assert tracker.status is None
    assert "Presence write failed" in caplog.text
    after = REGISTRY.get_sample_value("chatws_presence_writes_total", {"status": "online", "outcome": "failed"})
    assert after == before + 1


@pytest.mark.asyncio
async def test_disconnect_rule_applied_on_drop(clock: ManualScheduler) -> None:
    server = InMemoryRealtimeStore(clock=lambda: 42)
    connection = server.connect()
    tracker = PresenceTracker("u1", connection, clock, Settings())
    await tracker.start()
    assert server.read(PATH) == {"status": "online", "timestamp": 42, "lastSeen": 42}

    await tracker.stop(write_offline=False)
    await connection.drop()
    assert server.read(PATH)["status"] == "offline"


def test_parse_event() -> None:
    assert parse_event("pointermove") is PresenceEvent.ACTIVITY
    assert parse_event("visibilitychange") is PresenceEvent.VISIBILITY_CHANGE
    with pytest.raises(ValueError):
        parse_event("teleport")
