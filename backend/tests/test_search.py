"""Tests for search routing, fan-out and per-category isolation."""

from __future__ import annotations

import asyncio

import pytest

from chat_workspace.core.config import Settings
from chat_workspace.core.metrics import REGISTRY
from chat_workspace.models.dto import ChannelResult, UserResult
from chat_workspace.models.entities import PresenceStatus, UserRole
from chat_workspace.search import aggregator as aggregator_module
from chat_workspace.search.aggregator import SearchAggregator
from chat_workspace.search.context import SearchContext, gather_flat
from chat_workspace.search.users import filter_users
from chat_workspace.stores.realtime import InMemoryRealtimeStore
from chat_workspace.users.lookup import UserLookup
from conftest import FakeDocumentStore, channel, message, user

ALICE = user("u1", "Alice")
BOB = user("u2", "Bob")
CAROL = user("u3", "Carol")
GUEST = user("g1", "Guest", role=UserRole.GUEST)


@pytest.fixture
def documents() -> FakeDocumentStore:
    return FakeDocumentStore(
        channels=[
            channel("general", ["u1", "u2", "u3"], name="general", channelDescription="hello everyone"),
            channel("random", ["u1", "u2"], name="random"),
            channel("dm-12", ["u1", "u2"], dm=True),
            channel("dm-23", ["u2", "u3"], dm=True),
        ],
        users=[ALICE, BOB, CAROL, GUEST],
        messages={
            "general": [
                message("m1", "u1", "Hello team", 1),
                message("m2", "u2", "release day", 2, has_thread=True),
                message("m3", "ghost", "hello from nowhere", 3),
            ],
            "random": [message("m4", "u3", "nothing here", 4)],
            "dm-12": [message("d1", "u2", "hello alice", 5)],
            "dm-23": [message("d2", "u3", "hello bob", 6, has_thread=True)],
        },
        threads={
            ("general", "m2"): [message("r1", "u3", "Hello thread", 7), message("r2", "u1", "bye", 8)],
            ("dm-23", "d2"): [message("r3", "u2", "hello secret", 9)],
        },
    )


@pytest.fixture
def server() -> InMemoryRealtimeStore:
    server = InMemoryRealtimeStore()
    server.write("presence/u1", {"status": "online"})
    server.write("presence/u2", {"status": "away"})
    return server


@pytest.fixture
def aggregator(documents: FakeDocumentStore, server: InMemoryRealtimeStore) -> SearchAggregator:
    return SearchAggregator(documents, UserLookup(documents), server.connect(), Settings())


@pytest.fixture
def recorded(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, str]]:
    calls: list[tuple[str, str]] = []

    def fake(name: str):
        async def run(term, ctx):
            calls.append((name, term))
            return []

        return run

    for name in ("messages", "direct_messages", "channels", "threads", "users"):
        monkeypatch.setattr(aggregator_module, f"search_{name}", fake(name))
    return calls


@pytest.mark.asyncio
async def test_channel_sigil_routes_to_channels_only(aggregator, recorded) -> None:
    await aggregator.search("#general", ALICE)
    assert recorded == [("channels", "general")]


@pytest.mark.asyncio
async def test_user_sigil_routes_to_users_only(aggregator, recorded) -> None:
    await aggregator.search("@ali", ALICE)
    assert recorded == [("users", "ali")]


@pytest.mark.asyncio
async def test_sigil_remainder_is_trimmed(aggregator, recorded) -> None:
    await aggregator.search("#  general ", ALICE)
    await aggregator.search("@\tali", ALICE)
    assert recorded == [("channels", "general"), ("users", "ali")]


@pytest.mark.asyncio
async def test_plain_term_fans_out_to_all_categories(aggregator, recorded) -> None:
    await aggregator.search("hello", ALICE)
    assert sorted(recorded) == sorted(
        (name, "hello") for name in ("messages", "direct_messages", "channels", "threads", "users")
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("term", [None, "", "   "])
async def test_empty_term_returns_empty_results(aggregator, recorded, term) -> None:
    results = await aggregator.search(term, ALICE)
    assert results.is_empty()
    assert recorded == []


@pytest.mark.asyncio
async def test_failing_category_does_not_hide_others(aggregator, monkeypatch) -> None:
    async def boom(term, ctx):
        raise RuntimeError("message index offline")

    monkeypatch.setattr(aggregator_module, "search_messages", boom)
    before = REGISTRY.get_sample_value("chatws_search_failures_total", {"category": "messages"}) or 0.0

    results = await aggregator.search("a", ALICE)
    assert results.messages == []
    assert [r.channel_id for r in results.channels] == ["general", "random"]
    assert {r.uid for r in results.users} == {"u1", "u2", "u3"}
    after = REGISTRY.get_sample_value("chatws_search_failures_total", {"category": "messages"})
    assert after == before + 1


@pytest.mark.asyncio
async def test_full_search_results(aggregator) -> None:
    results = await aggregator.search("hello", ALICE)

    assert [r.message_id for r in results.messages] == ["m1", "m3"]
    first, orphan = results.messages
    assert first.user_name == "Alice" and first.status is PresenceStatus.ONLINE
    assert first.channel_name == "general"
    assert orphan.user_name == "" and orphan.status is None

    assert [r.message_id for r in results.direct_messages] == ["d1"]
    dm = results.direct_messages[0]
    assert dm.direct_message_user_id == "u2"
    assert dm.direct_message_user_name == "Bob"
    assert dm.status is PresenceStatus.AWAY

    assert [r.channel_id for r in results.channels] == ["general"]

    assert [r.message_id for r in results.threads] == ["r1"]
    reply = results.threads[0]
    assert reply.replied_message_id == "m2"
    assert reply.replier_name == "Carol"

    assert [r.uid for r in results.users] == []


@pytest.mark.asyncio
async def test_user_search_excludes_guests_and_reads_status(aggregator) -> None:
    results = await aggregator.search("@", ALICE)
    assert {r.uid for r in results.users} == {"u1", "u2", "u3"}
    statuses = {r.uid: r.status for r in results.users}
    assert statuses == {"u1": PresenceStatus.ONLINE, "u2": PresenceStatus.AWAY, "u3": None}


@pytest.mark.asyncio
async def test_direct_messages_need_a_member_user(aggregator) -> None:
    anonymous = await aggregator.search("hello", None)
    assert anonymous.direct_messages == []
    assert [r.message_id for r in anonymous.threads] == ["r1"]

    carol = await aggregator.search("hello", CAROL)
    assert [r.message_id for r in carol.direct_messages] == ["d2"]
    assert carol.direct_messages[0].direct_message_user_id == "u2"
    assert sorted(r.message_id for r in carol.threads) == ["r1", "r3"]


@pytest.mark.asyncio
async def test_submit_keeps_only_latest_generation(aggregator, monkeypatch) -> None:
    release = asyncio.Event()

    async def slow_channels(term, ctx):
        if term == "slow":
            await release.wait()
        return [ChannelResult(channel_id=term, channel_name=term)]

    monkeypatch.setattr(aggregator_module, "search_channels", slow_channels)
    first = asyncio.create_task(aggregator.submit("#slow", ALICE))
    await asyncio.sleep(0)
    second = await aggregator.submit("#fast", ALICE)
    release.set()
    stale = await first

    assert aggregator.generation == 2
    assert stale.channels[0].channel_id == "slow"
    assert aggregator.latest_results == second
    assert aggregator.latest_results.channels[0].channel_id == "fast"


def test_results_serialize_with_wire_names() -> None:
    result = UserResult(uid="u1", user_name="Alice", photo_url="http://img", status=PresenceStatus.ONLINE)
    payload = result.model_dump(by_alias=True, mode="json")
    assert payload == {
        "type": "user",
        "uid": "u1",
        "userName": "Alice",
        "email": "",
        "photoURL": "http://img",
        "status": "online",
    }


def test_filter_users_matches_name_or_email() -> None:
    users = [ALICE, BOB, GUEST, user("x", "Guest")]
    assert [u.uid for u in filter_users(users, "BOB")] == ["u2"]
    assert [u.uid for u in filter_users(users, "u1@")] == ["u1"]
    assert filter_users(users, "guest") == []


class ConcurrencyTrackingStore(FakeDocumentStore):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.active = 0
        self.peak = 0

    async def list_messages(self, channel_id: str):
        self.active += 1
        self.peak = max(self.peak, self.active)
        await asyncio.sleep(0)
        self.active -= 1
        return await super().list_messages(channel_id)


@pytest.mark.asyncio
async def test_message_reads_respect_configured_fanout(server: InMemoryRealtimeStore) -> None:
    documents = ConcurrencyTrackingStore(channels=[channel(f"c{i}", ["u1"], name=f"c{i}") for i in range(6)])
    ctx = SearchContext(documents, UserLookup(documents), server.connect(), Settings(search_fanout_limit=2))

    await gather_flat(documents.channels, ctx.messages)

    assert documents.peak == 2
    assert len([call for call in documents.calls if call[0] == "list_messages"]) == 6
