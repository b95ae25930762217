"""Test fixtures for the chat workspace."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Sequence

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from chat_workspace.core.config import Settings  # noqa: E402
from chat_workspace.models.entities import ChannelRecord, MessageRecord, UserIdentity  # noqa: E402


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("CHATWS_DB_PATH", str(tmp_path / "workspace.db"))
    monkeypatch.delenv("CHATWS_CONFIG", raising=False)

    from chat_workspace.api import dependencies as deps

    deps.reset_dependencies()
    yield
    deps.reset_dependencies()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(db_path=tmp_path / "workspace.db")


def user(uid: str, name: str | None = None, **extra: Any) -> UserIdentity:
    return UserIdentity(uid=uid, user_name=name or uid.title(), email=f"{uid}@example.com", **extra)


def channel(channel_id: str, members: Sequence[str], dm: bool = False, name: str = "", **extra: Any) -> ChannelRecord:
    return ChannelRecord.from_mapping(
        {
            "channelId": channel_id,
            "channelType": {"channel": not dm, "directMessage": dm},
            "channelName": name or channel_id,
            "channelMembers": list(members),
            **extra,
        }
    )


def message(message_id: str, uid: str, text: str, timestamp: int = 0, has_thread: bool = False) -> MessageRecord:
    return MessageRecord(message_id=message_id, uid=uid, text=text, timestamp=timestamp, has_thread=has_thread)


class FakeDocumentStore:
    """In-memory ``DocumentStore`` that records the calls it receives."""

    def __init__(
        self,
        channels: Sequence[ChannelRecord] = (),
        users: Sequence[UserIdentity] = (),
        messages: dict[str, list[MessageRecord]] | None = None,
        threads: dict[tuple[str, str], list[MessageRecord]] | None = None,
    ) -> None:
        self.channels = list(channels)
        self.users = {u.uid: u for u in users}
        self.messages = messages or {}
        self.threads = threads or {}
        self.calls: list[tuple[str, Any]] = []

    async def list_channels(self) -> list[ChannelRecord]:
        self.calls.append(("list_channels", None))
        return list(self.channels)

    async def list_channels_for_member(self, uid: str) -> list[ChannelRecord]:
        return [c for c in self.channels if uid in c.channel_members]

    async def get_channel(self, channel_id: str) -> ChannelRecord | None:
        return next((c for c in self.channels if c.channel_id == channel_id), None)

    async def list_messages(self, channel_id: str) -> list[MessageRecord]:
        self.calls.append(("list_messages", channel_id))
        return list(self.messages.get(channel_id, []))

    async def list_thread_messages(self, channel_id: str, message_id: str) -> list[MessageRecord]:
        self.calls.append(("list_thread_messages", (channel_id, message_id)))
        return list(self.threads.get((channel_id, message_id), []))

    async def list_users(self) -> list[UserIdentity]:
        return list(self.users.values())

    async def get_user(self, uid: str) -> UserIdentity | None:
        self.calls.append(("get_user", uid))
        return self.users.get(uid)

    async def get_users(self, uids: Sequence[str]) -> list[UserIdentity]:
        self.calls.append(("get_users", list(uids)))
        return [self.users[uid] for uid in uids if uid in self.users]


@pytest.fixture
def sample_snapshot() -> dict[str, Any]:
    return {
        "users": [
            {"uid": "u1", "userName": "Alice", "email": "alice@example.com"},
            {"uid": "u2", "userName": "Bob", "email": "bob@example.com"},
            {"uid": "u3", "userName": "Carol", "email": "carol@example.com"},
            {"uid": "g1", "userName": "Guest", "role": {"guest": True}},
        ],
        "channels": [
            {
                "channelId": "general",
                "channelType": {"channel": True, "directMessage": False},
                "channelName": "general",
                "channelDescription": "Company wide announcements",
                "createdBy": "u1",
                "channelMembers": ["u1", "u2", "u3"],
                "createdAt": 1000,
                "messages": [
                    {"messageId": "m1", "uid": "u1", "text": "Hello team", "timestamp": 10},
                    {
                        "messageId": "m2",
                        "uid": "u2",
                        "text": "Release notes are up",
                        "timestamp": 20,
                        "thread": [
                            {"messageId": "r1", "uid": "u3", "text": "hello release", "timestamp": 30},
                        ],
                    },
                ],
            },
            {
                "channelId": "dm-u1-u2",
                "channelType": {"channel": False, "directMessage": True},
                "channelName": "",
                "createdBy": "u1",
                "channelMembers": ["u1", "u2"],
                "createdAt": 2000,
                "messages": [{"messageId": "d1", "uid": "u2", "text": "hello alice", "timestamp": 15}],
            },
            {
                "channelId": "dm-u2-u1",
                "channelType": {"channel": False, "directMessage": True},
                "channelMembers": ["u2", "u1"],
                "createdAt": 2500,
                "messages": [{"messageId": "d9", "uid": "u1", "text": "lost duplicate", "timestamp": 16}],
            },
            {
                "channelId": "self-u1",
                "channelType": {"channel": False, "directMessage": True},
                "channelMembers": ["u1"],
                "createdAt": 3000,
            },
            {
                "channelId": "broken",
                "channelType": {"channel": False, "directMessage": True},
                "channelMembers": ["u1", "u2", "u3"],
            },
        ],
        "presence": {
            "u1": {"status": "online", "timestamp": 5, "lastSeen": 5},
            "u2": {"status": "away", "timestamp": 6, "lastSeen": 6},
            "u3": {"status": "sleeping"},
        },
    }
