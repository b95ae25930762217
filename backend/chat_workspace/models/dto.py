"""Pydantic DTOs exposed at the presentation boundary."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from chat_workspace.models.entities import (
    CategorizedChannelSet,
    ChannelRecord,
    PresenceRecord,
    PresenceStatus,
    UserIdentity,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserResult(CamelModel):
    type: Literal["user"] = "user"
    uid: str
    user_name: str
    email: str = ""
    photo_url: str = Field(default="", alias="photoURL")
    status: PresenceStatus | None = None


class ChannelResult(CamelModel):
    type: Literal["channels"] = "channels"
    channel_id: str
    channel_name: str
    channel_description: str = ""
    channel_members: list[str] = Field(default_factory=list)


class MessageResult(CamelModel):
    type: Literal["message"] = "message"
    message_id: str
    message_author_id: str
    message_content: str
    time: int | None = None
    channel_id: str
    channel_name: str
    user_name: str = ""
    email: str = ""
    photo_url: str = Field(default="", alias="photoURL")
    status: PresenceStatus | None = None
    direct_message_user_id: str | None = None
    direct_message_user_name: str | None = None
    replied_message_id: str | None = None
    replier_name: str | None = None


class OtherResult(CamelModel):
    type: Literal["other"] = "other"
    data: dict[str, Any] = Field(default_factory=dict)


SearchResult = Annotated[
    Union[UserResult, ChannelResult, MessageResult, OtherResult],
    Field(discriminator="type"),
]


class CategorizedSearchResults(CamelModel):
    messages: list[SearchResult] = Field(default_factory=list)
    direct_messages: list[SearchResult] = Field(default_factory=list)
    channels: list[SearchResult] = Field(default_factory=list)
    threads: list[SearchResult] = Field(default_factory=list)
    users: list[SearchResult] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not any((self.messages, self.direct_messages, self.channels, self.threads, self.users))

    def total(self) -> int:
        return sum(len(items) for items in (self.messages, self.direct_messages, self.channels, self.threads, self.users))


class SearchRequest(CamelModel):
    term: str | None = None
    uid: str | None = Field(default=None, description="Current user; required for direct-message results")


class ChannelPayload(CamelModel):
    channel_id: str
    channel_name: str
    channel_description: str
    direct_message: bool
    created_by: str
    channel_members: list[str]
    created_at: int | None = None
    updated_at: int | None = None

    @classmethod
    def from_record(cls, channel: ChannelRecord) -> "ChannelPayload":
        return cls(
            channel_id=channel.channel_id,
            channel_name=channel.channel_name,
            channel_description=channel.channel_description,
            direct_message=channel.is_direct_message,
            created_by=channel.created_by,
            channel_members=list(channel.channel_members),
            created_at=channel.created_at,
            updated_at=channel.updated_at,
        )


class ChannelViewResponse(CamelModel):
    regular_channels: list[ChannelPayload]
    direct_message_channels: list[ChannelPayload]
    self_channel: ChannelPayload | None = None

    @classmethod
    def from_set(cls, categorized: CategorizedChannelSet) -> "ChannelViewResponse":
        return cls(
            regular_channels=[ChannelPayload.from_record(c) for c in categorized.regular_channels],
            direct_message_channels=[ChannelPayload.from_record(c) for c in categorized.direct_message_channels],
            self_channel=ChannelPayload.from_record(categorized.self_channel) if categorized.self_channel else None,
        )


class UserPayload(CamelModel):
    uid: str
    user_name: str
    email: str = ""
    photo_url: str = Field(default="", alias="photoURL")

    @classmethod
    def from_identity(cls, user: UserIdentity) -> "UserPayload":
        return cls(uid=user.uid, user_name=user.user_name, email=user.email, photo_url=user.photo_url)


class PresencePayload(CamelModel):
    uid: str
    status: PresenceStatus
    timestamp: int | None = None
    last_seen: int | None = None

    @classmethod
    def from_record(cls, uid: str, record: PresenceRecord) -> "PresencePayload":
        return cls(uid=uid, status=record.status, timestamp=record.timestamp, last_seen=record.last_seen)


class OnlineUsersResponse(CamelModel):
    uids: list[str]
    count: int


class PresenceEventRequest(CamelModel):
    event: str
    visible: bool | None = None


class SessionResponse(CamelModel):
    uid: str
    status: PresenceStatus | None = None
    visible: bool = True
    away_pending: bool = False


class ImportRequest(CamelModel):
    paths: list[str]


class ImportResponse(CamelModel):
    job_id: str
    stats: dict[str, int]
    presence_seeded: int = 0


__all__ = [
    "UserResult",
    "ChannelResult",
    "MessageResult",
    "OtherResult",
    "SearchResult",
    "CategorizedSearchResults",
    "SearchRequest",
    "ChannelPayload",
    "ChannelViewResponse",
    "UserPayload",
    "PresencePayload",
    "OnlineUsersResponse",
    "PresenceEventRequest",
    "SessionResponse",
    "ImportRequest",
    "ImportResponse",
]
