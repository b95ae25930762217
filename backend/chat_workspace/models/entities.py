"""Internal dataclasses representing records read from the backing stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from chat_workspace.core.errors import MalformedRecordError
from chat_workspace.utils.time import to_millis


class PresenceStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    AWAY = "away"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"
    GUEST = "guest"


# Flag-style roles ({"guest": true, ...}) resolve to the most restrictive flag set.
_ROLE_PRECEDENCE = (UserRole.GUEST, UserRole.ADMIN, UserRole.MODERATOR, UserRole.USER)


def _require_str(data: Mapping[str, Any], key: str, kind: str, record_id: str | None = None) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise MalformedRecordError(kind, f"missing '{key}'", record_id)
    return value


def _timestamp(data: Mapping[str, Any], key: str, kind: str, record_id: str | None) -> int | None:
    try:
        return to_millis(data.get(key))
    except (TypeError, ValueError) as exc:
        raise MalformedRecordError(kind, f"bad '{key}': {exc}", record_id) from exc


def _parse_role(raw: Any) -> UserRole | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        try:
            return UserRole(raw.lower())
        except ValueError:
            return None
    if isinstance(raw, Mapping):
        for role in _ROLE_PRECEDENCE:
            if raw.get(role.value):
                return role
    return None


def _parse_status(raw: Any) -> PresenceStatus | None:
    if isinstance(raw, PresenceStatus):
        return raw
    if isinstance(raw, str):
        try:
            return PresenceStatus(raw)
        except ValueError:
            return None
    return None


@dataclass(slots=True)
class UserIdentity:
    uid: str
    user_name: str
    email: str = ""
    photo_url: str = ""
    created_at: int | None = None
    status: PresenceStatus | None = None
    role: UserRole | None = None

    @property
    def is_guest(self) -> bool:
        return self.role is UserRole.GUEST

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "UserIdentity":
        if not isinstance(data, Mapping):
            raise MalformedRecordError("user", "expected a mapping")
        uid = _require_str(data, "uid", "user")
        user_name = _require_str(data, "userName", "user", uid)
        return cls(
            uid=uid,
            user_name=user_name,
            email=data.get("email") or "",
            photo_url=data.get("photoURL") or "",
            created_at=_timestamp(data, "createdAt", "user", uid),
            status=_parse_status(data.get("status")),
            role=_parse_role(data.get("role")),
        )

    def to_mapping(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "uid": self.uid,
            "userName": self.user_name,
            "email": self.email,
            "photoURL": self.photo_url,
            "createdAt": self.created_at,
        }
        if self.status is not None:
            payload["status"] = self.status.value
        if self.role is not None:
            payload["role"] = self.role.value
        return payload


@dataclass(slots=True)
class PresenceRecord:
    """One entry of the shared ``presence/{uid}`` table."""

    status: PresenceStatus
    timestamp: int | None = None
    last_seen: int | None = None

    @classmethod
    def from_mapping(cls, data: Any, uid: str | None = None) -> "PresenceRecord":
        if not isinstance(data, Mapping):
            raise MalformedRecordError("presence", "expected a mapping", uid)
        status = _parse_status(data.get("status"))
        if status is None:
            raise MalformedRecordError("presence", f"unknown status {data.get('status')!r}", uid)
        return cls(
            status=status,
            timestamp=_timestamp(data, "timestamp", "presence", uid),
            last_seen=_timestamp(data, "lastSeen", "presence", uid),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {"status": self.status.value, "timestamp": self.timestamp, "lastSeen": self.last_seen}


@dataclass(slots=True)
class ChannelType:
    channel: bool = True
    direct_message: bool = False

    @classmethod
    def from_mapping(cls, data: Any) -> "ChannelType":
        if not isinstance(data, Mapping):
            return cls()
        direct = bool(data.get("directMessage", False))
        return cls(channel=bool(data.get("channel", not direct)), direct_message=direct)


@dataclass(slots=True)
class ChannelRecord:
    channel_id: str
    channel_type: ChannelType = field(default_factory=ChannelType)
    channel_name: str = ""
    channel_description: str = ""
    created_by: str = ""
    channel_members: list[str] = field(default_factory=list)
    created_at: int | None = None
    updated_at: int | None = None

    @property
    def is_direct_message(self) -> bool:
        return self.channel_type.direct_message

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ChannelRecord":
        if not isinstance(data, Mapping):
            raise MalformedRecordError("channel", "expected a mapping")
        channel_id = data.get("channelId") or data.get("id")
        if not isinstance(channel_id, str) or not channel_id:
            raise MalformedRecordError("channel", "missing 'channelId'")
        raw_members = data.get("channelMembers") or []
        if not isinstance(raw_members, (list, tuple)):
            raise MalformedRecordError("channel", "'channelMembers' must be a list", channel_id)
        # Empty ids are kept so validation can report them instead of silently shrinking the pair.
        members = [member if isinstance(member, str) else "" for member in raw_members]
        return cls(
            channel_id=channel_id,
            channel_type=ChannelType.from_mapping(data.get("channelType")),
            channel_name=data.get("channelName") or "",
            channel_description=data.get("channelDescription") or "",
            created_by=data.get("createdBy") or "",
            channel_members=members,
            created_at=_timestamp(data, "createdAt", "channel", channel_id),
            updated_at=_timestamp(data, "updatedAt", "channel", channel_id),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "channelId": self.channel_id,
            "channelType": {
                "channel": self.channel_type.channel,
                "directMessage": self.channel_type.direct_message,
            },
            "channelName": self.channel_name,
            "channelDescription": self.channel_description,
            "createdBy": self.created_by,
            "channelMembers": list(self.channel_members),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(slots=True)
class MessageRecord:
    """A channel message or a thread reply."""

    message_id: str
    uid: str
    text: str
    timestamp: int | None = None
    has_thread: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MessageRecord":
        if not isinstance(data, Mapping):
            raise MalformedRecordError("message", "expected a mapping")
        message_id = _require_str(data, "messageId", "message")
        text = data.get("text")
        if not isinstance(text, str):
            raise MalformedRecordError("message", "missing 'text'", message_id)
        return cls(
            message_id=message_id,
            uid=data.get("uid") or "",
            text=text,
            timestamp=_timestamp(data, "timestamp", "message", message_id),
            has_thread=bool(data.get("hasThread", False)),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "messageId": self.message_id,
            "uid": self.uid,
            "text": self.text,
            "timestamp": self.timestamp,
            "hasThread": self.has_thread,
        }


@dataclass(slots=True)
class CategorizedChannelSet:
    regular_channels: list[ChannelRecord] = field(default_factory=list)
    direct_message_channels: list[ChannelRecord] = field(default_factory=list)
    self_channel: ChannelRecord | None = None


__all__ = [
    "PresenceStatus",
    "UserRole",
    "UserIdentity",
    "PresenceRecord",
    "ChannelType",
    "ChannelRecord",
    "MessageRecord",
    "CategorizedChannelSet",
]
