"""Import workspace exports (users, channels, messages, threads, presence) into the local store."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

import orjson
import yaml

from chat_workspace.channels.categorizer import normalize_self_channel_members, pair_key
from chat_workspace.core.errors import MalformedRecordError, SnapshotFormatError
from chat_workspace.core.logging import get_logger
from chat_workspace.db.sqlite import SQLiteDocumentStore
from chat_workspace.models.entities import ChannelRecord, MessageRecord, PresenceRecord, UserIdentity
from chat_workspace.utils.ids import new_id

logger = get_logger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")
JSON_SUFFIXES = (".json",)


@dataclass(slots=True)
class ImportStats:
    users: int = 0
    channels: int = 0
    messages: int = 0
    threads: int = 0
    skipped: int = 0
    duplicates: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "users": self.users,
            "channels": self.channels,
            "messages": self.messages,
            "threads": self.threads,
            "skipped": self.skipped,
            "duplicates": self.duplicates,
        }


@dataclass(slots=True)
class ImportResult:
    job_id: str
    stats: ImportStats
    presence: dict[str, PresenceRecord] = field(default_factory=dict)


def load_snapshot(path: Path) -> Mapping[str, Any]:
    """Parse a YAML or JSON export into a mapping."""
    suffix = path.suffix.lower()
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise SnapshotFormatError(f"Cannot read snapshot {path}: {exc}") from exc
    try:
        if suffix in YAML_SUFFIXES:
            data = yaml.safe_load(raw)
        elif suffix in JSON_SUFFIXES:
            data = orjson.loads(raw)
        else:
            raise SnapshotFormatError(f"Unsupported snapshot format: {path.name}")
    except (yaml.YAMLError, orjson.JSONDecodeError) as exc:
        raise SnapshotFormatError(f"Invalid snapshot {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise SnapshotFormatError(f"Snapshot {path} must contain a mapping at the top level")
    return data


class SnapshotImporter:
    """Normalize exported records and persist them into the SQLite document store."""

    def __init__(self, store: SQLiteDocumentStore) -> None:
        self.store = store

    def import_paths(self, paths: Sequence[Path]) -> ImportResult:
        result = ImportResult(job_id=new_id("imp"), stats=ImportStats())
        for path in paths:
            snapshot = load_snapshot(path.expanduser())
            logger.info("Importing snapshot %s", path)
            self.import_snapshot(snapshot, result)
        return result

    def import_snapshot(self, snapshot: Mapping[str, Any], result: ImportResult | None = None) -> ImportResult:
        result = result or ImportResult(job_id=new_id("imp"), stats=ImportStats())
        stats = result.stats
        with self.store.db.transaction() as cursor:
            for raw in snapshot.get("users") or []:
                try:
                    user = UserIdentity.from_mapping(raw)
                except MalformedRecordError as exc:
                    logger.warning("Skipping user: %s", exc)
                    stats.skipped += 1
                    continue
                self.store.upsert_user(cursor, user)
                stats.users += 1

            # Duplicate pairs are stored as-is; the channel view collapses them on read.
            seen_pairs: set[str] = set()
            for raw in snapshot.get("channels") or []:
                channel = self._parse_channel(raw, stats)
                if channel is None:
                    continue
                if channel.is_direct_message:
                    key = pair_key(channel)
                    if key in seen_pairs:
                        logger.info("Direct message %s repeats an imported member pair", channel.channel_id)
                        stats.duplicates += 1
                    seen_pairs.add(key)
                self.store.upsert_channel(cursor, channel)
                stats.channels += 1
                self._import_messages(cursor, channel, raw.get("messages") or [], stats)

        for uid, raw in (snapshot.get("presence") or {}).items():
            try:
                result.presence[uid] = PresenceRecord.from_mapping(raw, uid)
            except MalformedRecordError as exc:
                logger.warning("Skipping presence: %s", exc)
                stats.skipped += 1
        return result

    # Internal helpers -------------------------------------------------

    def _parse_channel(self, raw: Any, stats: ImportStats) -> ChannelRecord | None:
        try:
            channel = normalize_self_channel_members(ChannelRecord.from_mapping(raw))
        except MalformedRecordError as exc:
            logger.warning("Skipping channel: %s", exc)
            stats.skipped += 1
            return None
        if channel.is_direct_message:
            members = channel.channel_members
            if len(members) != 2 or not all(members):
                logger.warning("Skipping direct message %s: needs two member ids", channel.channel_id)
                stats.skipped += 1
                return None
        return channel

    def _import_messages(self, cursor: Any, channel: ChannelRecord, raw_messages: Sequence[Any], stats: ImportStats) -> None:
        for raw in raw_messages:
            try:
                message = MessageRecord.from_mapping(raw)
            except MalformedRecordError as exc:
                logger.warning("Skipping message in %s: %s", channel.channel_id, exc)
                stats.skipped += 1
                continue
            replies = raw.get("thread") or []
            if replies and not message.has_thread:
                message.has_thread = True
            self.store.upsert_message(cursor, channel.channel_id, message)
            stats.messages += 1
            for raw_reply in replies:
                try:
                    reply = MessageRecord.from_mapping(raw_reply)
                except MalformedRecordError as exc:
                    logger.warning("Skipping reply to %s: %s", message.message_id, exc)
                    stats.skipped += 1
                    continue
                self.store.upsert_thread_message(cursor, channel.channel_id, message.message_id, reply)
                stats.threads += 1


__all__ = ["SnapshotImporter", "ImportStats", "ImportResult", "load_snapshot"]
