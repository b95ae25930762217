"""SQLite-backed document store for the local workspace service."""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence

import orjson

from chat_workspace.core.errors import MalformedRecordError
from chat_workspace.core.logging import get_logger
from chat_workspace.models.entities import ChannelRecord, MessageRecord, UserIdentity
from chat_workspace.utils.time import now_ms

logger = get_logger(__name__)

DEFAULT_PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA foreign_keys=ON;",
    "PRAGMA temp_store=MEMORY;",
)


class SQLiteDatabase:
    """Thin wrapper around sqlite3 shared between the event loop and worker threads."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path.expanduser()
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def connect(self) -> sqlite3.Connection:
        with self._lock:
            if self._connection is None:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
                self._connection.row_factory = sqlite3.Row
                for pragma in DEFAULT_PRAGMAS:
                    self._connection.execute(pragma)
            return self._connection

    def close(self) -> None:
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[sqlite3.Row]:
        with self._lock:
            return self.connect().execute(sql, params or []).fetchall()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        with self._lock:
            conn = self.connect()
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    def ensure_schema(self, schema_sql: str | None = None) -> None:
        if schema_sql is None:
            schema_sql = Path(__file__).with_name("schema.sql").read_text(encoding="utf-8")
        with self._lock:
            self.connect().executescript(schema_sql)


def _dumps(payload: dict[str, Any]) -> str:
    return orjson.dumps(payload).decode("utf-8")


def _load_rows(rows: Sequence[sqlite3.Row], factory: Any) -> list[Any]:
    records = []
    for row in rows:
        try:
            records.append(factory(orjson.loads(row["data_json"])))
        except MalformedRecordError as exc:
            logger.warning("Skipping stored record: %s", exc)
    return records


class SQLiteDocumentStore:
    """``DocumentStore`` over SQLite; blocking calls run in worker threads."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self.db = database

    # Reads ------------------------------------------------------------

    async def list_channels(self) -> list[ChannelRecord]:
        return await asyncio.to_thread(self._select_channels, "", [])

    async def list_channels_for_member(self, uid: str) -> list[ChannelRecord]:
        return await asyncio.to_thread(
            self._select_channels,
            "WHERE id IN (SELECT channel_id FROM channel_members WHERE uid = ?)",
            [uid],
        )

    async def get_channel(self, channel_id: str) -> ChannelRecord | None:
        channels = await asyncio.to_thread(self._select_channels, "WHERE id = ?", [channel_id])
        return channels[0] if channels else None

    async def list_messages(self, channel_id: str) -> list[MessageRecord]:
        rows = await asyncio.to_thread(
            self.db.query,
            "SELECT data_json FROM messages WHERE channel_id = ? ORDER BY ts ASC, rowid ASC",
            [channel_id],
        )
        return _load_rows(rows, MessageRecord.from_mapping)

    async def list_thread_messages(self, channel_id: str, message_id: str) -> list[MessageRecord]:
        rows = await asyncio.to_thread(
            self.db.query,
            """
            SELECT data_json FROM thread_messages
            WHERE channel_id = ? AND parent_id = ?
            ORDER BY ts ASC, rowid ASC
            """,
            [channel_id, message_id],
        )
        return _load_rows(rows, MessageRecord.from_mapping)

    async def list_users(self) -> list[UserIdentity]:
        rows = await asyncio.to_thread(self.db.query, "SELECT data_json FROM users ORDER BY user_name, uid", [])
        return _load_rows(rows, UserIdentity.from_mapping)

    async def get_user(self, uid: str) -> UserIdentity | None:
        users = await self.get_users([uid])
        return users[0] if users else None

    async def get_users(self, uids: Sequence[str]) -> list[UserIdentity]:
        if not uids:
            return []
        placeholders = ",".join("?" for _ in uids)
        rows = await asyncio.to_thread(
            self.db.query,
            f"SELECT data_json FROM users WHERE uid IN ({placeholders})",
            list(uids),
        )
        return _load_rows(rows, UserIdentity.from_mapping)

    def _select_channels(self, where: str, params: list[Any]) -> list[ChannelRecord]:
        rows = self.db.query(
            f"SELECT data_json FROM channels {where} ORDER BY created_at DESC, rowid ASC",
            params,
        )
        return _load_rows(rows, ChannelRecord.from_mapping)

    # Writes (used by the snapshot importer) -----------------------------

    def upsert_user(self, cursor: sqlite3.Cursor, user: UserIdentity) -> None:
        cursor.execute(
            """
            INSERT INTO users (uid, user_name, data_json, imported_at) VALUES (?, ?, ?, ?)
            ON CONFLICT(uid) DO UPDATE SET
              user_name = excluded.user_name,
              data_json = excluded.data_json,
              imported_at = excluded.imported_at
            """,
            [user.uid, user.user_name, _dumps(user.to_mapping()), now_ms()],
        )

    def upsert_channel(self, cursor: sqlite3.Cursor, channel: ChannelRecord) -> None:
        cursor.execute(
            """
            INSERT INTO channels (id, is_direct_message, created_at, data_json, imported_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
              is_direct_message = excluded.is_direct_message,
              created_at = excluded.created_at,
              data_json = excluded.data_json,
              imported_at = excluded.imported_at
            """,
            [
                channel.channel_id,
                int(channel.is_direct_message),
                channel.created_at,
                _dumps(channel.to_mapping()),
                now_ms(),
            ],
        )
        cursor.execute("DELETE FROM channel_members WHERE channel_id = ?", [channel.channel_id])
        cursor.executemany(
            "INSERT INTO channel_members (channel_id, ordinal, uid) VALUES (?, ?, ?)",
            [(channel.channel_id, idx, uid) for idx, uid in enumerate(channel.channel_members)],
        )

    def upsert_message(self, cursor: sqlite3.Cursor, channel_id: str, message: MessageRecord) -> None:
        cursor.execute(
            """
            INSERT INTO messages (channel_id, id, author_uid, ts, has_thread, data_json)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(channel_id, id) DO UPDATE SET
              author_uid = excluded.author_uid,
              ts = excluded.ts,
              has_thread = excluded.has_thread,
              data_json = excluded.data_json
            """,
            [
                channel_id,
                message.message_id,
                message.uid,
                message.timestamp,
                int(message.has_thread),
                _dumps(message.to_mapping()),
            ],
        )

    def upsert_thread_message(
        self,
        cursor: sqlite3.Cursor,
        channel_id: str,
        parent_id: str,
        message: MessageRecord,
    ) -> None:
        cursor.execute(
            """
            INSERT INTO thread_messages (channel_id, parent_id, id, author_uid, ts, data_json)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(channel_id, parent_id, id) DO UPDATE SET
              author_uid = excluded.author_uid,
              ts = excluded.ts,
              data_json = excluded.data_json
            """,
            [
                channel_id,
                parent_id,
                message.message_id,
                message.uid,
                message.timestamp,
                _dumps(message.to_mapping()),
            ],
        )

    def counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for table in ("users", "channels", "messages", "thread_messages"):
            row = self.db.query(f"SELECT COUNT(*) AS total FROM {table}")[0]
            counts[table] = int(row["total"])
        return counts


__all__ = ["SQLiteDatabase", "SQLiteDocumentStore"]
