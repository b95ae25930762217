"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from chat_workspace.core.config import Settings, get_settings
from chat_workspace.db.sqlite import SQLiteDatabase, SQLiteDocumentStore
from chat_workspace.ingest.snapshot import SnapshotImporter
from chat_workspace.presence.cache import PresenceCache
from chat_workspace.presence.sessions import PresenceSessionRegistry
from chat_workspace.search.aggregator import SearchAggregator
from chat_workspace.stores.realtime import InMemoryRealtimeStore, RealtimeConnection
from chat_workspace.users.lookup import UserLookup

_DB: SQLiteDatabase | None = None
_DOCUMENTS: SQLiteDocumentStore | None = None
_REALTIME: InMemoryRealtimeStore | None = None
_SERVICE_CONNECTION: RealtimeConnection | None = None
_PRESENCE_CACHE: PresenceCache | None = None
_USER_LOOKUP: UserLookup | None = None
_AGGREGATOR: SearchAggregator | None = None
_IMPORTER: SnapshotImporter | None = None
_SESSIONS: PresenceSessionRegistry | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        settings = get_app_settings()
        db = SQLiteDatabase(settings.db_path)
        db.ensure_schema()
        _DB = db
    return _DB


def get_document_store() -> SQLiteDocumentStore:
    global _DOCUMENTS
    if _DOCUMENTS is None:
        _DOCUMENTS = SQLiteDocumentStore(get_database())
    return _DOCUMENTS


def get_realtime_server() -> InMemoryRealtimeStore:
    global _REALTIME
    if _REALTIME is None:
        _REALTIME = InMemoryRealtimeStore()
    return _REALTIME


def get_service_connection() -> RealtimeConnection:
    """Connection used by the service itself for reads and the presence cache."""
    global _SERVICE_CONNECTION
    if _SERVICE_CONNECTION is None:
        _SERVICE_CONNECTION = get_realtime_server().connect()
    return _SERVICE_CONNECTION


def get_presence_cache() -> PresenceCache:
    global _PRESENCE_CACHE
    if _PRESENCE_CACHE is None:
        cache = PresenceCache(get_service_connection(), get_app_settings())
        cache.start()
        _PRESENCE_CACHE = cache
    return _PRESENCE_CACHE


def get_user_lookup() -> UserLookup:
    global _USER_LOOKUP
    if _USER_LOOKUP is None:
        _USER_LOOKUP = UserLookup(get_document_store(), batch_size=get_app_settings().user_batch_size)
    return _USER_LOOKUP


def get_search_aggregator() -> SearchAggregator:
    global _AGGREGATOR
    if _AGGREGATOR is None:
        _AGGREGATOR = SearchAggregator(
            documents=get_document_store(),
            users=get_user_lookup(),
            presence=get_service_connection(),
            settings=get_app_settings(),
        )
    return _AGGREGATOR


def get_importer() -> SnapshotImporter:
    global _IMPORTER
    if _IMPORTER is None:
        _IMPORTER = SnapshotImporter(get_document_store())
    return _IMPORTER


def get_session_registry() -> PresenceSessionRegistry:
    global _SESSIONS
    if _SESSIONS is None:
        _SESSIONS = PresenceSessionRegistry(get_realtime_server(), get_app_settings())
    return _SESSIONS


def reset_dependencies() -> None:
    """Drop every singleton; the next request rebuilds them from current settings."""
    global _DB, _DOCUMENTS, _REALTIME, _SERVICE_CONNECTION, _PRESENCE_CACHE
    global _USER_LOOKUP, _AGGREGATOR, _IMPORTER, _SESSIONS
    if _PRESENCE_CACHE is not None:
        _PRESENCE_CACHE.stop()
    if _DB is not None:
        _DB.close()
    _DB = _DOCUMENTS = _REALTIME = _SERVICE_CONNECTION = _PRESENCE_CACHE = None
    _USER_LOOKUP = _AGGREGATOR = _IMPORTER = _SESSIONS = None
    get_app_settings.cache_clear()
    get_settings.cache_clear()


__all__ = [
    "get_app_settings",
    "get_database",
    "get_document_store",
    "get_realtime_server",
    "get_service_connection",
    "get_presence_cache",
    "get_user_lookup",
    "get_search_aggregator",
    "get_importer",
    "get_session_registry",
    "reset_dependencies",
]
