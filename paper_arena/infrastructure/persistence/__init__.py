"""
Persistence infrastructure.

This module provides the persisted document schema, history trimming and
the JSON file and SQLite state stores.
"""

from paper_arena.core.config import Settings
from paper_arena.core.protocols import IStateStore

from .json_store import JsonFileStateStore
from .repository import StateRepository
from .sqlite_store import SqliteStateStore


def create_state_store(settings: Settings) -> IStateStore:
    """Build the store selected by ``settings.storage_backend``."""
    if settings.storage_backend == "sqlite":
        store = SqliteStateStore(settings.sqlite_path, quota_bytes=settings.storage_quota_bytes)
        store.initialize()
        return store
    return JsonFileStateStore(settings.state_path, quota_bytes=settings.storage_quota_bytes)


__all__ = ["JsonFileStateStore", "SqliteStateStore", "StateRepository", "create_state_store"]
