"""
Realtime Store
Key-path store interface with in-memory and SQLite backends
"""
from cloudburst.store.base import RealtimeStore, join_path, split_path
from cloudburst.store.memory import InMemoryStore
from cloudburst.store.sqlite_store import SQLiteStore

__all__ = [
    'RealtimeStore',
    'InMemoryStore',
    'SQLiteStore',
    'join_path',
    'split_path',
]
