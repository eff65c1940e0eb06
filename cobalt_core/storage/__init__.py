"""Persistent store abstraction and bundled backends."""

from cobalt_core.storage.base import PersistentStore
from cobalt_core.storage.codec import JsonCodec
from cobalt_core.storage.file_store import FileStore
from cobalt_core.storage.memory import MemoryStore

__all__ = [
    "FileStore",
    "JsonCodec",
    "MemoryStore",
    "PersistentStore",
]
