"""Storage abstractions for GymTap."""

from .chroma import ChromaKeyValueStore, ChromaUnavailableError
from .gateway import PersistenceGateway
from .kv import FileKeyValueStore, KeyValueStore, StorageError, SyncedKeyValueStore
from .models import Session, SlotReport, decode_sessions, encode_sessions

__all__ = [
    "ChromaKeyValueStore",
    "ChromaUnavailableError",
    "FileKeyValueStore",
    "KeyValueStore",
    "PersistenceGateway",
    "Session",
    "SlotReport",
    "StorageError",
    "SyncedKeyValueStore",
    "decode_sessions",
    "encode_sessions",
]
