from .database import SQLiteSessionDB
from .guard import SessionStoreError, SessionStoreGuard
from .keys import EntryKind, Feature, SessionKey
from .store import SessionStore, open_session_store

__all__ = [
    "EntryKind",
    "Feature",
    "SQLiteSessionDB",
    "SessionKey",
    "SessionStore",
    "SessionStoreError",
    "SessionStoreGuard",
    "open_session_store",
]
