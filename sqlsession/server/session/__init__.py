"""Cookie-keyed sessions persisted in one SQLite table, with TTL expiry."""

from .dependencies import get_session, get_session_manager
from .errors import CodecFault, ConfigError, DecodeError, EncodeError, SessionError, StorageFault
from .manager import SessionManager
from .models import Session, SessionConfig
from .store import SQLiteSessionStore
from .sweeper import ExpirySweeper

__all__ = [
    "CodecFault",
    "ConfigError",
    "DecodeError",
    "EncodeError",
    "ExpirySweeper",
    "SQLiteSessionStore",
    "Session",
    "SessionConfig",
    "SessionError",
    "SessionManager",
    "StorageFault",
    "get_session",
    "get_session_manager",
]
