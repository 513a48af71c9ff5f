"""Session package: token generation, persistence and the explicit context value."""
from .identity import (
    SessionContext,
    SessionIdentity,
    generate_session_token,
    get_or_create_session_token,
    get_session_identity,
)
from .storage import FileTokenStore, MemoryTokenStore, RedisTokenStore, StorageKeys, build_token_store

__all__ = [
    "SessionContext",
    "SessionIdentity",
    "generate_session_token",
    "get_or_create_session_token",
    "get_session_identity",
    "FileTokenStore",
    "MemoryTokenStore",
    "RedisTokenStore",
    "StorageKeys",
    "build_token_store",
]
