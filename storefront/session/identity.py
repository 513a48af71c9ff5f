"""
Anonymous session identity.

A session token scopes a shopper's cart (and the stock it reserves) on the
server without a login. It is created lazily, persisted once and never
changed; when the store is unusable the identity degrades to a token kept in
memory for the life of the process.
"""
import asyncio
import random
import string
import time
from dataclasses import dataclass, replace
from typing import Optional

from storefront.config import get_settings
from storefront.logging import get_logger, mask_session_id
from .storage import StorageKeys, TokenStore, build_token_store

logger = get_logger(__name__)

_BASE36 = string.digits + string.ascii_lowercase
_RANDOM_PART_LENGTH = 13


def generate_session_token(now_ms: Optional[int] = None) -> str:
    """
    Build a new token: `session_<epoch-ms>_<13 base36 chars>`.

    Uniqueness across browsers comes from the timestamp plus the random
    suffix; the token guards a cart reservation, not an account, so a
    non-cryptographic generator is enough.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(random.choices(_BASE36, k=_RANDOM_PART_LENGTH))
    return f"session_{now_ms}_{suffix}"


@dataclass(frozen=True)
class SessionContext:
    """Identity passed explicitly to the cart, availability and API layers."""
    session_id: str
    auth_token: Optional[str] = None

    def with_auth(self, auth_token: Optional[str]) -> "SessionContext":
        return replace(self, auth_token=auth_token or None)

    def without_auth(self) -> "SessionContext":
        return replace(self, auth_token=None)


class SessionIdentity:
    """Produces and persists the per-client session token."""

    def __init__(self, store: Optional[TokenStore], key: str = StorageKeys.SESSION_ID):
        self.store = store
        self.key = key
        self._fallback_token: Optional[str] = None
        self._lock = asyncio.Lock()

    @property
    def is_persistent(self) -> bool:
        """False once the identity had to fall back to an in-memory token."""
        return self.store is not None and self._fallback_token is None

    async def get_or_create(self) -> str:
        """
        Return the session token, creating and persisting it on first use.

        Never raises.
        """
        async with self._lock:
            if self._fallback_token is not None:
                return self._fallback_token

            if self.store is None:
                return self._fall_back(None)

            try:
                token = await self.store.get(self.key)
            except Exception as e:
                return self._fall_back(e)

            if token:
                return token

            token = generate_session_token()
            try:
                await self.store.set(self.key, token)
            except Exception as e:
                return self._fall_back(e, token)

            logger.info(f"Created new session ID: {mask_session_id(token)}")
            return token

    def _fall_back(self, error: Optional[Exception], token: Optional[str] = None) -> str:
        self._fallback_token = token or generate_session_token()
        if error is not None:
            logger.warning(f"Session storage unavailable, cart will not survive a restart: {error}")
        return self._fallback_token

    async def context(self, auth_token: Optional[str] = None) -> SessionContext:
        """Resolve the token and wrap it in a SessionContext."""
        return SessionContext(session_id=await self.get_or_create(), auth_token=auth_token)


# Default identity built from settings
_default_identity: Optional[SessionIdentity] = None


def get_session_identity() -> SessionIdentity:
    """Get the default SessionIdentity singleton."""
    global _default_identity
    if _default_identity is None:
        try:
            store = build_token_store(get_settings())
        except ValueError as e:
            logger.warning(f"Session storage not configured: {e}")
            store = None
        _default_identity = SessionIdentity(store)
    return _default_identity


async def get_or_create_session_token() -> str:
    """Shortcut for `get_session_identity().get_or_create()`."""
    return await get_session_identity().get_or_create()
