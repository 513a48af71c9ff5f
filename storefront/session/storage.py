"""
Key-value stores for the persisted session token.

Provides:
- MemoryTokenStore for tests and throwaway clients
- FileTokenStore, one JSON document on disk (survives restarts, not a wipe)
- RedisTokenStore backed by Upstash Redis for server-side rendering hosts
"""
import asyncio
import json
import os
from pathlib import Path
from typing import Optional, Protocol

from upstash_redis.asyncio import Redis as AsyncRedis

from storefront.config import StorefrontSettings
from storefront.logging import get_logger

logger = get_logger(__name__)


class StorageKeys:
    """Key names for persisted client state."""

    SESSION_ID = "sessionId"

    # Redis namespace, shared with other storefront services
    REDIS_PREFIX = "storefront:"

    @staticmethod
    def redis_key(key: str) -> str:
        return f"{StorageKeys.REDIS_PREFIX}{key}"


class TokenStore(Protocol):
    """Minimal async key-value interface."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryTokenStore:
    """Dict-backed store; lives as long as the process."""

    def __init__(self, initial: Optional[dict] = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class FileTokenStore:
    """
    Store backed by a single JSON object on disk.

    Writes go to a sibling temp file first and are moved into place, so a
    crash mid-write never leaves a truncated document behind.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return {}
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"Session file {self.path} does not hold a JSON object")
        return data

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data), encoding="utf-8")
        os.replace(tmp_path, self.path)

    async def get(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(self._read)
        value = data.get(key)
        return str(value) if value else None

    async def set(self, key: str, value: str) -> None:
        def _update():
            data = self._read()
            data[key] = value
            self._write(data)

        await asyncio.to_thread(_update)

    async def delete(self, key: str) -> None:
        def _remove():
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)

        await asyncio.to_thread(_remove)


class RedisTokenStore:
    """Store backed by Upstash Redis (REST). Keys never expire."""

    def __init__(self, redis: AsyncRedis):
        self.redis = redis

    @classmethod
    def from_settings(cls, settings: StorefrontSettings) -> "RedisTokenStore":
        if not settings.redis_enabled:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        return cls(AsyncRedis(url=settings.redis_url, token=settings.redis_token))

    async def get(self, key: str) -> Optional[str]:
        value = await self.redis.get(StorageKeys.redis_key(key))
        return str(value) if value else None

    async def set(self, key: str, value: str) -> None:
        await self.redis.set(StorageKeys.redis_key(key), value)

    async def delete(self, key: str) -> None:
        await self.redis.delete(StorageKeys.redis_key(key))


def build_token_store(settings: StorefrontSettings) -> TokenStore:
    """Pick the token store for the configured environment."""
    if settings.redis_enabled:
        logger.debug("Session tokens stored in Upstash Redis")
        return RedisTokenStore.from_settings(settings)
    logger.debug(f"Session tokens stored in {settings.session_file}")
    return FileTokenStore(settings.session_file)
