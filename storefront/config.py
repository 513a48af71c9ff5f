"""
Client configuration.

Values come from the environment; a local `.env` file is loaded first so
development setups do not need exported variables.
"""
import os
from dataclasses import dataclass
from functools import cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_API_URL = "http://localhost:5000/api"
DEFAULT_TIMEOUT = 60.0  # large product payloads carry image refs
DEFAULT_TIMEZONE = "Europe/Moscow"
DEFAULT_SESSION_FILE = "~/.storefront/session.json"


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class StorefrontSettings:
    """Resolved client settings."""
    api_url: str = DEFAULT_API_URL
    api_timeout: float = DEFAULT_TIMEOUT
    timezone: str = DEFAULT_TIMEZONE
    session_file: Path = Path(DEFAULT_SESSION_FILE).expanduser()
    redis_url: Optional[str] = None
    redis_token: Optional[str] = None

    @property
    def redis_enabled(self) -> bool:
        """Redis token storage is used only when both Upstash values are set."""
        return bool(self.redis_url and self.redis_token)

    @classmethod
    def from_env(cls) -> "StorefrontSettings":
        """Build settings from environment variables."""
        return cls(
            api_url=os.environ.get("STOREFRONT_API_URL", DEFAULT_API_URL).rstrip("/"),
            api_timeout=_float_env("STOREFRONT_API_TIMEOUT", DEFAULT_TIMEOUT),
            timezone=os.environ.get("STOREFRONT_TIMEZONE", DEFAULT_TIMEZONE),
            session_file=Path(os.environ.get("STOREFRONT_SESSION_FILE", DEFAULT_SESSION_FILE)).expanduser(),
            redis_url=os.environ.get("UPSTASH_REDIS_REST_URL") or None,
            redis_token=os.environ.get("UPSTASH_REDIS_REST_TOKEN") or None,
        )


@cache
def get_settings() -> StorefrontSettings:
    """Get settings singleton (environment read once)."""
    load_dotenv()
    return StorefrontSettings.from_env()
