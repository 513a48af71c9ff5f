"""
Scheduled publication time model.

Operators schedule products and announcements in the business's civil time
(Moscow by default) regardless of their device's zone. A civil time is kept
as its own value type and converted to and from absolute instants only here,
so nothing downstream compares a civil reading with a machine instant.

Wire rules for a publication timestamp:
- ISO string or datetime WITH an offset ("...Z", "+03:00") is an absolute
  instant and is converted into the reference zone;
- one WITHOUT an offset is already civil time in the reference zone.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import cache
from typing import Any, Iterable, Optional, TypeVar
from zoneinfo import ZoneInfo

from storefront.config import get_settings
from storefront.logging import get_logger
from storefront.models import normalize_keys

logger = get_logger(__name__)

T = TypeVar("T")

# Fractional seconds right after HH:MM:SS; .NET serializers emit seven digits
_FRACTION = re.compile(r"(?<=:\d\d)\.(\d+)")


@dataclass(frozen=True, order=True)
class CivilTime:
    """Calendar/clock reading (minute resolution) in a named zone."""
    year: int
    month: int
    day: int
    hour: int
    minute: int
    zone: str = field(default="Europe/Moscow", compare=False)

    def __post_init__(self):
        # Raises ValueError for impossible readings (month 13, 25:00, ...)
        datetime(self.year, self.month, self.day, self.hour, self.minute)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}T{self.hour:02d}:{self.minute:02d}"


@cache
def get_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def _civil_from_naive(value: datetime, zone: str) -> CivilTime:
    return CivilTime(value.year, value.month, value.day, value.hour, value.minute, zone=zone)


def civil_from_instant(instant: datetime, zone: str) -> CivilTime:
    """
    Convert an absolute instant into civil time in `zone`.

    A naive datetime is taken as UTC: machine clocks are read in UTC here.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return _civil_from_naive(instant.astimezone(get_zone(zone)), zone)


def instant_from_civil(civil: CivilTime) -> datetime:
    """Convert a civil reading into an aware UTC datetime."""
    local = datetime(civil.year, civil.month, civil.day, civil.hour, civil.minute, tzinfo=get_zone(civil.zone))
    return local.astimezone(timezone.utc)


def _parse_iso(value: str) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat before 3.11 accepts exactly 3 or 6 fraction digits
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return datetime.fromisoformat(text)


def parse_publication_time(value: Any, zone: str) -> Optional[CivilTime]:
    """
    Interpret a wire timestamp as civil time in `zone`.

    Returns None for a missing value. Raises ValueError/TypeError for
    anything that is not a timestamp.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = _parse_iso(value)
    if not isinstance(value, datetime):
        raise TypeError(f"Unsupported publication timestamp: {value!r}")
    if value.tzinfo is None:
        return _civil_from_naive(value, zone)
    return civil_from_instant(value, zone)


def parse_civil_input(value: str, zone: str) -> CivilTime:
    """
    Parse a form value "YYYY-MM-DDTHH:MM" as civil time in `zone`.

    Seconds, if present, are dropped. Raises ValueError on bad input.
    """
    text = (value or "").strip()
    if not text:
        raise ValueError("Empty civil time")
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        raise ValueError(f"Civil time must not carry an offset: {value!r}")
    return _civil_from_naive(parsed, zone)


def format_civil(civil: CivilTime) -> str:
    """Display form used in admin lists: "DD.MM.YYYY, HH:MM"."""
    return f"{civil.day:02d}.{civil.month:02d}.{civil.year:04d}, {civil.hour:02d}:{civil.minute:02d}"


def to_wire_instant(civil: CivilTime) -> str:
    """ISO-8601 UTC string ("2025-06-01T08:00:00.000Z") for request payloads."""
    return instant_from_civil(civil).strftime("%Y-%m-%dT%H:%M:%S.000Z")


class PublicationClock:
    """
    Decides whether a product (or any scheduled item) is visible now.

    Visibility is binary and monotonic: once the reference-zone clock reaches
    the publication minute the item stays visible. A missing timestamp means
    visible immediately; an unreadable one is treated as visible too, so a bad
    value never hides stock that is on sale.
    """

    def __init__(self, timezone_name: Optional[str] = None):
        self.timezone_name = timezone_name or get_settings().timezone
        # Fail fast on a misconfigured zone name
        get_zone(self.timezone_name)

    def now_civil(self, now: Optional[datetime] = None) -> CivilTime:
        """Current (or given) instant as reference-zone civil time."""
        if now is None:
            now = datetime.now(timezone.utc)
        return civil_from_instant(now, self.timezone_name)

    def publication_time(self, item: Any) -> Optional[CivilTime]:
        """
        Civil publication time of a product (model or wire dict) or raw timestamp.

        None when the item has no schedule or the schedule is unreadable.
        """
        if isinstance(item, dict):
            # Raw wire product, camelCase or PascalCase
            value = normalize_keys(item).get("published_at")
        else:
            value = getattr(item, "published_at", item)
        try:
            return parse_publication_time(value, self.timezone_name)
        except (ValueError, TypeError) as e:
            logger.debug(f"Unreadable publication time {value!r}, treating as published: {e}")
            return None

    def is_visible(self, item: Any, now: Optional[datetime] = None) -> bool:
        """
        Args:
            item: Product (anything with `published_at`), wire product dict
                or the timestamp itself
            now: Instant to check against; defaults to the current time

        Returns:
            True when the item is published at `now`
        """
        scheduled = self.publication_time(item)
        if scheduled is None:
            return True
        return self.now_civil(now) >= scheduled

    def visible(self, items: Iterable[T], now: Optional[datetime] = None) -> list[T]:
        now_value = now or datetime.now(timezone.utc)
        return [item for item in items if self.is_visible(item, now_value)]

    def hidden(self, items: Iterable[T], now: Optional[datetime] = None) -> list[T]:
        now_value = now or datetime.now(timezone.utc)
        return [item for item in items if not self.is_visible(item, now_value)]
