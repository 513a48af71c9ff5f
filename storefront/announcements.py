"""
Scheduled announcements.

Operators enter the send time as civil time in the business zone
("YYYY-MM-DDTHH:MM", whatever their device zone is). It is converted once,
here, into an absolute UTC instant for the API, and converted back to civil
time for display.
"""
from typing import Iterable, Optional

from storefront.api.client import StorefrontApi
from storefront.errors import ERROR_PRODUCTS_REQUIRED, ERROR_SCHEDULE_REQUIRED, InvalidRequestError
from storefront.logging import get_logger
from storefront.models import Announcement, Product
from storefront.publication import PublicationClock, format_civil, parse_civil_input, to_wire_instant

logger = get_logger(__name__)


def filter_by_brand(products: Iterable[Product], brand: Optional[str]) -> list[Product]:
    """Case-insensitive substring match on brand; no filter when `brand` is blank."""
    needle = (brand or "").strip().lower()
    if not needle:
        return list(products)
    return [p for p in products if p.brand and needle in p.brand.lower()]


class AnnouncementScheduler:
    """Create, list and delete scheduled announcements."""

    def __init__(self, api: StorefrontApi, clock: PublicationClock):
        self.api = api
        self.clock = clock

    def build_payload(self, message: str, scheduled_at: str, product_ids: Iterable[str]) -> dict:
        """Validate the form values and build the request body."""
        ids = [str(pid) for pid in product_ids]
        if not (scheduled_at or "").strip():
            raise InvalidRequestError(ERROR_SCHEDULE_REQUIRED)
        if not ids:
            raise InvalidRequestError(ERROR_PRODUCTS_REQUIRED)
        try:
            civil = parse_civil_input(scheduled_at, self.clock.timezone_name)
        except ValueError as e:
            raise InvalidRequestError(f"Invalid send time: {scheduled_at}") from e
        return {
            "message": message,
            "scheduledAt": to_wire_instant(civil),
            "productIds": ids,
        }

    async def schedule(self, message: str, scheduled_at: str, product_ids: Iterable[str]) -> Optional[Announcement]:
        payload = self.build_payload(message, scheduled_at, product_ids)
        created = await self.api.create_announcement(payload)
        logger.info(f"Announcement scheduled for {scheduled_at} ({self.clock.timezone_name}), {len(payload['productIds'])} products")
        return created

    async def list(self) -> list[Announcement]:
        return await self.api.get_announcements()

    async def delete(self, announcement_id: str) -> None:
        await self.api.delete_announcement(announcement_id)

    def display_time(self, announcement: Announcement) -> str:
        """Send time as reference-zone civil time; raw value if unreadable."""
        civil = self.clock.publication_time(announcement.scheduled_at)
        if civil is None:
            return announcement.scheduled_at or ""
        return format_civil(civil)
