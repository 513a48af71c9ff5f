"""
Catalog Domain Service

Product listing for shoppers (published items only) and operators
(scheduled items), plus the color and brand dictionaries used by forms.
"""
from datetime import datetime
from typing import Any, Optional

from storefront.api.client import StorefrontApi, extract_list
from storefront.errors import StorefrontError
from storefront.logging import get_logger
from storefront.models import Product
from storefront.publication import PublicationClock
from storefront.session import SessionContext

logger = get_logger(__name__)


def _string_list(data: Any, *keys: str) -> list[str]:
    """Pull a list of strings out of a payload that may be wrapped or ill-typed."""
    items = extract_list(data, *keys)
    if items is None and isinstance(data, dict):
        # Plain object: its values are the entries
        items = list(data.values())
    if items is None:
        logger.warning(f"[Validation] Expected a list, got {type(data).__name__}")
        return []
    valid = [item for item in items if isinstance(item, str)]
    if len(valid) != len(items):
        logger.warning(f"[Validation] Dropped {len(items) - len(valid)} non-string entries")
    return valid


class Catalog:
    """Catalog operations."""

    def __init__(self, api: StorefrontApi, clock: PublicationClock, context: Optional[SessionContext] = None):
        self.api = api
        self.clock = clock
        self.context = context

    async def list_products(self, now: Optional[datetime] = None, include_hidden: bool = False) -> list[Product]:
        """Products with session-aware availability; unpublished ones are hidden unless asked."""
        session_id = self.context.session_id if self.context else None
        products = await self.api.get_products(session_id)
        if include_hidden:
            return products
        visible = self.clock.visible(products, now)
        logger.debug(f"Catalog: {len(visible)} of {len(products)} products visible")
        return visible

    async def get_product(self, product_id: str) -> Product:
        return await self.api.get_product(product_id)

    async def unpublished(self) -> list[Product]:
        """Scheduled products, earliest publication first (unscheduled last)."""
        products = await self.api.get_unpublished_products()

        def sort_key(product: Product):
            scheduled = self.clock.publication_time(product)
            return (scheduled is None, scheduled or "")

        return sorted(products, key=sort_key)

    async def colors(self) -> list[str]:
        """Color dictionary for product forms; empty on any failure."""
        try:
            data = await self.api.get_colors()
        except StorefrontError as e:
            logger.error(f"Error loading colors: {e.message}")
            return []
        if data is None:
            return []
        return _string_list(data, "data", "colors", "value")

    async def brands(self, search: Optional[str] = None) -> list[str]:
        """Known brands, optionally filtered server-side by `search`."""
        try:
            data = await self.api.get_brands(search)
        except StorefrontError as e:
            logger.error(f"Error loading brands: {e.message}")
            return []
        if data is None:
            return []
        return _string_list(data, "data", "brands", "value")
