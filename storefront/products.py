"""
Product management for operators.

The publication time on the form is civil time in the business zone; it is
sent as a UTC instant and read back into the form through PublicationClock,
so an operator in another zone sees and edits the same reading.
"""
from typing import Optional

from storefront.api.client import StorefrontApi
from storefront.errors import (
    ERROR_IMAGES_REQUIRED,
    ERROR_PRICE_INVALID,
    ERROR_PRODUCT_NAME_REQUIRED,
    ERROR_STOCK_INVALID,
    InvalidRequestError,
)
from storefront.logging import get_logger
from storefront.models import Product, ProductDraft
from storefront.money import to_float
from storefront.publication import PublicationClock, parse_civil_input, to_wire_instant

logger = get_logger(__name__)


class ProductDesk:
    """Create, edit and delete catalog products."""

    def __init__(self, api: StorefrontApi, clock: PublicationClock):
        self.api = api
        self.clock = clock

    def _wire_publication_time(self, value: Optional[str]) -> Optional[str]:
        text = (value or "").strip()
        if not text:
            return None
        try:
            civil = parse_civil_input(text, self.clock.timezone_name)
        except ValueError as e:
            raise InvalidRequestError(f"Invalid publication time: {value}") from e
        return to_wire_instant(civil)

    def build_payload(self, draft: ProductDraft, creating: bool = True) -> dict:
        """
        Validate the form values and build the request body.

        A new product needs at least one uploaded image; an edited one may
        keep its existing images only.
        """
        name = draft.name.strip()
        if not name:
            raise InvalidRequestError(ERROR_PRODUCT_NAME_REQUIRED)
        if draft.price < 0:
            raise InvalidRequestError(ERROR_PRICE_INVALID)
        if draft.stock_quantity is not None and draft.stock_quantity < 0:
            raise InvalidRequestError(ERROR_STOCK_INVALID)
        if creating and not draft.images:
            raise InvalidRequestError(ERROR_IMAGES_REQUIRED)

        payload = {
            "name": name,
            "brand": draft.brand or "",
            "description": draft.description or "",
            "price": to_float(draft.price),
            "size": draft.size or "",
            "color": draft.color or "",
            "images": list(draft.images),
            "publishedAt": self._wire_publication_time(draft.published_at),
        }
        if draft.stock_quantity is not None:
            payload["stockQuantity"] = draft.stock_quantity
        if not creating:
            payload["existingImages"] = list(draft.existing_images)
        return payload

    def draft_from(self, product: Product) -> ProductDraft:
        """Form values for editing `product`, publication time as civil time."""
        scheduled = self.clock.publication_time(product)
        return ProductDraft(
            name=product.name,
            brand=product.brand,
            description=product.description,
            price=product.price,
            size=product.size,
            color=product.color,
            stock_quantity=product.stock_quantity,
            published_at=str(scheduled) if scheduled is not None else None,
            existing_images=list(product.images),
        )

    async def create(self, draft: ProductDraft) -> Product:
        payload = self.build_payload(draft, creating=True)
        product = await self.api.create_product(payload)
        logger.info(f"Product {product.id} created with {len(payload['images'])} images")
        return product

    async def update(self, product_id: str, draft: ProductDraft) -> Product:
        payload = self.build_payload(draft, creating=False)
        product = await self.api.update_product(product_id, payload)
        logger.info(f"Product {product_id} updated")
        return product

    async def delete(self, product_id: str) -> None:
        await self.api.delete_product(product_id)
        logger.info(f"Product {product_id} deleted")
