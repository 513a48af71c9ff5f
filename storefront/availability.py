"""
Per-product availability as seen by one session.

The server reports `availableQuantity` = stock minus every session's
reservation (ours included). The model only consumes that number; it never
predicts what the server will say after a mutation. From the moment a
mutation is issued until the next refresh the model is stale and refuses to
approve further additions.
"""
from typing import Iterable, Optional

from storefront.cart.models import CartSnapshot
from storefront.logging import get_logger, mask_session_id
from storefront.models import Product
from storefront.session import SessionContext

logger = get_logger(__name__)


class AvailabilityModel:
    """Availability ceilings for the products of one session."""

    def __init__(self, context: SessionContext):
        self.context = context
        self._available: dict[str, Optional[int]] = {}
        self._stock: dict[str, int] = {}
        self._stale = True

    @property
    def session_id(self) -> str:
        return self.context.session_id

    @property
    def is_stale(self) -> bool:
        return self._stale

    def invalidate(self) -> None:
        """Distrust every recorded value until the next refresh."""
        self._stale = True

    def refresh(self, products: Iterable[Product]) -> None:
        """Record server availability from a successful products fetch."""
        available: dict[str, Optional[int]] = {}
        stock: dict[str, int] = {}
        for product in products:
            available[product.id] = product.available_quantity
            stock[product.id] = product.stock_quantity
        self._available = available
        self._stock = stock
        self._stale = False
        logger.debug(f"Availability refreshed for {len(available)} products, session {mask_session_id(self.session_id)}")

    def available_quantity(self, product: Product) -> int:
        """
        Units nobody has reserved yet.

        Prefers the value from the last refresh, then the product's own
        field, then raw stock when the server has not reported availability.
        """
        value = self._available.get(product.id)
        if value is None:
            value = product.available_quantity
        if value is None:
            value = self._stock.get(product.id, product.stock_quantity)
        return max(0, int(value or 0))

    def _has_server_value(self, product: Product) -> bool:
        return self._available.get(product.id) is not None or product.available_quantity is not None

    def ceiling(self, product: Product, snapshot: Optional[CartSnapshot] = None) -> int:
        """
        Largest line quantity this session may hold for `product`.

        Unreserved units plus the units the session itself already holds.
        Without a server availability value the raw stock is the bound; it is
        permissive and corrected by the next refresh. Never negative.
        """
        try:
            if not self._has_server_value(product):
                return max(0, int(self._stock.get(product.id, product.stock_quantity) or 0))
            own = snapshot.quantity_of(product.id) if snapshot is not None else 0
            return max(0, self.available_quantity(product) + own)
        except (TypeError, ValueError) as e:
            logger.warning(f"Falling back to stock ceiling for product {product.id}: {e}")
            return max(0, int(product.stock_quantity or 0))

    def headroom(self, product: Product, snapshot: Optional[CartSnapshot] = None) -> int:
        """Additional units the session may still add."""
        held = snapshot.quantity_of(product.id) if snapshot is not None else 0
        return max(0, self.ceiling(product, snapshot) - held)

    def can_add(self, product: Product, snapshot: Optional[CartSnapshot] = None) -> bool:
        """True when one more unit may be added; always False while stale."""
        if self._stale:
            return False
        held = snapshot.quantity_of(product.id) if snapshot is not None else 0
        return self.ceiling(product, snapshot) > held
