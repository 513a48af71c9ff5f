"""Checkout: turn the reconciled cart into an order."""
from storefront.api.client import StorefrontApi
from storefront.cart import CartSnapshot, CartStore
from storefront.errors import (
    ERROR_CART_EMPTY,
    ERROR_NAME_REQUIRED,
    ERROR_PHONE_REQUIRED,
    InvalidRequestError,
    StorefrontError,
)
from storefront.logging import get_logger
from storefront.models import CustomerDetails, Order
from storefront.money import format_money, to_float

logger = get_logger(__name__)


def validate_customer(customer: CustomerDetails) -> None:
    """Raise InvalidRequestError when required contact fields are blank."""
    if not customer.name.strip():
        raise InvalidRequestError(ERROR_NAME_REQUIRED)
    if not customer.phone.strip():
        raise InvalidRequestError(ERROR_PHONE_REQUIRED)


def build_order_payload(snapshot: CartSnapshot, customer: CustomerDetails) -> dict:
    """Request body for `POST orders`."""
    return {
        "sessionId": snapshot.session_id,
        "customer": customer.to_payload(),
        "items": [
            {
                "productId": line.product_id,
                "lineId": line.line_id,
                "quantity": line.quantity,
                "unitPrice": to_float(line.unit_price),
            }
            for line in snapshot.lines
        ],
        "total": to_float(snapshot.total_price),
    }


class CheckoutFlow:
    """Places an order from the cart's authoritative snapshot."""

    def __init__(self, cart: CartStore, api: StorefrontApi):
        self.cart = cart
        self.api = api

    async def place_order(self, customer: CustomerDetails) -> Order:
        """
        Validate details, reload the cart, post the order and clear the cart.

        The cart is reloaded first so the order carries exactly what the
        server holds. A failure to clear afterwards is logged, not raised:
        the order already exists and retrying would duplicate it.
        """
        validate_customer(customer)

        snapshot = await self.cart.load()
        if snapshot.is_empty:
            raise InvalidRequestError(ERROR_CART_EMPTY)

        order = await self.api.create_order(build_order_payload(snapshot, customer))
        logger.info(f"Order {order.display_number} placed: {snapshot.total_units} units, total {format_money(snapshot.total_price)}")

        try:
            await self.cart.clear()
        except StorefrontError as e:
            logger.error(f"Order {order.display_number} placed but cart was not cleared: {e.message}")
        return order
