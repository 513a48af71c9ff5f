"""Order status management for operators."""
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from storefront.api.client import StorefrontApi
from storefront.errors import InvalidRequestError, StorefrontError
from storefront.logging import get_logger
from storefront.models import Order, OrderStatus

logger = get_logger(__name__)


@dataclass
class StatusChangeResult:
    """Outcome of one status change in a bulk update."""
    order_id: str
    success: bool
    error: Optional[str] = None


def _coerce_status(status: Union[OrderStatus, str]) -> OrderStatus:
    try:
        return OrderStatus(status)
    except ValueError:
        raise InvalidRequestError(f"Unknown order status: {status}") from None


class OrderDesk:
    """Operator view of orders."""

    def __init__(self, api: StorefrontApi):
        self.api = api

    async def list_orders(self) -> list[Order]:
        """All orders, newest first."""
        orders = await self.api.get_orders()
        return sorted(orders, key=lambda o: o.created_at or "", reverse=True)

    async def set_status(self, order_id: str, status: Union[OrderStatus, str]) -> None:
        target = _coerce_status(status)
        await self.api.update_order_status(order_id, target.value)
        logger.info(f"Order {order_id} -> {target.value}")

    async def set_statuses(self, order_ids: Iterable[str], status: Union[OrderStatus, str]) -> list[StatusChangeResult]:
        """
        Apply one status to many orders, one request at a time.

        Each order's failure is recorded in its result instead of aborting
        the batch.
        """
        target = _coerce_status(status)
        ids = [str(order_id) for order_id in order_ids]
        if not ids:
            raise InvalidRequestError("Select at least one order")

        results = []
        for order_id in ids:
            try:
                await self.api.update_order_status(order_id, target.value)
                results.append(StatusChangeResult(order_id=order_id, success=True))
            except StorefrontError as e:
                logger.warning(f"Status change for order {order_id} failed: {e.message}")
                results.append(StatusChangeResult(order_id=order_id, success=False, error=e.message))

        failed = sum(1 for r in results if not r.success)
        logger.info(f"Bulk status change to {target.value}: {len(results) - failed} updated, {failed} failed")
        return results
