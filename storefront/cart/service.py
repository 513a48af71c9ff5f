"""Cart store: keeps the local cart view converged with the server.

The server is the only source of truth. Mutations are sent one at a time
per store and every mutation, accepted or rejected, is followed by a full
refetch that replaces the snapshot wholesale. Quantities are never predicted
locally.

    IDLE --mutation--> MUTATING --response--> RECONCILING --refetch--> IDLE
"""
import asyncio
import itertools
from enum import Enum
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from storefront.errors import (
    ERROR_PRODUCT_IDENTITY,
    CartBusyError,
    CartLineNotFoundError,
    CartReconcileError,
    InsufficientStockError,
    InvalidRequestError,
    StorefrontError,
)
from storefront.logging import get_logger, mask_session_id
from storefront.session import SessionContext
from .models import CartLine, CartSnapshot

if TYPE_CHECKING:
    from storefront.api.client import StorefrontApi
    from storefront.availability import AvailabilityModel

logger = get_logger(__name__)


class CartState(str, Enum):
    IDLE = "idle"
    MUTATING = "mutating"
    RECONCILING = "reconciling"


class CartStore:
    """
    Session cart backed by the remote Cart API.

    Features:
    - one mutation in flight per store; later ones queue behind it (or fail
      fast with CartBusyError when `reject_concurrent` is set)
    - mandatory refetch after every mutation through a single routine
    - loads are sequence-numbered so an older response never overwrites a
      newer snapshot
    - optional AvailabilityModel kept in step with each refetch
    """

    def __init__(
        self,
        context: SessionContext,
        api: "StorefrontApi",
        availability: Optional["AvailabilityModel"] = None,
        *,
        reject_concurrent: bool = False,
    ):
        if availability is not None and availability.session_id != context.session_id:
            raise ValueError("Availability model belongs to another session")
        self.context = context
        self.api = api
        self.availability = availability
        self.reject_concurrent = reject_concurrent
        self._snapshot = CartSnapshot.empty(context.session_id)
        self._state = CartState.IDLE
        self._mutation_lock = asyncio.Lock()
        self._fetch_counter = itertools.count(1)
        self._applied_fetch = 0
        self._listeners: list[Callable[[CartSnapshot], Any]] = []

    # ==================== READ SIDE ====================

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def session_id(self) -> str:
        return self.context.session_id

    def current_snapshot(self) -> CartSnapshot:
        return self._snapshot

    def total_price(self) -> Decimal:
        return self._snapshot.total_price

    def total_units(self) -> int:
        return self._snapshot.total_units

    def subscribe(self, listener: Callable[[CartSnapshot], Any]) -> Callable[[], None]:
        """Call `listener` with every new snapshot. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _replace_snapshot(self, snapshot: CartSnapshot, fetch_no: int) -> bool:
        """Install `snapshot` unless a newer fetch has already been applied."""
        if fetch_no < self._applied_fetch:
            logger.debug(f"Discarding cart fetch #{fetch_no}, #{self._applied_fetch} already applied")
            return False
        self._applied_fetch = fetch_no
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)
        return True

    # ==================== LOAD / RECONCILE ====================

    async def _fetch(self, keep_on_failure: bool, refresh_availability: bool = True) -> CartSnapshot:
        fetch_no = next(self._fetch_counter)
        try:
            snapshot = await self.api.get_cart(self.session_id)
        except StorefrontError as e:
            logger.warning(
                f"Failed to load cart for session {mask_session_id(self.session_id)}: {e.message}"
            )
            if not keep_on_failure:
                # "failed to load" must read as "empty", never as "unknown"
                self._replace_snapshot(CartSnapshot.empty(self.session_id), fetch_no)
            raise
        self._replace_snapshot(snapshot, fetch_no)
        if refresh_availability:
            await self._refresh_availability()
        return self._snapshot

    async def _refresh_availability(self) -> None:
        if self.availability is None:
            return
        try:
            products = await self.api.get_products(self.availability.session_id)
        except StorefrontError as e:
            # Model stays stale; additions stay blocked until a later refresh
            logger.warning(f"Failed to refresh availability: {e.message}")
            return
        self.availability.refresh(products)

    async def load(self) -> CartSnapshot:
        """
        Fetch the authoritative cart and replace the local snapshot.

        On failure the snapshot becomes empty and the error propagates.
        """
        return await self._fetch(keep_on_failure=False)

    async def _run_mutation(
        self,
        name: str,
        action: Callable[[], Awaitable[Any]],
        precheck: Optional[Callable[[], None]] = None,
    ) -> CartSnapshot:
        """
        Single path for every mutation: serialize, send, always refetch.

        `precheck` runs once the lock is held and may refuse the mutation
        locally; nothing is sent and nothing refetched in that case.

        A failed mutation is re-raised after the refetch; the snapshot then
        holds whatever the server reports (or the last-known-good one if the
        refetch fails too). A refetch failure after a successful mutation
        empties the snapshot and raises CartReconcileError.
        """
        if self.reject_concurrent and self._mutation_lock.locked():
            raise CartBusyError()

        async with self._mutation_lock:
            if precheck is not None:
                precheck()
            self._state = CartState.MUTATING
            if self.availability is not None:
                self.availability.invalidate()
            try:
                failure: Optional[StorefrontError] = None
                try:
                    await self._send(name, action)
                    logger.info(f"Cart {name} accepted")
                except StorefrontError as e:
                    failure = e
                    logger.warning(f"Cart {name} failed: {e.message}")

                self._state = CartState.RECONCILING
                try:
                    await self._fetch(keep_on_failure=failure is not None)
                except StorefrontError as e:
                    if failure is None:
                        raise CartReconcileError(cause=e) from e
            finally:
                self._state = CartState.IDLE

            if failure is not None:
                raise failure
            return self._snapshot

    async def _send(self, name: str, action: Callable[[], Awaitable[Any]]) -> None:
        """
        Run `action` to completion even if the caller is cancelled.

        A request already on the wire cannot be recalled, so a cancelled
        caller still waits for it to settle before the lock is released.
        No refetch follows a cancellation; the next load reconciles.
        """
        task = asyncio.ensure_future(action())
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done():
                await asyncio.wait({task})
            if not task.cancelled() and task.exception() is not None:
                logger.warning(f"Cart {name} failed after cancellation: {task.exception()!r}")
            raise

    async def _discover_line(self, product_id: str) -> Optional[CartLine]:
        """Server line for `product_id`, refetching once if the id is unknown locally."""
        line = self._snapshot.line_for(product_id)
        if line is not None and line.line_id:
            return line
        logger.debug(f"Line id for product {product_id} unknown, refetching cart")
        # Mid-mutation: availability must stay stale until the final refetch
        await self._fetch(keep_on_failure=True, refresh_availability=False)
        line = self._snapshot.line_for(product_id)
        return line if line is not None and line.line_id else None

    # ==================== MUTATIONS ====================

    async def add(self, product: Any, quantity: int = 1) -> CartSnapshot:
        """
        Add `quantity` units of `product`.

        Whether a line already exists is decided by the server. Fails without
        a network call when the product has no identity, or when an attached,
        fresh availability model says no further unit is available.
        """
        product_id = getattr(product, "id", None)
        if product_id in (None, ""):
            raise InvalidRequestError(ERROR_PRODUCT_IDENTITY)
        if not isinstance(quantity, int) or quantity < 1:
            raise InvalidRequestError("Quantity must be a positive integer")
        product_id = str(product_id)

        def precheck():
            # Only a fresh model may refuse; a stale one defers to the server
            availability = self.availability
            if availability is None or availability.is_stale:
                return
            if availability.headroom(product, self._snapshot) < quantity:
                logger.info(f"Add {product_id} x{quantity} refused locally: not enough available")
                raise InsufficientStockError()

        async def action():
            await self.api.add_line(self.session_id, product_id, quantity)

        return await self._run_mutation(f"add {product_id} x{quantity}", action, precheck)

    async def set_quantity(self, product_id: Any, quantity: int) -> CartSnapshot:
        """Set the line quantity; zero or less removes the line."""
        if quantity <= 0:
            return await self.remove(product_id)
        product_id = str(product_id)

        async def action():
            line = await self._discover_line(product_id)
            if line is None:
                raise CartLineNotFoundError()
            await self.api.update_line(line.line_id, quantity)

        return await self._run_mutation(f"set {product_id} to {quantity}", action)

    async def remove(self, product_id: Any) -> CartSnapshot:
        """Remove the line for `product_id`; a missing line is not an error."""
        product_id = str(product_id)

        async def action():
            line = await self._discover_line(product_id)
            if line is None:
                logger.debug(f"Product {product_id} not in cart, nothing to remove")
                return
            try:
                await self.api.delete_line(line.line_id)
            except CartLineNotFoundError:
                # Already gone on the server: the refetch will show it
                logger.debug(f"Line {line.line_id} already removed")

        return await self._run_mutation(f"remove {product_id}", action)

    async def clear(self) -> CartSnapshot:
        """Remove every line of the session."""

        async def action():
            await self.api.clear_cart(self.session_id)

        return await self._run_mutation("clear", action)
