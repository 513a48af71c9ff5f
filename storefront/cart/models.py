"""Cart models with Decimal-based pricing.

Snapshots are immutable: the store replaces a snapshot wholesale after every
refetch and never edits lines in place.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from storefront.logging import get_logger
from storefront.models import normalize_keys
from storefront.money import to_decimal, round_money, multiply

logger = get_logger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _optional_text(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None


@dataclass(frozen=True)
class CartLine:
    """One product held in the session's cart."""
    product_id: str
    quantity: int
    line_id: Optional[str] = None  # None until the server has persisted the line
    name: str = ""
    brand: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    unit_price: Decimal = Decimal("0")
    images: tuple[str, ...] = ()

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError(f"Cart line quantity must be positive, got {self.quantity}")
        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))
        object.__setattr__(self, "images", tuple(self.images or ()))

    @property
    def total_price(self) -> Decimal:
        """Total price for all units."""
        return round_money(multiply(self.unit_price, self.quantity))

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "line_id": self.line_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "name": self.name,
            "brand": self.brand,
            "size": self.size,
            "color": self.color,
            "unit_price": str(self.unit_price),
            "images": list(self.images),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        """
        Create from an API cart line.

        Accepts the product snapshot either nested under `product` or
        flattened next to the line fields, in camelCase or PascalCase.
        Raises KeyError/TypeError/ValueError on a malformed line.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Cart line must be an object, got {type(data).__name__}")
        line = normalize_keys(data)
        snapshot = line.get("product") or line.get("product_snapshot")
        snapshot = normalize_keys(snapshot) if isinstance(snapshot, dict) else {}

        product_id = line.get("product_id") or snapshot.get("id")
        if product_id in (None, ""):
            raise KeyError("product_id")

        line_id = line.get("line_id", line.get("id"))
        quantity = line["quantity"]
        if isinstance(quantity, bool) or not isinstance(quantity, (int, str)):
            raise TypeError(f"Invalid quantity: {quantity!r}")

        def pick(name: str) -> Any:
            value = snapshot.get(name)
            return value if value not in (None, "") else line.get(name)

        price = pick("price")
        if price is None:
            price = line.get("unit_price")

        return cls(
            product_id=str(product_id),
            quantity=int(quantity),
            line_id=_optional_text(line_id),
            name=str(pick("name") or ""),
            brand=_optional_text(pick("brand")),
            size=_optional_text(pick("size")),
            color=_optional_text(pick("color")),
            unit_price=to_decimal(price),
            images=tuple(str(img) for img in (pick("images") or [])),
        )


@dataclass(frozen=True)
class CartSnapshot:
    """Authoritative cart state for one session, as of `fetched_at`."""
    session_id: str
    lines: tuple[CartLine, ...] = ()
    fetched_at: str = field(default_factory=_now_iso, compare=False)

    @classmethod
    def empty(cls, session_id: str) -> "CartSnapshot":
        return cls(session_id=session_id, lines=())

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def total_units(self) -> int:
        """Total number of units in cart."""
        return sum(line.quantity for line in self.lines)

    @property
    def total_price(self) -> Decimal:
        """Sum of line totals."""
        return sum((line.total_price for line in self.lines), Decimal("0"))

    def line_for(self, product_id: Any) -> Optional[CartLine]:
        key = str(product_id)
        return next((line for line in self.lines if line.product_id == key), None)

    def quantity_of(self, product_id: Any) -> int:
        line = self.line_for(product_id)
        return line.quantity if line else 0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "session_id": self.session_id,
            "lines": [line.to_dict() for line in self.lines],
            "total_units": self.total_units,
            "total_price": str(self.total_price),
            "fetched_at": self.fetched_at,
        }

    @classmethod
    def from_wire(cls, session_id: str, data: Any) -> "CartSnapshot":
        """
        Build a snapshot from a `GET cart` response body.

        The body is a list of lines, or an object wrapping one under
        `items`/`lines`. Lines the server reports with a non-positive
        quantity are dropped. Raises KeyError/TypeError/ValueError when the
        body does not match the contract.
        """
        if isinstance(data, dict):
            wrapped = normalize_keys(data)
            data = next((wrapped[k] for k in ("items", "lines", "data") if isinstance(wrapped.get(k), list)), None)
        if not isinstance(data, list):
            raise TypeError("Cart response is not a list of lines")

        lines = []
        for raw in data:
            raw_quantity = normalize_keys(raw).get("quantity") if isinstance(raw, dict) else None
            if isinstance(raw_quantity, int) and not isinstance(raw_quantity, bool) and raw_quantity <= 0:
                logger.warning(f"Dropping cart line with non-positive quantity: {raw_quantity}")
                continue
            lines.append(CartLine.from_dict(raw))
        return cls(session_id=session_id, lines=tuple(lines))
