"""API Models - Pydantic models for catalog, orders, announcements and users.

The backend answers with camelCase keys and, depending on the endpoint,
PascalCase ones (`Id`, `Name`, `QuantityInStock`). Every model normalizes
keys to snake_case before validation so both shapes parse the same way.
"""
import re
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from storefront.money import format_money, to_decimal as _to_decimal

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def snake_key(key: str) -> str:
    """"QuantityInStock" / "quantityInStock" -> "quantity_in_stock"."""
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def normalize_keys(data: Any) -> Any:
    """Snake-case the top-level keys of a wire dict (other values pass through)."""
    if not isinstance(data, dict):
        return data
    normalized = {}
    for key, value in data.items():
        name = snake_key(key) if isinstance(key, str) else key
        # camelCase wins over PascalCase when the server sends both
        if name not in normalized or (isinstance(key, str) and key[:1].islower()):
            normalized[name] = value
    return normalized


class WireModel(BaseModel):
    """Base for models parsed from API responses."""

    class Config:
        extra = "ignore"  # Ignore unknown fields from the API

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        return normalize_keys(data)


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class Product(WireModel):
    """Catalog product with the reservation-aware availability fields."""
    id: str
    name: str
    brand: Optional[str] = None
    description: Optional[str] = None
    price: Decimal = Decimal("0")
    size: Optional[str] = None
    color: Optional[str] = None
    images: list[str] = []
    stock_quantity: int = Field(default=0, validation_alias=AliasChoices("stock_quantity", "quantity_in_stock"))
    available_quantity: Optional[int] = None
    published_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def convert_id_to_str(cls, v):
        # Numeric ids from the backend; a missing id must stay a validation error
        return v if v is None else str(v)

    @field_validator("price", mode="before")
    @classmethod
    def convert_price_to_decimal(cls, v):
        return _to_decimal(v)

    @field_validator("images", mode="before")
    @classmethod
    def default_images(cls, v):
        return v or []

    @field_validator("stock_quantity", mode="before")
    @classmethod
    def default_stock(cls, v):
        return 0 if v is None else v

    @field_validator("published_at", "created_at", "updated_at", mode="before")
    @classmethod
    def convert_timestamp_to_text(cls, v):
        # Kept as text: interpretation belongs to PublicationClock
        return _as_text(v) or None


class OrderStatus(str, Enum):
    """Order lifecycle as shown to operators."""
    ASSEMBLING = "В сборке"
    AWAITING_PAYMENT = "Ожидает оплату"
    IN_TRANSIT = "В пути"
    DELIVERED = "Доставлен"
    CANCELLED = "Отменен"


class DeliveryMethod(str, Enum):
    AVITO = "avito"
    YANDEX = "yandex"
    OZON = "ozon"
    FIVE_POST = "5post"


class CustomerDetails(BaseModel):
    """Contact details collected at checkout."""
    name: str = ""
    phone: str = ""
    email: Optional[str] = None
    address: Optional[str] = None
    delivery_method: DeliveryMethod = DeliveryMethod.AVITO
    comment: Optional[str] = None

    def to_payload(self) -> dict:
        return {
            "name": self.name.strip(),
            "phone": self.phone.strip(),
            "email": self.email,
            "address": self.address,
            "deliveryMethod": self.delivery_method.value,
            "comment": self.comment,
        }


class ProductDraft(BaseModel):
    """Product form values as an operator enters them."""
    name: str = ""
    brand: Optional[str] = None
    description: Optional[str] = None
    price: Decimal = Decimal("0")
    size: Optional[str] = None
    color: Optional[str] = None
    stock_quantity: Optional[int] = None
    # Civil time "YYYY-MM-DDTHH:MM" in the business zone; blank publishes now
    published_at: Optional[str] = None
    # New uploads as base64 strings
    images: list[str] = []
    # Paths of already stored images to keep on update
    existing_images: list[str] = []


class Order(WireModel):
    """Order as returned by the orders endpoints."""
    id: str
    order_number: Optional[str] = None
    status: OrderStatus = OrderStatus.ASSEMBLING
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    total: Decimal = Decimal("0")
    items: list[dict] = []
    created_at: Optional[str] = None

    @field_validator("id", "order_number", mode="before")
    @classmethod
    def convert_id_to_str(cls, v):
        return v if v is None else str(v)

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v):
        # Unknown or missing statuses are grouped with freshly placed orders
        if v in tuple(s.value for s in OrderStatus):
            return v
        return OrderStatus.ASSEMBLING.value

    @field_validator("total", mode="before")
    @classmethod
    def convert_total_to_decimal(cls, v):
        return _to_decimal(v)

    @field_validator("items", mode="before")
    @classmethod
    def default_items(cls, v):
        return v or []

    @field_validator("created_at", mode="before")
    @classmethod
    def convert_timestamp_to_text(cls, v):
        return _as_text(v)

    @property
    def display_number(self) -> str:
        return self.order_number or f"#{self.id}"

    @property
    def display_total(self) -> str:
        return format_money(self.total)


class Announcement(WireModel):
    """Scheduled announcement about newly published products."""
    id: str
    message: str
    scheduled_at: Optional[str] = None
    product_ids: list[str] = []
    collage_images: list[str] = []
    is_sent: bool = False
    sent_count: int = 0

    @field_validator("id", mode="before")
    @classmethod
    def convert_id_to_str(cls, v):
        return v if v is None else str(v)

    @field_validator("product_ids", mode="before")
    @classmethod
    def convert_product_ids(cls, v):
        return [str(item) for item in (v or [])]

    @field_validator("collage_images", mode="before")
    @classmethod
    def default_collages(cls, v):
        return v or []

    @field_validator("scheduled_at", mode="before")
    @classmethod
    def convert_timestamp_to_text(cls, v):
        return _as_text(v)

    @field_validator("sent_count", mode="before")
    @classmethod
    def default_sent_count(cls, v):
        return v or 0


class User(WireModel):
    """Operator account as listed by the users endpoint."""
    id: str
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    created_at: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def convert_id_to_str(cls, v):
        return v if v is None else str(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def convert_timestamp_to_text(cls, v):
        return _as_text(v)
