"""
Tests for Pydantic models and money helpers
"""

import pytest
from decimal import Decimal
from pydantic import ValidationError

from storefront.models import (
    Announcement,
    CustomerDetails,
    DeliveryMethod,
    Order,
    OrderStatus,
    Product,
    normalize_keys,
    snake_key,
)
from storefront.money import format_money, round_money, to_decimal


class TestKeyNormalization:
    """Tests for wire key handling."""

    def test_snake_key(self):
        assert snake_key("QuantityInStock") == "quantity_in_stock"
        assert snake_key("availableQuantity") == "available_quantity"
        assert snake_key("id") == "id"

    def test_camel_case_wins(self):
        """Test camelCase is preferred when both spellings are present."""
        assert normalize_keys({"Price": 1, "price": 2}) == {"price": 2}
        assert normalize_keys({"price": 2, "Price": 1}) == {"price": 2}

    def test_non_dict_passthrough(self):
        assert normalize_keys([1]) == [1]


class TestProduct:
    """Tests for Product model."""

    def test_camel_case(self):
        """Test the camelCase product shape."""
        product = Product.model_validate({
            "id": 5,
            "name": "Куртка",
            "price": "1999.90",
            "stockQuantity": 4,
            "availableQuantity": 1,
            "publishedAt": None,
            "unknownField": "ignored",
        })

        assert product.id == "5"
        assert product.price == Decimal("1999.90")
        assert product.stock_quantity == 4
        assert product.available_quantity == 1
        assert product.published_at is None

    def test_pascal_case(self, sample_product):
        """Test the PascalCase product shape."""
        product = Product.model_validate(sample_product)

        assert product.name == "Платье"
        assert product.stock_quantity == 3
        assert product.images == ["/images/17.jpg"]

    def test_defaults(self):
        """Test missing optional fields."""
        product = Product.model_validate({"id": "p1", "name": "Шапка", "images": None, "quantityInStock": None})

        assert product.images == []
        assert product.stock_quantity == 0
        assert product.available_quantity is None
        assert product.price == Decimal("0")

    def test_missing_id(self):
        """Test a product without identity is invalid."""
        with pytest.raises(ValidationError):
            Product.model_validate({"name": "no id"})


class TestOrder:
    """Tests for Order model."""

    def test_known_status(self):
        order = Order.model_validate({"Id": 3, "Status": "В пути", "Total": 1500})

        assert order.status == OrderStatus.IN_TRANSIT
        assert order.total == Decimal("1500")

    def test_unknown_status_defaults(self):
        """Test unknown statuses are grouped with new orders."""
        assert Order.model_validate({"id": 1, "status": "???"}).status == OrderStatus.ASSEMBLING
        assert Order.model_validate({"id": 1}).status == OrderStatus.ASSEMBLING

    def test_display_number(self):
        assert Order.model_validate({"id": 7}).display_number == "#7"
        assert Order.model_validate({"id": 7, "orderNumber": "A-0007"}).display_number == "A-0007"


class TestAnnouncement:
    """Tests for Announcement model."""

    def test_parse(self):
        announcement = Announcement.model_validate({
            "id": 2,
            "message": "Новинки",
            "scheduledAt": "2025-06-01T08:00:00.000Z",
            "productIds": [1, 2],
            "collageImages": None,
            "sentCount": None,
        })

        assert announcement.product_ids == ["1", "2"]
        assert announcement.collage_images == []
        assert announcement.sent_count == 0


class TestCustomerDetails:
    """Tests for checkout contact details."""

    def test_payload(self):
        details = CustomerDetails(name=" Анна ", phone=" 123 ", delivery_method="5post")

        payload = details.to_payload()
        assert payload["name"] == "Анна"
        assert payload["phone"] == "123"
        assert payload["deliveryMethod"] == "5post"
        assert details.delivery_method == DeliveryMethod.FIVE_POST


class TestMoney:
    """Tests for Decimal money helpers."""

    def test_to_decimal(self):
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal(None) == Decimal("0")
        assert to_decimal("abc") == Decimal("0")

    def test_round_money(self):
        assert round_money("2.345") == Decimal("2.35")
        assert round_money("1500.5", to_int=True) == Decimal("1501")

    def test_format_money(self):
        assert format_money(1500) == "1 500 ₽"
        assert format_money(Decimal("12.5"), "USD") == "$12.50"
