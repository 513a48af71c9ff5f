"""
Tests for AvailabilityModel
"""

from storefront.availability import AvailabilityModel
from storefront.cart import CartLine, CartSnapshot
from storefront.models import Product
from storefront.session import SessionContext


def make_product(available=None, stock=5, product_id="p1"):
    return Product(id=product_id, name="Товар", stock_quantity=stock, available_quantity=available)


def holding(quantity, product_id="p1"):
    return CartSnapshot(session_id="s1", lines=(CartLine(product_id=product_id, quantity=quantity),))


class TestAvailabilityModel:
    """Ceilings, headroom and staleness."""

    def test_new_model_is_stale(self):
        """Test nothing is approved before the first refresh."""
        model = AvailabilityModel(SessionContext(session_id="s1"))

        assert model.is_stale
        assert not model.can_add(make_product(available=5))

    def test_refresh_then_invalidate(self):
        """Test a mutation makes the model stale again."""
        model = AvailabilityModel(SessionContext(session_id="s1"))
        model.refresh([make_product(available=5)])
        assert not model.is_stale

        model.invalidate()

        assert model.is_stale
        assert not model.can_add(make_product(available=5))

    def test_ceiling_includes_own_reservation(self):
        """Test the session may keep what it already holds."""
        model = AvailabilityModel(SessionContext(session_id="s1"))
        product = make_product(available=1, stock=5)
        model.refresh([product])

        # 5 in stock, 3 held by us, 1 by another session
        snapshot = holding(3)
        assert model.ceiling(product, snapshot) == 4
        assert model.headroom(product, snapshot) == 1
        assert model.can_add(product, snapshot)

    def test_zero_available(self):
        """Test no headroom once every unit is reserved."""
        model = AvailabilityModel(SessionContext(session_id="s1"))
        product = make_product(available=0, stock=1)
        model.refresh([product])

        assert model.available_quantity(product) == 0
        assert not model.can_add(product, CartSnapshot.empty("s1"))
        assert not model.can_add(product, holding(1))

    def test_refreshed_value_wins_over_product_field(self):
        """Test the model uses the latest server value."""
        model = AvailabilityModel(SessionContext(session_id="s1"))
        model.refresh([make_product(available=0)])

        assert model.available_quantity(make_product(available=4)) == 0

    def test_stock_fallback_without_server_value(self):
        """Test raw stock bounds the line when availability is unreported."""
        model = AvailabilityModel(SessionContext(session_id="s1"))
        product = make_product(available=None, stock=3)
        model.refresh([product])

        assert model.ceiling(product, holding(1)) == 3
        assert model.headroom(product, holding(1)) == 2

    def test_never_negative(self):
        """Test inconsistent server values do not yield negative ceilings."""
        model = AvailabilityModel(SessionContext(session_id="s1"))
        product = make_product(available=-2, stock=0)
        model.refresh([product])

        assert model.available_quantity(product) == 0
        assert model.ceiling(product) == 0
        assert model.headroom(product, holding(2)) == 0
