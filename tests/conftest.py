"""Pytest configuration and fixtures"""
import os

import httpx
import pytest

# Set test environment variables before anything reads settings
os.environ.setdefault("STOREFRONT_API_URL", "http://testserver/api")
os.environ.setdefault("STOREFRONT_TIMEZONE", "Europe/Moscow")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from fake_api import FakeBackend, FlakyTransport, create_app  # noqa: E402
from storefront.api import StorefrontApi  # noqa: E402
from storefront.availability import AvailabilityModel  # noqa: E402
from storefront.cart import CartStore  # noqa: E402
from storefront.config import StorefrontSettings  # noqa: E402
from storefront.publication import PublicationClock  # noqa: E402
from storefront.session import SessionContext  # noqa: E402

BASE_URL = "http://testserver/api"


@pytest.fixture
def backend():
    """Fake backend with one 500-rouble product in stock"""
    fake = FakeBackend()
    fake.add_product("p1", name="Комбинезон", price=500, stock=5, brand="Zara Kids")
    return fake


@pytest.fixture
def transport(backend):
    return FlakyTransport(create_app(backend))


@pytest.fixture
def settings():
    return StorefrontSettings(api_url=BASE_URL, timezone="Europe/Moscow")


@pytest.fixture
def make_api(transport, settings):
    """Factory for API clients talking to the fake backend"""

    def _make(auth_token=None, on_unauthorized=None, context=None):
        client = httpx.AsyncClient(transport=transport, base_url=BASE_URL)
        return StorefrontApi(
            client, settings=settings, context=context, auth_token=auth_token, on_unauthorized=on_unauthorized
        )

    return _make


@pytest.fixture
def make_store(make_api):
    """Factory for cart stores, one per session"""

    def _make(session_id="session_1718000000000_aaaaaaaaaaaaa", with_availability=False, reject_concurrent=False):
        context = SessionContext(session_id=session_id)
        availability = AvailabilityModel(context) if with_availability else None
        return CartStore(context, make_api(context=context), availability, reject_concurrent=reject_concurrent)

    return _make


@pytest.fixture
def store(make_store):
    return make_store()


@pytest.fixture
def clock():
    return PublicationClock("Europe/Moscow")


@pytest.fixture
def sample_product():
    """Sample product payload in the backend's PascalCase shape"""
    return {
        "Id": 17,
        "Name": "Платье",
        "Brand": "H&M",
        "Description": "Хлопок",
        "Price": 1250.5,
        "Size": "110",
        "Color": "Красный",
        "Images": ["/images/17.jpg"],
        "QuantityInStock": 3,
        "AvailableQuantity": 2,
        "PublishedAt": "2025-06-01T11:00:00",
        "CreatedAt": "2025-05-20T09:00:00Z",
    }
