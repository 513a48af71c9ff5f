"""
Tests for publication time handling
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfoNotFoundError

import pytest

from storefront.models import Product
from storefront.publication import (
    CivilTime,
    PublicationClock,
    civil_from_instant,
    format_civil,
    instant_from_civil,
    parse_civil_input,
    parse_publication_time,
    to_wire_instant,
)

MSK = "Europe/Moscow"


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def product(published_at):
    return Product(id="p1", name="Товар", published_at=published_at)


class TestCivilTime:
    """Conversions between civil readings and instants."""

    def test_moscow_is_utc_plus_three(self):
        """Test 11:00 Moscow is 08:00 UTC."""
        civil = CivilTime(2025, 6, 1, 11, 0, zone=MSK)

        assert instant_from_civil(civil) == utc(2025, 6, 1, 8, 0)
        assert civil_from_instant(utc(2025, 6, 1, 8, 0), MSK) == civil

    def test_naive_instant_is_utc(self):
        """Test a naive machine reading is taken as UTC."""
        assert civil_from_instant(datetime(2025, 6, 1, 8, 0), MSK) == CivilTime(2025, 6, 1, 11, 0)

    def test_invalid_reading(self):
        """Test impossible calendar values are rejected."""
        with pytest.raises(ValueError):
            CivilTime(2025, 13, 1, 0, 0)

    def test_ordering(self):
        """Test civil readings compare chronologically."""
        assert CivilTime(2025, 6, 1, 10, 59) < CivilTime(2025, 6, 1, 11, 0)
        assert str(CivilTime(2025, 6, 1, 9, 5)) == "2025-06-01T09:05"

    def test_format_civil(self):
        """Test the admin display format."""
        assert format_civil(CivilTime(2025, 6, 1, 9, 5)) == "01.06.2025, 09:05"

    def test_to_wire_instant(self):
        """Test request payloads carry UTC."""
        assert to_wire_instant(CivilTime(2025, 6, 1, 11, 0, zone=MSK)) == "2025-06-01T08:00:00.000Z"


class TestParsing:
    """Wire and form values."""

    def test_missing_value(self):
        """Test empty values mean no schedule."""
        assert parse_publication_time(None, MSK) is None
        assert parse_publication_time("", MSK) is None

    def test_naive_value_is_civil(self):
        """Test a value without offset is already Moscow time."""
        assert parse_publication_time("2025-06-01T11:00:00", MSK) == CivilTime(2025, 6, 1, 11, 0)

    def test_offset_value_is_instant(self):
        """Test values with an offset are converted into the zone."""
        assert parse_publication_time("2025-06-01T08:00:00Z", MSK) == CivilTime(2025, 6, 1, 11, 0)
        assert parse_publication_time("2025-06-01T10:00:00+05:00", MSK) == CivilTime(2025, 6, 1, 8, 0)
        assert parse_publication_time(utc(2025, 6, 1, 8, 0), MSK) == CivilTime(2025, 6, 1, 11, 0)

    def test_fraction_digits(self):
        """Test fractional seconds of any length, as .NET backends send seven."""
        assert parse_publication_time("2025-06-01T11:00:00.1234567", MSK) == CivilTime(2025, 6, 1, 11, 0)
        assert parse_publication_time("2025-06-01T08:00:00.1234567Z", MSK) == CivilTime(2025, 6, 1, 11, 0)
        assert parse_publication_time("2025-06-01T11:00:00.5", MSK) == CivilTime(2025, 6, 1, 11, 0)
        assert parse_publication_time("2025-06-01T08:59:59.9999999+00:00", MSK) == CivilTime(2025, 6, 1, 11, 59)

    def test_malformed_value(self):
        """Test garbage raises."""
        with pytest.raises(ValueError):
            parse_publication_time("tomorrow", MSK)
        with pytest.raises(TypeError):
            parse_publication_time(12345, MSK)

    def test_parse_civil_input(self):
        """Test form values from a datetime-local field."""
        assert parse_civil_input("2025-06-01T11:00", MSK) == CivilTime(2025, 6, 1, 11, 0)
        assert parse_civil_input(" 2025-06-01T11:00:30 ", MSK) == CivilTime(2025, 6, 1, 11, 0)

    def test_parse_civil_input_rejects_offset(self):
        """Test form values must not carry an offset."""
        with pytest.raises(ValueError):
            parse_civil_input("2025-06-01T11:00+03:00", MSK)
        with pytest.raises(ValueError):
            parse_civil_input("", MSK)


class TestPublicationClock:
    """Visibility decisions."""

    def test_no_timestamp_is_visible(self, clock):
        """Test unscheduled products are published."""
        assert clock.is_visible(product(None))
        assert clock.is_visible(None)

    def test_visible_from_publication_minute(self, clock):
        """Test the boundary: 11:00 Moscow is 08:00 UTC."""
        item = product("2025-06-01T11:00")

        assert not clock.is_visible(item, now=utc(2025, 6, 1, 7, 59))
        assert clock.is_visible(item, now=utc(2025, 6, 1, 8, 0))
        assert clock.is_visible(item, now=utc(2025, 6, 1, 8, 0, 59))

    def test_visibility_is_monotonic(self, clock):
        """Test a published item stays published."""
        item = product("2025-06-01T11:00:00")
        checks = [clock.is_visible(item, now=utc(2025, 6, 1, hour, 0)) for hour in range(0, 24)]

        first_visible = checks.index(True)
        assert all(checks[first_visible:])
        assert not any(checks[:first_visible])

    def test_offset_timestamp(self, clock):
        """Test a UTC timestamp is compared as an instant."""
        item = product("2025-06-01T08:00:00Z")

        assert not clock.is_visible(item, now=utc(2025, 6, 1, 7, 59))
        assert clock.is_visible(item, now=utc(2025, 6, 1, 8, 0))

    def test_wire_product_dict(self, clock):
        """Test a raw product payload is judged by its own publication time."""
        scheduled = {"id": "p1", "name": "Товар", "publishedAt": "2025-06-01T11:00"}
        pascal = {"Id": "p1", "Name": "Товар", "PublishedAt": "2025-06-01T11:00"}

        assert not clock.is_visible(scheduled, now=utc(2025, 6, 1, 7, 59))
        assert clock.is_visible(scheduled, now=utc(2025, 6, 1, 8, 0))
        assert not clock.is_visible(pascal, now=utc(2025, 6, 1, 7, 59))
        assert clock.is_visible({"id": "p2", "name": "Товар"}, now=utc(2020, 1, 1, 0, 0))

    def test_malformed_timestamp_is_visible(self, clock):
        """Test an unreadable schedule never hides a product."""
        assert clock.is_visible(product("not a date"), now=utc(2020, 1, 1, 0, 0))

    def test_visible_and_hidden_partition(self, clock):
        """Test filtering a product list."""
        now = utc(2025, 6, 1, 9, 0)
        items = [product(None), product("2025-06-01T11:00"), product("2025-06-01T13:00")]

        assert clock.visible(items, now) == items[:2]
        assert clock.hidden(items, now) == items[2:]

    def test_now_civil(self, clock):
        """Test reading the clock in the reference zone."""
        assert clock.now_civil(utc(2025, 12, 31, 22, 30)) == CivilTime(2026, 1, 1, 1, 30)

    def test_unknown_zone(self):
        """Test a misconfigured zone fails at construction."""
        with pytest.raises(ZoneInfoNotFoundError):
            PublicationClock("Mars/Olympus_Mons")
