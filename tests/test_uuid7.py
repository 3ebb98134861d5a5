"""
Tests for the uuid7() helper.

Validates that uuid7() returns a stdlib uuid.UUID with correct UUIDv7 properties:
version 7, RFC 4122 variant bits and time-sortable ordering.
"""

import time
from uuid import UUID

from handover_engine.utils import unique_in_order, utc_now, uuid7


class TestUuid7:
    def test_returns_stdlib_uuid(self):
        """uuid7() must return a stdlib uuid.UUID, not fastuuid.UUID."""
        result = uuid7()
        assert type(result) is UUID

    def test_version_is_7(self):
        assert uuid7().version == 7

    def test_rfc4122_variant_bits(self):
        variant_bits = (uuid7().int >> 62) & 0b11
        assert variant_bits == 0b10

    def test_ordering_after_sleep(self):
        """UUIDs generated 3ms apart must be strictly ordered."""
        a = uuid7()
        time.sleep(0.003)
        b = uuid7()
        assert b.int > a.int

    def test_unique(self):
        assert len({uuid7() for _ in range(500)}) == 500


class TestHelpers:
    def test_unique_in_order_is_exact_match(self):
        assert unique_in_order(["DJ", "Lead", "DJ", "dj"]) == ["DJ", "Lead", "dj"]

    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is not None
