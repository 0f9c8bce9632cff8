"""Tests for the identifier registry."""

import pytest

from bifrost.core.errors import NameCollisionError
from bifrost.terraform.registry import IdentifierRegistry


class TestReserve:
    """Test name construction and reservation."""

    def test_name_shape(self):
        registry = IdentifierRegistry("shop")
        assert registry.reserve("network") == "shop-network"
        assert registry.reserve("subnet", "us-central1") == "shop-subnet-us-central1"
        assert registry.reserve("hub", index="aws") == "shop-hub-aws"
        assert registry.reserve("subnet", "europe-west1", 2) == "shop-subnet-europe-west1-2"

    def test_same_key_returns_same_name(self):
        registry = IdentifierRegistry("shop")
        first = registry.reserve("router", "us-central1")
        assert registry.reserve("router", "us-central1") == first
        assert len(registry) == 1

    def test_different_keys_get_different_names(self):
        registry = IdentifierRegistry("shop")
        names = {
            registry.reserve("subnet", "us-central1"),
            registry.reserve("subnet", "europe-west1"),
            registry.reserve("router", "us-central1"),
        }
        assert len(names) == 3

    def test_literal_collision_raises(self):
        """Different keys that spell the same name must not silently share it."""
        registry = IdentifierRegistry("shop")
        registry.reserve("vpn", index="rule")
        with pytest.raises(NameCollisionError) as exc_info:
            registry.reserve("vpn-rule")
        assert exc_info.value.name == "shop-vpn-rule"
        assert "role=vpn index=rule" in str(exc_info.value)

    def test_integer_and_string_index_are_the_same_key(self):
        registry = IdentifierRegistry("shop")
        assert registry.reserve("node", index=1) == registry.reserve("node", index="1")


class TestLookup:
    """Test read-only access."""

    def test_lookup_does_not_reserve(self):
        registry = IdentifierRegistry("shop")
        assert registry.lookup("network") is None
        assert len(registry) == 0

    def test_names_in_issue_order(self):
        registry = IdentifierRegistry("shop")
        registry.reserve("network")
        registry.reserve("subnet", "us-central1")
        assert registry.names == ["shop-network", "shop-subnet-us-central1"]
        assert "shop-network" in registry
        assert registry.lookup("network") == "shop-network"
