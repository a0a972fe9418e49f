"""
test_token_registry.py - Unit tests for the supported-token registry

Tests:
- add() reads decimals and enforces uniqueness and the size cap
- remove() swap-and-pop ordering
- update_feed() keeps decimals
- clone() independence
"""

import pytest

from lending import (
    TokenRegistry, InMemoryToken, StaticPriceFeed,
    NotSupported, AlreadySupported, MaxTokensReached, ZeroAddress,
)


def tokens(*names):
    return [InMemoryToken(n, decimals=8) for n in names]


class TestAdd:

    def test_add_reads_decimals(self):
        registry = TokenRegistry(max_tokens=3)
        info = registry.add(InMemoryToken("WBTC", decimals=8), StaticPriceFeed("40000"))
        assert info.decimals == 8
        assert info.address == "WBTC"
        assert "WBTC" in registry
        assert len(registry) == 1

    def test_duplicate(self):
        registry = TokenRegistry(max_tokens=3)
        token = InMemoryToken("WETH")
        registry.add(token, StaticPriceFeed("2000"))
        with pytest.raises(AlreadySupported):
            registry.add(token, StaticPriceFeed("2000"))

    def test_cap(self):
        registry = TokenRegistry(max_tokens=2)
        a, b, c = tokens("A", "B", "C")
        registry.add(a, StaticPriceFeed("1"))
        registry.add(b, StaticPriceFeed("1"))
        with pytest.raises(MaxTokensReached):
            registry.add(c, StaticPriceFeed("1"))

    def test_missing_feed(self):
        with pytest.raises(NotSupported):
            TokenRegistry(max_tokens=1).add(InMemoryToken("A"), None)

    def test_empty_address(self):
        with pytest.raises(ZeroAddress):
            TokenRegistry(max_tokens=1).add(InMemoryToken(""), StaticPriceFeed("1"))


class TestRemove:

    def test_swap_and_pop(self):
        registry = TokenRegistry(max_tokens=5)
        for t in tokens("A", "B", "C", "D"):
            registry.add(t, StaticPriceFeed("1"))
        registry.remove("B")
        assert registry.addresses() == ["A", "D", "C"]
        assert "B" not in registry

    def test_remove_last(self):
        registry = TokenRegistry(max_tokens=5)
        for t in tokens("A", "B"):
            registry.add(t, StaticPriceFeed("1"))
        registry.remove("B")
        assert registry.addresses() == ["A"]

    def test_remove_unknown(self):
        with pytest.raises(NotSupported):
            TokenRegistry(max_tokens=1).remove("X")

    def test_get_unknown(self):
        with pytest.raises(NotSupported):
            TokenRegistry(max_tokens=1).get("X")


class TestUpdateAndClone:

    def test_update_feed(self):
        registry = TokenRegistry(max_tokens=1)
        registry.add(InMemoryToken("A", decimals=6), StaticPriceFeed("1"))
        new_feed = StaticPriceFeed("2")
        info = registry.update_feed("A", new_feed)
        assert info.feed is new_feed
        assert info.decimals == 6

    def test_clone_is_independent(self):
        registry = TokenRegistry(max_tokens=3)
        registry.add(InMemoryToken("A"), StaticPriceFeed("1"))
        cloned = registry.clone()
        cloned.add(InMemoryToken("B"), StaticPriceFeed("1"))
        assert "B" not in registry
        assert cloned.addresses() == ["A", "B"]
