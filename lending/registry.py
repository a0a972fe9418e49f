"""
registry.py - Supported collateral tokens

The registry keeps the supported tokens both as an ordered list (the order the
risk engine iterates) and as an address-keyed map of TokenInfo. Removal swaps
the last entry into the removed slot and truncates, so the order of remaining
tokens is not stable across removals.
"""

from __future__ import annotations
from typing import Dict, List

from .core import (
    PriceFeed, Token, TokenInfo,
    NotSupported, AlreadySupported, MaxTokensReached,
    require_address,
)


class TokenRegistry:
    """Address-keyed set of supported collateral tokens with a size cap."""

    def __init__(self, max_tokens: int):
        self.max_tokens = max_tokens
        self._order: List[str] = []
        self._info: Dict[str, TokenInfo] = {}

    def __contains__(self, address: str) -> bool:
        return address in self._info

    def __len__(self) -> int:
        return len(self._order)

    def addresses(self) -> List[str]:
        return list(self._order)

    def get(self, address: str) -> TokenInfo:
        """
        Raises:
            NotSupported: if the token is not registered.
        """
        if address not in self._info:
            raise NotSupported(f"token {address} is not supported")
        return self._info[address]

    def add(self, token: Token, feed: PriceFeed) -> TokenInfo:
        """
        Register `token` priced by `feed`. Decimals are read from the token once.

        Raises:
            AlreadySupported: if the token is already registered.
            MaxTokensReached: if the registry is full.
        """
        address = require_address(getattr(token, "address", None), "token address")
        if feed is None:
            raise NotSupported(f"token {address} has no price feed")
        if address in self._info:
            raise AlreadySupported(f"token {address} is already supported")
        if len(self._order) >= self.max_tokens:
            raise MaxTokensReached(f"cannot support more than {self.max_tokens} tokens")
        info = TokenInfo(token=token, feed=feed, decimals=token.decimals())
        self._info[address] = info
        self._order.append(address)
        return info

    def remove(self, address: str) -> TokenInfo:
        """Swap-and-pop removal. Raises NotSupported if absent."""
        info = self.get(address)
        idx = self._order.index(address)
        self._order[idx] = self._order[-1]
        self._order.pop()
        del self._info[address]
        return info

    def update_feed(self, address: str, feed: PriceFeed) -> TokenInfo:
        """Replace the price feed of a registered token. Raises NotSupported if absent."""
        old = self.get(address)
        if feed is None:
            raise NotSupported(f"token {address} has no price feed")
        info = TokenInfo(token=old.token, feed=feed, decimals=old.decimals)
        self._info[address] = info
        return info

    def clone(self) -> TokenRegistry:
        cloned = TokenRegistry(self.max_tokens)
        cloned._order = list(self._order)
        cloned._info = dict(self._info)
        return cloned
