"""
simulation.py - In-memory collaborators

Minimal implementations of the Token, SwapRouter and Authorizer protocols so
the pool can be driven end to end without a host chain: demos, scenario
simulations and the test suite all use these.

Classes:
- InMemoryToken: Balances and allowances held in dictionaries
- InMemorySwapRouter: Fills swaps at oracle prices, minus a configurable slippage
- StaticAuthorizer: A fixed set of admin wallets
"""

from __future__ import annotations
from collections import defaultdict
from datetime import datetime
from typing import Callable, Dict, Iterable, Mapping, Optional, Sequence

from .core import BPS_DENOMINATOR, PriceFeed
from .fixed_point import to_scale18, from_scale18, scaled_ratio, total_value


class SimulationError(Exception):
    """Raised by in-memory collaborators for conditions a real venue would revert on."""
    pass


class InMemoryToken:
    """
    Fungible token with dictionary-backed balances and allowances.

    Failed transfers return False, mirroring tokens that signal failure by
    return value rather than by reverting.

    Example:
        usdc = InMemoryToken("USDC", decimals=6)
        usdc.mint("alice", 1_000 * 10**6)
        usdc.approve("alice", "pool", 500 * 10**6)
    """

    def __init__(self, address: str, decimals: int = 18):
        self.address = address
        self._decimals = decimals
        self.balances: Dict[str, int] = defaultdict(int)
        self.allowances: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))

    def decimals(self) -> int:
        return self._decimals

    def balance_of(self, owner: str) -> int:
        return self.balances.get(owner, 0)

    def total_supply(self) -> int:
        return sum(self.balances.values())

    def mint(self, to: str, amount: int) -> None:
        self.balances[to] += amount

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances[owner][spender]

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        self.allowances[owner][spender] = amount
        return True

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        if amount < 0 or self.balances.get(sender, 0) < amount:
            return False
        self.balances[sender] -= amount
        self.balances[to] += amount
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        if spender != owner and self.allowances[owner][spender] < amount:
            return False
        if not self.transfer(owner, to, amount):
            return False
        if spender != owner:
            self.allowances[owner][spender] -= amount
        return True

    def __repr__(self):
        return f"InMemoryToken({self.address}, {self._decimals}dp, holders={len(self.balances)})"


class InMemorySwapRouter:
    """
    Swap venue that fills at the ratio of two oracle prices.

    The router pulls `amount_in` of path[0] from the sender (which must have
    approved it) and pays out path[-1] from its own inventory.

    Args:
        address: Router wallet.
        tokens: Address -> token for every asset the router trades.
        feeds: Address -> price feed used to fill.
        clock: Current time, for deadline checks.
        slippage_bps: Haircut applied to the fair output.
    """

    def __init__(
        self,
        address: str,
        tokens: Mapping[str, InMemoryToken],
        feeds: Mapping[str, PriceFeed],
        clock: Optional[Callable[[], datetime]] = None,
        slippage_bps: int = 0,
    ):
        self.address = address
        self.tokens = dict(tokens)
        self.feeds = dict(feeds)
        self.slippage_bps = slippage_bps
        self.clock = clock or datetime.now
        self.swaps: list = []

    def quote(self, amount_in: int, path: Sequence[str]) -> int:
        """Output for `amount_in` along a two-token path at current oracle prices."""
        token_in, token_out = path[0], path[-1]
        in_price, _ = self.feeds[token_in].latest_quote()
        out_price, _ = self.feeds[token_out].latest_quote()
        ratio = scaled_ratio(
            to_scale18(in_price, self.feeds[token_in].decimals()),
            to_scale18(out_price, self.feeds[token_out].decimals()),
        )
        value18 = total_value(ratio, amount_in, self.tokens[token_in].decimals())
        fair = from_scale18(value18, self.tokens[token_out].decimals())
        return fair * (BPS_DENOMINATOR - self.slippage_bps) // BPS_DENOMINATOR

    def swap_exact_in(
        self,
        sender: str,
        amount_in: int,
        min_out: int,
        path: Sequence[str],
        to: str,
        deadline: datetime,
    ) -> int:
        if self.clock() > deadline:
            raise SimulationError(f"swap deadline {deadline} has passed")
        amount_out = self.quote(amount_in, path)
        if amount_out < min_out:
            raise SimulationError(f"swap output {amount_out} below minimum {min_out}")
        token_in, token_out = self.tokens[path[0]], self.tokens[path[-1]]
        if not token_in.transfer_from(self.address, sender, self.address, amount_in):
            raise SimulationError("router could not pull input tokens")
        if not token_out.transfer(self.address, to, amount_out):
            raise SimulationError("router inventory too small")
        self.swaps.append((sender, amount_in, amount_out, tuple(path)))
        return amount_out


class StaticAuthorizer:
    """Grants admin rights to a fixed set of wallets."""

    def __init__(self, admins: Iterable[str]):
        self.admins = set(admins)

    def is_admin(self, caller: str) -> bool:
        return caller in self.admins
