"""
conftest.py - Shared pytest fixtures for lending pool tests

Provides common fixtures used across unit, functional and conformance tests:
- A funded market (pool, tokens, feeds, router) built by tests.fakes.build_market
- Borrowers at the standard starting positions
"""

import pytest

from lending import MAX_UINT256
from tests.fakes import build_market, POOL, USDC_UNIT, WETH_UNIT


@pytest.fixture
def market():
    """A pool with WETH and WBTC supported and 1,000,000 USDC of liquidity."""
    return build_market()


@pytest.fixture
def pool(market):
    return market.pool


@pytest.fixture
def borrower(market):
    """alice with 1 WETH deposited ($2000 of collateral, $1400 borrowing limit)."""
    market.deposit("alice", "WETH", WETH_UNIT)
    return "alice"


@pytest.fixture
def indebted(market, borrower):
    """
    alice with a 700 USDC loan outstanding (debt 735 including 5% interest),
    holding the 700 USDC and with the pool approved to pull it back.
    """
    market.pool.take_loan(borrower, 700 * USDC_UNIT)
    market.usdc.approve(borrower, POOL, MAX_UINT256)
    return borrower
