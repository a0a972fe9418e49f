"""
test_liquidation_scenario.py - End-to-end borrowing and liquidation scenarios

Scenarios:
- Deposit, borrow, price crash, liquidation, withdrawal of the remainder
- Time-series oracle driving the pool through a market path
- Multi-borrower pool where only the unhealthy position is liquidated
- Token conservation across pool, users and router
"""

import pytest
from datetime import timedelta

from lending import (
    LendingPool, InMemoryToken, InMemorySwapRouter, StaticAuthorizer,
    StaticPriceFeed, TimeSeriesPriceFeed,
    EVENT_COLLATERAL_DEPOSITED, EVENT_LOAN_TAKEN, EVENT_LIQUIDATED, EVENT_COLLATERAL_WITHDRAWN,
    NotLiquidatable, StalePrice,
)
from tests.fakes import fund, ADMIN, POOL, ROUTER, T0, USDC_UNIT, WETH_UNIT, WBTC_UNIT


class TestPriceCrash:
    """1 WETH at $2000 backs a 700 USDC loan; WETH halves; the loan is liquidated."""

    def test_full_cycle(self, market):
        pool = market.pool
        market.deposit("alice", "WETH", WETH_UNIT)

        assert pool.max_loan("alice") == 1400 * USDC_UNIT
        pool.take_loan("alice", 700 * USDC_UNIT)
        assert pool.health_factor_bps("alice") == 19047

        market.advance(timedelta(days=3))
        market.set_price("WETH", "1000")
        assert pool.health_factor_bps("alice") == 9523
        assert pool.is_liquidatable("alice")

        plan = pool.liquidate("keeper", "alice", "WETH", 800 * USDC_UNIT)
        assert plan.target_value == 808_500_000
        assert pool.get_loan("alice") is None

        remainder = pool.get_collateral("alice", "WETH")
        assert remainder == 191_500_000_000_000_000
        pool.withdraw_collateral("alice", "WETH", remainder)

        kinds = [e.kind for e in pool.events(actor="alice")]
        assert kinds == [EVENT_COLLATERAL_DEPOSITED, EVENT_LOAN_TAKEN, EVENT_COLLATERAL_WITHDRAWN]
        assert pool.events(kind=EVENT_LIQUIDATED)[0].actor == "keeper"

        # alice keeps the 700 USDC she borrowed and 0.1915 WETH
        assert market.usdc.balance_of("alice") == 700 * USDC_UNIT
        assert market.weth.balance_of("alice") == remainder

    def test_conservation(self, market):
        supply_before = {s: t.total_supply() for s, t in market.tokens.items()}
        market.deposit("alice", "WETH", WETH_UNIT)
        market.pool.take_loan("alice", 700 * USDC_UNIT)
        market.set_price("WETH", "1000")
        market.pool.liquidate("keeper", "alice", "WETH", 800 * USDC_UNIT)

        assert market.usdc.total_supply() == supply_before["USDC"]
        assert market.weth.total_supply() == supply_before["WETH"] + WETH_UNIT
        # Pool WETH holdings equal the sum of recorded positions
        recorded = sum(market.pool.snapshot().holders_of("WETH").values())
        assert market.weth.balance_of(POOL) == recorded


class TestTimeSeriesOracle:
    """Drive prices from a recorded path instead of manual updates."""

    def test_path(self):
        clock = {"now": T0}
        usdc, weth = InMemoryToken("USDC", 6), InMemoryToken("WETH", 18)
        usdc_feed = TimeSeriesPriceFeed(
            [(T0 + timedelta(minutes=30 * i), "1") for i in range(200)],
            clock=lambda: clock["now"],
        )
        weth_feed = TimeSeriesPriceFeed(
            [
                (T0, "2000"),
                (T0 + timedelta(days=1), "1800"),
                (T0 + timedelta(days=2), "1400"),
                (T0 + timedelta(days=3), "1000"),
            ],
            clock=lambda: clock["now"],
        )
        router = InMemorySwapRouter(
            ROUTER, {"USDC": usdc, "WETH": weth}, {"USDC": usdc_feed, "WETH": weth_feed},
        )
        pool = LendingPool(POOL, usdc, usdc_feed, StaticAuthorizer([ADMIN]), router, initial_time=T0)
        router.clock = lambda: pool.current_time
        pool.add_token(ADMIN, weth, weth_feed)
        fund(usdc, ADMIN, 10_000 * USDC_UNIT)
        pool.deposit_liquidity(ADMIN, 10_000 * USDC_UNIT)
        usdc.mint(ROUTER, 10_000 * USDC_UNIT)

        fund(weth, "alice", WETH_UNIT)
        pool.deposit_collateral("alice", "WETH", WETH_UNIT)
        pool.take_loan("alice", 1000 * USDC_UNIT)

        def move_to(when):
            clock["now"] = when
            pool.advance_time(when)

        health = []
        for day in range(1, 4):
            move_to(T0 + timedelta(days=day))
            health.append(pool.health_factor_bps("alice"))
        # debt 1050: 1800 * 0.7 / 1050, 1400 * 0.7 / 1050, 1000 * 0.7 / 1050
        assert health == [12000, 9333, 6666]

        # Next day the WETH feed has no fresh observation
        move_to(T0 + timedelta(days=3, hours=2))
        with pytest.raises(StalePrice):
            pool.liquidate("keeper", "alice", "WETH", 1)

        weth_feed.add_price(pool.current_time, "1000")
        plan = pool.liquidate("keeper", "alice", "WETH", 1000 * USDC_UNIT)
        # 1155 USDC needed with the penalty; 1 WETH only recovers 1000
        assert plan.seized == WETH_UNIT
        assert pool.get_loan("alice").outstanding == 50 * USDC_UNIT
        assert pool.get_collateral_balances("alice") == {}


class TestManyBorrowers:

    def test_only_unhealthy_position_is_liquidated(self, market):
        pool = market.pool
        market.deposit("alice", "WETH", WETH_UNIT)
        market.deposit("bob", "WBTC", WBTC_UNIT // 10)
        market.deposit("carol", "WETH", 2 * WETH_UNIT)
        pool.take_loan("alice", 1300 * USDC_UNIT)
        pool.take_loan("bob", 1000 * USDC_UNIT)
        pool.take_loan("carol", 500 * USDC_UNIT)

        market.set_price("WETH", "1800")
        liquidatable = [u for u in ("alice", "bob", "carol") if pool.is_liquidatable(u)]
        assert liquidatable == ["alice"]

        with pytest.raises(NotLiquidatable):
            pool.liquidate("keeper", "carol", "WETH", 1)
        pool.liquidate("keeper", "alice", "WETH", 1)

        assert pool.get_loan("alice") is None
        assert pool.get_loan("bob").outstanding == 1050 * USDC_UNIT
        assert pool.get_loan("carol").outstanding == 525 * USDC_UNIT
        assert pool.get_collateral("carol", "WETH") == 2 * WETH_UNIT
