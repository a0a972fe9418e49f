"""
test_pool_liquidation.py - Unit tests for LendingPool.liquidate()

Tests:
- Full liquidation after a price drop clears the loan
- Overdue loans are liquidatable regardless of health, without valuing other collateral
- Capped seizure when one token cannot cover the penalty-adjusted debt
- Validation: slippage floor, unsupported token, healthy loans, empty positions
- Swap failures and output below the floor roll the whole operation back
"""

import pytest
from datetime import timedelta

from lending import (
    Loan, EVENT_LIQUIDATED,
    InvalidSlippageFloor, NotSupported, NotLiquidatable, InsufficientCollateral,
    SlippageExceeded, StalePrice, SimulationError,
)
from tests.fakes import (
    build_market, LenientRouter, POOL, ROUTER, POOL_LIQUIDITY, USDC_UNIT, WETH_UNIT, WBTC_UNIT,
)


SEIZE_TARGET = 808_500_000_000_000_000  # 0.8085 WETH


class TestFullLiquidation:

    def test_price_drop(self, market, indebted):
        market.set_price("WETH", "1000")
        plan = market.pool.liquidate("liquidator", indebted, "WETH", 800 * USDC_UNIT)

        assert plan.seized == SEIZE_TARGET
        assert plan.loan_after is None
        assert market.pool.get_loan(indebted) is None
        assert market.pool.get_collateral(indebted, "WETH") == WETH_UNIT - SEIZE_TARGET
        assert market.weth.balance_of(POOL) == WETH_UNIT - SEIZE_TARGET
        assert market.weth.balance_of(ROUTER) == SEIZE_TARGET
        assert market.pool.available_liquidity() == (
            POOL_LIQUIDITY - 700 * USDC_UNIT + 808_500_000
        )

    def test_swap_request(self, market, indebted):
        market.set_price("WETH", "1000")
        market.pool.liquidate("liquidator", indebted, "WETH", 800 * USDC_UNIT)
        assert market.router.swaps == [(POOL, SEIZE_TARGET, 808_500_000, ("WETH", "USDC"))]
        assert market.weth.allowance(POOL, ROUTER) == 0

    def test_event(self, market, indebted):
        market.set_price("WETH", "1000")
        market.pool.liquidate("liquidator", indebted, "WETH", 800 * USDC_UNIT)
        event = market.pool.events(kind=EVENT_LIQUIDATED)[0]
        assert event.actor == "liquidator"
        assert event.data["user"] == indebted
        assert event.data["health_factor_bps"] == 9523
        assert event.data["overdue"] is False
        assert event.data["amount_out"] == 808_500_000
        assert event.data["cleared"] is True

    def test_overdue_healthy_loan(self, market, indebted):
        market.advance(timedelta(days=30))
        assert market.pool.health_factor_bps(indebted) > 10000
        plan = market.pool.liquidate("liquidator", indebted, "WETH", 1)
        assert plan.loan_after is None
        # 808.5 USDC at $2000 per WETH
        assert plan.seized == SEIZE_TARGET // 2

    def test_cleared_user_can_withdraw_remainder(self, market, indebted):
        market.set_price("WETH", "1000")
        market.pool.liquidate("liquidator", indebted, "WETH", 800 * USDC_UNIT)
        market.pool.withdraw_collateral(indebted, "WETH", WETH_UNIT - SEIZE_TARGET)
        assert market.pool.get_collateral_balances(indebted) == {}


class TestCappedLiquidation:
    """0.5 WETH + 0.05 WBTC backing a 1400 USDC loan; WBTC halves."""

    @pytest.fixture
    def mixed(self, market):
        market.deposit("bob", "WETH", WETH_UNIT // 2)
        market.deposit("bob", "WBTC", WBTC_UNIT // 20)
        market.pool.take_loan("bob", 1400 * USDC_UNIT)
        market.set_price("WBTC", "20000")
        return "bob"

    def test_seizes_whole_balance(self, market, mixed):
        assert market.pool.health_factor_bps(mixed) == 9523
        plan = market.pool.liquidate("liquidator", mixed, "WETH", 900 * USDC_UNIT)
        assert plan.seized == WETH_UNIT // 2
        assert not plan.covers_target
        assert plan.recovered_value == 1000 * USDC_UNIT
        assert market.pool.get_loan(mixed) == Loan(
            debt=1470 * USDC_UNIT, repaid=1000 * USDC_UNIT, due_date=plan.loan_after.due_date,
        )
        assert market.pool.get_collateral_balances(mixed) == {"WBTC": WBTC_UNIT // 20}

    def test_second_token_can_then_be_liquidated(self, market, mixed):
        market.pool.liquidate("liquidator", mixed, "WETH", 900 * USDC_UNIT)
        # 470 outstanding against $1000 of WBTC is healthy again
        assert market.pool.health_factor_bps(mixed) == 14893
        with pytest.raises(NotLiquidatable):
            market.pool.liquidate("liquidator", mixed, "WBTC", 1)

        market.set_price("WBTC", "6000")
        plan = market.pool.liquidate("liquidator", mixed, "WBTC", 1)
        assert plan.seized == WBTC_UNIT // 20
        assert plan.recovered_value == 300 * USDC_UNIT
        assert market.pool.get_loan(mixed).outstanding == 170 * USDC_UNIT


class TestOverdueLiquidation:
    """1 WETH + 0.01 WBTC behind a 100 USDC loan, past due with the WBTC feed gone quiet."""

    @pytest.fixture
    def overdue(self, market):
        market.deposit("alice", "WETH", WETH_UNIT)
        market.deposit("alice", "WBTC", WBTC_UNIT // 100)
        market.pool.take_loan("alice", 100 * USDC_UNIT)
        market.advance(timedelta(days=31), refresh=False)
        market.set_price("USDC", "1")
        market.set_price("WETH", "2000")
        return "alice"

    def test_other_collateral_is_not_valued(self, market, overdue):
        with pytest.raises(StalePrice):
            market.pool.health_factor_bps(overdue)
        assert market.pool.is_liquidatable(overdue)

        plan = market.pool.liquidate("liquidator", overdue, "WETH", 1)
        assert plan.loan_after is None
        # 115.5 USDC at $2000 per WETH
        assert plan.seized == 57_750_000_000_000_000
        assert market.pool.get_collateral_balances(overdue) == {
            "WETH": WETH_UNIT - plan.seized,
            "WBTC": WBTC_UNIT // 100,
        }

    def test_event_marks_overdue(self, market, overdue):
        market.pool.liquidate("liquidator", overdue, "WETH", 1)
        event = market.pool.events(kind=EVENT_LIQUIDATED)[-1]
        assert event.data["overdue"] is True
        assert event.data["health_factor_bps"] is None

    def test_seized_token_feed_must_be_fresh(self, market, overdue):
        with pytest.raises(StalePrice):
            market.pool.liquidate("liquidator", overdue, "WBTC", 1)
        assert market.pool.get_loan(overdue).outstanding == 105 * USDC_UNIT


class TestLiquidationRejected:

    def test_zero_slippage_floor(self, market, indebted):
        market.set_price("WETH", "1000")
        with pytest.raises(InvalidSlippageFloor):
            market.pool.liquidate("liquidator", indebted, "WETH", 0)

    def test_unsupported_token(self, market, indebted):
        with pytest.raises(NotSupported):
            market.pool.liquidate("liquidator", indebted, "DAI", 1)

    def test_healthy(self, market, indebted):
        with pytest.raises(NotLiquidatable):
            market.pool.liquidate("liquidator", indebted, "WETH", 1)

    def test_no_debt(self, market, borrower):
        with pytest.raises(NotLiquidatable):
            market.pool.liquidate("liquidator", borrower, "WETH", 1)

    def test_no_collateral_of_token(self, market, indebted):
        market.set_price("WETH", "1000")
        with pytest.raises(InsufficientCollateral):
            market.pool.liquidate("liquidator", indebted, "WBTC", 1)

    def test_stale_price(self, market, indebted):
        market.advance(timedelta(hours=2), refresh=False)
        with pytest.raises(StalePrice):
            market.pool.liquidate("liquidator", indebted, "WETH", 1)


class TestSwapFailureRollsBack:

    def assert_untouched(self, market, user):
        assert market.pool.get_collateral(user, "WETH") == WETH_UNIT
        assert market.pool.get_loan(user).repaid == 0
        assert market.pool.events(kind=EVENT_LIQUIDATED) == []

    def test_router_rejects_minimum(self, market, indebted):
        market.set_price("WETH", "1000")
        with pytest.raises(SimulationError):
            market.pool.liquidate("liquidator", indebted, "WETH", 808_500_001)
        self.assert_untouched(market, indebted)
        assert market.weth.balance_of(POOL) == WETH_UNIT

    def test_pool_enforces_floor(self):
        market = build_market(slippage_bps=200, router_cls=LenientRouter)
        market.deposit("alice", "WETH", WETH_UNIT)
        market.pool.take_loan("alice", 700 * USDC_UNIT)
        market.set_price("WETH", "1000")
        with pytest.raises(SlippageExceeded):
            market.pool.liquidate("liquidator", "alice", "WETH", 800 * USDC_UNIT)
        self.assert_untouched(market, "alice")

    def test_slippage_within_floor(self):
        market = build_market(slippage_bps=100)
        market.deposit("alice", "WETH", WETH_UNIT)
        market.pool.take_loan("alice", 700 * USDC_UNIT)
        market.set_price("WETH", "1000")
        market.pool.liquidate("liquidator", "alice", "WETH", 800 * USDC_UNIT)
        assert market.router.swaps[0][2] == 800_415_000
