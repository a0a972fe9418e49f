"""
Loan Bounds Conformance Tests

INVARIANT: Loans respect their limits at every step.

    ∀ loan L:   0 <= L.repaid <= L.debt
    take_loan(u, a) succeeds ⟹ a <= max_loan(u) at the time of the call
    Σ repayments == L.debt ⟹ the loan record is cleared
    A user holds at most one active loan
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from lending import LendingError, AmountExceedsLimit
from tests.fakes import build_market, fund, USDC_UNIT, WETH_UNIT


class TestLoanBounds:
    """Property-based loan limits."""

    @given(
        st.integers(min_value=1, max_value=10 * WETH_UNIT),
        st.integers(min_value=1, max_value=50_000 * USDC_UNIT),
    )
    @settings(max_examples=60, deadline=None)
    def test_borrowing_limit(self, collateral, amount):
        """
        PROPERTY: A loan is granted iff it is within max_loan.
        """
        market = build_market()
        market.deposit("alice", "WETH", collateral)
        limit = market.pool.max_loan("alice")
        try:
            loan = market.pool.take_loan("alice", amount)
        except AmountExceedsLimit:
            assert amount > limit
            assert market.pool.get_loan("alice") is None
            return
        assert amount <= limit
        assert loan.debt >= amount
        assert market.usdc.balance_of("alice") == amount

    @given(
        st.integers(min_value=1, max_value=1400 * USDC_UNIT),
        st.lists(st.integers(min_value=1, max_value=800 * USDC_UNIT), min_size=1, max_size=10),
    )
    @settings(max_examples=60, deadline=None)
    def test_repaid_never_exceeds_debt(self, amount, repayments):
        """
        PROPERTY: repaid stays within [0, debt]; reaching debt clears the loan.
        """
        market = build_market()
        market.deposit("alice", "WETH", WETH_UNIT)
        loan = market.pool.take_loan("alice", amount)
        fund(market.usdc, "alice", loan.debt)
        paid = 0

        for payment in repayments:
            try:
                remaining = market.pool.repay_loan("alice", payment)
            except LendingError:
                assert payment > loan.debt - paid
                continue
            paid += payment
            if remaining is None:
                assert paid == loan.debt
                assert market.pool.get_loan("alice") is None
                break
            assert remaining.repaid == paid
            assert 0 <= remaining.repaid < remaining.debt

    @given(st.integers(min_value=1, max_value=700 * USDC_UNIT))
    @settings(max_examples=30, deadline=None)
    def test_one_active_loan(self, amount):
        """
        PROPERTY: A second loan is refused while one is outstanding.
        """
        market = build_market()
        market.deposit("alice", "WETH", WETH_UNIT)
        market.pool.take_loan("alice", amount)
        before = market.pool.get_loan("alice")
        try:
            market.pool.take_loan("alice", 1)
        except LendingError:
            pass
        assert market.pool.get_loan("alice") == before
