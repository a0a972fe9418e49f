"""
risk.py - Collateral valuation, borrowing limits and health factor

ARCHITECTURE (Pure Function Pattern):
=====================================

1. PURE CALCULATION FUNCTIONS (calculate_*):
   - Take all inputs explicitly as parameters (amounts, decimals, ratios, bps)
   - No state, no oracle reads
   - Example: calculate_max_loan(collateral_value, ltv_bps) -> int

2. CONVENIENCE FUNCTIONS (compute_*):
   - Take (state, normalizer, user) and do the oracle reads once
   - Internally call calculate_*()

Key Formulas (all values in debt-token native units unless noted):
    collateral_value = sum(from18(to18(amount) * ratio(collateral -> debt) / 1e18))
    max_loan         = collateral_value * ltv_bps / 10000
    health_factor    = collateral_value * ltv_bps / (debt - repaid)       [bps]
    loan debt        = amount + amount * interest_rate_bps / 10000

The health factor carries no extra threshold multiplier: 10000 means the
LTV-weighted collateral exactly covers what is outstanding, and a loan is
unhealthy when the factor drops below health_factor_threshold_bps.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Mapping
import logging

from .core import (
    MAX_HEALTH_FACTOR, Loan, TokenInfo,
    MustBeMoreThanZero, AmountExceedsLimit,
)
from .fixed_point import mul_div, apply_bps, checked_add, total_value, from_scale18
from .pricing import PriceNormalizer
from .state import LendingState


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RiskAssessment:
    """
    Immutable result of a position assessment.

    All fields are explicit; no Dict[str, Any].
    """
    collateral_value: int
    max_loan: int
    outstanding: int
    health_factor_bps: int
    threshold_bps: int
    overdue: bool

    @property
    def healthy(self) -> bool:
        return self.health_factor_bps >= self.threshold_bps

    @property
    def liquidatable(self) -> bool:
        return self.outstanding > 0 and (not self.healthy or self.overdue)


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def calculate_position_value(
    amount: int,
    amount_decimals: int,
    ratio18: int,
    target_decimals: int,
) -> int:
    """
    Value of `amount` of one asset in units of another, at the target's native decimals.

    Args:
        amount: Quantity in its native decimals.
        amount_decimals: Native decimals of `amount`.
        ratio18: Units of the target one unit of the source is worth (18 decimals).
        target_decimals: Native decimals of the target asset.
    """
    return from_scale18(total_value(ratio18, amount, amount_decimals), target_decimals)


def calculate_collateral_value(
    balances: Mapping[str, int],
    decimals: Mapping[str, int],
    ratios: Mapping[str, int],
    debt_decimals: int,
) -> int:
    """
    Total collateral value in debt-token native units.

    Each term is normalized to the debt token's decimals before summing.

    Raises:
        ValueError: if a held token is missing its decimals or ratio.
    """
    value = 0
    for token, amount in balances.items():
        if amount == 0:
            continue
        if token not in ratios:
            raise ValueError(f"Missing ratio for collateral token '{token}'")
        if token not in decimals:
            raise ValueError(f"Missing decimals for collateral token '{token}'")
        value = checked_add(
            value,
            calculate_position_value(amount, decimals[token], ratios[token], debt_decimals),
        )
    return value


def calculate_max_loan(collateral_value: int, ltv_bps: int) -> int:
    return apply_bps(collateral_value, ltv_bps)


def calculate_health_factor(collateral_value: int, ltv_bps: int, outstanding: int) -> int:
    """
    Health factor in basis points; MAX_HEALTH_FACTOR when nothing is outstanding.

    Example:
        calculate_health_factor(2000, 7000, 700) == 20000  # twice as safe as break-even
    """
    if outstanding == 0:
        return MAX_HEALTH_FACTOR
    return mul_div(collateral_value, ltv_bps, outstanding)


def calculate_loan(
    amount: int,
    interest_rate_bps: int,
    now: datetime,
    duration: timedelta,
) -> Loan:
    """
    Originate a loan of `amount`: fixed interest is added to the debt up front.

    Raises:
        MustBeMoreThanZero: if amount is zero.
    """
    if amount == 0:
        raise MustBeMoreThanZero("loan amount must be more than zero")
    debt = checked_add(amount, apply_bps(amount, interest_rate_bps))
    return Loan(debt=debt, repaid=0, due_date=now + duration)


def calculate_repayment(loan: Loan, amount: int) -> Loan:
    """
    Apply a repayment of `amount` and return the new loan snapshot.

    A returned loan with repaid == debt is settled; the caller clears it.

    Raises:
        MustBeMoreThanZero: if amount is zero.
        AmountExceedsLimit: if amount exceeds what is outstanding.
    """
    if amount == 0:
        raise MustBeMoreThanZero("repayment must be more than zero")
    if amount > loan.outstanding:
        raise AmountExceedsLimit(
            f"repayment {amount} exceeds outstanding debt {loan.outstanding}"
        )
    return Loan(debt=loan.debt, repaid=loan.repaid + amount, due_date=loan.due_date)


# ============================================================================
# CONVENIENCE FUNCTIONS (state + oracle reads)
# ============================================================================

def compute_ratios_to_debt(
    state: LendingState,
    normalizer: PriceNormalizer,
    tokens: Mapping[str, int],
) -> Dict[str, int]:
    """Collateral -> debt-token ratio for every token in `tokens` with a non-zero amount."""
    debt_feed = state.debt_token.feed
    ratios: Dict[str, int] = {}
    for token, amount in tokens.items():
        if amount == 0:
            continue
        info: TokenInfo = state.registry.get(token)
        ratios[token] = normalizer.ratio(info.feed, debt_feed)
    return ratios


def compute_collateral_value(
    state: LendingState,
    normalizer: PriceNormalizer,
    user: str,
) -> int:
    """
    Total value of `user`'s collateral in debt-token native units.

    Iterates every supported token the user holds; every held token's feed is
    read, so one broken feed fails the whole valuation.
    """
    balances = state.balances_of(user)
    ratios = compute_ratios_to_debt(state, normalizer, balances)
    decimals = {token: state.registry.get(token).decimals for token in balances}
    value = calculate_collateral_value(balances, decimals, ratios, state.debt_token.decimals)
    logger.debug("collateral value user=%s value=%d tokens=%d", user, value, len(balances))
    return value


def compute_max_loan(state: LendingState, normalizer: PriceNormalizer, user: str) -> int:
    return calculate_max_loan(compute_collateral_value(state, normalizer, user), state.config.ltv_bps)


def compute_health_factor(state: LendingState, normalizer: PriceNormalizer, user: str) -> int:
    """Health factor of `user` in bps. No oracle read happens when nothing is outstanding."""
    loan = state.loan_of(user)
    if loan is None or loan.outstanding == 0:
        return MAX_HEALTH_FACTOR
    value = compute_collateral_value(state, normalizer, user)
    return calculate_health_factor(value, state.config.ltv_bps, loan.outstanding)


def compute_risk(
    state: LendingState,
    normalizer: PriceNormalizer,
    user: str,
    now: datetime,
) -> RiskAssessment:
    """Full position assessment for `user` at time `now`."""
    config = state.config
    loan = state.loan_of(user)
    outstanding = loan.outstanding if loan is not None else 0
    value = compute_collateral_value(state, normalizer, user)
    return RiskAssessment(
        collateral_value=value,
        max_loan=calculate_max_loan(value, config.ltv_bps),
        outstanding=outstanding,
        health_factor_bps=calculate_health_factor(value, config.ltv_bps, outstanding),
        threshold_bps=config.health_factor_threshold_bps,
        overdue=loan is not None and outstanding > 0 and loan.due_date <= now,
    )


