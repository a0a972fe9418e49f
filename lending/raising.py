"""
raising.py - Collateral-raising rounds

A borrower can crowdfund extra collateral from funders. Each round moves
through:

    (none) --start--> OPEN --fund*--> OPEN --close--> CLOSED --repay_funder*--> CLOSED --reset--> (none)

ARCHITECTURE (Pure Function Pattern):
=====================================
CollateralRaising is frozen. Every transition below takes the current snapshot
plus explicit inputs and returns a NEW snapshot (or raises). The pool is the
only caller that stores the result, and only when the whole operation succeeds.

Invariants while open:
    raised <= target
    sum(funder_info[f].amount for f in funders) == raised

Funder rewards (computed once, at close):
    reward = from18(total_value(ratio(collateral -> debt), amount, collateral_decimals)
                    * interest_rate_bps / 10000)
"""

from __future__ import annotations
from dataclasses import replace
from typing import Dict, Mapping, Optional

from .core import (
    BPS_DENOMINATOR, CollateralRaising, FunderPosition,
    MustBeMoreThanZero, AmountExceedsLimit, AlreadyOpen, AlreadyClosed,
    TargetReached, TargetNotMet, CollateralRaisingStillOpen,
    UnsettledCollateralDebt, UnsettledInterestDebt, RaisingNotFound, RaisingNotReset,
    require_address,
)
from .fixed_point import apply_bps, checked_add, checked_sub, total_value, from_scale18


# ============================================================================
# START
# ============================================================================

def check_can_start(existing: Optional[CollateralRaising]) -> None:
    """
    Raises:
        AlreadyOpen: if the borrower has an open round.
        RaisingNotReset: if a closed round still awaits reset.
    """
    if existing is None:
        return
    if existing.is_open:
        raise AlreadyOpen(f"a collateral raising is already open for {existing.borrower}")
    raise RaisingNotReset(
        f"previous collateral raising for {existing.borrower} must be reset first"
    )


def open_raising(
    borrower: str,
    collateral_token: str,
    target: int,
    interest_rate_bps: int,
) -> CollateralRaising:
    """
    Create a new open round.

    Raises:
        MustBeMoreThanZero: if target is zero.
        AmountExceedsLimit: if the rate exceeds 100%.
    """
    require_address(borrower, "borrower")
    if target == 0:
        raise MustBeMoreThanZero("raising target must be more than zero")
    if interest_rate_bps > BPS_DENOMINATOR:
        raise AmountExceedsLimit(
            f"interest rate {interest_rate_bps} bps exceeds {BPS_DENOMINATOR}"
        )
    return CollateralRaising(
        borrower=borrower,
        collateral_token=collateral_token,
        interest_rate_bps=interest_rate_bps,
        target=target,
    )


# ============================================================================
# FUND
# ============================================================================

def apply_funding(raising: CollateralRaising, funder: str, amount: int) -> CollateralRaising:
    """
    Record a contribution of `amount` collateral from `funder`.

    The funder is appended to `funders` only on their first contribution.
    Funding exactly to the target leaves the round open.

    Raises:
        AlreadyClosed: if the round is closed.
        TargetReached: if nothing is left to raise.
        MustBeMoreThanZero: if amount is zero.
        AmountExceedsLimit: if amount exceeds target - raised.
    """
    require_address(funder, "funder")
    if not raising.is_open:
        raise AlreadyClosed(f"collateral raising for {raising.borrower} is closed")
    if raising.raised == raising.target:
        raise TargetReached(f"collateral raising for {raising.borrower} reached its target")
    if amount == 0:
        raise MustBeMoreThanZero("funding amount must be more than zero")
    remaining = raising.target - raising.raised
    if amount > remaining:
        raise AmountExceedsLimit(f"funding {amount} exceeds remaining target {remaining}")

    funders = raising.funders
    if funder not in raising.funder_info:
        funders = funders + (funder,)
    position = raising.position(funder)
    info = dict(raising.funder_info)
    info[funder] = FunderPosition(amount=checked_add(position.amount, amount), reward=position.reward)
    return replace(
        raising,
        raised=checked_add(raising.raised, amount),
        funders=funders,
        funder_info=info,
    )


# ============================================================================
# CLOSE
# ============================================================================

def check_can_close(raising: Optional[CollateralRaising], caller: str) -> CollateralRaising:
    """
    The borrower may close at any time; anyone else only once the target is met.

    A borrower without a round is treated as closed.

    Raises:
        AlreadyClosed: if there is no round or it is already closed.
        TargetNotMet: if a third party closes before the target is reached.
    """
    if raising is None:
        raise AlreadyClosed("no open collateral raising")
    if not raising.is_open:
        raise AlreadyClosed(f"collateral raising for {raising.borrower} is already closed")
    if caller != raising.borrower and raising.raised < raising.target:
        raise TargetNotMet(
            f"raised {raising.raised} of {raising.target}; only the borrower can close early"
        )
    return raising


def calculate_rewards(
    raising: CollateralRaising,
    price_per_unit18: int,
    collateral_decimals: int,
    debt_decimals: int,
) -> Dict[str, int]:
    """
    Interest reward owed to every funder, in debt-token native units.

    PURE FUNCTION - the collateral -> debt ratio is read once by the caller and
    applied to every funder.
    """
    rewards: Dict[str, int] = {}
    for funder in raising.funders:
        value18 = total_value(price_per_unit18, raising.position(funder).amount, collateral_decimals)
        rewards[funder] = from_scale18(apply_bps(value18, raising.interest_rate_bps), debt_decimals)
    return rewards


def close_raising(raising: CollateralRaising, rewards: Mapping[str, int]) -> CollateralRaising:
    """Freeze the round and attach the rewards computed by calculate_rewards()."""
    info = {
        funder: FunderPosition(amount=raising.position(funder).amount, reward=rewards.get(funder, 0))
        for funder in raising.funders
    }
    return replace(raising, is_open=False, funder_info=info)


# ============================================================================
# REPAY FUNDER
# ============================================================================

def apply_funder_repayment(
    raising: Optional[CollateralRaising],
    funder: str,
    collateral_amount: int,
    interest_amount: int,
) -> CollateralRaising:
    """
    Reduce what the borrower owes `funder`.

    Raises:
        MustBeMoreThanZero: if both components are zero.
        RaisingNotFound: if there is no round.
        CollateralRaisingStillOpen: if the round has not been closed.
        AmountExceedsLimit: if a component exceeds the funder's remaining balance.
    """
    if collateral_amount == 0 and interest_amount == 0:
        raise MustBeMoreThanZero("collateral or interest repayment must be more than zero")
    if raising is None:
        raise RaisingNotFound("no collateral raising to repay")
    if raising.is_open:
        raise CollateralRaisingStillOpen(
            f"collateral raising for {raising.borrower} must be closed before repaying funders"
        )
    position = raising.position(funder)
    if collateral_amount > position.amount:
        raise AmountExceedsLimit(
            f"collateral repayment {collateral_amount} exceeds {position.amount} owed to {funder}"
        )
    if interest_amount > position.reward:
        raise AmountExceedsLimit(
            f"interest repayment {interest_amount} exceeds {position.reward} owed to {funder}"
        )
    info = dict(raising.funder_info)
    info[funder] = FunderPosition(
        amount=checked_sub(position.amount, collateral_amount),
        reward=checked_sub(position.reward, interest_amount),
    )
    return replace(raising, funder_info=info)


# ============================================================================
# RESET
# ============================================================================

def check_can_reset(raising: Optional[CollateralRaising]) -> CollateralRaising:
    """
    A round can be deleted only once closed and fully settled with every funder.

    Raises:
        RaisingNotFound: if there is no round.
        CollateralRaisingStillOpen: if the round is open.
        UnsettledCollateralDebt: if any funder is still owed collateral.
        UnsettledInterestDebt: if any funder is still owed interest.
    """
    if raising is None:
        raise RaisingNotFound("no collateral raising to reset")
    if raising.is_open:
        raise CollateralRaisingStillOpen(
            f"collateral raising for {raising.borrower} is still open"
        )
    for funder in raising.funders:
        position = raising.position(funder)
        if position.amount > 0:
            raise UnsettledCollateralDebt(f"{funder} is still owed {position.amount} collateral")
        if position.reward > 0:
            raise UnsettledInterestDebt(f"{funder} is still owed {position.reward} interest")
    return raising
