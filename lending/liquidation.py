"""
liquidation.py - Seizure sizing for unhealthy or overdue loans

A loan is liquidatable when something is outstanding and either its health
factor is below the threshold or its due date has passed. Overdue loans skip
the health check entirely.

Seizure sizing:
    seize_target_value = (debt - repaid) * (10000 + penalty_bps) / 10000   [debt units]
    seize_target       = seize_target_value converted at ratio(debt -> collateral),
                         rounded up                                         [collateral units]
    seized             = min(seize_target, deposited balance)

Debt policy when the seizure is capped by the balance: the loan is credited
with the debt-token value of what was actually seized (never more than is
outstanding) and the pool absorbs any shortfall. A seizure that reaches its
target clears the loan entirely.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from .core import (
    BPS_DENOMINATOR, WAD, Loan,
    NotLiquidatable, InsufficientCollateral,
)
from .fixed_point import mul_div, mul_div_up, to_scale18, from_scale18_up, checked_add
from .risk import calculate_position_value


@dataclass(frozen=True, slots=True)
class SeizurePlan:
    """
    Immutable result of seizure sizing.

    Attributes:
        outstanding: debt - repaid before liquidation.
        target_value: Penalty-adjusted outstanding, in debt-token units.
        target_collateral: Collateral needed to cover target_value.
        seized: Collateral actually taken (capped at the user's balance).
        recovered_value: Debt-token value credited against the loan.
        loan_after: Remaining loan, or None when the loan is cleared.
    """
    outstanding: int
    target_value: int
    target_collateral: int
    seized: int
    recovered_value: int
    loan_after: Optional[Loan]

    @property
    def covers_target(self) -> bool:
        return self.seized == self.target_collateral

    @property
    def remaining(self) -> int:
        """Debt still outstanding after the liquidation."""
        return self.loan_after.outstanding if self.loan_after is not None else 0


def is_overdue(loan: Optional[Loan], now: datetime) -> bool:
    """True when something is outstanding and the due date has passed."""
    return loan is not None and loan.outstanding > 0 and loan.due_date <= now


def check_liquidatable(
    loan: Optional[Loan],
    health_factor_bps: int,
    threshold_bps: int,
    now: datetime,
) -> None:
    """
    Raises:
        NotLiquidatable: if nothing is outstanding, or the loan is healthy and not yet due.
    """
    if loan is None or loan.outstanding == 0:
        raise NotLiquidatable("no outstanding debt")
    if health_factor_bps >= threshold_bps and loan.due_date > now:
        raise NotLiquidatable(
            f"health factor {health_factor_bps} >= {threshold_bps} and loan due {loan.due_date}"
        )


def calculate_seizure_target(
    outstanding: int,
    penalty_bps: int,
    debt_decimals: int,
    collateral_decimals: int,
    debt_to_collateral18: int,
) -> Tuple[int, int]:
    """
    Penalty-adjusted outstanding debt and the collateral needed to cover it.

    Returns:
        (target_value in debt units, target_collateral in collateral units)
    """
    target_value = mul_div(outstanding, BPS_DENOMINATOR + penalty_bps, BPS_DENOMINATOR)
    target18 = mul_div_up(to_scale18(target_value, debt_decimals), debt_to_collateral18, WAD)
    return target_value, from_scale18_up(target18, collateral_decimals)


def calculate_seizure(
    loan: Loan,
    penalty_bps: int,
    balance: int,
    debt_decimals: int,
    collateral_decimals: int,
    debt_to_collateral18: int,
    collateral_to_debt18: int,
) -> SeizurePlan:
    """
    Size a liquidation of `loan` against a collateral balance.

    PURE FUNCTION - both exchange ratios are passed in.

    Raises:
        InsufficientCollateral: if the user holds none of the collateral token.
    """
    if balance == 0:
        raise InsufficientCollateral("no collateral of this token to seize")

    outstanding = loan.outstanding
    target_value, target_collateral = calculate_seizure_target(
        outstanding, penalty_bps, debt_decimals, collateral_decimals, debt_to_collateral18,
    )
    seized = min(target_collateral, balance)

    if seized == target_collateral:
        return SeizurePlan(
            outstanding=outstanding,
            target_value=target_value,
            target_collateral=target_collateral,
            seized=seized,
            recovered_value=outstanding,
            loan_after=None,
        )

    recovered = calculate_position_value(
        seized, collateral_decimals, collateral_to_debt18, debt_decimals,
    )
    credited = min(recovered, outstanding)
    repaid = checked_add(loan.repaid, credited)
    loan_after = None if repaid == loan.debt else Loan(
        debt=loan.debt, repaid=repaid, due_date=loan.due_date,
    )
    return SeizurePlan(
        outstanding=outstanding,
        target_value=target_value,
        target_collateral=target_collateral,
        seized=seized,
        recovered_value=credited,
        loan_after=loan_after,
    )
