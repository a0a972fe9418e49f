"""
config.py - Pool parameters

All protocol constants live in one explicit, immutable LendingConfig passed to
the pool at construction. There are no module-level mutable settings: an admin
parameter change produces a new config via dataclasses.replace().
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import timedelta

from .core import BPS_DENOMINATOR


@dataclass(frozen=True, slots=True)
class LendingConfig:
    """
    Global pool parameters.

    Attributes:
        interest_rate_bps: Fixed interest charged at origination (500 = 5%).
        loan_duration: Time from origination to due date.
        ltv_bps: Maximum borrowable fraction of collateral value.
        liquidation_penalty_bps: Surcharge on outstanding debt when sizing a seizure.
        health_factor_threshold_bps: Loans below this health factor are liquidatable.
        stale_time: Maximum tolerated age of an oracle quote.
        max_supported_tokens: Cap on the number of registered collateral tokens.
        swap_grace_period: Added to the current time to form the swap deadline.
    """
    interest_rate_bps: int = 500
    loan_duration: timedelta = timedelta(days=30)
    ltv_bps: int = 7_000
    liquidation_penalty_bps: int = 1_000
    health_factor_threshold_bps: int = 10_000
    stale_time: timedelta = timedelta(hours=1)
    max_supported_tokens: int = 10
    swap_grace_period: timedelta = timedelta(minutes=5)

    def __post_init__(self):
        for name in ("interest_rate_bps", "liquidation_penalty_bps"):
            value = getattr(self, name)
            if not 0 <= value <= BPS_DENOMINATOR:
                raise ValueError(f"{name} must be in [0, {BPS_DENOMINATOR}], got {value}")
        if not 0 < self.ltv_bps <= BPS_DENOMINATOR:
            raise ValueError(f"ltv_bps must be in (0, {BPS_DENOMINATOR}], got {self.ltv_bps}")
        if self.health_factor_threshold_bps <= 0:
            raise ValueError(
                f"health_factor_threshold_bps must be positive, got {self.health_factor_threshold_bps}"
            )
        for name in ("loan_duration", "stale_time", "swap_grace_period"):
            if getattr(self, name) <= timedelta(0):
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.max_supported_tokens < 1:
            raise ValueError(f"max_supported_tokens must be >= 1, got {self.max_supported_tokens}")

    def with_loan_params(self, interest_rate_bps: int, loan_duration: timedelta) -> LendingConfig:
        """Return a copy with new loan terms; validation runs again on the copy."""
        return replace(self, interest_rate_bps=interest_rate_bps, loan_duration=loan_duration)
