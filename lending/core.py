"""
Core types for the collateralized lending ledger.

This module provides the foundational data structures and protocols for the pool:
1. Constants: fixed-point scale, basis-point denominator, integer bounds
2. Protocols: the external collaborators the pool consumes (oracle, token, swap venue, authorizer)
3. Exceptions: LendingError and the domain error taxonomy
4. Type aliases: CollateralKey, CollateralBook
5. Immutable records: PriceQuote, TokenInfo, Loan, FunderPosition, CollateralRaising, LendingEvent

Nothing in this module holds or mutates pool state.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import (
    Dict, List, Tuple, Optional, Any, Protocol, Sequence, Mapping,
    runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Canonical fixed-point scale: 18 fractional decimal digits.
SCALE_DECIMALS = 18
WAD = 10 ** SCALE_DECIMALS

# Basis points: 1/100 of a percent.
BPS_DENOMINATOR = 10_000

# Every monetary quantity is an unsigned 256-bit integer.
MAX_UINT256 = 2 ** 256 - 1

# Health factor reported when a user has nothing outstanding.
MAX_HEALTH_FACTOR = MAX_UINT256

# Event kinds recorded in the audit log.
EVENT_TOKEN_ADDED = "TOKEN_ADDED"
EVENT_TOKEN_REMOVED = "TOKEN_REMOVED"
EVENT_FEED_UPDATED = "FEED_UPDATED"
EVENT_LOAN_PARAMS_SET = "LOAN_PARAMS_SET"
EVENT_PAUSED = "PAUSED"
EVENT_UNPAUSED = "UNPAUSED"
EVENT_LIQUIDITY_DEPOSITED = "LIQUIDITY_DEPOSITED"
EVENT_LIQUIDITY_WITHDRAWN = "LIQUIDITY_WITHDRAWN"
EVENT_COLLATERAL_DEPOSITED = "COLLATERAL_DEPOSITED"
EVENT_COLLATERAL_WITHDRAWN = "COLLATERAL_WITHDRAWN"
EVENT_LOAN_TAKEN = "LOAN_TAKEN"
EVENT_LOAN_REPAID = "LOAN_REPAID"
EVENT_LIQUIDATED = "LIQUIDATED"
EVENT_RAISING_STARTED = "RAISING_STARTED"
EVENT_RAISING_FUNDED = "RAISING_FUNDED"
EVENT_RAISING_CLOSED = "RAISING_CLOSED"
EVENT_FUNDER_REPAID = "FUNDER_REPAID"
EVENT_RAISING_RESET = "RAISING_RESET"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# (user, token address) pair identifying one collateral position.
CollateralKey = Tuple[str, str]

# Mapping from (user, token) to the deposited amount in token-native decimals.
CollateralBook = Dict[CollateralKey, int]


# ============================================================================
# COLLABORATOR PROTOCOLS
# ============================================================================

@runtime_checkable
class PriceFeed(Protocol):
    """
    Read-only price oracle for one asset, quoted in a common reference currency.

    latest_quote() returns the raw signed price and the time it was last updated.
    The pool never trusts the value blindly: non-positive prices and quotes older
    than the configured stale window are rejected on every read.
    """

    def latest_quote(self) -> Tuple[int, datetime]:
        """Return (price, updated_at) for the asset."""
        ...

    def decimals(self) -> int:
        """Return the number of fractional digits in the quoted price."""
        ...


@runtime_checkable
class Token(Protocol):
    """
    Fungible-token transfer mechanism.

    The host environment's implicit caller is made explicit: every mutating call
    names the party on whose behalf it runs. Calls return False (or raise) on
    failure; the pool treats either as a hard abort of the whole operation.
    """

    address: str

    def decimals(self) -> int:
        ...

    def balance_of(self, owner: str) -> int:
        ...

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        ...

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        ...


@runtime_checkable
class SwapRouter(Protocol):
    """Swap venue used to convert seized collateral into the debt token."""

    address: str

    def swap_exact_in(
        self,
        sender: str,
        amount_in: int,
        min_out: int,
        path: Sequence[str],
        to: str,
        deadline: datetime,
    ) -> int:
        """Swap exactly amount_in of path[0], pulled from sender, into path[-1] paid to `to`."""
        ...


@runtime_checkable
class Authorizer(Protocol):
    """Capability check gating the administrative surface."""

    def is_admin(self, caller: str) -> bool:
        ...


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LendingError(Exception):
    """Base exception for all lending-pool errors."""
    pass


# --- categories -------------------------------------------------------------

class InvalidInput(LendingError):
    """Raised for zero amounts, empty addresses and malformed arguments."""
    pass


class NotSupported(LendingError):
    """Raised when a token or price feed is not registered with the pool."""
    pass


class InsufficientFunds(LendingError):
    """Raised when liquidity, collateral or a token balance cannot cover an amount."""
    pass


class PolicyViolation(LendingError):
    """Raised when an operation is well-formed but breaks a pool rule."""
    pass


class StaleOrInvalidPriceData(LendingError):
    """Raised when an oracle quote cannot be used."""
    pass


class NotLiquidatable(LendingError):
    """Raised when liquidation is attempted on a healthy, non-overdue loan."""
    pass


class Unauthorized(LendingError):
    """Raised when a caller without admin rights invokes an administrative operation."""
    pass


class ArithmeticFault(LendingError):
    """Raised when a value leaves the unsigned 256-bit range or a division is undefined."""
    pass


# --- invalid input ----------------------------------------------------------

class MustBeMoreThanZero(InvalidInput):
    pass


class InvalidAmount(InvalidInput):
    """Raised when an amount is negative, fractional or not an integer."""
    pass


class ZeroAddress(InvalidInput):
    pass


class InvalidSlippageFloor(InvalidInput):
    """Raised when a liquidation is submitted without a positive minimum output."""
    pass


# --- insufficient funds -----------------------------------------------------

class InsufficientLiquidity(InsufficientFunds):
    pass


class InsufficientCollateral(InsufficientFunds):
    pass


class TransferFailed(InsufficientFunds):
    """Raised when the token collaborator reports a failed transfer."""
    pass


# --- policy -----------------------------------------------------------------

class LTVViolation(PolicyViolation):
    pass


class OutstandingDebt(PolicyViolation):
    pass


class OutstandingCollateral(PolicyViolation):
    pass


class AmountExceedsLimit(PolicyViolation):
    pass


class AlreadySupported(PolicyViolation):
    pass


class MaxTokensReached(PolicyViolation):
    pass


class AlreadyOpen(PolicyViolation):
    pass


class AlreadyClosed(PolicyViolation):
    pass


class TargetReached(PolicyViolation):
    pass


class TargetNotMet(PolicyViolation):
    pass


class CollateralRaisingStillOpen(PolicyViolation):
    pass


class UnsettledCollateralDebt(PolicyViolation):
    pass


class UnsettledInterestDebt(PolicyViolation):
    pass


class RaisingNotFound(PolicyViolation):
    pass


class RaisingNotReset(PolicyViolation):
    """Raised when a new raising is started before the previous one was reset."""
    pass


class ProtocolPaused(PolicyViolation):
    pass


class ReentrantCall(PolicyViolation):
    """Raised when a collaborator calls back into the pool mid-operation."""
    pass


class SlippageExceeded(PolicyViolation):
    pass


# --- prices -----------------------------------------------------------------

class InvalidPrice(StaleOrInvalidPriceData):
    pass


class StalePrice(StaleOrInvalidPriceData):
    pass


# --- arithmetic -------------------------------------------------------------

class ArithmeticOverflow(ArithmeticFault):
    pass


class ArithmeticUnderflow(ArithmeticFault):
    pass


class DivisionByZero(ArithmeticFault):
    pass


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class PriceQuote:
    """
    A single validated oracle reading. Produced per call, never persisted.

    Attributes:
        value: Positive raw price with `decimals` fractional digits.
        decimals: Precision of `value`.
        updated_at: When the oracle last updated the price.
    """
    value: int
    decimals: int
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class TokenInfo:
    """
    Registry entry for a supported collateral token.

    Attributes:
        token: The token collaborator (used for transfers).
        feed: Price feed quoting the token in the reference currency.
        decimals: Token-native decimals, read once at registration.
    """
    token: Token
    feed: PriceFeed
    decimals: int

    @property
    def address(self) -> str:
        return self.token.address


@dataclass(frozen=True, slots=True)
class Loan:
    """
    A user's single active loan, in debt-token native units.

    `debt` already includes the fixed interest charged at origination.
    """
    debt: int
    repaid: int
    due_date: datetime

    def __post_init__(self):
        if self.repaid > self.debt:
            raise ValueError(f"repaid ({self.repaid}) cannot exceed debt ({self.debt})")

    @property
    def outstanding(self) -> int:
        return self.debt - self.repaid

    @property
    def is_active(self) -> bool:
        return self.debt > 0


@dataclass(frozen=True, slots=True)
class FunderPosition:
    """What the borrower still owes one funder: collateral principal and interest reward."""
    amount: int = 0
    reward: int = 0

    @property
    def settled(self) -> bool:
        return self.amount == 0 and self.reward == 0


@dataclass(frozen=True, slots=True)
class CollateralRaising:
    """
    Immutable snapshot of one borrower's collateral-raising round.

    Each transition (fund, close, repay funder) produces a NEW instance.

    Attributes:
        borrower: Wallet the raised collateral is credited to.
        collateral_token: Token address funders contribute.
        interest_rate_bps: Reward rate paid to funders on close.
        target: Amount of collateral sought, in token-native units.
        raised: Amount contributed so far.
        is_open: True until the round is closed.
        funders: Funders in order of first contribution, without duplicates.
        funder_info: Per-funder outstanding amount and reward.
    """
    borrower: str
    collateral_token: str
    interest_rate_bps: int
    target: int
    raised: int = 0
    is_open: bool = True
    funders: Tuple[str, ...] = ()
    funder_info: Mapping[str, FunderPosition] = field(default_factory=dict)

    def position(self, funder: str) -> FunderPosition:
        return self.funder_info.get(funder, FunderPosition())

    def total_funded(self) -> int:
        return sum(self.position(f).amount for f in self.funders)

    def total_rewards(self) -> int:
        return sum(self.position(f).reward for f in self.funders)

    def unsettled_funders(self) -> List[str]:
        return [f for f in self.funders if not self.position(f).settled]


@dataclass(frozen=True, slots=True)
class LendingEvent:
    """
    Immutable audit record of one committed state change.

    Attributes:
        sequence_number: Monotonic within the pool.
        kind: One of the EVENT_* constants.
        actor: Wallet that invoked the operation.
        timestamp: Pool time at commit.
        data: Amounts and resulting balances relevant to the operation.
    """
    sequence_number: int
    kind: str
    actor: str
    timestamp: datetime
    data: Mapping[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        details = ", ".join(f"{k}={v!r}" for k, v in sorted(self.data.items()))
        return f"LendingEvent(#{self.sequence_number} {self.kind} by {self.actor}: {details})"


def require_address(value: Optional[str], what: str = "address") -> str:
    """Return `value` or raise ZeroAddress if it is empty."""
    if not value or not str(value).strip():
        raise ZeroAddress(f"{what} cannot be empty")
    return value
