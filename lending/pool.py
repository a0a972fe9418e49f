"""
pool.py - Stateful collateralized lending pool

The LendingPool class is the central state manager of the lending system.
It is the only module that mutates state, ensuring controlled and auditable changes.

Key responsibilities:
    - Runs every public operation atomically (all mutations commit or none do)
    - Serializes operations and rejects re-entrant calls from collaborators
    - Values positions through PriceNormalizer and the risk functions
    - Calls the token, swap and authorization collaborators
    - Records every committed change in an append-only event log
"""

from __future__ import annotations
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Dict, Iterator, List, Optional
import logging
import threading

from .config import LendingConfig
from .core import (
    # Types
    Authorizer, CollateralRaising, LendingEvent, Loan, PriceFeed, SwapRouter, Token, TokenInfo,
    # Constants
    BPS_DENOMINATOR,
    EVENT_TOKEN_ADDED, EVENT_TOKEN_REMOVED, EVENT_FEED_UPDATED, EVENT_LOAN_PARAMS_SET,
    EVENT_PAUSED, EVENT_UNPAUSED, EVENT_LIQUIDITY_DEPOSITED, EVENT_LIQUIDITY_WITHDRAWN,
    EVENT_COLLATERAL_DEPOSITED, EVENT_COLLATERAL_WITHDRAWN, EVENT_LOAN_TAKEN, EVENT_LOAN_REPAID,
    EVENT_LIQUIDATED, EVENT_RAISING_STARTED, EVENT_RAISING_FUNDED, EVENT_RAISING_CLOSED,
    EVENT_FUNDER_REPAID, EVENT_RAISING_RESET,
    # Exceptions
    AlreadyClosed, AlreadySupported, AmountExceedsLimit, InsufficientCollateral, InsufficientLiquidity, InvalidSlippageFloor,
    LTVViolation, MustBeMoreThanZero, OutstandingCollateral, OutstandingDebt, ProtocolPaused,
    ReentrantCall, SlippageExceeded, TransferFailed, Unauthorized,
    require_address,
)
from .fixed_point import to_uint
from .liquidation import SeizurePlan, calculate_seizure, check_liquidatable, is_overdue
from .pricing import PriceNormalizer
from .raising import (
    apply_funder_repayment, apply_funding, calculate_rewards, check_can_close,
    check_can_reset, check_can_start, close_raising, open_raising,
)
from .registry import TokenRegistry
from .risk import (
    RiskAssessment, calculate_loan, calculate_repayment,
    compute_collateral_value, compute_health_factor, compute_max_loan, compute_risk,
)
from .state import LendingState


logger = logging.getLogger(__name__)


class LendingPool:
    """
    Collateralized lending pool with a single debt asset.

    Users deposit supported collateral tokens, borrow the debt token up to the
    loan-to-value limit, repay with fixed interest, and can be liquidated when
    unhealthy or overdue. Borrowers can also crowdfund extra collateral from
    funders through collateral-raising rounds.

    Design Principles:
        - Atomic: each public operation works on a clone of the state and
          swaps it in only when every step, external calls included, succeeded.
        - Always logs: every committed operation appends LendingEvents to
          event_log; rejected operations leave no trace in state or log.

    Thread Safety:
        Operations are serialized by a lock. A collaborator that calls back
        into a mutating operation while one is running gets ReentrantCall.

    Example:
        pool = LendingPool("pool", usdc, usdc_feed, authorizer, router)
        pool.add_token("admin", weth, weth_feed)
        pool.deposit_liquidity("admin", 1_000_000 * 10**6)
        pool.deposit_collateral("alice", "WETH", 10**18)
        pool.take_loan("alice", 700 * 10**6)
    """

    def __init__(
        self,
        address: str,
        debt_token: Token,
        debt_feed: PriceFeed,
        authorizer: Authorizer,
        swap_router: SwapRouter,
        config: Optional[LendingConfig] = None,
        initial_time: Optional[datetime] = None,
    ):
        """
        Create a pool.

        Args:
            address: The pool's own wallet (holds liquidity and collateral)
            debt_token: The single asset users borrow
            debt_feed: Price feed for the debt token
            authorizer: Decides who may call administrative operations
            swap_router: Venue used to convert seized collateral
            config: Pool parameters (default: LendingConfig())
            initial_time: Starting time for the pool clock (default: 1970-01-01)
        """
        self.address = require_address(address, "pool address")
        self.authorizer = authorizer
        self.swap_router = swap_router
        config = config or LendingConfig()
        self._state = LendingState(
            config=config,
            debt_token=TokenInfo(token=debt_token, feed=debt_feed, decimals=debt_token.decimals()),
            registry=TokenRegistry(config.max_supported_tokens),
        )
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)
        self.normalizer = PriceNormalizer(lambda: self._current_time, config.stale_time)
        self.event_log: List[LendingEvent] = []
        self._next_sequence: int = 0
        self._lock = threading.RLock()
        self._working: Optional[LendingState] = None
        self._pending_events: List[LendingEvent] = []

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the pool."""
        return self._current_time

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the pool's logical clock. Time can only move forward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # READ-ONLY VIEWS (committed state)
    # ========================================================================

    @property
    def config(self) -> LendingConfig:
        return self._state.config

    @property
    def paused(self) -> bool:
        return self._state.paused

    @property
    def debt_token(self) -> TokenInfo:
        return self._state.debt_token

    def supported_tokens(self) -> List[str]:
        """Supported collateral token addresses (order not stable across removals)."""
        return self._state.registry.addresses()

    def token_info(self, token: str) -> TokenInfo:
        return self._state.registry.get(token)

    def get_collateral(self, user: str, token: str) -> int:
        return self._state.collateral_of(user, token)

    def get_collateral_balances(self, user: str) -> Dict[str, int]:
        return self._state.balances_of(user)

    def get_loan(self, user: str) -> Optional[Loan]:
        """The user's active loan, or None."""
        return self._state.loan_of(user)

    def get_raising(self, borrower: str) -> Optional[CollateralRaising]:
        return self._state.raisings.get(borrower)

    def available_liquidity(self) -> int:
        """Debt-token balance the pool can lend out."""
        return self._state.debt_token.token.balance_of(self.address)

    def total_collateral_value(self, user: str) -> int:
        """Value of the user's collateral in debt-token native units."""
        return compute_collateral_value(self._state, self.normalizer, user)

    def max_loan(self, user: str) -> int:
        return compute_max_loan(self._state, self.normalizer, user)

    def health_factor_bps(self, user: str) -> int:
        """Health factor in bps (10000 = break-even); MAX_HEALTH_FACTOR with no debt."""
        return compute_health_factor(self._state, self.normalizer, user)

    def assess(self, user: str) -> RiskAssessment:
        return compute_risk(self._state, self.normalizer, user, self._current_time)

    def is_liquidatable(self, user: str) -> bool:
        loan = self._state.loan_of(user)
        if loan is None or loan.outstanding == 0:
            return False
        if is_overdue(loan, self._current_time):
            return True
        return self.assess(user).liquidatable

    def snapshot(self) -> LendingState:
        """An independent copy of the committed state."""
        return self._state.clone()

    def events(self, kind: Optional[str] = None, actor: Optional[str] = None) -> List[LendingEvent]:
        """Committed events, optionally filtered by kind and/or actor."""
        return [
            e for e in self.event_log
            if (kind is None or e.kind == kind) and (actor is None or e.actor == actor)
        ]

    # ========================================================================
    # OPERATION MACHINERY
    # ========================================================================

    @contextmanager
    def _operation(
        self,
        kind: str,
        caller: str,
        admin: bool = False,
        pausable: bool = True,
    ) -> Iterator[LendingState]:
        """
        Run one public operation as a critical section against a working copy.

        The working state is committed, and the pending events logged, only if
        the body completes. Any exception discards both and propagates.
        """
        with self._lock:
            if self._working is not None:
                raise ReentrantCall(f"{kind} called while another operation is in progress")
            require_address(caller, "caller")
            if admin and not self.authorizer.is_admin(caller):
                raise Unauthorized(f"{caller} is not an admin")
            if pausable and self._state.paused:
                raise ProtocolPaused(f"{kind} rejected: pool is paused")

            working = self._state.clone()
            self._working = working
            self._pending_events = []
            try:
                yield working
            except Exception as exc:
                logger.warning("%s rejected caller=%s error=%s: %s", kind, caller, type(exc).__name__, exc)
                raise
            else:
                self._state = working
                for event in self._pending_events:
                    self.event_log.append(event)
                    logger.info("%r", event)
                self._next_sequence += len(self._pending_events)
            finally:
                self._working = None
                self._pending_events = []

    def _emit(self, kind: str, actor: str, **data) -> None:
        """Stage an event; it is logged only if the current operation commits."""
        event = LendingEvent(
            sequence_number=self._next_sequence + len(self._pending_events),
            kind=kind,
            actor=actor,
            timestamp=self._current_time,
            data=data,
        )
        self._pending_events.append(event)

    def _pull(self, token: Token, owner: str, amount: int) -> None:
        """Move `amount` of `token` from `owner` into the pool."""
        if not token.transfer_from(self.address, owner, self.address, amount):
            raise TransferFailed(f"could not pull {amount} {token.address} from {owner}")

    def _pull_to(self, token: Token, owner: str, to: str, amount: int) -> None:
        if not token.transfer_from(self.address, owner, to, amount):
            raise TransferFailed(f"could not move {amount} {token.address} from {owner} to {to}")

    def _push(self, token: Token, to: str, amount: int) -> None:
        """Move `amount` of `token` from the pool to `to`."""
        if not token.transfer(self.address, to, amount):
            raise TransferFailed(f"could not send {amount} {token.address} to {to}")

    @staticmethod
    def _positive(amount: int, what: str) -> int:
        to_uint(amount, what)
        if amount == 0:
            raise MustBeMoreThanZero(f"{what} must be more than zero")
        return amount

    def _require_healthy(self, state: LendingState, user: str) -> int:
        health = compute_health_factor(state, self.normalizer, user)
        if health < state.config.health_factor_threshold_bps:
            raise LTVViolation(
                f"health factor would drop to {health} bps "
                f"(threshold {state.config.health_factor_threshold_bps})"
            )
        return health

    # ========================================================================
    # ADMINISTRATION
    # ========================================================================

    def add_token(self, caller: str, token: Token, feed: PriceFeed) -> TokenInfo:
        """
        Support `token` as collateral, priced by `feed`.

        Raises:
            Unauthorized, MaxTokensReached
            AlreadySupported: if the token is already supported or is the debt token.
        """
        with self._operation("add_token", caller, admin=True, pausable=False) as state:
            if getattr(token, "address", None) == state.debt_token.address:
                raise AlreadySupported(f"{token.address} is the debt token and cannot be collateral")
            info = state.registry.add(token, feed)
            self._emit(EVENT_TOKEN_ADDED, caller, token=info.address, decimals=info.decimals)
        return info

    def remove_token(self, caller: str, token: str) -> None:
        """
        Stop supporting `token`.

        Raises:
            Unauthorized, NotSupported
            OutstandingCollateral: if any user or raising still holds the token.
        """
        with self._operation("remove_token", caller, admin=True, pausable=False) as state:
            state.registry.get(token)
            holders = state.holders_of(token)
            if holders:
                raise OutstandingCollateral(f"{len(holders)} users still hold {token} collateral")
            if any(r.collateral_token == token for r in state.raisings.values()):
                raise OutstandingCollateral(f"a collateral raising still references {token}")
            state.registry.remove(token)
            self._emit(EVENT_TOKEN_REMOVED, caller, token=token)

    def update_feed(self, caller: str, token: str, feed: PriceFeed) -> None:
        """Raises: Unauthorized, NotSupported"""
        with self._operation("update_feed", caller, admin=True, pausable=False) as state:
            state.registry.update_feed(token, feed)
            self._emit(EVENT_FEED_UPDATED, caller, token=token)

    def set_loan_params(self, caller: str, interest_rate_bps: int, loan_duration: timedelta) -> None:
        """
        Change the interest rate and duration applied to new loans.

        Raises:
            Unauthorized
            AmountExceedsLimit: if the rate exceeds 100%.
            MustBeMoreThanZero: if the duration is not positive.
        """
        with self._operation("set_loan_params", caller, admin=True, pausable=False) as state:
            to_uint(interest_rate_bps, "interest_rate_bps")
            if interest_rate_bps > BPS_DENOMINATOR:
                raise AmountExceedsLimit(
                    f"interest rate {interest_rate_bps} bps exceeds {BPS_DENOMINATOR}"
                )
            if loan_duration <= timedelta(0):
                raise MustBeMoreThanZero("loan duration must be positive")
            state.config = state.config.with_loan_params(interest_rate_bps, loan_duration)
            self._emit(
                EVENT_LOAN_PARAMS_SET, caller,
                interest_rate_bps=interest_rate_bps, loan_duration=loan_duration,
            )

    def pause(self, caller: str) -> None:
        with self._operation("pause", caller, admin=True, pausable=False) as state:
            state.paused = True
            self._emit(EVENT_PAUSED, caller)

    def unpause(self, caller: str) -> None:
        with self._operation("unpause", caller, admin=True, pausable=False) as state:
            state.paused = False
            self._emit(EVENT_UNPAUSED, caller)

    def deposit_liquidity(self, caller: str, amount: int) -> None:
        """Fund the pool with debt tokens to lend out."""
        with self._operation("deposit_liquidity", caller, admin=True, pausable=False) as state:
            self._positive(amount, "liquidity amount")
            self._pull(state.debt_token.token, caller, amount)
            self._emit(
                EVENT_LIQUIDITY_DEPOSITED, caller,
                amount=amount, liquidity=state.debt_token.token.balance_of(self.address),
            )

    def withdraw_liquidity(self, caller: str, amount: int) -> None:
        """
        Raises:
            Unauthorized
            InsufficientLiquidity: if the pool holds less than `amount`.
        """
        with self._operation("withdraw_liquidity", caller, admin=True, pausable=False) as state:
            self._positive(amount, "liquidity amount")
            debt_token = state.debt_token.token
            available = debt_token.balance_of(self.address)
            if available < amount:
                raise InsufficientLiquidity(f"pool holds {available}, cannot withdraw {amount}")
            self._push(debt_token, caller, amount)
            self._emit(
                EVENT_LIQUIDITY_WITHDRAWN, caller,
                amount=amount, liquidity=debt_token.balance_of(self.address),
            )

    # ========================================================================
    # COLLATERAL
    # ========================================================================

    def deposit_collateral(self, user: str, token: str, amount: int) -> int:
        """
        Deposit `amount` of a supported token as collateral.

        Returns:
            The user's new balance of `token`.

        Raises:
            MustBeMoreThanZero, NotSupported, TransferFailed
        """
        with self._operation("deposit_collateral", user) as state:
            self._positive(amount, "deposit amount")
            info = state.registry.get(token)
            self._pull(info.token, user, amount)
            balance = state.credit_collateral(user, token, amount)
            self._emit(EVENT_COLLATERAL_DEPOSITED, user, token=token, amount=amount, balance=balance)
        return balance

    def withdraw_collateral(self, user: str, token: str, amount: int) -> int:
        """
        Withdraw collateral back to the user.

        The debit is provisional: the post-withdrawal health factor is checked
        on the working state and the transfer is issued last, so a failure at
        any step leaves the position untouched.

        Returns:
            The user's remaining balance of `token`.

        Raises:
            MustBeMoreThanZero, NotSupported
            InsufficientCollateral: if amount exceeds the balance.
            OutstandingDebt: if the user has an active loan.
            LTVViolation: if the health factor would fall below the threshold.
        """
        with self._operation("withdraw_collateral", user) as state:
            self._positive(amount, "withdraw amount")
            info = state.registry.get(token)
            current = state.collateral_of(user, token)
            if amount > current:
                raise InsufficientCollateral(f"{user} holds {current} of {token}, cannot withdraw {amount}")
            loan = state.loan_of(user)
            if loan is not None and loan.debt > 0:
                raise OutstandingDebt(f"{user} has an outstanding loan")
            balance = state.debit_collateral(user, token, amount)
            self._require_healthy(state, user)
            self._push(info.token, user, amount)
            self._emit(EVENT_COLLATERAL_WITHDRAWN, user, token=token, amount=amount, balance=balance)
        return balance

    # ========================================================================
    # LOANS
    # ========================================================================

    def take_loan(self, user: str, amount: int) -> Loan:
        """
        Borrow `amount` of the debt token against deposited collateral.

        Interest is fixed: debt = amount + amount * interest_rate_bps / 10000,
        due loan_duration from now.

        Raises:
            MustBeMoreThanZero
            InsufficientLiquidity: if the pool holds less than `amount`.
            OutstandingDebt: if the user already has a loan.
            AmountExceedsLimit: if amount exceeds max_loan(user).
        """
        with self._operation("take_loan", user) as state:
            self._positive(amount, "loan amount")
            debt_token = state.debt_token.token
            if debt_token.balance_of(self.address) < amount:
                raise InsufficientLiquidity(f"pool cannot lend {amount}")
            if state.loan_of(user) is not None:
                raise OutstandingDebt(f"{user} already has an active loan")
            limit = compute_max_loan(state, self.normalizer, user)
            if amount > limit:
                raise AmountExceedsLimit(f"loan {amount} exceeds limit {limit}")
            loan = calculate_loan(
                amount, state.config.interest_rate_bps, self._current_time, state.config.loan_duration,
            )
            state.set_loan(user, loan)
            self._push(debt_token, user, amount)
            self._emit(
                EVENT_LOAN_TAKEN, user,
                amount=amount, debt=loan.debt, due_date=loan.due_date, max_loan=limit,
            )
        return loan

    def repay_loan(self, user: str, amount: int) -> Optional[Loan]:
        """
        Repay part or all of the user's loan.

        Returns:
            The remaining loan, or None once it is repaid in full.

        Raises:
            MustBeMoreThanZero
            AmountExceedsLimit: if amount exceeds debt - repaid.
        """
        with self._operation("repay_loan", user) as state:
            self._positive(amount, "repayment")
            loan = state.loan_of(user)
            if loan is None:
                raise AmountExceedsLimit(f"{user} has no outstanding debt")
            updated = calculate_repayment(loan, amount)
            self._pull(state.debt_token.token, user, amount)
            state.set_loan(user, updated)
            remaining = state.loan_of(user)
            self._emit(
                EVENT_LOAN_REPAID, user,
                amount=amount, repaid=updated.repaid, debt=updated.debt,
                cleared=remaining is None,
            )
        return remaining

    # ========================================================================
    # LIQUIDATION
    # ========================================================================

    def liquidate(self, liquidator: str, user: str, token: str, min_amount_out: int) -> SeizurePlan:
        """
        Seize `token` collateral from an unhealthy or overdue loan and swap it
        into the debt token.

        Args:
            liquidator: Wallet triggering the liquidation
            user: Borrower being liquidated
            token: Collateral token to seize
            min_amount_out: Minimum debt-token output accepted from the swap (must be > 0)

        Returns:
            The SeizurePlan that was applied.

        Raises:
            InvalidSlippageFloor: if min_amount_out is zero.
            NotSupported: if the token is not supported.
            NotLiquidatable: if nothing is outstanding, or the loan is healthy and not due.
                Overdue loans are not valued, so other collateral feeds are never read.
            InsufficientCollateral: if the user holds none of `token`.
            SlippageExceeded: if the swap returns less than min_amount_out.
        """
        with self._operation("liquidate", liquidator) as state:
            require_address(user, "user")
            to_uint(min_amount_out, "min_amount_out")
            if min_amount_out == 0:
                raise InvalidSlippageFloor("liquidation requires a positive minimum swap output")
            info = state.registry.get(token)
            loan = state.loan_of(user)
            overdue = is_overdue(loan, self._current_time)
            health = None
            if not overdue:
                health = compute_health_factor(state, self.normalizer, user)
                check_liquidatable(
                    loan, health, state.config.health_factor_threshold_bps, self._current_time,
                )

            debt = state.debt_token
            plan = calculate_seizure(
                loan,
                penalty_bps=state.config.liquidation_penalty_bps,
                balance=state.collateral_of(user, token),
                debt_decimals=debt.decimals,
                collateral_decimals=info.decimals,
                debt_to_collateral18=self.normalizer.ratio(debt.feed, info.feed),
                collateral_to_debt18=self.normalizer.ratio(info.feed, debt.feed),
            )
            balance = state.debit_collateral(user, token, plan.seized)
            state.set_loan(user, plan.loan_after)

            router = self.swap_router
            if not info.token.approve(self.address, router.address, plan.seized):
                raise TransferFailed(f"could not approve router for {plan.seized} {token}")
            amount_out = router.swap_exact_in(
                self.address,
                plan.seized,
                min_amount_out,
                [token, debt.address],
                self.address,
                self._current_time + state.config.swap_grace_period,
            )
            if amount_out < min_amount_out:
                raise SlippageExceeded(f"swap returned {amount_out}, below floor {min_amount_out}")

            self._emit(
                EVENT_LIQUIDATED, liquidator,
                user=user, token=token, health_factor_bps=health, overdue=overdue,
                seized=plan.seized, target_collateral=plan.target_collateral,
                recovered_value=plan.recovered_value, amount_out=amount_out,
                cleared=plan.loan_after is None, balance=balance,
            )
        return plan

    # ========================================================================
    # COLLATERAL RAISING
    # ========================================================================

    def start_raising(self, borrower: str, token: str, target: int, interest_rate_bps: int) -> CollateralRaising:
        """
        Open a collateral-raising round for `borrower`.

        Raises:
            AlreadyOpen: if a round is already open.
            RaisingNotReset: if a closed round has not been reset.
            NotSupported, MustBeMoreThanZero, AmountExceedsLimit
        """
        with self._operation("start_raising", borrower) as state:
            to_uint(target, "target")
            to_uint(interest_rate_bps, "interest_rate_bps")
            check_can_start(state.raisings.get(borrower))
            state.registry.get(token)
            raising = open_raising(borrower, token, target, interest_rate_bps)
            state.raisings[borrower] = raising
            self._emit(
                EVENT_RAISING_STARTED, borrower,
                token=token, target=target, interest_rate_bps=interest_rate_bps,
            )
        return raising

    def fund_raising(self, borrower: str, funder: str, amount: int) -> CollateralRaising:
        """
        Contribute `amount` of the round's collateral token.

        Raises:
            AlreadyClosed: if no round is open for `borrower`.
            TargetReached, MustBeMoreThanZero, AmountExceedsLimit, TransferFailed
        """
        with self._operation("fund_raising", funder) as state:
            to_uint(amount, "funding amount")
            raising = state.raisings.get(borrower)
            if raising is None:
                raise AlreadyClosed(f"no open collateral raising for {borrower}")
            updated = apply_funding(raising, funder, amount)
            info = state.registry.get(raising.collateral_token)
            self._pull(info.token, funder, amount)
            state.raisings[borrower] = updated
            self._emit(
                EVENT_RAISING_FUNDED, funder,
                borrower=borrower, amount=amount, raised=updated.raised,
                funded=updated.position(funder).amount,
            )
        return updated

    def close_raising(self, caller: str, borrower: str) -> CollateralRaising:
        """
        Close the round: credit the raised collateral to the borrower and fix
        every funder's interest reward.

        The borrower may close at any time; anyone else only once the target is met.

        Raises:
            AlreadyClosed, TargetNotMet, StaleOrInvalidPriceData
        """
        with self._operation("close_raising", caller) as state:
            raising = check_can_close(state.raisings.get(borrower), caller)
            info = state.registry.get(raising.collateral_token)
            debt = state.debt_token
            price_per_unit = self.normalizer.ratio(info.feed, debt.feed)
            rewards = calculate_rewards(raising, price_per_unit, info.decimals, debt.decimals)
            if raising.raised:
                state.credit_collateral(borrower, raising.collateral_token, raising.raised)
            closed = close_raising(raising, rewards)
            state.raisings[borrower] = closed
            self._emit(
                EVENT_RAISING_CLOSED, caller,
                borrower=borrower, raised=closed.raised, total_rewards=closed.total_rewards(),
                balance=state.collateral_of(borrower, raising.collateral_token),
            )
        return closed

    def repay_funder(
        self,
        borrower: str,
        funder: str,
        collateral_amount: int,
        interest_amount: int,
    ) -> CollateralRaising:
        """
        Pay a funder back: collateral comes out of the borrower's collateral
        balance held by the pool, interest is pulled in the debt token from the
        borrower straight to the funder.

        Raises:
            MustBeMoreThanZero: if both amounts are zero.
            CollateralRaisingStillOpen: if the round has not been closed.
            AmountExceedsLimit: if either amount exceeds what the funder is owed.
            InsufficientCollateral, LTVViolation: for the collateral leg, as withdraw.
        """
        with self._operation("repay_funder", borrower) as state:
            require_address(funder, "funder")
            to_uint(collateral_amount, "collateral_amount")
            to_uint(interest_amount, "interest_amount")
            updated = apply_funder_repayment(
                state.raisings.get(borrower), funder, collateral_amount, interest_amount,
            )
            state.raisings[borrower] = updated
            token = updated.collateral_token
            balance = state.collateral_of(borrower, token)
            if collateral_amount:
                balance = state.debit_collateral(borrower, token, collateral_amount)
                self._require_healthy(state, borrower)
            if interest_amount:
                self._pull_to(state.debt_token.token, borrower, funder, interest_amount)
            if collateral_amount:
                self._push(state.registry.get(token).token, funder, collateral_amount)
            position = updated.position(funder)
            self._emit(
                EVENT_FUNDER_REPAID, borrower,
                funder=funder, collateral_amount=collateral_amount, interest_amount=interest_amount,
                amount_owed=position.amount, reward_owed=position.reward, balance=balance,
            )
        return updated

    def reset_raising(self, borrower: str) -> None:
        """
        Delete a closed, fully settled round so a new one can start.

        Raises:
            RaisingNotFound, CollateralRaisingStillOpen
            UnsettledCollateralDebt, UnsettledInterestDebt
        """
        with self._operation("reset_raising", borrower) as state:
            raising = check_can_reset(state.raisings.get(borrower))
            del state.raisings[borrower]
            self._emit(EVENT_RAISING_RESET, borrower, funders=len(raising.funders))
