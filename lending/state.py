"""
state.py - The pool's persisted state

LendingState groups the four keyed stores (collateral, loans, token registry,
collateral raisings) with the scalar parameters. The pool mutates a clone of
it during an operation and swaps the clone in only on success, which is what
makes every public operation all-or-nothing.

Records stored here (Loan, CollateralRaising) are frozen, so a shallow copy of
each map is a full snapshot.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Optional

from .config import LendingConfig
from .core import CollateralBook, CollateralRaising, Loan, TokenInfo, InsufficientCollateral
from .fixed_point import checked_add, checked_sub
from .registry import TokenRegistry


@dataclass
class LendingState:
    """
    Mutable container for everything the pool persists.

    Attributes:
        config: Current pool parameters.
        debt_token: Registry-style entry for the single debt asset.
        registry: Supported collateral tokens.
        collateral: (user, token) -> deposited amount, zero entries removed.
        loans: user -> active Loan, absent when the user has no loan.
        raisings: borrower -> CollateralRaising, absent once reset.
        paused: Whether user-facing operations are suspended.
    """
    config: LendingConfig
    debt_token: TokenInfo
    registry: TokenRegistry
    collateral: CollateralBook = field(default_factory=dict)
    loans: Dict[str, Loan] = field(default_factory=dict)
    raisings: Dict[str, CollateralRaising] = field(default_factory=dict)
    paused: bool = False

    # ------------------------------------------------------------------
    # Collateral ledger
    # ------------------------------------------------------------------

    def collateral_of(self, user: str, token: str) -> int:
        return self.collateral.get((user, token), 0)

    def credit_collateral(self, user: str, token: str, amount: int) -> int:
        """Add `amount` to the position and return the new balance."""
        balance = checked_add(self.collateral_of(user, token), amount)
        self.collateral[(user, token)] = balance
        return balance

    def debit_collateral(self, user: str, token: str, amount: int) -> int:
        """
        Remove `amount` from the position and return the new balance.

        Raises:
            InsufficientCollateral: if the position holds less than `amount`.
        """
        current = self.collateral_of(user, token)
        if amount > current:
            raise InsufficientCollateral(
                f"{user} holds {current} of {token}, cannot debit {amount}"
            )
        balance = checked_sub(current, amount)
        if balance:
            self.collateral[(user, token)] = balance
        else:
            self.collateral.pop((user, token), None)
        return balance

    def balances_of(self, user: str) -> Dict[str, int]:
        """Non-zero collateral positions of `user`, in registry order where registered."""
        return {
            token: self.collateral[(user, token)]
            for token in self.registry.addresses()
            if (user, token) in self.collateral
        }

    def holders_of(self, token: str) -> Dict[str, int]:
        return {user: amount for (user, t), amount in self.collateral.items() if t == token}

    # ------------------------------------------------------------------
    # Loan ledger
    # ------------------------------------------------------------------

    def loan_of(self, user: str) -> Optional[Loan]:
        return self.loans.get(user)

    def set_loan(self, user: str, loan: Optional[Loan]) -> None:
        """Store `loan`, or clear the record when it is None or fully repaid."""
        if loan is None or loan.repaid == loan.debt:
            self.loans.pop(user, None)
        else:
            self.loans[user] = loan

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def clone(self) -> LendingState:
        """
        Create an independent copy of this state.

        Modifications to the clone never affect the original, and vice versa.
        """
        return LendingState(
            config=self.config,
            debt_token=self.debt_token,
            registry=self.registry.clone(),
            collateral=dict(self.collateral),
            loans=dict(self.loans),
            raisings=dict(self.raisings),
            paused=self.paused,
        )
