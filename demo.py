#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Lending Pool Step by Step

This is a pedagogical walkthrough of a collateralized lending pool.
Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Foundation     - Tokens, oracles, the pool and its liquidity
  4-7:   Borrowing      - Collateral, loans, health factor, rejected operations
  8-10:  Risk           - Price crashes, stale oracles, liquidation
  11-13: Raising        - Crowdfunding collateral, closing, repaying funders
  14-15: Operations     - Pausing the pool, the event log as audit trail

Run:
    python demo.py             # Interactive mode (press Enter for each step)
    python demo.py --quick     # Run all steps without pausing
    python demo.py --verbose   # Also print the pool's log records
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
import sys

from lending import (
    # Pool and collaborators
    LendingPool, LendingConfig,
    InMemoryToken, InMemorySwapRouter, StaticAuthorizer, StaticPriceFeed,
    # Constants
    MAX_UINT256, MAX_HEALTH_FACTOR,
    # Errors
    LendingError, AmountExceedsLimit, StaleOrInvalidPriceData, SimulationError,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    # Timing
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)

    # Market
    weth_price: str = "2000"
    crash_price: str = "800"
    pool_liquidity_usdc: int = 1_000_000
    router_inventory_usdc: int = 10_000_000

    # Alice's position
    alice_collateral_weth: int = 1
    alice_loan_usdc: int = 700
    alice_repayment_usdc: int = 100

    # Bob's collateral raising (amounts in milli-WETH)
    raising_target_mweth: int = 500
    raising_rate_bps: int = 1_000
    carol_contribution_mweth: int = 300
    dave_contribution_mweth: int = 200


CONFIG = DemoConfig()

# Global state for interactive mode
QUICK_MODE = "--quick" in sys.argv
VERBOSE = "--verbose" in sys.argv

USDC = 10 ** 6
WETH = 10 ** 18
MWETH = 10 ** 15

ADMIN = "admin"
POOL = "pool"


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def usdc(amount: int) -> str:
    return f"{amount / USDC:,.2f} USDC"


def weth(amount: int) -> str:
    return f"{amount / WETH:.6f} WETH"


def hf(value: int) -> str:
    if value == MAX_HEALTH_FACTOR:
        return "MAX (no debt)"
    return f"{value / 10_000:.4f} ({value} bps)"


def fund(token: InMemoryToken, owner: str, amount: int):
    """Mint tokens to `owner` and let the pool pull them."""
    token.mint(owner, amount)
    token.approve(owner, POOL, MAX_UINT256)


@dataclass
class Market:
    """Everything the tutorial touches, kept together between steps."""
    pool: LendingPool
    usdc: InMemoryToken
    weth: InMemoryToken
    usdc_feed: StaticPriceFeed
    weth_feed: StaticPriceFeed
    router: InMemorySwapRouter


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_tokens_and_oracles():
    """Create two tokens and the price feeds that value them."""
    step_header(1, "Tokens and Oracles",
        "Understand the raw integers the pool works with.")

    print("""
    A lending pool needs three things from the outside world:

    1. TOKENS  - Balances kept as integers in each token's smallest unit
    2. ORACLES - Prices as integers with their own number of decimals
    3. A VENUE - Somewhere to sell seized collateral for the debt token

    USDC has 6 decimals and WETH has 18. An oracle with 8 decimals reports
    $2000 as 200_000_000_000. The pool rescales everything to 18 decimals
    internally, so mixed precisions never meet in the same multiplication.
    """)

    wait_for_enter()

    print(">>> usdc = InMemoryToken('USDC', decimals=6)")
    print(">>> weth = InMemoryToken('WETH', decimals=18)")
    usdc_token = InMemoryToken("USDC", decimals=6)
    weth_token = InMemoryToken("WETH", decimals=18)

    usdc_feed = StaticPriceFeed("1", updated_at=CONFIG.start_time)
    weth_feed = StaticPriceFeed(CONFIG.weth_price, updated_at=CONFIG.start_time)

    section_header("Oracle Quotes")
    for name, feed in (("USDC", usdc_feed), ("WETH", weth_feed)):
        price, updated = feed.latest_quote()
        print(f"{name}: raw={price:>16,}  decimals={feed.decimals()}  updated={updated}")

    return usdc_token, weth_token, usdc_feed, weth_feed


def step_02_create_pool(usdc_token, weth_token, usdc_feed, weth_feed):
    """Create the pool and register WETH as collateral."""
    step_header(2, "The Pool",
        "Create a pool that lends USDC against WETH.")

    router = InMemorySwapRouter(
        "router", {"USDC": usdc_token, "WETH": weth_token},
        {"USDC": usdc_feed, "WETH": weth_feed},
    )
    print(">>> pool = LendingPool('pool', usdc, usdc_feed, StaticAuthorizer(['admin']), router)")
    pool = LendingPool(
        POOL, usdc_token, usdc_feed, StaticAuthorizer([ADMIN]), router,
        config=LendingConfig(), initial_time=CONFIG.start_time,
    )
    router.clock = lambda: pool.current_time
    usdc_token.mint(router.address, CONFIG.router_inventory_usdc * USDC)

    print(">>> pool.add_token('admin', weth, weth_feed)")
    pool.add_token(ADMIN, weth_token, weth_feed)

    section_header("Pool Parameters")
    config = pool.config
    print(f"Interest rate:        {config.interest_rate_bps / 100:.2f}% (fixed, charged up front)")
    print(f"Loan duration:        {config.loan_duration}")
    print(f"Loan-to-value:        {config.ltv_bps / 100:.2f}%")
    print(f"Liquidation penalty:  {config.liquidation_penalty_bps / 100:.2f}%")
    print(f"Oracle stale after:   {config.stale_time}")
    print(f"Collateral tokens:    {pool.supported_tokens()}")

    section_header("Key Insight")
    print("""
    Only the admin can register tokens. Ask the pool with another caller
    and it refuses with Unauthorized before touching any state.
    """)

    return Market(pool, usdc_token, weth_token, usdc_feed, weth_feed, router)


def step_03_liquidity(market: Market):
    """The admin deposits USDC for borrowers to draw from."""
    step_header(3, "Liquidity",
        "Fund the pool so there is something to lend.")

    amount = CONFIG.pool_liquidity_usdc * USDC
    fund(market.usdc, ADMIN, amount)
    print(f">>> pool.deposit_liquidity('admin', {amount:,})")
    market.pool.deposit_liquidity(ADMIN, amount)

    print(f"\nAvailable liquidity: {usdc(market.pool.available_liquidity())}")
    return market


# ============================================================================
# PHASE 2: BORROWING (Steps 4-7)
# ============================================================================

def step_04_deposit_collateral(market: Market):
    """Alice deposits WETH as collateral."""
    step_header(4, "Collateral",
        "Deposit collateral and see how the pool values it.")

    amount = CONFIG.alice_collateral_weth * WETH
    fund(market.weth, "alice", amount)
    print(f">>> pool.deposit_collateral('alice', 'WETH', {amount:,})")
    balance = market.pool.deposit_collateral("alice", "WETH", amount)

    section_header("Alice's Position")
    print(f"Collateral:        {weth(balance)}")
    print(f"Collateral value:  {usdc(market.pool.total_collateral_value('alice'))}")
    print(f"Borrowing limit:   {usdc(market.pool.max_loan('alice'))}")
    print(f"Health factor:     {hf(market.pool.health_factor_bps('alice'))}")
    return market


def step_05_take_loan(market: Market):
    """Alice borrows against her collateral."""
    step_header(5, "Taking a Loan",
        "Borrow USDC and see interest and the health factor appear.")

    amount = CONFIG.alice_loan_usdc * USDC
    print(f">>> pool.take_loan('alice', {amount:,})")
    loan = market.pool.take_loan("alice", amount)

    section_header("The Loan")
    print(f"Received:       {usdc(market.usdc.balance_of('alice'))}")
    print(f"Debt:           {usdc(loan.debt)}  (principal + fixed interest)")
    print(f"Due:            {loan.due_date}")
    print(f"Health factor:  {hf(market.pool.health_factor_bps('alice'))}")

    print("""
    Health factor = collateral value x LTV / outstanding debt.
    Above 1.0 the loan is safe. Below 1.0 anyone may liquidate it.
    """)
    return market


def step_06_rejected_operations(market: Market):
    """Show that a rejected operation leaves no trace."""
    step_header(6, "Rejections and Atomicity",
        "See that failed operations change nothing.")

    pool = market.pool
    events_before = len(pool.event_log)
    loan_before = pool.get_loan("alice")

    section_header("A Second Loan")
    try:
        pool.take_loan("alice", 1 * USDC)
    except LendingError as exc:
        print(f"Rejected: {type(exc).__name__}: {exc}")

    section_header("Withdrawing Everything")
    try:
        pool.withdraw_collateral("alice", "WETH", CONFIG.alice_collateral_weth * WETH)
    except LendingError as exc:
        print(f"Rejected: {type(exc).__name__}: {exc}")

    section_header("Borrowing Beyond the Limit")
    fund(market.weth, "erin", WETH)
    pool.deposit_collateral("erin", "WETH", WETH)
    try:
        pool.take_loan("erin", pool.max_loan("erin") + 1)
    except AmountExceedsLimit as exc:
        print(f"Rejected: {type(exc).__name__}: {exc}")

    section_header("Nothing Changed")
    print(f"Alice's loan unchanged: {pool.get_loan('alice') == loan_before}")
    print(f"Events logged since:    {len(pool.event_log) - events_before} (erin's deposit only)")
    return market


def step_07_repay(market: Market):
    """Alice repays part of her debt."""
    step_header(7, "Repaying",
        "Reduce the outstanding debt and watch health improve.")

    amount = CONFIG.alice_repayment_usdc * USDC
    market.usdc.approve("alice", POOL, MAX_UINT256)
    print(f">>> pool.repay_loan('alice', {amount:,})")
    loan = market.pool.repay_loan("alice", amount)

    print(f"\nRepaid so far:   {usdc(loan.repaid)}")
    print(f"Outstanding:     {usdc(loan.outstanding)}")
    print(f"Health factor:   {hf(market.pool.health_factor_bps('alice'))}")
    return market


# ============================================================================
# PHASE 3: RISK (Steps 8-10)
# ============================================================================

def step_08_price_crash(market: Market):
    """WETH falls; Alice's loan becomes liquidatable."""
    step_header(8, "A Price Crash",
        "See how the health factor follows the collateral price.")

    print(f">>> weth_feed.update_price('{CONFIG.crash_price}', pool.current_time)")
    market.weth_feed.update_price(CONFIG.crash_price, market.pool.current_time)

    assessment = market.pool.assess("alice")
    print(f"\nCollateral value:  {usdc(assessment.collateral_value)}")
    print(f"Health factor:     {hf(assessment.health_factor_bps)}")
    print(f"Liquidatable:      {assessment.liquidatable}")
    return market


def step_09_stale_oracle(market: Market):
    """An oracle that stops updating blocks every price-dependent operation."""
    step_header(9, "Stale Oracles",
        "Understand why the pool refuses to act on old prices.")

    print(">>> pool.advance_time(pool.current_time + timedelta(hours=2))")
    market.pool.advance_time(market.pool.current_time + timedelta(hours=2))
    try:
        market.pool.health_factor_bps("alice")
    except StaleOrInvalidPriceData as exc:
        print(f"Rejected: {type(exc).__name__}: {exc}")

    print("\nThe oracles publish again and the pool resumes.")
    now = market.pool.current_time
    market.usdc_feed.update_price("1", now)
    market.weth_feed.update_price(CONFIG.crash_price, now)
    print(f"Health factor: {hf(market.pool.health_factor_bps('alice'))}")
    return market


def step_10_liquidation(market: Market):
    """A keeper liquidates Alice."""
    step_header(10, "Liquidation",
        "Seize collateral, sell it, and settle the debt.")

    print("""
    The pool seizes enough collateral to cover the outstanding debt plus
    the liquidation penalty, sells it through the router for USDC, and
    credits the proceeds to the loan. The keeper sets a minimum output so
    a bad fill is rejected instead of executed.
    """)

    loan = market.pool.get_loan("alice")
    quote = market.router.quote(market.pool.get_collateral("alice", "WETH"), ["WETH", "USDC"])
    min_out = min(quote, loan.outstanding)

    section_header("Too Greedy")
    try:
        market.pool.liquidate("keeper", "alice", "WETH", quote * 2)
    except (LendingError, SimulationError) as exc:
        print(f"Rejected: {type(exc).__name__}: {exc}")

    section_header("Executed")
    print(f">>> pool.liquidate('keeper', 'alice', 'WETH', {min_out:,})")
    plan = market.pool.liquidate("keeper", "alice", "WETH", min_out)
    print(f"Seized:            {weth(plan.seized)}")
    print(f"Credited:          {usdc(plan.recovered_value)}")
    print(f"Loan cleared:      {plan.loan_after is None}")
    print(f"Collateral left:   {weth(market.pool.get_collateral('alice', 'WETH'))}")
    return market


# ============================================================================
# PHASE 4: COLLATERAL RAISING (Steps 11-13)
# ============================================================================

def step_11_start_raising(market: Market):
    """Bob asks funders for collateral."""
    step_header(11, "Opening a Raising",
        "Crowdfund collateral in exchange for interest.")

    pool = market.pool
    pool.advance_time(pool.current_time + timedelta(minutes=5))
    for feed in (market.usdc_feed, market.weth_feed):
        price, _ = feed.latest_quote()
        feed.update_price(price, pool.current_time, raw=True)

    target = CONFIG.raising_target_mweth * MWETH
    print(f">>> pool.start_raising('bob', 'WETH', {target:,}, {CONFIG.raising_rate_bps})")
    pool.start_raising("bob", "WETH", target, CONFIG.raising_rate_bps)

    for funder, amount in (("carol", CONFIG.carol_contribution_mweth),
                           ("dave", CONFIG.dave_contribution_mweth)):
        fund(market.weth, funder, amount * MWETH)
        print(f">>> pool.fund_raising('bob', '{funder}', {amount * MWETH:,})")
        pool.fund_raising("bob", funder, amount * MWETH)

    raising = pool.get_raising("bob")
    section_header("The Round")
    print(f"Target:   {weth(raising.target)}")
    print(f"Raised:   {weth(raising.raised)}")
    print(f"Funders:  {list(raising.funders)}")
    return market


def step_12_close_raising(market: Market):
    """Bob closes the round; the collateral becomes his."""
    step_header(12, "Closing the Round",
        "Credit raised collateral and fix each funder's reward.")

    closed = market.pool.close_raising("bob", "bob")
    print(f"Bob's collateral:  {weth(market.pool.get_collateral('bob', 'WETH'))}")
    for funder in closed.funders:
        position = closed.position(funder)
        print(f"Owed to {funder:<6}    {weth(position.amount)} + {usdc(position.reward)}")
    return market


def step_13_repay_funders(market: Market):
    """Bob pays every funder back and resets the round."""
    step_header(13, "Settling with Funders",
        "Return collateral and interest, then clear the round.")

    pool = market.pool
    raising = pool.get_raising("bob")
    fund(market.usdc, "bob", raising.total_rewards())
    for funder in raising.funders:
        position = raising.position(funder)
        print(f">>> pool.repay_funder('bob', '{funder}', {position.amount:,}, {position.reward:,})")
        pool.repay_funder("bob", funder, position.amount, position.reward)

    print(">>> pool.reset_raising('bob')")
    pool.reset_raising("bob")
    print(f"\nOpen raising for bob:  {pool.get_raising('bob')}")
    for funder in ("carol", "dave"):
        print(f"{funder:<6} holds {weth(market.weth.balance_of(funder))} "
              f"and {usdc(market.usdc.balance_of(funder))}")
    return market


# ============================================================================
# PHASE 5: OPERATIONS (Steps 14-15)
# ============================================================================

def step_14_pause(market: Market):
    """The admin halts user operations."""
    step_header(14, "Pausing",
        "Stop user operations during an incident; admin tools keep working.")

    market.pool.pause(ADMIN)
    try:
        market.pool.deposit_collateral("erin", "WETH", 1)
    except LendingError as exc:
        print(f"Rejected: {type(exc).__name__}: {exc}")
    market.pool.unpause(ADMIN)
    print(f"Paused after unpause: {market.pool.paused}")
    return market


def step_15_event_log(market: Market):
    """Read the audit trail."""
    step_header(15, "The Event Log",
        "Every committed operation leaves exactly one event.")

    for event in market.pool.event_log:
        print(f"  {event!r}")

    section_header("Filtering")
    print(f"Events by bob:   {len(market.pool.events(actor='bob'))}")
    print(f"Liquidations:    {len(market.pool.events(kind='LIQUIDATED'))}")


def main():
    """Run the complete tutorial."""
    logging.basicConfig(
        level=logging.INFO if VERBOSE else logging.WARNING,
        format="    [%(name)s] %(message)s",
    )

    print("=" * 70)
    print("       LENDING POOL - INTERACTIVE TUTORIAL")
    print("=" * 70)
    print("""
    Welcome! This tutorial teaches how the lending pool works.

    Press Enter to advance through each step.
    Each step builds on the previous one.

    PHASES:
      1-3:   Foundation   - Tokens, oracles, the pool
      4-7:   Borrowing    - Collateral, loans, rejections, repayment
      8-10:  Risk         - Price crash, stale oracle, liquidation
      11-13: Raising      - Crowdfunded collateral
      14-15: Operations   - Pausing, event log
    """)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    wait_for_enter()

    # Phase 1: Foundation
    tokens = step_01_tokens_and_oracles()
    wait_for_enter()

    market = step_02_create_pool(*tokens)
    wait_for_enter()

    market = step_03_liquidity(market)
    wait_for_enter()

    # Phase 2: Borrowing
    market = step_04_deposit_collateral(market)
    wait_for_enter()

    market = step_05_take_loan(market)
    wait_for_enter()

    market = step_06_rejected_operations(market)
    wait_for_enter()

    market = step_07_repay(market)
    wait_for_enter()

    # Phase 3: Risk
    market = step_08_price_crash(market)
    wait_for_enter()

    market = step_09_stale_oracle(market)
    wait_for_enter()

    market = step_10_liquidation(market)
    wait_for_enter()

    # Phase 4: Collateral raising
    market = step_11_start_raising(market)
    wait_for_enter()

    market = step_12_close_raising(market)
    wait_for_enter()

    market = step_13_repay_funders(market)
    wait_for_enter()

    # Phase 5: Operations
    market = step_14_pause(market)
    wait_for_enter()

    step_15_event_log(market)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    You've learned:

    FOUNDATION
      - Balances and prices are integers with their own decimals
      - Values are compared at a common 18-decimal scale

    BORROWING
      - The borrowing limit is collateral value x LTV
      - Interest is fixed and charged when the loan is taken
      - Rejected operations change nothing

    RISK
      - The health factor follows the oracle price
      - Stale or invalid prices stop the pool
      - Liquidation seizes debt plus penalty worth of collateral

    RAISING
      - Funders lend collateral for a reward fixed at close
      - A round resets only once every funder is paid

    Next steps:
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
