"""
lending - Collateralized Lending Ledger

An in-memory lending pool: users deposit collateral tokens, borrow a single
debt token against them, repay with fixed interest, get liquidated when
unhealthy or overdue, and can crowdfund extra collateral from funders.

Usage:
    from datetime import datetime
    from lending import (
        LendingPool, InMemoryToken, InMemorySwapRouter, StaticAuthorizer, StaticPriceFeed,
    )

    t0 = datetime(2025, 1, 1)
    usdc, weth = InMemoryToken("USDC", 6), InMemoryToken("WETH", 18)
    usdc_feed = StaticPriceFeed("1", updated_at=t0)
    weth_feed = StaticPriceFeed("2000", updated_at=t0)
    router = InMemorySwapRouter("router", {"USDC": usdc, "WETH": weth},
                                {"USDC": usdc_feed, "WETH": weth_feed})

    pool = LendingPool("pool", usdc, usdc_feed, StaticAuthorizer(["admin"]), router,
                       initial_time=t0)
    pool.add_token("admin", weth, weth_feed)

    # Fund the pool, then borrow against 1 WETH
    usdc.mint("admin", 10_000 * 10**6)
    usdc.approve("admin", "pool", 10_000 * 10**6)
    pool.deposit_liquidity("admin", 10_000 * 10**6)

    weth.mint("alice", 10**18)
    weth.approve("alice", "pool", 10**18)
    pool.deposit_collateral("alice", "WETH", 10**18)
    pool.take_loan("alice", 700 * 10**6)
"""

# Core types
from .core import (
    PriceFeed,
    Token,
    SwapRouter,
    Authorizer,
    PriceQuote,
    TokenInfo,
    Loan,
    FunderPosition,
    CollateralRaising,
    LendingEvent,
    CollateralKey,
    CollateralBook,
    require_address,
    SCALE_DECIMALS,
    WAD,
    BPS_DENOMINATOR,
    MAX_UINT256,
    MAX_HEALTH_FACTOR,
    EVENT_TOKEN_ADDED,
    EVENT_TOKEN_REMOVED,
    EVENT_FEED_UPDATED,
    EVENT_LOAN_PARAMS_SET,
    EVENT_PAUSED,
    EVENT_UNPAUSED,
    EVENT_LIQUIDITY_DEPOSITED,
    EVENT_LIQUIDITY_WITHDRAWN,
    EVENT_COLLATERAL_DEPOSITED,
    EVENT_COLLATERAL_WITHDRAWN,
    EVENT_LOAN_TAKEN,
    EVENT_LOAN_REPAID,
    EVENT_LIQUIDATED,
    EVENT_RAISING_STARTED,
    EVENT_RAISING_FUNDED,
    EVENT_RAISING_CLOSED,
    EVENT_FUNDER_REPAID,
    EVENT_RAISING_RESET,
)

# Errors
from .core import (
    LendingError,
    InvalidInput,
    NotSupported,
    InsufficientFunds,
    PolicyViolation,
    StaleOrInvalidPriceData,
    NotLiquidatable,
    Unauthorized,
    ArithmeticFault,
    MustBeMoreThanZero,
    InvalidAmount,
    ZeroAddress,
    InvalidSlippageFloor,
    InsufficientLiquidity,
    InsufficientCollateral,
    TransferFailed,
    LTVViolation,
    OutstandingDebt,
    OutstandingCollateral,
    AmountExceedsLimit,
    AlreadySupported,
    MaxTokensReached,
    AlreadyOpen,
    AlreadyClosed,
    TargetReached,
    TargetNotMet,
    CollateralRaisingStillOpen,
    UnsettledCollateralDebt,
    UnsettledInterestDebt,
    RaisingNotFound,
    RaisingNotReset,
    ProtocolPaused,
    ReentrantCall,
    SlippageExceeded,
    InvalidPrice,
    StalePrice,
    ArithmeticOverflow,
    ArithmeticUnderflow,
    DivisionByZero,
)

# Fixed-point arithmetic
from .fixed_point import (
    to_uint,
    checked_add,
    checked_sub,
    checked_mul,
    checked_div,
    mul_div,
    mul_div_up,
    apply_bps,
    to_scale18,
    from_scale18,
    from_scale18_up,
    rescale,
    total_value,
    scaled_ratio,
)

# Configuration and state
from .config import LendingConfig
from .registry import TokenRegistry
from .state import LendingState

# Pricing
from .pricing import PriceNormalizer
from .pricing_source import StaticPriceFeed, TimeSeriesPriceFeed, to_raw_price

# Risk
from .risk import (
    RiskAssessment,
    calculate_position_value,
    calculate_collateral_value,
    calculate_max_loan,
    calculate_health_factor,
    calculate_loan,
    calculate_repayment,
    compute_ratios_to_debt,
    compute_collateral_value,
    compute_max_loan,
    compute_health_factor,
    compute_risk,
)

# Liquidation
from .liquidation import (
    SeizurePlan,
    check_liquidatable,
    is_overdue,
    calculate_seizure_target,
    calculate_seizure,
)

# Collateral raising
from .raising import (
    check_can_start,
    open_raising,
    apply_funding,
    check_can_close,
    calculate_rewards,
    close_raising,
    apply_funder_repayment,
    check_can_reset,
)

# Pool
from .pool import LendingPool

# In-memory collaborators
from .simulation import (
    SimulationError,
    InMemoryToken,
    InMemorySwapRouter,
    StaticAuthorizer,
)

__all__ = [
    # Core types
    'PriceFeed', 'Token', 'SwapRouter', 'Authorizer',
    'PriceQuote', 'TokenInfo', 'Loan', 'FunderPosition', 'CollateralRaising', 'LendingEvent',
    'CollateralKey', 'CollateralBook', 'require_address',
    'SCALE_DECIMALS', 'WAD', 'BPS_DENOMINATOR', 'MAX_UINT256', 'MAX_HEALTH_FACTOR',
    'EVENT_TOKEN_ADDED', 'EVENT_TOKEN_REMOVED', 'EVENT_FEED_UPDATED', 'EVENT_LOAN_PARAMS_SET',
    'EVENT_PAUSED', 'EVENT_UNPAUSED', 'EVENT_LIQUIDITY_DEPOSITED', 'EVENT_LIQUIDITY_WITHDRAWN',
    'EVENT_COLLATERAL_DEPOSITED', 'EVENT_COLLATERAL_WITHDRAWN', 'EVENT_LOAN_TAKEN',
    'EVENT_LOAN_REPAID', 'EVENT_LIQUIDATED', 'EVENT_RAISING_STARTED', 'EVENT_RAISING_FUNDED',
    'EVENT_RAISING_CLOSED', 'EVENT_FUNDER_REPAID', 'EVENT_RAISING_RESET',
    # Errors
    'LendingError', 'InvalidInput', 'NotSupported', 'InsufficientFunds', 'PolicyViolation',
    'StaleOrInvalidPriceData', 'NotLiquidatable', 'Unauthorized', 'ArithmeticFault',
    'MustBeMoreThanZero', 'InvalidAmount', 'ZeroAddress', 'InvalidSlippageFloor',
    'InsufficientLiquidity', 'InsufficientCollateral', 'TransferFailed',
    'LTVViolation', 'OutstandingDebt', 'OutstandingCollateral', 'AmountExceedsLimit',
    'AlreadySupported', 'MaxTokensReached', 'AlreadyOpen', 'AlreadyClosed',
    'TargetReached', 'TargetNotMet', 'CollateralRaisingStillOpen',
    'UnsettledCollateralDebt', 'UnsettledInterestDebt', 'RaisingNotFound', 'RaisingNotReset',
    'ProtocolPaused', 'ReentrantCall', 'SlippageExceeded',
    'InvalidPrice', 'StalePrice', 'ArithmeticOverflow', 'ArithmeticUnderflow', 'DivisionByZero',
    # Fixed-point arithmetic
    'to_uint', 'checked_add', 'checked_sub', 'checked_mul', 'checked_div',
    'mul_div', 'mul_div_up', 'apply_bps', 'to_scale18', 'from_scale18', 'from_scale18_up',
    'rescale', 'total_value', 'scaled_ratio',
    # Configuration and state
    'LendingConfig', 'TokenRegistry', 'LendingState',
    # Pricing
    'PriceNormalizer', 'StaticPriceFeed', 'TimeSeriesPriceFeed', 'to_raw_price',
    # Risk
    'RiskAssessment', 'calculate_position_value', 'calculate_collateral_value',
    'calculate_max_loan', 'calculate_health_factor', 'calculate_loan', 'calculate_repayment',
    'compute_ratios_to_debt', 'compute_collateral_value', 'compute_max_loan',
    'compute_health_factor', 'compute_risk',
    # Liquidation
    'SeizurePlan', 'check_liquidatable', 'is_overdue', 'calculate_seizure_target', 'calculate_seizure',
    # Collateral raising
    'check_can_start', 'open_raising', 'apply_funding', 'check_can_close',
    'calculate_rewards', 'close_raising', 'apply_funder_repayment', 'check_can_reset',
    # Pool
    'LendingPool',
    # In-memory collaborators
    'SimulationError', 'InMemoryToken', 'InMemorySwapRouter', 'StaticAuthorizer',
]
