"""
fixed_point.py - Checked unsigned 256-bit arithmetic and price normalization

Python integers never wrap, so "wide enough" is free. What is not free is the
range discipline of the system being modelled: every stored or intermediate
quantity must fit an unsigned 256-bit word. These helpers enforce that and
raise ArithmeticFault subclasses instead of silently producing out-of-range
values.

Normalization formulas (all floor division):
    to_scale18(v, d)   = v * 10**(18-d)        if d < 18
                       = v // 10**(d-18)       otherwise
    total_value(p, a, d) = to_scale18(a, d) * p // 1e18
"""

from __future__ import annotations

from .core import (
    WAD, SCALE_DECIMALS, MAX_UINT256, BPS_DENOMINATOR,
    ArithmeticOverflow, ArithmeticUnderflow, DivisionByZero, InvalidAmount,
)


def to_uint(value: int, what: str = "value") -> int:
    """
    Validate that `value` is an integer in the unsigned 256-bit range.

    Raises:
        InvalidAmount: if value is not an int (bool included) or is negative.
        ArithmeticOverflow: if value exceeds MAX_UINT256.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"{what} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise InvalidAmount(f"{what} cannot be negative, got {value}")
    if value > MAX_UINT256:
        raise ArithmeticOverflow(f"{what} exceeds uint256: {value}")
    return value


def _check(result: int) -> int:
    if result > MAX_UINT256:
        raise ArithmeticOverflow(f"result exceeds uint256: {result}")
    if result < 0:
        raise ArithmeticUnderflow(f"result is negative: {result}")
    return result


def checked_add(a: int, b: int) -> int:
    return _check(a + b)


def checked_sub(a: int, b: int) -> int:
    return _check(a - b)


def checked_mul(a: int, b: int) -> int:
    return _check(a * b)


def checked_div(a: int, b: int) -> int:
    if b == 0:
        raise DivisionByZero(f"division of {a} by zero")
    return _check(a // b)


def mul_div(a: int, b: int, denominator: int) -> int:
    """
    floor(a * b / denominator) with an unbounded intermediate product.

    Only the final result is range-checked, so multiply-before-divide keeps its
    precision without the product itself having to fit in 256 bits.
    """
    if denominator == 0:
        raise DivisionByZero(f"mul_div({a}, {b}, 0)")
    return _check((a * b) // denominator)


def apply_bps(amount: int, bps: int) -> int:
    """amount * bps / 10000, floored."""
    return mul_div(amount, bps, BPS_DENOMINATOR)


# ============================================================================
# DECIMAL NORMALIZATION
# ============================================================================

def to_scale18(value: int, decimals: int) -> int:
    """
    Rescale `value` from `decimals` fractional digits to 18.

    Scaling down floors; the loss is under one unit at 18-decimal scale.

    Example:
        to_scale18(2000 * 10**8, 8) == 2000 * 10**18
    """
    if decimals < SCALE_DECIMALS:
        return checked_mul(value, 10 ** (SCALE_DECIMALS - decimals))
    return value // 10 ** (decimals - SCALE_DECIMALS)


def from_scale18(value: int, decimals: int) -> int:
    """Inverse of to_scale18: rescale an 18-decimal value to `decimals` digits (floored)."""
    if decimals < SCALE_DECIMALS:
        return value // 10 ** (SCALE_DECIMALS - decimals)
    return checked_mul(value, 10 ** (decimals - SCALE_DECIMALS))


def rescale(value: int, from_decimals: int, to_decimals: int) -> int:
    """Rescale between two arbitrary precisions via the 18-decimal scale."""
    return from_scale18(to_scale18(value, from_decimals), to_decimals)


def total_value(price_per_unit18: int, amount: int, amount_decimals: int) -> int:
    """
    Value of `amount` units at an 18-decimal per-unit price, at 18-decimal scale.

    Args:
        price_per_unit18: What one whole unit is worth, 18-decimal fixed point.
        amount: Quantity in its native decimals.
        amount_decimals: Native decimals of `amount`.

    Returns:
        to_scale18(amount) * price / 1e18
    """
    return mul_div(to_scale18(amount, amount_decimals), price_per_unit18, WAD)


def scaled_ratio(numerator18: int, denominator18: int) -> int:
    """numerator / denominator as an 18-decimal fixed-point number."""
    if denominator18 == 0:
        raise DivisionByZero("ratio denominator is zero")
    return mul_div(numerator18, WAD, denominator18)


def mul_div_up(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator); used where rounding must favour the pool."""
    if denominator == 0:
        raise DivisionByZero(f"mul_div_up({a}, {b}, 0)")
    return _check(-((-(a * b)) // denominator))


def from_scale18_up(value: int, decimals: int) -> int:
    """from_scale18 rounding up instead of down."""
    if decimals < SCALE_DECIMALS:
        return mul_div_up(value, 1, 10 ** (SCALE_DECIMALS - decimals))
    return checked_mul(value, 10 ** (decimals - SCALE_DECIMALS))
