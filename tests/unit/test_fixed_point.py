"""
test_fixed_point.py - Unit tests for checked arithmetic and decimal normalization

Tests:
- to_uint validation (type, sign, range)
- Checked add/sub/mul/div overflow, underflow and division by zero
- mul_div precision with intermediates wider than 256 bits
- Normalization to and from the 18-decimal scale
- Rounding direction of the *_up variants
"""

import pytest

from lending import (
    to_uint, checked_add, checked_sub, checked_mul, checked_div,
    mul_div, mul_div_up, apply_bps,
    to_scale18, from_scale18, from_scale18_up, rescale, total_value, scaled_ratio,
    MAX_UINT256, WAD,
    InvalidAmount, ArithmeticOverflow, ArithmeticUnderflow, DivisionByZero, ArithmeticFault,
)


class TestToUint:
    """Tests for amount validation."""

    def test_accepts_range_bounds(self):
        assert to_uint(0) == 0
        assert to_uint(MAX_UINT256) == MAX_UINT256

    def test_rejects_negative(self):
        with pytest.raises(InvalidAmount):
            to_uint(-1)

    def test_rejects_above_range(self):
        with pytest.raises(ArithmeticOverflow):
            to_uint(MAX_UINT256 + 1)

    @pytest.mark.parametrize("value", [1.0, "1", None, True])
    def test_rejects_non_integers(self, value):
        with pytest.raises(InvalidAmount):
            to_uint(value)


class TestCheckedOps:
    """Tests for range-checked integer operations."""

    def test_add_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            checked_add(MAX_UINT256, 1)

    def test_sub_underflow(self):
        with pytest.raises(ArithmeticUnderflow):
            checked_sub(1, 2)

    def test_mul_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            checked_mul(2 ** 200, 2 ** 100)

    def test_div_by_zero(self):
        with pytest.raises(DivisionByZero):
            checked_div(1, 0)

    def test_faults_share_a_category(self):
        with pytest.raises(ArithmeticFault):
            checked_sub(0, 1)

    def test_in_range_results(self):
        assert checked_add(2, 3) == 5
        assert checked_sub(5, 3) == 2
        assert checked_mul(4, 5) == 20
        assert checked_div(7, 2) == 3


class TestMulDiv:
    """Tests for multiply-then-divide."""

    def test_floors(self):
        assert mul_div(10, 1, 3) == 3

    def test_wide_intermediate_is_allowed(self):
        # (2**255 * 4) overflows 256 bits but the quotient fits
        assert mul_div(2 ** 255, 4, 8) == 2 ** 254

    def test_result_overflow_is_rejected(self):
        with pytest.raises(ArithmeticOverflow):
            mul_div(MAX_UINT256, 2, 1)

    def test_zero_denominator(self):
        with pytest.raises(DivisionByZero):
            mul_div(1, 1, 0)

    def test_round_up(self):
        assert mul_div_up(10, 1, 3) == 4
        assert mul_div_up(9, 1, 3) == 3
        assert mul_div_up(0, 5, 3) == 0

    def test_apply_bps(self):
        assert apply_bps(1000, 7000) == 700
        assert apply_bps(700, 500) == 35
        assert apply_bps(1, 9999) == 0


class TestNormalization:
    """Tests for rescaling between native decimals and the 18-decimal scale."""

    def test_scale_up_from_feed_decimals(self):
        assert to_scale18(2000 * 10 ** 8, 8) == 2000 * 10 ** 18

    def test_scale_identity_at_18(self):
        assert to_scale18(123, 18) == 123
        assert from_scale18(123, 18) == 123

    def test_scale_down_floors(self):
        assert to_scale18(10 ** 20 + 99, 20) == 10 ** 18

    def test_from_scale18_to_6_decimals(self):
        assert from_scale18(1_500_000_000_000_000_000, 6) == 1_500_000
        assert from_scale18(999_999_999_999, 6) == 0

    def test_from_scale18_up(self):
        assert from_scale18_up(999_999_999_999, 6) == 1
        assert from_scale18_up(10 ** 12, 6) == 1

    def test_from_scale18_to_more_decimals(self):
        assert from_scale18(1, 20) == 100

    def test_rescale(self):
        assert rescale(10 ** 8, 8, 6) == 10 ** 6
        assert rescale(10 ** 6, 6, 18) == WAD


class TestTotalValue:
    """Tests for amount x price valuation."""

    def test_one_whole_unit(self):
        assert total_value(2000 * WAD, 10 ** 18, 18) == 2000 * WAD

    def test_eight_decimal_amount(self):
        # 0.5 WBTC at 40000
        assert total_value(40_000 * WAD, 5 * 10 ** 7, 8) == 20_000 * WAD

    def test_scaled_ratio(self):
        assert scaled_ratio(2000 * WAD, 1 * WAD) == 2000 * WAD
        assert scaled_ratio(1 * WAD, 1000 * WAD) == 10 ** 15

    def test_scaled_ratio_zero_denominator(self):
        with pytest.raises(DivisionByZero):
            scaled_ratio(WAD, 0)
