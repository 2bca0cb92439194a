"""Tests for src/core/tranche/math.py: fixed-point arithmetic."""

from src.core.tranche.math import (
    U64_MAX,
    apply_fee,
    checked_add,
    checked_sub,
    collateral_dust_to_base,
    compute_rounding_delta,
    equity_dust_to_base,
    mul_div_down,
    mul_div_up,
    usd_dust_to_base,
)


# ---------------------------------------------------------------------------
# mul_div
# ---------------------------------------------------------------------------

class TestMulDiv:
    def test_down_floors(self):
        assert mul_div_down(10, 3, 4) == 7

    def test_up_ceils(self):
        assert mul_div_up(10, 3, 4) == 8

    def test_exact_division_agrees(self):
        assert mul_div_down(12, 3, 4) == mul_div_up(12, 3, 4) == 9

    def test_zero_numerator(self):
        assert mul_div_up(0, 5, 7) == 0

    def test_zero_divisor(self):
        assert mul_div_down(1, 1, 0) is None
        assert mul_div_up(1, 1, 0) is None

    def test_negative_input(self):
        assert mul_div_down(-1, 1, 1) is None

    def test_wide_intermediate_ok(self):
        # a * b exceeds u64 but the quotient fits
        assert mul_div_down(U64_MAX, 1_000_000_000, 1_000_000_000) == U64_MAX

    def test_result_overflow(self):
        assert mul_div_down(U64_MAX, 2, 1) is None
        assert mul_div_up(U64_MAX, 3, 2) is None

    def test_deposit_value(self):
        # 10 collateral coins at 1.05 base per coin
        assert mul_div_down(10_000_000_000, 1_050_000_000, 1_000_000_000) == 10_500_000_000


class TestChecked:
    def test_add(self):
        assert checked_add(1, 2) == 3
        assert checked_add(U64_MAX, 1) is None

    def test_sub(self):
        assert checked_sub(5, 2) == 3
        assert checked_sub(2, 5) is None


# ---------------------------------------------------------------------------
# Fees
# ---------------------------------------------------------------------------

class TestApplyFee:
    def test_stable_mint_vector(self):
        assert apply_fee(1_039_500_000, 50) == (1_034_302_500, 5_197_500)

    def test_fee_rounds_down(self):
        assert apply_fee(199, 50) == (199, 0)

    def test_zero_fee(self):
        assert apply_fee(1_000, 0) == (1_000, 0)

    def test_full_fee(self):
        assert apply_fee(1_000, 10_000) == (0, 1_000)


# ---------------------------------------------------------------------------
# Rounding dust
# ---------------------------------------------------------------------------

class TestDust:
    def test_rounding_delta(self):
        assert compute_rounding_delta(5, 7) == 2
        assert compute_rounding_delta(7, 7) == 0

    def test_rounding_delta_negative_rejected(self):
        assert compute_rounding_delta(7, 5) is None

    def test_collateral_dust_rounds_up(self):
        assert collateral_dust_to_base(1, 1_050_000_000) == 2

    def test_equity_dust_at_par(self):
        assert equity_dust_to_base(1, 1_000_000_000) == 1

    def test_usd_dust(self):
        assert usd_dust_to_base(1, 100_000_000) == 10
        assert usd_dust_to_base(1, 99_000_000) == 11

    def test_zero_dust(self):
        assert collateral_dust_to_base(0, 1_050_000_000) == 0
