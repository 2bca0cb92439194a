"""Tests for src/core/tranche/fees.py: CR- and uncertainty-scaled fee curve."""

import pytest

from src.core.tranche.balance_sheet import CR_INFINITE
from src.core.tranche.errors import ErrorKind, LedgerGuardError
from src.core.tranche.fees import (
    FeeAction,
    FeeCurve,
    cr_multiplier_bps,
    dynamic_fee_bps,
    fee_curve_error,
    total_multiplier_bps,
    validate_fee_curve,
)

CURVE = FeeCurve(
    min_cr_bps=13_000,
    target_cr_bps=15_000,
    fee_min_multiplier_bps=5_000,
    fee_max_multiplier_bps=20_000,
)


class TestRiskDirection:
    def test_increasing(self):
        assert FeeAction.STABLE_MINT.risk_increasing
        assert FeeAction.EQUITY_REDEEM.risk_increasing

    def test_reducing(self):
        assert not FeeAction.STABLE_REDEEM.risk_increasing
        assert not FeeAction.EQUITY_MINT.risk_increasing


class TestCrMultiplier:
    def test_at_target_is_one_x(self):
        assert cr_multiplier_bps(FeeAction.STABLE_MINT, 15_000, CURVE) == 10_000
        assert cr_multiplier_bps(FeeAction.STABLE_REDEEM, 20_000, CURVE) == 10_000

    def test_midpoint(self):
        assert cr_multiplier_bps(FeeAction.STABLE_MINT, 14_000, CURVE) == 15_000
        assert cr_multiplier_bps(FeeAction.STABLE_REDEEM, 14_000, CURVE) == 7_500

    def test_below_min_clamped(self):
        assert cr_multiplier_bps(FeeAction.EQUITY_REDEEM, 9_000, CURVE) == 20_000
        assert cr_multiplier_bps(FeeAction.EQUITY_MINT, 9_000, CURVE) == 5_000


class TestDynamicFee:
    def test_stable_mint_midpoint(self):
        assert dynamic_fee_bps(100, FeeAction.STABLE_MINT, 14_000, CURVE) == 150

    def test_stable_redeem_midpoint(self):
        assert dynamic_fee_bps(100, FeeAction.STABLE_REDEEM, 14_000, CURVE) == 75

    def test_zero_base_fee(self):
        assert dynamic_fee_bps(0, FeeAction.STABLE_MINT, 13_000, CURVE) == 0

    def test_uncertainty_raises_risk_increasing(self):
        curve = FeeCurve(13_000, 15_000, 5_000, 20_000, uncertainty_index_bps=10_000, uncertainty_max_bps=12_000)
        fee = dynamic_fee_bps(100, FeeAction.STABLE_MINT, CR_INFINITE, curve)
        assert fee == 120
        assert fee >= 100

    def test_uncertainty_ignored_for_risk_reducing(self):
        curve = FeeCurve(13_000, 15_000, 5_000, 20_000, uncertainty_index_bps=10_000, uncertainty_max_bps=12_000)
        assert dynamic_fee_bps(100, FeeAction.STABLE_REDEEM, CR_INFINITE, curve) <= 100

    def test_invalid_curve_returns_none(self):
        curve = FeeCurve(13_000, 15_000, 12_000, 9_000)
        assert total_multiplier_bps(FeeAction.STABLE_MINT, 14_000, curve) is None
        assert dynamic_fee_bps(100, FeeAction.STABLE_MINT, 14_000, curve) is None


class TestValidation:
    def test_valid(self):
        assert fee_curve_error(13_000, 15_000, 5_000, 20_000) is None
        validate_fee_curve(CURVE)

    def test_min_not_below_target(self):
        assert fee_curve_error(15_000, 15_000, 5_000, 20_000) is not None

    def test_max_below_one_x(self):
        assert fee_curve_error(13_000, 15_000, 5_000, 9_000) is not None

    def test_validate_raises(self):
        with pytest.raises(LedgerGuardError) as exc_info:
            validate_fee_curve(FeeCurve(13_000, 15_000, 12_000, 9_000))
        assert exc_info.value.kind is ErrorKind.INVALID_PARAMETER
