"""Tests for src/core/tranche/balance_sheet.py and nav.py."""

from src.core.tranche.balance_sheet import (
    CR_INFINITE,
    BalanceSheet,
    balance_sheet_of,
    compute_accounting_equity,
    compute_claimable_equity,
    compute_cr_bps,
    compute_liability,
    compute_tvl,
)
from src.core.tranche.math import U64_MAX, USD_PRECISION
from src.core.tranche.nav import BOOTSTRAP_NAV, compute_nav, orphan_equity

RATE = 1_050_000_000
PRICE = 100_000_000


class TestTvlAndLiability:
    def test_tvl(self):
        assert compute_tvl(1_000_000_000_000, RATE) == 1_050_000_000_000

    def test_tvl_overflow(self):
        assert compute_tvl(U64_MAX, 2_000_000_000) is None

    def test_liability_rounds_up(self):
        # 50_000 stable at 99.00 quote per coin
        assert compute_liability(50_000 * USD_PRECISION, 99 * USD_PRECISION) == 505_050_505_051

    def test_liability_zero_supply(self):
        assert compute_liability(0, PRICE) == 0

    def test_liability_zero_price(self):
        assert compute_liability(1, 0) is None


class TestEquity:
    def test_accounting_equity(self):
        assert compute_accounting_equity(1_050_000_000_000, 505_050_505_051, 0) == 544_949_494_949

    def test_accounting_equity_signed(self):
        assert compute_accounting_equity(100, 150, 0) == -50

    def test_claimable_floored(self):
        assert compute_claimable_equity(100, 150, 0) == 0

    def test_reserve_reduces_equity(self):
        assert compute_claimable_equity(1_000, 500, 10) == 490


class TestCollateralRatio:
    def test_infinite_without_liability(self):
        assert compute_cr_bps(1_000, 0) == CR_INFINITE

    def test_ratio(self):
        assert compute_cr_bps(1_500, 1_000) == 15_000

    def test_under_water(self):
        assert compute_cr_bps(900, 1_000) == 9_000

    def test_saturates(self):
        assert compute_cr_bps(U64_MAX, 1) == CR_INFINITE


class TestBalanceSheet:
    def test_properties(self):
        sheet = BalanceSheet(tvl=1_500, liability=1_000, reserve=10)
        assert sheet.accounting_equity == 490
        assert sheet.claimable_equity == 490
        assert sheet.cr_bps == 15_000

    def test_balance_sheet_of(self):
        sheet = balance_sheet_of(1_500_000_000_000, 80_000_000_000, 0, RATE, PRICE)
        assert sheet is not None
        assert sheet.tvl == 1_575_000_000_000
        assert sheet.liability == 800_000_000_000
        assert sheet.claimable_equity == 775_000_000_000

    def test_balance_sheet_of_overflow(self):
        assert balance_sheet_of(U64_MAX, 0, 0, 2_000_000_000, PRICE) is None


class TestNav:
    def test_none_without_supply(self):
        assert compute_nav(1_000, 0, 0, 0) is None

    def test_par(self):
        assert compute_nav(1_050_000_000_000, 505_050_505_051, 0, 544_949_494_949) == BOOTSTRAP_NAV

    def test_insolvent_nav_zero(self):
        assert compute_nav(900, 1_000, 0, 1_000_000_000) == 0

    def test_reserve_aware(self):
        # claimable 1e9 - 1e6 over 1e9 units
        assert compute_nav(2_000_000_000, 1_000_000_000, 1_000_000, 1_000_000_000) == 999_000_000

    def test_orphan_equity_only_without_supply(self):
        assert orphan_equity(1_001, 1_000, 0, 0) == 1
        assert orphan_equity(1_001, 1_000, 0, 5) == 0
