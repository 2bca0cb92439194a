"""Property tests for the tranche ledger.

Operation sequences are generated with Hypothesis and pushed through the engine;
every accepted transition must conserve value against its effect legs and keep
the whole-state invariants.
"""

import importlib.util

import pytest

if importlib.util.find_spec("hypothesis") is None:  # pragma: no cover
    pytest.skip("hypothesis not installed", allow_module_level=True)

import hypothesis.strategies as st
from hypothesis import assume, given, settings
from dataclasses import replace

from src.core.oracle import PricingSnapshot
from src.core.tranche import (
    CallContext,
    LedgerState,
    Operation,
    OperationParams,
    execute,
    initial_state,
)
from src.core.tranche.balance_sheet import CR_INFINITE
from src.core.tranche.effects import net_flows
from src.core.tranche.fees import FeeAction, FeeCurve, dynamic_fee_bps
from src.core.tranche.invariants import check_all
from src.core.tranche.math import BPS_SCALE, RATE_SCALE

RATE = 1_050_000_000
PRICE = 100_000_000
PRICING = PricingSnapshot(RATE, PRICE)
CTX = CallContext()


def _seeded_state() -> LedgerState:
    return replace(
        initial_state(),
        collateral_units=1_500_000_000_000,
        stable_supply=80_000_000_000,
        equity_supply=775_000_000_000,
        rounding_reserve=1_000,
        collateral_to_base_rate=RATE,
        base_price_in_quote=PRICE,
    )


def operation_strategy():
    """Mint amounts are collateral units; redeem amounts are token units."""
    return st.one_of(
        st.builds(
            lambda a: OperationParams(Operation.MINT_STABLE, amount=a),
            st.integers(min_value=100_000, max_value=50_000_000_000),
        ),
        st.builds(
            lambda a: OperationParams(Operation.REDEEM_STABLE, amount=a),
            st.integers(min_value=1, max_value=5_000_000_000),
        ),
        st.builds(
            lambda a: OperationParams(Operation.MINT_EQUITY, amount=a),
            st.integers(min_value=100_000, max_value=50_000_000_000),
        ),
        st.builds(
            lambda a: OperationParams(Operation.REDEEM_EQUITY, amount=a),
            st.integers(min_value=1, max_value=50_000_000_000),
        ),
    )


def pricing_strategy():
    return st.builds(
        PricingSnapshot,
        st.integers(min_value=900_000_000, max_value=1_200_000_000),
        st.integers(min_value=60_000_000, max_value=200_000_000),
    )


class TestConservation:
    @given(ops=st.lists(operation_strategy(), min_size=1, max_size=25), pricing=pricing_strategy())
    @settings(max_examples=200, deadline=5000)
    def test_effects_match_state_deltas(self, ops, pricing):
        s = _seeded_state()
        for params in ops:
            r = execute(s, pricing, CTX, params)
            if not r.accepted:
                continue
            flows = net_flows(r.effects)
            assert flows.get("collateral", 0) == r.state.collateral_units - s.collateral_units
            assert flows.get("stable", 0) == r.state.stable_supply - s.stable_supply
            assert flows.get("equity", 0) == r.state.equity_supply - s.equity_supply
            s = r.state

    @given(ops=st.lists(operation_strategy(), min_size=1, max_size=25), pricing=pricing_strategy())
    @settings(max_examples=200, deadline=5000)
    def test_invariants_and_reserve_bounded(self, ops, pricing):
        s = _seeded_state()
        for params in ops:
            r = execute(s, pricing, CTX, params)
            if not r.accepted:
                assert r.state is None
                continue
            assert check_all(r.state) == []
            assert 0 <= r.state.rounding_reserve <= r.state.max_rounding_reserve
            assert r.state.operation_counter == s.operation_counter + 1
            s = r.state


class TestCollateralRatio:
    @given(amount=st.integers(min_value=1_000_000, max_value=10_000_000_000))
    @settings(max_examples=200, deadline=2000)
    def test_solvent_stable_redeem_never_lowers_cr(self, amount):
        s = _seeded_state()
        r = execute(s, PRICING, CTX, OperationParams(Operation.REDEEM_STABLE, amount=amount))
        assert r.accepted
        assert r.event.new_cr_bps >= r.event.old_cr_bps

    @given(amount=st.integers(min_value=100_000, max_value=50_000_000_000))
    @settings(max_examples=200, deadline=2000)
    def test_accepted_risk_increasing_respects_floor(self, amount):
        s = _seeded_state()
        r = execute(s, PRICING, CTX, OperationParams(Operation.MINT_STABLE, amount=amount))
        if r.accepted:
            assert r.event.new_cr_bps >= s.min_cr_bps


class TestRoundTrip:
    @given(
        amount=st.integers(min_value=1_000_000, max_value=5_000_000_000),
        rate=st.integers(min_value=1_000_000_000, max_value=1_200_000_000),
        price=st.integers(min_value=90_000_000, max_value=150_000_000),
    )
    @settings(max_examples=200, deadline=2000)
    def test_mint_then_redeem_stable_returns_no_more(self, amount, rate, price):
        s = replace(_seeded_state(), fee_stable_mint_bps=0, fee_stable_redeem_bps=0)
        pricing = PricingSnapshot(rate, price)
        minted = execute(s, pricing, CTX, OperationParams(Operation.MINT_STABLE, amount=amount))
        assume(minted.accepted)
        assert minted.event.fee == 0

        redeemed = execute(
            minted.state, pricing, CTX,
            OperationParams(Operation.REDEEM_STABLE, amount=minted.event.amount_out),
        )
        assert redeemed.accepted
        assert redeemed.event.amount_out <= amount
        assert redeemed.state.rounding_reserve >= 0
        assert redeemed.state.stable_supply == s.stable_supply
        assert check_all(redeemed.state) == []


class TestHaircutFairness:
    @given(amounts=st.lists(st.integers(min_value=100_000_000, max_value=5_000_000_000), min_size=2, max_size=6))
    @settings(max_examples=200, deadline=5000)
    def test_sequential_redeemers_share_one_haircut(self, amounts):
        # tvl 1_000e9 against liability 1_100e9: CR 90.90%
        s = replace(
            initial_state(),
            collateral_units=1_000_000_000_000,
            stable_supply=110_000_000_000,
        )
        pricing = PricingSnapshot(RATE_SCALE, 100_000_000)
        first_cr = None
        for amount in amounts:
            r = execute(s, pricing, CTX, OperationParams(Operation.REDEEM_STABLE, amount=amount))
            assert r.accepted
            if first_cr is None:
                first_cr = r.event.old_cr_bps
            assert r.event.fee == 0
            assert r.event.old_cr_bps < BPS_SCALE
            assert 0 <= r.event.old_cr_bps - first_cr <= 1
            assert r.event.new_cr_bps >= r.event.old_cr_bps
            par = amount * 10  # collateral per stable unit at 1.00 rate and 100.00 price
            assert r.event.amount_out == par * r.event.old_cr_bps // BPS_SCALE
            s = r.state
        assert first_cr == 9_090


class TestFeeMonotonicity:
    CURVE = FeeCurve(13_000, 15_000, 5_000, 20_000)

    @given(
        cr_a=st.integers(min_value=0, max_value=30_000),
        cr_b=st.integers(min_value=0, max_value=30_000),
    )
    @settings(max_examples=300, deadline=1000)
    def test_risk_increasing_fee_falls_with_cr(self, cr_a, cr_b):
        lo, hi = sorted((cr_a, cr_b))
        for action in (FeeAction.STABLE_MINT, FeeAction.EQUITY_REDEEM):
            assert dynamic_fee_bps(100, action, lo, self.CURVE) >= dynamic_fee_bps(100, action, hi, self.CURVE)

    @given(
        cr_a=st.integers(min_value=0, max_value=30_000),
        cr_b=st.integers(min_value=0, max_value=30_000),
    )
    @settings(max_examples=300, deadline=1000)
    def test_risk_reducing_fee_rises_with_cr(self, cr_a, cr_b):
        lo, hi = sorted((cr_a, cr_b))
        for action in (FeeAction.STABLE_REDEEM, FeeAction.EQUITY_MINT):
            assert dynamic_fee_bps(100, action, lo, self.CURVE) <= dynamic_fee_bps(100, action, hi, self.CURVE)

    @given(base=st.integers(min_value=0, max_value=10_000))
    @settings(max_examples=100, deadline=1000)
    def test_no_liability_is_base_fee(self, base):
        for action in FeeAction:
            assert dynamic_fee_bps(base, action, CR_INFINITE, self.CURVE) == base
