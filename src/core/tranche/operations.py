"""State transitions for the four mint/redeem operations.

Each function runs a full read-compute-validate cycle against an immutable
PRE-state and returns a ``Transition`` (post-state, effect legs, audit record).
Nothing is written anywhere: a raised ``LedgerError`` means no transition.

Guards in ``guards.py`` have already run when these are called.

Rounding-bound step counts per path, as ``(k_base, k_quote)``:

- mint stable: (2, 1)
- redeem stable: solvent (2, 1), insolvent (3, 1)
- mint equity: (2, 0)
- redeem equity: (2, 0)
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..oracle import PricingSnapshot
from .balance_sheet import BalanceSheet, balance_sheet_of, compute_cr_bps, compute_tvl
from .effects import (
    mint_equity_effects,
    mint_stable_effects,
    redeem_equity_effects,
    redeem_stable_effects,
)
from .errors import ErrorKind, LedgerGuardError, LedgerOverflowError
from .fees import FeeAction, FeeCurve, dynamic_fee_bps
from .invariants import (
    assert_balance_sheet_holds,
    assert_cr_above_minimum,
    assert_no_negative_equity,
    assert_reserve_within_cap,
    credit_reserve,
    debit_reserve,
    derive_rounding_bound,
)
from .math import (
    BPS_SCALE,
    MIN_COLLATERAL_DEPOSIT,
    MIN_EQUITY_MINT,
    MIN_NAV,
    MIN_PROTOCOL_COLLATERAL,
    MIN_STABLE_MINT,
    RATE_SCALE,
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
from .nav import BOOTSTRAP_NAV, compute_nav, orphan_equity
from .types import CallContext, Event, EventRecord, EffectLeg, LedgerState, OperationParams


@dataclass(frozen=True)
class Transition:
    state: LedgerState
    effects: tuple[EffectLeg, ...]
    event: EventRecord


def _need(value: int | None, what: str) -> int:
    if value is None:
        raise LedgerOverflowError(ErrorKind.OVERFLOW, what)
    return value


def _split_fee(amount: int, fee_bps: int) -> tuple[int, int]:
    split = apply_fee(amount, fee_bps)
    if split is None:
        raise LedgerOverflowError(ErrorKind.OVERFLOW, "fee split")
    return split


def _fee_curve(state: LedgerState) -> FeeCurve:
    return FeeCurve(
        min_cr_bps=state.min_cr_bps,
        target_cr_bps=state.target_cr_bps,
        fee_min_multiplier_bps=state.fee_min_multiplier_bps,
        fee_max_multiplier_bps=state.fee_max_multiplier_bps,
        uncertainty_index_bps=state.uncertainty_index_bps,
        uncertainty_max_bps=state.uncertainty_max_bps,
    )


def _fee_bps(state: LedgerState, base_fee_bps: int, action: FeeAction, cr_bps: int) -> int:
    fee_bps = dynamic_fee_bps(base_fee_bps, action, cr_bps, _fee_curve(state))
    if fee_bps is None:
        raise LedgerGuardError(ErrorKind.INVALID_PARAMETER, "fee curve configuration")
    return fee_bps


def _pre_sheet(state: LedgerState, pricing: PricingSnapshot) -> BalanceSheet:
    sheet = balance_sheet_of(
        state.collateral_units, state.stable_supply, state.rounding_reserve,
        pricing.collateral_to_base_rate, pricing.base_price_in_quote,
    )
    if sheet is None:
        raise LedgerOverflowError(ErrorKind.OVERFLOW, "pre-state balance sheet")
    return sheet


def _check_output(out: int, floor: int, min_out: int) -> None:
    if out < min_out:
        raise LedgerGuardError(ErrorKind.SLIPPAGE_EXCEEDED, f"output {out} below minimum {min_out}")
    if out < floor:
        raise LedgerGuardError(ErrorKind.ZERO_OR_BELOW_FLOOR, f"output {out} below floor {floor}")


def _collateral_after_payout(state: LedgerState, collateral_out: int) -> int:
    if collateral_out > state.collateral_units:
        raise LedgerGuardError(
            ErrorKind.INSUFFICIENT_SUPPLY,
            f"vault holds {state.collateral_units}, payout {collateral_out}",
        )
    remaining = state.collateral_units - collateral_out
    if remaining != 0 and remaining < MIN_PROTOCOL_COLLATERAL:
        raise LedgerGuardError(
            ErrorKind.BELOW_MINIMUM_COLLATERAL_FLOOR,
            f"remaining collateral {remaining} below {MIN_PROTOCOL_COLLATERAL}",
        )
    return remaining


def _commit(state: LedgerState, pricing: PricingSnapshot, **changes: int) -> LedgerState:
    return replace(
        state,
        operation_counter=_need(checked_add(state.operation_counter, 1), "operation_counter"),
        collateral_to_base_rate=pricing.collateral_to_base_rate,
        base_price_in_quote=pricing.base_price_in_quote,
        last_pricing_slot=pricing.snapshot_slot,
        **changes,
    )


def _user_favoring_payout(
    conservative_units: int,
    favoring_units: int,
    rate: int,
    reserve: int,
) -> tuple[int, int]:
    """Pay the user-favoring amount when the reserve can absorb the dust.

    Returns ``(collateral_out, reserve_debit)``.
    """
    delta = _need(compute_rounding_delta(conservative_units, favoring_units), "rounding delta")
    debit = _need(collateral_dust_to_base(delta, rate), "reserve debit")
    if debit <= reserve:
        return favoring_units, debit
    return conservative_units, 0


# ---------------------------------------------------------------------------
# Stable token
# ---------------------------------------------------------------------------

def mint_stable(
    state: LedgerState, pricing: PricingSnapshot, ctx: CallContext, params: OperationParams,
) -> Transition:
    rate = pricing.collateral_to_base_rate
    price = pricing.base_price_in_quote
    old = _pre_sheet(state, pricing)

    base_value = _need(compute_tvl(params.amount, rate), "deposit value")
    base_value_up = _need(mul_div_up(params.amount, rate, RATE_SCALE), "deposit value")

    gross = _need(mul_div_down(base_value, price, RATE_SCALE), "stable gross")
    if gross < MIN_STABLE_MINT:
        raise LedgerGuardError(ErrorKind.ZERO_OR_BELOW_FLOOR, f"gross {gross} below {MIN_STABLE_MINT}")
    gross_up = _need(mul_div_up(base_value_up, price, RATE_SCALE), "stable gross")
    delta = _need(compute_rounding_delta(gross, gross_up), "rounding delta")
    reserve_credit = _need(usd_dust_to_base(delta, price), "reserve credit")

    fee_bps = _fee_bps(state, state.fee_stable_mint_bps, FeeAction.STABLE_MINT, old.cr_bps)
    net, fee = _split_fee(gross, fee_bps)
    _check_output(net, MIN_STABLE_MINT, params.min_out)

    new_collateral = _need(checked_add(state.collateral_units, params.amount), "collateral")
    new_supply = _need(checked_add(state.stable_supply, gross), "stable supply")
    new_reserve = credit_reserve(state.rounding_reserve, reserve_credit, state.max_rounding_reserve)
    new = balance_sheet_of(new_collateral, new_supply, new_reserve, rate, price)
    if new is None:
        raise LedgerOverflowError(ErrorKind.OVERFLOW, "post-state balance sheet")

    assert_cr_above_minimum(new.cr_bps, state.min_cr_bps)
    assert_reserve_within_cap(new_reserve, state.max_rounding_reserve)
    assert_balance_sheet_holds(
        new.tvl, new.liability, new.accounting_equity, new_reserve,
        derive_rounding_bound(2, 1, price),
    )

    new_state = _commit(
        state, pricing,
        collateral_units=new_collateral,
        stable_supply=new_supply,
        rounding_reserve=new_reserve,
    )
    event = EventRecord(
        event=Event.STABLE_MINTED,
        operation_id=new_state.operation_counter,
        user=params.user,
        amount_in=params.amount,
        amount_out=net,
        fee=fee,
        old_tvl=old.tvl,
        new_tvl=new.tvl,
        old_cr_bps=old.cr_bps,
        new_cr_bps=new.cr_bps,
        old_equity=old.accounting_equity,
        new_equity=new.accounting_equity,
        reserve_delta=reserve_credit,
        price_used=price,
        timestamp=ctx.timestamp,
    )
    return Transition(new_state, mint_stable_effects(state, params.user, params.amount, net, fee), event)


def redeem_stable(
    state: LedgerState, pricing: PricingSnapshot, ctx: CallContext, params: OperationParams,
) -> Transition:
    """Burn stable tokens for collateral.

    Solvent (CR >= 100%): fee on the input tokens, user-favoring payout when
    the reserve covers the dust. Insolvent: no fee, par payout scaled by CR so
    every redeemer takes the same haircut.
    """
    rate = pricing.collateral_to_base_rate
    price = pricing.base_price_in_quote
    old = _pre_sheet(state, pricing)
    # No stability pool exists yet; losses go straight to the haircut.
    insolvent = old.cr_bps < BPS_SCALE

    if insolvent:
        net_in, fee = params.amount, 0
    else:
        fee_bps = _fee_bps(state, state.fee_stable_redeem_bps, FeeAction.STABLE_REDEEM, old.cr_bps)
        net_in, fee = _split_fee(params.amount, fee_bps)
        if net_in == 0:
            raise LedgerGuardError(ErrorKind.ZERO_OR_BELOW_FLOOR, "nothing left to redeem after fee")

    par_down = _need(mul_div_down(net_in, RATE_SCALE, price), "par value")
    collateral_down = _need(mul_div_down(par_down, RATE_SCALE, rate), "collateral out")

    if insolvent:
        haircut_bps = min(old.cr_bps, BPS_SCALE)
        base_haircut = _need(mul_div_down(par_down, haircut_bps, BPS_SCALE), "haircut value")
        collateral_out = _need(mul_div_down(base_haircut, RATE_SCALE, rate), "collateral out")
        reserve_debit = 0
        k_base = 3
    else:
        par_up = _need(mul_div_up(net_in, RATE_SCALE, price), "par value")
        collateral_up = _need(mul_div_up(par_up, RATE_SCALE, rate), "collateral out")
        collateral_out, reserve_debit = _user_favoring_payout(
            collateral_down, collateral_up, rate, state.rounding_reserve,
        )
        k_base = 2

    _check_output(collateral_out, MIN_COLLATERAL_DEPOSIT, params.min_out)
    new_collateral = _collateral_after_payout(state, collateral_out)
    new_supply = _need(checked_sub(state.stable_supply, net_in), "stable supply")
    new_reserve = debit_reserve(state.rounding_reserve, reserve_debit)

    new = balance_sheet_of(new_collateral, new_supply, new_reserve, rate, price)
    if new is None:
        raise LedgerOverflowError(ErrorKind.OVERFLOW, "post-state balance sheet")

    assert_reserve_within_cap(new_reserve, state.max_rounding_reserve)
    assert_balance_sheet_holds(
        new.tvl, new.liability, new.accounting_equity, new_reserve,
        derive_rounding_bound(k_base, 1, price),
    )

    new_state = _commit(
        state, pricing,
        collateral_units=new_collateral,
        stable_supply=new_supply,
        rounding_reserve=new_reserve,
    )
    event = EventRecord(
        event=Event.STABLE_REDEEMED,
        operation_id=new_state.operation_counter,
        user=params.user,
        amount_in=params.amount,
        amount_out=collateral_out,
        fee=fee,
        old_tvl=old.tvl,
        new_tvl=new.tvl,
        old_cr_bps=old.cr_bps,
        new_cr_bps=new.cr_bps,
        old_equity=old.accounting_equity,
        new_equity=new.accounting_equity,
        reserve_delta=-reserve_debit,
        price_used=price,
        timestamp=ctx.timestamp,
    )
    effects = redeem_stable_effects(state, params.user, net_in, fee, collateral_out)
    return Transition(new_state, effects, event)


# ---------------------------------------------------------------------------
# Equity token
# ---------------------------------------------------------------------------

def mint_equity(
    state: LedgerState, pricing: PricingSnapshot, ctx: CallContext, params: OperationParams,
) -> Transition:
    """Deposit collateral for equity tokens at the current NAV.

    With no equity outstanding this is the bootstrap mint: the balance sheet
    must be solvent and balanced to within the rounding bound, orphan
    claimable equity is swept into the reserve up to its cap, and NAV is
    fixed at 1:1.
    """
    rate = pricing.collateral_to_base_rate
    price = pricing.base_price_in_quote
    old = _pre_sheet(state, pricing)
    bound = derive_rounding_bound(2, 0, price)
    bootstrap = state.equity_supply == 0

    reserve = state.rounding_reserve
    if bootstrap:
        if old.tvl < old.liability:
            raise LedgerGuardError(ErrorKind.INSOLVENT, "bootstrap requires tvl >= liability")
        assert_balance_sheet_holds(old.tvl, old.liability, old.accounting_equity, reserve, bound)
        orphan = orphan_equity(old.tvl, old.liability, reserve, state.equity_supply)
        if orphan > 0:
            reserve = credit_reserve(reserve, orphan, state.max_rounding_reserve)
        nav = BOOTSTRAP_NAV
    else:
        nav = _need(compute_nav(old.tvl, old.liability, reserve, state.equity_supply), "nav")
        if nav == 0:
            raise LedgerGuardError(ErrorKind.INSOLVENT, "equity NAV is zero")

    base_value = _need(compute_tvl(params.amount, rate), "deposit value")
    base_value_up = _need(mul_div_up(params.amount, rate, RATE_SCALE), "deposit value")
    if bootstrap:
        gross = base_value
        gross_up = base_value_up
    else:
        gross = _need(mul_div_down(base_value, RATE_SCALE, nav), "equity gross")
        gross_up = _need(mul_div_up(base_value_up, RATE_SCALE, nav), "equity gross")
    delta = _need(compute_rounding_delta(gross, gross_up), "rounding delta")
    reserve_credit = delta if bootstrap else _need(equity_dust_to_base(delta, nav), "reserve credit")

    fee_bps = _fee_bps(state, state.fee_equity_mint_bps, FeeAction.EQUITY_MINT, old.cr_bps)
    net, fee = _split_fee(gross, fee_bps)
    _check_output(net, MIN_EQUITY_MINT, params.min_out)

    new_collateral = _need(checked_add(state.collateral_units, params.amount), "collateral")
    new_supply = _need(checked_add(state.equity_supply, gross), "equity supply")
    new_reserve = credit_reserve(reserve, reserve_credit, state.max_rounding_reserve)
    new_tvl = _need(compute_tvl(new_collateral, rate), "tvl")
    new = BalanceSheet(tvl=new_tvl, liability=old.liability, reserve=new_reserve)

    if new.liability > 0 and new.claimable_equity == 0:
        raise LedgerGuardError(ErrorKind.INSOLVENT, "mint would leave equity worthless")
    assert_reserve_within_cap(new_reserve, state.max_rounding_reserve)
    assert_balance_sheet_holds(new.tvl, new.liability, new.accounting_equity, new_reserve, bound)

    new_state = _commit(
        state, pricing,
        collateral_units=new_collateral,
        equity_supply=new_supply,
        rounding_reserve=new_reserve,
    )
    event = EventRecord(
        event=Event.EQUITY_MINTED,
        operation_id=new_state.operation_counter,
        user=params.user,
        amount_in=params.amount,
        amount_out=net,
        fee=fee,
        old_tvl=old.tvl,
        new_tvl=new.tvl,
        old_cr_bps=old.cr_bps,
        new_cr_bps=new.cr_bps,
        nav=nav,
        old_equity=old.accounting_equity,
        new_equity=new.accounting_equity,
        reserve_delta=new_reserve - state.rounding_reserve,
        price_used=price,
        timestamp=ctx.timestamp,
    )
    return Transition(new_state, mint_equity_effects(state, params.user, params.amount, net, fee), event)


def redeem_equity(
    state: LedgerState, pricing: PricingSnapshot, ctx: CallContext, params: OperationParams,
) -> Transition:
    """Burn equity tokens for collateral at the current NAV.

    Liability is unchanged but collateral leaves, so this is the one
    redemption that re-checks the CR floor.
    """
    rate = pricing.collateral_to_base_rate
    price = pricing.base_price_in_quote
    old = _pre_sheet(state, pricing)
    solvent = old.cr_bps >= BPS_SCALE

    nav = _need(compute_nav(old.tvl, old.liability, state.rounding_reserve, state.equity_supply), "nav")
    if nav < MIN_NAV:
        raise LedgerGuardError(ErrorKind.INSOLVENT, f"equity NAV {nav} below floor {MIN_NAV}")

    fee_bps = _fee_bps(state, state.fee_equity_redeem_bps, FeeAction.EQUITY_REDEEM, old.cr_bps)
    net_in, fee = _split_fee(params.amount, fee_bps)
    if net_in == 0:
        raise LedgerGuardError(ErrorKind.ZERO_OR_BELOW_FLOOR, "nothing left to redeem after fee")

    base_down = _need(mul_div_down(net_in, nav, RATE_SCALE), "redeem value")
    collateral_down = _need(mul_div_down(base_down, RATE_SCALE, rate), "collateral out")
    if solvent:
        base_up = _need(mul_div_up(net_in, nav, RATE_SCALE), "redeem value")
        collateral_up = _need(mul_div_up(base_up, RATE_SCALE, rate), "collateral out")
        collateral_out, reserve_debit = _user_favoring_payout(
            collateral_down, collateral_up, rate, state.rounding_reserve,
        )
    else:
        collateral_out, reserve_debit = collateral_down, 0

    _check_output(collateral_out, MIN_COLLATERAL_DEPOSIT, params.min_out)
    new_collateral = _collateral_after_payout(state, collateral_out)
    new_supply = _need(checked_sub(state.equity_supply, net_in), "equity supply")
    new_reserve = debit_reserve(state.rounding_reserve, reserve_debit)
    new_tvl = _need(compute_tvl(new_collateral, rate), "tvl")
    new = BalanceSheet(tvl=new_tvl, liability=old.liability, reserve=new_reserve)

    assert_cr_above_minimum(compute_cr_bps(new.tvl, new.liability), state.min_cr_bps)
    assert_no_negative_equity(new.tvl, new.liability)
    assert_reserve_within_cap(new_reserve, state.max_rounding_reserve)
    assert_balance_sheet_holds(
        new.tvl, new.liability, new.accounting_equity, new_reserve,
        derive_rounding_bound(2, 0, price),
    )

    new_state = _commit(
        state, pricing,
        collateral_units=new_collateral,
        equity_supply=new_supply,
        rounding_reserve=new_reserve,
    )
    event = EventRecord(
        event=Event.EQUITY_REDEEMED,
        operation_id=new_state.operation_counter,
        user=params.user,
        amount_in=params.amount,
        amount_out=collateral_out,
        fee=fee,
        old_tvl=old.tvl,
        new_tvl=new.tvl,
        old_cr_bps=old.cr_bps,
        new_cr_bps=new.cr_bps,
        nav=nav,
        old_equity=old.accounting_equity,
        new_equity=new.accounting_equity,
        reserve_delta=-reserve_debit,
        price_used=price,
        timestamp=ctx.timestamp,
    )
    effects = redeem_equity_effects(state, params.user, net_in, fee, collateral_out)
    return Transition(new_state, effects, event)


__all__ = [
    "Transition",
    "mint_equity",
    "mint_stable",
    "redeem_equity",
    "redeem_stable",
]
