"""Administrative transitions: initialization, risk parameters, pause, pricing sync.

These run outside the mint/redeem engine but follow the same contract: pure
functions over an immutable ``LedgerState`` that either return the new state
with an audit record or raise ``LedgerGuardError`` without side effects.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..oracle import PricingSnapshot
from .config import RiskParams
from .errors import ErrorKind, LedgerGuardError, LedgerOverflowError
from .fees import fee_curve_error
from .math import BPS_SCALE, U64_MAX
from .types import CallContext, Event, EventRecord, LedgerState


@dataclass(frozen=True)
class AdminResult:
    state: LedgerState
    event: EventRecord


def _validate_risk_params(params: RiskParams) -> None:
    reason = fee_curve_error(
        params.min_cr_bps,
        params.target_cr_bps,
        params.fee_min_multiplier_bps,
        params.fee_max_multiplier_bps,
    )
    if reason is not None:
        raise LedgerGuardError(ErrorKind.INVALID_PARAMETER, reason)
    for name in (
        "fee_stable_mint_bps", "fee_stable_redeem_bps",
        "fee_equity_mint_bps", "fee_equity_redeem_bps",
    ):
        if getattr(params, name) > BPS_SCALE:
            raise LedgerGuardError(ErrorKind.INVALID_PARAMETER, f"{name} above {BPS_SCALE}")
    if params.max_rounding_reserve > U64_MAX:
        raise LedgerGuardError(ErrorKind.INVALID_PARAMETER, "max_rounding_reserve")


def _with_params(state: LedgerState, params: RiskParams) -> LedgerState:
    return replace(
        state,
        supported_collateral=params.supported_collateral,
        treasury=params.treasury,
        min_cr_bps=params.min_cr_bps,
        target_cr_bps=params.target_cr_bps,
        fee_stable_mint_bps=params.fee_stable_mint_bps,
        fee_stable_redeem_bps=params.fee_stable_redeem_bps,
        fee_equity_mint_bps=params.fee_equity_mint_bps,
        fee_equity_redeem_bps=params.fee_equity_redeem_bps,
        fee_min_multiplier_bps=params.fee_min_multiplier_bps,
        fee_max_multiplier_bps=params.fee_max_multiplier_bps,
        uncertainty_index_bps=params.uncertainty_index_bps,
        uncertainty_max_bps=params.uncertainty_max_bps,
        max_rounding_reserve=params.max_rounding_reserve,
        max_staleness_slots=params.max_staleness_slots,
        max_confidence_bps=params.max_confidence_bps,
    )


def _bump(state: LedgerState) -> LedgerState:
    if state.operation_counter >= U64_MAX:
        raise LedgerOverflowError(ErrorKind.OVERFLOW, "operation_counter")
    return replace(state, operation_counter=state.operation_counter + 1)


def initialize(
    params: RiskParams,
    pricing: PricingSnapshot | None = None,
    ctx: CallContext | None = None,
) -> AdminResult:
    """Create a fresh ledger with zero supplies and an empty reserve."""
    _validate_risk_params(params)
    state = _with_params(LedgerState(), params)
    if pricing is not None:
        if not pricing.usable:
            raise LedgerGuardError(ErrorKind.INVALID_PARAMETER, "initial pricing must be positive")
        state = replace(
            state,
            collateral_to_base_rate=pricing.collateral_to_base_rate,
            base_price_in_quote=pricing.base_price_in_quote,
            last_pricing_slot=pricing.snapshot_slot,
        )
    event = EventRecord(
        event=Event.PROTOCOL_INITIALIZED,
        operation_id=state.operation_counter,
        user=state.treasury,
        price_used=state.base_price_in_quote,
        timestamp=ctx.timestamp if ctx is not None else 0,
    )
    return AdminResult(state, event)


def update_parameters(
    state: LedgerState, params: RiskParams, ctx: CallContext | None = None,
) -> AdminResult:
    """Replace the risk parameters, keeping supplies and reserve.

    Lowering ``max_rounding_reserve`` below the current reserve is rejected.
    """
    _validate_risk_params(params)
    if params.max_rounding_reserve < state.rounding_reserve:
        raise LedgerGuardError(
            ErrorKind.INVALID_PARAMETER,
            f"reserve cap {params.max_rounding_reserve} below reserve {state.rounding_reserve}",
        )
    if params.supported_collateral != state.supported_collateral and state.collateral_units > 0:
        raise LedgerGuardError(ErrorKind.UNSUPPORTED, "collateral cannot change while the vault is funded")
    new_state = _bump(_with_params(state, params))
    event = EventRecord(
        event=Event.PARAMETERS_UPDATED,
        operation_id=new_state.operation_counter,
        user=new_state.treasury,
        timestamp=ctx.timestamp if ctx is not None else 0,
    )
    return AdminResult(new_state, event)


def set_paused(
    state: LedgerState,
    mint_paused: bool,
    redeem_paused: bool,
    ctx: CallContext | None = None,
) -> AdminResult:
    """Set both circuit breakers."""
    new_state = _bump(replace(state, mint_paused=bool(mint_paused), redeem_paused=bool(redeem_paused)))
    event = EventRecord(
        event=Event.EMERGENCY_PAUSE,
        operation_id=new_state.operation_counter,
        amount_in=int(new_state.mint_paused),
        amount_out=int(new_state.redeem_paused),
        timestamp=ctx.timestamp if ctx is not None else 0,
    )
    return AdminResult(new_state, event)


def sync_pricing(state: LedgerState, pricing: PricingSnapshot, ctx: CallContext) -> AdminResult:
    """Record a new pricing snapshot.

    The rate and price must be positive and the snapshot slot must not move
    backwards or ahead of the current slot.
    """
    if not pricing.usable:
        raise LedgerGuardError(ErrorKind.INVALID_PARAMETER, "pricing rate and price must be positive")
    if pricing.snapshot_slot < state.last_pricing_slot:
        raise LedgerGuardError(
            ErrorKind.INVALID_PARAMETER,
            f"snapshot slot {pricing.snapshot_slot} before {state.last_pricing_slot}",
        )
    if pricing.snapshot_slot > ctx.current_slot:
        raise LedgerGuardError(
            ErrorKind.STALE_PRICING,
            f"snapshot slot {pricing.snapshot_slot} ahead of {ctx.current_slot}",
        )
    new_state = _bump(replace(
        state,
        collateral_to_base_rate=pricing.collateral_to_base_rate,
        base_price_in_quote=pricing.base_price_in_quote,
        last_pricing_slot=pricing.snapshot_slot,
    ))
    event = EventRecord(
        event=Event.PRICING_UPDATED,
        operation_id=new_state.operation_counter,
        amount_in=pricing.collateral_to_base_rate,
        price_used=pricing.base_price_in_quote,
        timestamp=ctx.timestamp,
    )
    return AdminResult(new_state, event)
