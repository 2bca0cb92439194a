"""Precondition guards for the tranche ledger.

One function per check. Each raises ``LedgerGuardError`` when the operation
may not proceed from the given PRE-state; nothing here computes a new state.
"""

from __future__ import annotations

from ..oracle import PricingSnapshot, is_confident, is_fresh
from .errors import ErrorKind, LedgerGuardError
from .math import MIN_COLLATERAL_DEPOSIT
from .types import CallContext, LedgerState, OperationParams


def guard_call_context(ctx: CallContext) -> None:
    """Only direct top-level calls may mutate the ledger."""
    if not ctx.top_level:
        raise LedgerGuardError(ErrorKind.INVALID_CALL_CONTEXT, "nested or indirect invocation")


def guard_pricing(state: LedgerState, pricing: PricingSnapshot, ctx: CallContext) -> None:
    if not pricing.usable:
        raise LedgerGuardError(ErrorKind.INVALID_PARAMETER, "pricing rate and price must be positive")
    if not is_fresh(pricing, ctx.current_slot, state.max_staleness_slots, state.last_pricing_slot):
        raise LedgerGuardError(
            ErrorKind.STALE_PRICING,
            f"snapshot slot {pricing.snapshot_slot} at slot {ctx.current_slot}",
        )
    if not is_confident(pricing, state.max_confidence_bps):
        raise LedgerGuardError(
            ErrorKind.LOW_CONFIDENCE_PRICING,
            f"confidence {pricing.confidence_bps}bps above cap {state.max_confidence_bps}bps",
        )


def guard_mint(state: LedgerState, params: OperationParams) -> None:
    if state.mint_paused:
        raise LedgerGuardError(ErrorKind.PAUSED, "minting is paused")
    if params.collateral_id != state.supported_collateral:
        raise LedgerGuardError(ErrorKind.UNSUPPORTED, f"collateral {params.collateral_id!r}")
    if params.amount == 0 or params.amount < MIN_COLLATERAL_DEPOSIT:
        raise LedgerGuardError(
            ErrorKind.ZERO_OR_BELOW_FLOOR,
            f"deposit {params.amount} below {MIN_COLLATERAL_DEPOSIT}",
        )


def _guard_redeem(params: OperationParams, supply: int, redeem_paused: bool) -> None:
    if redeem_paused:
        raise LedgerGuardError(ErrorKind.PAUSED, "redemptions are paused")
    if params.amount == 0:
        raise LedgerGuardError(ErrorKind.ZERO_OR_BELOW_FLOOR, "amount must be greater than zero")
    if params.user_balance is not None and params.user_balance < params.amount:
        raise LedgerGuardError(
            ErrorKind.INSUFFICIENT_BALANCE,
            f"balance {params.user_balance} below {params.amount}",
        )
    if params.amount > supply:
        raise LedgerGuardError(ErrorKind.INSUFFICIENT_SUPPLY, f"supply {supply} below {params.amount}")


def guard_redeem_stable(state: LedgerState, params: OperationParams) -> None:
    _guard_redeem(params, state.stable_supply, state.redeem_paused)


def guard_redeem_equity(state: LedgerState, params: OperationParams) -> None:
    _guard_redeem(params, state.equity_supply, state.redeem_paused)
