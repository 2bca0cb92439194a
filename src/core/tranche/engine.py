"""Dispatch-table engine for the tranche ledger.

``execute(state, pricing, ctx, params)`` is the single entry point. It:

1. Validates parameter domains (integers in ``[0, U64_MAX]``).
2. Runs the call-context guard, the operation guard, then the pricing guard.
3. Runs the operation, which asserts its own balance-sheet invariants.
4. Checks all whole-state invariants on the post-state.
5. Returns an ``OperationResult`` (accepted, or rejected with an ``ErrorKind``).

The engine never mutates ``state``; a rejection leaves the caller holding the
exact PRE-state it passed in.
"""

from __future__ import annotations

import logging
from typing import Callable

from ..oracle import PricingSnapshot
from .errors import ErrorKind, LedgerError, error_for
from .guards import (
    guard_call_context,
    guard_mint,
    guard_pricing,
    guard_redeem_equity,
    guard_redeem_stable,
)
from .invariants import check_all
from .math import U64_MAX
from .operations import Transition, mint_equity, mint_stable, redeem_equity, redeem_stable
from .types import CallContext, LedgerState, Operation, OperationParams, OperationResult

_log = logging.getLogger(__name__)

GuardFn = Callable[[LedgerState, OperationParams], None]
OperationFn = Callable[[LedgerState, PricingSnapshot, CallContext, OperationParams], Transition]

_DISPATCH: dict[Operation, tuple[GuardFn, OperationFn]] = {
    Operation.MINT_STABLE: (guard_mint, mint_stable),
    Operation.REDEEM_STABLE: (guard_redeem_stable, redeem_stable),
    Operation.MINT_EQUITY: (guard_mint, mint_equity),
    Operation.REDEEM_EQUITY: (guard_redeem_equity, redeem_equity),
}

_INT_FIELDS = ("amount", "min_out")


def _validate_params(params: OperationParams) -> tuple[ErrorKind, str] | None:
    """Check parameter domain bounds. Returns (kind, detail) or None."""
    for field in _INT_FIELDS:
        val = getattr(params, field)
        if not isinstance(val, int) or isinstance(val, bool):
            return ErrorKind.INVALID_PARAMETER, f"param_type:{field}"
        if val < 0 or val > U64_MAX:
            return ErrorKind.OVERFLOW, f"param_domain:{field}"
    balance = params.user_balance
    if balance is not None:
        if not isinstance(balance, int) or isinstance(balance, bool):
            return ErrorKind.INVALID_PARAMETER, "param_type:user_balance"
        if balance < 0 or balance > U64_MAX:
            return ErrorKind.OVERFLOW, "param_domain:user_balance"
    return None


def _reject(params: OperationParams, kind: ErrorKind, detail: str) -> OperationResult:
    level = logging.ERROR if kind.is_fatal else logging.DEBUG
    op = params.operation
    _log.log(level, "rejected %r for %s: %s %s", getattr(op, "value", op), params.user, kind.value, detail)
    return OperationResult(accepted=False, rejection=kind, detail=detail)


def execute(
    state: LedgerState,
    pricing: PricingSnapshot,
    ctx: CallContext,
    params: OperationParams,
) -> OperationResult:
    """Execute one operation against the given PRE-state.

    Returns ``OperationResult`` with ``accepted=True`` and the proposed
    post-state, effect legs and audit record on success, or
    ``accepted=False`` with a ``rejection`` kind.
    """
    entry = _DISPATCH.get(params.operation) if isinstance(params.operation, Operation) else None
    if entry is None:
        return _reject(params, ErrorKind.UNSUPPORTED, f"unknown_operation:{params.operation!r}")

    domain_err = _validate_params(params)
    if domain_err is not None:
        return _reject(params, *domain_err)

    guard_fn, operation_fn = entry
    try:
        guard_call_context(ctx)
        guard_fn(state, params)
        guard_pricing(state, pricing, ctx)
        transition = operation_fn(state, pricing, ctx, params)
    except LedgerError as exc:
        return _reject(params, exc.kind, exc.detail)

    violations = check_all(transition.state)
    if violations:
        return _reject(params, ErrorKind.BALANCE_SHEET_VIOLATION, ",".join(violations))

    _log.debug(
        "accepted %s #%d for %s: in=%d out=%d fee=%d",
        params.operation.value,
        transition.event.operation_id,
        params.user,
        transition.event.amount_in,
        transition.event.amount_out,
        transition.event.fee,
    )
    return OperationResult(
        accepted=True,
        state=transition.state,
        effects=transition.effects,
        event=transition.event,
    )


def execute_or_raise(
    state: LedgerState,
    pricing: PricingSnapshot,
    ctx: CallContext,
    params: OperationParams,
) -> OperationResult:
    """Like ``execute()`` but raises on rejection instead of returning a result.

    Raises:
        LedgerOverflowError: Parameter or intermediate outside the u64 domain.
        LedgerGuardError: Precondition not satisfied.
        LedgerInvariantError: Post-state violates a balance-sheet invariant.
    """
    result = execute(state, pricing, ctx, params)
    if result.accepted:
        return result
    raise error_for(result.rejection or ErrorKind.BALANCE_SHEET_VIOLATION, result.detail)
