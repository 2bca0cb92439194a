"""
Imperative shell around the tranche ledger core.

One ``submit`` runs the whole commit protocol:

    load -> execute -> apply effects (on a copy) -> verify post-conditions
         -> optimistic commit -> swap in balances -> emit event

Any failure before the commit leaves both the stored ledger and the balance
table exactly as they were. The event sink runs after the commit and is
advisory: its exceptions are logged, never propagated.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Callable, Optional

from src.core.oracle import PricingSnapshot
from src.core.tranche import admin
from src.core.tranche.admin import AdminResult
from src.core.tranche.config import RiskParams
from src.core.tranche.engine import execute
from src.core.tranche.errors import ErrorKind, LedgerInvariantError, error_for
from src.core.tranche.types import (
    EQUITY_TOKEN,
    STABLE_TOKEN,
    CallContext,
    EventRecord,
    LedgerState,
    Operation,
    OperationParams,
    OperationResult,
)
from src.state.balances import BalanceTable, apply_effects, post_condition_errors
from src.state.ledger_store import LedgerStore

_log = logging.getLogger(__name__)

EventSink = Callable[[EventRecord], None]

_REDEEM_TOKEN = {
    Operation.REDEEM_STABLE: STABLE_TOKEN,
    Operation.REDEEM_EQUITY: EQUITY_TOKEN,
}


def _rejected(kind: ErrorKind, detail: str) -> OperationResult:
    return OperationResult(accepted=False, rejection=kind, detail=detail)


class LedgerService:
    """Serializes operations against one store and one balance table."""

    def __init__(
        self,
        store: LedgerStore,
        balances: BalanceTable,
        sink: Optional[EventSink] = None,
    ):
        self._store = store
        self._balances = balances.copy()
        self._sink = sink
        self._lock = threading.RLock()
        self._depth = 0

    @property
    def balances(self) -> BalanceTable:
        return self._balances.copy()

    @property
    def state(self) -> LedgerState:
        return self._store.load()

    def _enter(self) -> bool:
        self._lock.acquire()
        if self._depth > 0:
            self._lock.release()
            return False
        self._depth += 1
        return True

    def _exit(self) -> None:
        self._depth -= 1
        self._lock.release()

    def _emit(self, event: EventRecord) -> None:
        if self._sink is None:
            return
        try:
            self._sink(event)
        except Exception:
            _log.exception("event sink failed for %s #%d", event.event.value, event.operation_id)

    def submit(
        self,
        pricing: PricingSnapshot,
        ctx: CallContext,
        params: OperationParams,
    ) -> OperationResult:
        """Run one mint/redeem operation end to end."""
        if not self._enter():
            return _rejected(ErrorKind.INVALID_CALL_CONTEXT, "nested call into ledger service")
        try:
            return self._submit(pricing, ctx, params)
        finally:
            self._exit()

    def _submit(
        self,
        pricing: PricingSnapshot,
        ctx: CallContext,
        params: OperationParams,
    ) -> OperationResult:
        state = self._store.load()
        token = _REDEEM_TOKEN.get(params.operation)
        if token is not None and params.user_balance is None:
            params = replace(params, user_balance=self._balances.get(params.user, token))

        result = execute(state, pricing, ctx, params)
        if not result.accepted:
            return result
        if result.state is None or result.event is None:
            raise LedgerInvariantError(ErrorKind.BALANCE_SHEET_VIOLATION, "accepted result without post-state")

        applied = apply_effects(self._balances, result.effects)
        if not applied.ok:
            _log.warning(
                "effects for %s failed at leg %s: %s",
                params.operation.value, applied.failed_leg, applied.reason,
            )
            return _rejected(ErrorKind.INSUFFICIENT_BALANCE, applied.reason)
        if applied.table is None:
            raise LedgerInvariantError(ErrorKind.BALANCE_SHEET_VIOLATION, "applied effects without a table")

        errors = post_condition_errors(applied.table, result.state)
        if errors:
            _log.error("post-condition mismatch after %s: %s", params.operation.value, "; ".join(errors))
            return _rejected(ErrorKind.BALANCE_SHEET_VIOLATION, "; ".join(errors))

        commit = self._store.commit(result.state, state.operation_counter)
        if not commit.ok:
            _log.info("commit of %s lost the race: %s", params.operation.value, commit.detail)
            return _rejected(commit.rejection or ErrorKind.VERSION_CONFLICT, commit.detail)

        self._balances = applied.table
        _log.info(
            "committed %s #%d user=%s in=%d out=%d fee=%d cr=%d->%d",
            params.operation.value,
            result.event.operation_id,
            params.user,
            result.event.amount_in,
            result.event.amount_out,
            result.event.fee,
            result.event.old_cr_bps,
            result.event.new_cr_bps,
        )
        self._emit(result.event)
        return result

    # -- administration ------------------------------------------------------

    def _administer(self, fn: Callable[[LedgerState], AdminResult]) -> AdminResult:
        if not self._enter():
            raise error_for(ErrorKind.INVALID_CALL_CONTEXT, "nested call into ledger service")
        try:
            state = self._store.load()
            result = fn(state)
            commit = self._store.commit(result.state, state.operation_counter)
            if not commit.ok:
                raise error_for(commit.rejection or ErrorKind.VERSION_CONFLICT, commit.detail)
            _log.info("committed %s #%d", result.event.event.value, result.event.operation_id)
            self._emit(result.event)
            return result
        finally:
            self._exit()

    def sync_pricing(self, pricing: PricingSnapshot, ctx: CallContext) -> AdminResult:
        return self._administer(lambda s: admin.sync_pricing(s, pricing, ctx))

    def set_paused(self, mint_paused: bool, redeem_paused: bool, ctx: Optional[CallContext] = None) -> AdminResult:
        return self._administer(lambda s: admin.set_paused(s, mint_paused, redeem_paused, ctx))

    def update_parameters(self, params: RiskParams, ctx: Optional[CallContext] = None) -> AdminResult:
        return self._administer(lambda s: admin.update_parameters(s, params, ctx))
