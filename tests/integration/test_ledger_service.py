"""Tests for src/integration/ledger_service.py: the full commit protocol."""

import logging
from dataclasses import replace

import pytest

from src.core.oracle import PricingSnapshot
from src.core.tranche import (
    CallContext,
    ErrorKind,
    Event,
    LedgerGuardError,
    LedgerState,
    Operation,
    OperationParams,
    initial_state,
)
from src.state.balances import BalanceTable
from src.state.ledger_store import CommitResult, InMemoryLedgerStore
from src.integration.ledger_service import LedgerService

PRICING = PricingSnapshot(1_050_000_000, 100_000_000)
CTX = CallContext()


def _service(sink=None, store=None, funds=100_000_000_000):
    store = store or InMemoryLedgerStore(initial_state())
    balances = BalanceTable({("alice", "collateral"): funds})
    return LedgerService(store, balances, sink), store


def _mint_equity(amount=10_000_000_000, user="alice"):
    return OperationParams(Operation.MINT_EQUITY, amount=amount, user=user)


def _mint_stable(amount=10_000_000_000, user="alice"):
    return OperationParams(Operation.MINT_STABLE, amount=amount, user=user)


class ConflictingStore(InMemoryLedgerStore):
    def commit(self, new_state: LedgerState, expected_counter: int) -> CommitResult:
        return CommitResult(ok=False, rejection=ErrorKind.VERSION_CONFLICT, detail="raced")


class TestSubmit:
    def test_bootstrap_then_mint_then_redeem(self):
        events = []
        svc, store = _service(sink=events.append)

        r = svc.submit(PRICING, CTX, _mint_equity())
        assert r.accepted
        b = svc.balances
        assert b.get("vault", "collateral") == 10_000_000_000
        assert b.get("alice", "collateral") == 90_000_000_000
        assert b.get("alice", "equity") == 10_468_500_000
        assert b.get("treasury", "equity") == 31_500_000

        r = svc.submit(PRICING, CTX, _mint_stable())
        assert r.accepted
        assert svc.balances.get("alice", "stable") == 1_044_750_000
        assert svc.balances.get("treasury", "stable") == 5_250_000

        r = svc.submit(PRICING, CTX, OperationParams(Operation.REDEEM_STABLE, amount=500_000_000, user="alice"))
        assert r.accepted
        assert r.event.amount_out == 4_750_000_000
        b = svc.balances
        assert b.get("alice", "stable") == 1_044_750_000 - 500_000_000
        assert b.get("treasury", "stable") == 6_500_000
        assert b.get("vault", "collateral") == 15_250_000_000

        assert store.load().operation_counter == 3
        assert [e.event for e in events] == [Event.EQUITY_MINTED, Event.STABLE_MINTED, Event.STABLE_REDEEMED]

    def test_redeem_uses_held_balance(self):
        svc, store = _service()
        svc.submit(PRICING, CTX, _mint_equity())
        svc.submit(PRICING, CTX, _mint_stable())
        before = svc.balances
        r = svc.submit(PRICING, CTX, OperationParams(Operation.REDEEM_STABLE, amount=2_000_000_000, user="alice"))
        assert r.rejection is ErrorKind.INSUFFICIENT_BALANCE
        assert svc.balances == before
        assert store.load().operation_counter == 2

    def test_value_mover_failure_leaves_everything(self):
        svc, store = _service(funds=0)
        r = svc.submit(PRICING, CTX, _mint_equity())
        assert not r.accepted
        assert r.rejection is ErrorKind.INSUFFICIENT_BALANCE
        assert store.load() == initial_state()
        assert svc.balances.get("vault", "collateral") == 0

    def test_engine_rejection_passthrough(self):
        svc, store = _service(store=InMemoryLedgerStore(replace(initial_state(), mint_paused=True)))
        r = svc.submit(PRICING, CTX, _mint_equity())
        assert r.rejection is ErrorKind.PAUSED

    def test_version_conflict(self):
        svc, store = _service(store=ConflictingStore(initial_state()))
        before = svc.balances
        r = svc.submit(PRICING, CTX, _mint_equity())
        assert r.rejection is ErrorKind.VERSION_CONFLICT
        assert svc.balances == before


class TestEventSink:
    def test_sink_failure_is_logged(self, caplog):
        def sink(event):
            raise RuntimeError("sink down")

        svc, store = _service(sink=sink)
        with caplog.at_level(logging.ERROR, logger="src.integration.ledger_service"):
            r = svc.submit(PRICING, CTX, _mint_equity())
        assert r.accepted
        assert store.load().operation_counter == 1
        assert "event sink failed" in caplog.text

    def test_nested_call_rejected(self):
        inner = []
        holder = {}

        def sink(event):
            inner.append(holder["svc"].submit(PRICING, CTX, _mint_stable()))

        svc, store = _service(sink=sink)
        holder["svc"] = svc
        r = svc.submit(PRICING, CTX, _mint_equity())
        assert r.accepted
        assert inner[0].rejection is ErrorKind.INVALID_CALL_CONTEXT
        assert store.load().operation_counter == 1

    def test_nested_call_released_after_return(self):
        svc, store = _service()
        assert svc.submit(PRICING, CTX, _mint_equity()).accepted
        assert svc.submit(PRICING, CTX, _mint_stable()).accepted


class TestAdministration:
    def test_pause_blocks_mints(self):
        events = []
        svc, store = _service(sink=events.append)
        svc.set_paused(True, False)
        r = svc.submit(PRICING, CTX, _mint_equity())
        assert r.rejection is ErrorKind.PAUSED
        assert events[0].event == Event.EMERGENCY_PAUSE

    def test_sync_pricing(self):
        svc, store = _service()
        res = svc.sync_pricing(PricingSnapshot(1_060_000_000, 100_000_000, snapshot_slot=4), CallContext(current_slot=5))
        assert res.state.collateral_to_base_rate == 1_060_000_000
        assert store.load().last_pricing_slot == 4

    def test_admin_conflict_raises(self):
        svc, store = _service(store=ConflictingStore(initial_state()))
        with pytest.raises(LedgerGuardError) as exc_info:
            svc.set_paused(True, True)
        assert exc_info.value.kind is ErrorKind.VERSION_CONFLICT

    def test_nested_admin_call_raises_guard_error(self):
        raised = []
        holder = {}

        def sink(event):
            try:
                holder["svc"].set_paused(True, True)
            except LedgerGuardError as exc:
                raised.append(exc)

        svc, store = _service(sink=sink)
        holder["svc"] = svc
        assert svc.submit(PRICING, CTX, _mint_equity()).accepted
        assert raised[0].kind is ErrorKind.INVALID_CALL_CONTEXT
        assert store.load().mint_paused is False
