"""
Ledger persistence with optimistic commits.

The service loads a state, computes a transition off-line, and commits it only
if nobody else committed in between. ``operation_counter`` is the version: a
commit names the counter it read, and is rejected if the stored counter moved.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional, Protocol

from src.core.tranche.errors import ErrorKind
from src.core.tranche.types import LedgerState


@dataclass(frozen=True)
class CommitResult:
    ok: bool
    state: Optional[LedgerState] = None
    rejection: Optional[ErrorKind] = None
    detail: str = ""


class LedgerStore(Protocol):
    def load(self) -> LedgerState:
        ...

    def commit(self, new_state: LedgerState, expected_counter: int) -> CommitResult:
        ...


class InMemoryLedgerStore:
    """Lock-serialized single-ledger store."""

    def __init__(self, state: LedgerState):
        self._state = state
        self._lock = threading.Lock()

    def load(self) -> LedgerState:
        with self._lock:
            return self._state

    def commit(self, new_state: LedgerState, expected_counter: int) -> CommitResult:
        with self._lock:
            current = self._state.operation_counter
            if current != expected_counter:
                return CommitResult(
                    ok=False,
                    rejection=ErrorKind.VERSION_CONFLICT,
                    detail=f"stored counter {current}, expected {expected_counter}",
                )
            if new_state.operation_counter <= current:
                return CommitResult(
                    ok=False,
                    rejection=ErrorKind.VERSION_CONFLICT,
                    detail=f"new counter {new_state.operation_counter} does not advance {current}",
                )
            self._state = new_state
            return CommitResult(ok=True, state=new_state)

    def __repr__(self) -> str:
        return f"InMemoryLedgerStore(counter={self._state.operation_counter})"
