"""`tranche`: pure-Python two-tranche collateral ledger.

One collateral vault backs two claims: a senior stable token whose liability
is fixed in quote currency, and a junior equity token that absorbs all
upside and downside. This package holds the deterministic core:
- integer-only fixed-point transitions with directional rounding,
- immutable state (frozen dataclasses),
- fail-closed guards and balance-sheet invariant checks.

Public API:
- `initial_state() -> LedgerState`
- `execute(state, pricing, ctx, params) -> OperationResult`
- `execute_or_raise(state, pricing, ctx, params) -> OperationResult` (raises on rejection)
- `initialize`, `update_parameters`, `set_paused`, `sync_pricing` (administration)
"""

from .admin import AdminResult, initialize, set_paused, sync_pricing, update_parameters
from .balance_sheet import BalanceSheet, balance_sheet_of
from .config import RiskParams, load_params, params_from_dict
from .engine import execute, execute_or_raise
from .errors import (
    ErrorKind,
    LedgerError,
    LedgerGuardError,
    LedgerInvariantError,
    LedgerOverflowError,
)
from .state import initial_state, state_from_dict, state_to_dict
from .types import (
    CallContext,
    EffectLeg,
    Event,
    EventRecord,
    LedgerState,
    LegKind,
    Operation,
    OperationParams,
    OperationResult,
)

__all__ = [
    "execute",
    "execute_or_raise",
    "initial_state",
    "state_from_dict",
    "state_to_dict",
    "initialize",
    "update_parameters",
    "set_paused",
    "sync_pricing",
    "AdminResult",
    "RiskParams",
    "load_params",
    "params_from_dict",
    "BalanceSheet",
    "balance_sheet_of",
    "CallContext",
    "EffectLeg",
    "Event",
    "EventRecord",
    "LedgerState",
    "LegKind",
    "Operation",
    "OperationParams",
    "OperationResult",
    "ErrorKind",
    "LedgerError",
    "LedgerGuardError",
    "LedgerInvariantError",
    "LedgerOverflowError",
]
