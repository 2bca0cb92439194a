"""
External state for the tranche ledger: persisted ledger and token balances
"""

from .balances import ApplyResult, BalanceTable, apply_effects, post_condition_errors
from .ledger_store import CommitResult, InMemoryLedgerStore, LedgerStore

__all__ = [
    "ApplyResult",
    "BalanceTable",
    "apply_effects",
    "post_condition_errors",
    "CommitResult",
    "InMemoryLedgerStore",
    "LedgerStore",
]
