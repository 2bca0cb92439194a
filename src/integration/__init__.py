"""
Service integration layer for the tranche ledger
"""

from .ledger_service import EventSink, LedgerService

__all__ = [
    "EventSink",
    "LedgerService",
]
