"""Error kinds and exception types for the tranche ledger.

Operations report failures as an ``ErrorKind`` on ``OperationResult``.
``execute_or_raise()`` in ``engine.py`` maps the kind onto one of the
exception classes below for callers that prefer exceptions.
"""

from __future__ import annotations

from enum import Enum, unique


@unique
class ErrorKind(Enum):
    """One member per rejection reason."""
    PAUSED = "paused"
    ZERO_OR_BELOW_FLOOR = "zero_or_below_floor"
    OVERFLOW = "overflow"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INSUFFICIENT_SUPPLY = "insufficient_supply"
    UNSUPPORTED = "unsupported"
    INSOLVENT = "insolvent"
    SLIPPAGE_EXCEEDED = "slippage_exceeded"
    BELOW_MINIMUM_COLLATERAL_FLOOR = "below_minimum_collateral_floor"
    ROUNDING_RESERVE_EXCEEDED = "rounding_reserve_exceeded"
    ROUNDING_RESERVE_UNDERFLOW = "rounding_reserve_underflow"
    BALANCE_SHEET_VIOLATION = "balance_sheet_violation"
    COLLATERAL_RATIO_TOO_LOW = "collateral_ratio_too_low"
    NEGATIVE_EQUITY = "negative_equity"
    INVALID_CALL_CONTEXT = "invalid_call_context"
    STALE_PRICING = "stale_pricing"
    LOW_CONFIDENCE_PRICING = "low_confidence_pricing"
    INVALID_PARAMETER = "invalid_parameter"
    VERSION_CONFLICT = "version_conflict"

    @property
    def is_fatal(self) -> bool:
        """True for kinds that mean the arithmetic model itself is broken."""
        return self in _FATAL_KINDS


_FATAL_KINDS = frozenset({ErrorKind.BALANCE_SHEET_VIOLATION, ErrorKind.OVERFLOW})

_INVARIANT_KINDS = frozenset({
    ErrorKind.BALANCE_SHEET_VIOLATION,
    ErrorKind.COLLATERAL_RATIO_TOO_LOW,
    ErrorKind.NEGATIVE_EQUITY,
    ErrorKind.ROUNDING_RESERVE_EXCEEDED,
    ErrorKind.ROUNDING_RESERVE_UNDERFLOW,
})


class LedgerError(Exception):
    """Base class. ``kind`` is the machine-readable rejection reason."""

    def __init__(self, kind: ErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        msg = kind.value if not detail else f"{kind.value}: {detail}"
        super().__init__(msg)


class LedgerGuardError(LedgerError):
    """Raised when a precondition of an operation is not satisfied."""


class LedgerInvariantError(LedgerError):
    """Raised when a proposed post-state violates a balance-sheet invariant."""


class LedgerOverflowError(LedgerError):
    """Raised when fixed-point arithmetic leaves the u64 domain."""


def error_for(kind: ErrorKind, detail: str = "") -> LedgerError:
    """Build the exception class matching ``kind``."""
    if kind is ErrorKind.OVERFLOW:
        return LedgerOverflowError(kind, detail)
    if kind in _INVARIANT_KINDS:
        return LedgerInvariantError(kind, detail)
    return LedgerGuardError(kind, detail)
