"""Invariant checks for the tranche ledger.

Two layers:

- ``assert_*`` functions guard a proposed transition. Each raises
  ``LedgerInvariantError`` (or ``LedgerOverflowError``) and is called by every
  operation before it proposes a commit.
- ``inv_*`` predicates over a whole ``LedgerState``; ``check_all()`` returns
  the violated invariant IDs (empty = all pass).

The balance-sheet tolerance is derived, not guessed: every fixed-point
division on a call path can be off by at most one unit in its own unit, so a
path with ``k_base`` base-unit divisions and ``k_quote`` quote-unit divisions
is bounded by ``k_base + k_quote * ceil(RATE_SCALE / price)``.
"""

from __future__ import annotations

from typing import Callable

from .balance_sheet import CR_INFINITE
from .errors import ErrorKind, LedgerInvariantError, LedgerOverflowError
from .fees import fee_curve_error
from .math import RATE_SCALE, U64_MAX, mul_div_up
from .types import LedgerState


def derive_rounding_bound(k_base: int, k_quote: int, price: int) -> int:
    """Max balance-sheet deviation, in base units, for a call path."""
    if k_base < 0 or k_quote < 0:
        raise LedgerOverflowError(ErrorKind.OVERFLOW, "negative rounding step count")
    per_quote_unit = mul_div_up(1, RATE_SCALE, price)
    if per_quote_unit is None:
        raise LedgerOverflowError(ErrorKind.OVERFLOW, f"rounding bound at price {price}")
    bound = k_base + k_quote * per_quote_unit
    if bound > U64_MAX:
        raise LedgerOverflowError(ErrorKind.OVERFLOW, "rounding bound")
    return bound


def assert_balance_sheet_holds(
    tvl: int,
    liability: int,
    accounting_equity: int,
    reserve: int,
    bound: int,
) -> None:
    """``|tvl - (liability + equity + reserve)| <= bound``."""
    diff = abs(tvl - (liability + accounting_equity + reserve))
    if diff > bound:
        raise LedgerInvariantError(
            ErrorKind.BALANCE_SHEET_VIOLATION,
            f"deviation {diff} exceeds bound {bound}",
        )


def assert_cr_above_minimum(cr_bps: int, min_cr_bps: int) -> None:
    if cr_bps == CR_INFINITE:
        return
    if cr_bps < min_cr_bps:
        raise LedgerInvariantError(
            ErrorKind.COLLATERAL_RATIO_TOO_LOW,
            f"cr {cr_bps}bps below minimum {min_cr_bps}bps",
        )


def assert_no_negative_equity(tvl: int, liability: int) -> None:
    if tvl < liability:
        raise LedgerInvariantError(
            ErrorKind.NEGATIVE_EQUITY,
            f"tvl {tvl} below liability {liability}",
        )


def assert_reserve_within_cap(reserve: int, cap: int) -> None:
    if reserve < 0:
        raise LedgerInvariantError(ErrorKind.ROUNDING_RESERVE_UNDERFLOW, f"reserve {reserve}")
    if reserve > cap:
        raise LedgerInvariantError(
            ErrorKind.ROUNDING_RESERVE_EXCEEDED,
            f"reserve {reserve} above cap {cap}",
        )


def credit_reserve(reserve: int, credit: int, cap: int) -> int:
    """Add ``credit`` to the reserve; fails instead of saturating at ``cap``."""
    new_reserve = reserve + credit
    if credit < 0 or new_reserve > cap:
        raise LedgerInvariantError(
            ErrorKind.ROUNDING_RESERVE_EXCEEDED,
            f"credit {credit} onto {reserve} exceeds cap {cap}",
        )
    return new_reserve


def debit_reserve(reserve: int, debit: int) -> int:
    """Remove ``debit`` from the reserve; fails instead of flooring at zero."""
    if debit < 0 or debit > reserve:
        raise LedgerInvariantError(
            ErrorKind.ROUNDING_RESERVE_UNDERFLOW,
            f"debit {debit} exceeds reserve {reserve}",
        )
    return reserve - debit


# ---------------------------------------------------------------------------
# Whole-state predicates
# ---------------------------------------------------------------------------

def inv_amounts_in_domain(s: LedgerState) -> bool:
    return all(
        0 <= v <= U64_MAX
        for v in (
            s.collateral_units, s.stable_supply, s.equity_supply,
            s.rounding_reserve, s.operation_counter,
        )
    )


def inv_reserve_within_cap(s: LedgerState) -> bool:
    return 0 <= s.rounding_reserve <= s.max_rounding_reserve


def inv_fee_curve_valid(s: LedgerState) -> bool:
    return fee_curve_error(
        s.min_cr_bps, s.target_cr_bps,
        s.fee_min_multiplier_bps, s.fee_max_multiplier_bps,
    ) is None


def inv_pricing_positive(s: LedgerState) -> bool:
    return s.collateral_to_base_rate > 0 and s.base_price_in_quote > 0


def inv_base_fees_bounded(s: LedgerState) -> bool:
    return all(
        0 <= fee <= 10_000
        for fee in (
            s.fee_stable_mint_bps, s.fee_stable_redeem_bps,
            s.fee_equity_mint_bps, s.fee_equity_redeem_bps,
        )
    )


INVARIANT_REGISTRY: dict[str, Callable[[LedgerState], bool]] = {
    "inv_amounts_in_domain": inv_amounts_in_domain,
    "inv_reserve_within_cap": inv_reserve_within_cap,
    "inv_fee_curve_valid": inv_fee_curve_valid,
    "inv_pricing_positive": inv_pricing_positive,
    "inv_base_fees_bounded": inv_base_fees_bounded,
}


def check_all(state: LedgerState) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(state)
    ]
