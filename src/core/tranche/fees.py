"""Dynamic fee curve.

The effective fee is ``base_fee_bps * total_multiplier / 10_000`` where the
multiplier combines:

- a CR multiplier: 1.0x at or above the target CR, interpolated linearly
  towards the max (risk-increasing) or min (risk-reducing) multiplier as CR
  falls to the minimum CR, clamped below it;
- an uncertainty multiplier: ``1.0 + uncertainty_index_bps * 10 / 10_000``
  clamped to ``[1.0, uncertainty_max]``, applied to risk-increasing actions
  only.

Risk-increasing totals never drop below 1.0x and risk-reducing totals never
exceed 1.0x; the result is finally clamped to ``[fee_min, fee_max]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique

from .errors import ErrorKind, LedgerGuardError
from .math import BPS_SCALE, mul_div_down

ONE_X_BPS: int = BPS_SCALE
UNCERTAINTY_DIVISOR: int = 1_000


@unique
class FeeAction(Enum):
    STABLE_MINT = "stable_mint"
    STABLE_REDEEM = "stable_redeem"
    EQUITY_MINT = "equity_mint"
    EQUITY_REDEEM = "equity_redeem"

    @property
    def risk_increasing(self) -> bool:
        return self in (FeeAction.STABLE_MINT, FeeAction.EQUITY_REDEEM)


@dataclass(frozen=True)
class FeeCurve:
    """Risk parameters the fee curve depends on."""

    min_cr_bps: int
    target_cr_bps: int
    fee_min_multiplier_bps: int
    fee_max_multiplier_bps: int
    uncertainty_index_bps: int = 0
    uncertainty_max_bps: int = ONE_X_BPS


def fee_curve_error(
    min_cr_bps: int,
    target_cr_bps: int,
    fee_min_multiplier_bps: int,
    fee_max_multiplier_bps: int,
) -> str | None:
    """Return the reason a fee configuration is invalid, or None."""
    if min_cr_bps >= target_cr_bps:
        return "min_cr_bps must be below target_cr_bps"
    if fee_min_multiplier_bps > ONE_X_BPS:
        return "fee_min_multiplier_bps must be <= 10000"
    if fee_max_multiplier_bps < ONE_X_BPS:
        return "fee_max_multiplier_bps must be >= 10000"
    if fee_min_multiplier_bps > fee_max_multiplier_bps:
        return "fee_min_multiplier_bps must be <= fee_max_multiplier_bps"
    return None


def validate_fee_curve(curve: FeeCurve) -> None:
    """Raise ``LedgerGuardError(INVALID_PARAMETER)`` on a bad configuration."""
    reason = fee_curve_error(
        curve.min_cr_bps, curve.target_cr_bps,
        curve.fee_min_multiplier_bps, curve.fee_max_multiplier_bps,
    )
    if reason is not None:
        raise LedgerGuardError(ErrorKind.INVALID_PARAMETER, reason)


def cr_multiplier_bps(action: FeeAction, cr_bps: int, curve: FeeCurve) -> int | None:
    if cr_bps >= curve.target_cr_bps:
        return ONE_X_BPS

    extreme = curve.fee_max_multiplier_bps if action.risk_increasing else curve.fee_min_multiplier_bps
    if cr_bps <= curve.min_cr_bps:
        return extreme

    span = curve.target_cr_bps - curve.min_cr_bps
    gap = curve.target_cr_bps - cr_bps
    if action.risk_increasing:
        step = mul_div_down(extreme - ONE_X_BPS, gap, span)
        return None if step is None else ONE_X_BPS + step
    step = mul_div_down(ONE_X_BPS - extreme, gap, span)
    return None if step is None else ONE_X_BPS - step


def uncertainty_multiplier_bps(action: FeeAction, curve: FeeCurve) -> int | None:
    if not action.risk_increasing:
        return ONE_X_BPS
    bump = mul_div_down(curve.uncertainty_index_bps, BPS_SCALE, UNCERTAINTY_DIVISOR)
    if bump is None:
        return None
    cap = max(curve.uncertainty_max_bps, ONE_X_BPS)
    return min(max(ONE_X_BPS + bump, ONE_X_BPS), cap)


def total_multiplier_bps(action: FeeAction, cr_bps: int, curve: FeeCurve) -> int | None:
    """Composed multiplier, or None when the curve is invalid."""
    if fee_curve_error(
        curve.min_cr_bps, curve.target_cr_bps,
        curve.fee_min_multiplier_bps, curve.fee_max_multiplier_bps,
    ) is not None:
        return None

    cr_mult = cr_multiplier_bps(action, cr_bps, curve)
    unc_mult = uncertainty_multiplier_bps(action, curve)
    if cr_mult is None or unc_mult is None:
        return None
    total = mul_div_down(cr_mult, unc_mult, BPS_SCALE)
    if total is None:
        return None

    if action.risk_increasing:
        total = max(total, ONE_X_BPS)
    else:
        total = min(total, ONE_X_BPS)
    return min(max(total, curve.fee_min_multiplier_bps), curve.fee_max_multiplier_bps)


def dynamic_fee_bps(base_fee_bps: int, action: FeeAction, cr_bps: int, curve: FeeCurve) -> int | None:
    """Effective fee in bps for ``action`` at collateral ratio ``cr_bps``."""
    total = total_multiplier_bps(action, cr_bps, curve)
    if total is None:
        return None
    return mul_div_down(base_fee_bps, total, BPS_SCALE)
