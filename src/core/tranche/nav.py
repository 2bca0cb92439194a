"""Net asset value of the equity token.

NAV is base units per whole equity token (``RATE_SCALE`` equity units), so a
NAV of ``RATE_SCALE`` means one equity unit is worth one base unit.
"""

from __future__ import annotations

from .balance_sheet import compute_claimable_equity
from .math import RATE_SCALE, mul_div_down

# The first equity mint is priced 1:1.
BOOTSTRAP_NAV: int = RATE_SCALE


def compute_nav(tvl: int, liability: int, reserve: int, equity_supply: int) -> int | None:
    """Reserve-aware NAV; None when ``equity_supply == 0`` (first mint)."""
    if equity_supply == 0:
        return None
    claimable = compute_claimable_equity(tvl, liability, reserve)
    return mul_div_down(claimable, RATE_SCALE, equity_supply)


def orphan_equity(tvl: int, liability: int, reserve: int, equity_supply: int) -> int:
    """Claimable equity that no equity token holds a claim on.

    Only non-zero before the first mint (or after full redemption); the
    bootstrap mint sweeps it into the rounding reserve.
    """
    if equity_supply != 0:
        return 0
    return compute_claimable_equity(tvl, liability, reserve)
