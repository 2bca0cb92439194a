"""Balance-sheet model: TVL, liability, equity and collateralization ratio.

All values are in base units (1e9 per base coin). Accounting equity is the
only signed quantity; everything else stays in the u64 domain.
"""

from __future__ import annotations

from dataclasses import dataclass

from .math import BPS_SCALE, RATE_SCALE, U64_MAX, mul_div_down, mul_div_up

# CR of a balance sheet with no liability.
CR_INFINITE: int = U64_MAX


def compute_tvl(collateral_units: int, rate: int) -> int | None:
    """Collateral value in base units, rounded down."""
    return mul_div_down(collateral_units, rate, RATE_SCALE)


def compute_liability(stable_supply: int, price: int) -> int | None:
    """Base units owed to stable-token holders, rounded up."""
    if price <= 0:
        return None
    if stable_supply == 0:
        return 0
    return mul_div_up(stable_supply, RATE_SCALE, price)


def compute_accounting_equity(tvl: int, liability: int, reserve: int) -> int:
    """``tvl - liability - reserve``; negative under insolvency."""
    return tvl - liability - reserve


def compute_claimable_equity(tvl: int, liability: int, reserve: int) -> int:
    """Accounting equity floored at zero."""
    return max(compute_accounting_equity(tvl, liability, reserve), 0)


def compute_cr_bps(tvl: int, liability: int) -> int:
    """Collateral ratio in bps; ``CR_INFINITE`` when there is no liability."""
    if liability == 0:
        return CR_INFINITE
    cr = mul_div_down(tvl, BPS_SCALE, liability)
    return CR_INFINITE if cr is None else cr


@dataclass(frozen=True)
class BalanceSheet:
    """Balance sheet derived from raw ledger quantities at one pricing point."""

    tvl: int
    liability: int
    reserve: int

    @property
    def accounting_equity(self) -> int:
        return compute_accounting_equity(self.tvl, self.liability, self.reserve)

    @property
    def claimable_equity(self) -> int:
        return compute_claimable_equity(self.tvl, self.liability, self.reserve)

    @property
    def cr_bps(self) -> int:
        return compute_cr_bps(self.tvl, self.liability)


def balance_sheet_of(
    collateral_units: int,
    stable_supply: int,
    reserve: int,
    rate: int,
    price: int,
) -> BalanceSheet | None:
    """Build a ``BalanceSheet``; None when TVL or liability overflows."""
    tvl = compute_tvl(collateral_units, rate)
    liability = compute_liability(stable_supply, price)
    if tvl is None or liability is None:
        return None
    return BalanceSheet(tvl=tvl, liability=liability, reserve=reserve)
