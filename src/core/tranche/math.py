"""Fixed-point arithmetic for the tranche ledger.

Every function is stateless and operates on plain Python ints.

Values live in the unsigned 64-bit domain of the settlement ledger. Python ints
give us the double-width intermediate for free; what we must do explicitly is
reject results that leave ``[0, U64_MAX]``. Functions return ``None`` instead
of raising so callers decide which ``ErrorKind`` a failure maps to.

Rounding rule: liabilities and user-favoring reference amounts round UP, fees
and conservative payouts round DOWN.
"""

from __future__ import annotations

# Precision constants
RATE_SCALE: int = 1_000_000_000  # 1e9, base units per base coin; also equity-token scale
USD_PRECISION: int = 1_000_000  # 1e6, stable-token and quote-price scale
BPS_SCALE: int = 10_000
U64_MAX: int = (1 << 64) - 1

# Minimum amounts
MIN_COLLATERAL_DEPOSIT: int = 100_000  # 0.0001 base coin
MIN_STABLE_MINT: int = 1_000  # 0.001 quote unit
MIN_EQUITY_MINT: int = 1_000_000  # 0.001 equity token
MIN_PROTOCOL_COLLATERAL: int = 1_000_000
MIN_NAV: int = 1_000


def _in_domain(x: int) -> bool:
    return 0 <= x <= U64_MAX


# -- Multiply-divide ---------------------------------------------------------

def mul_div_down(a: int, b: int, c: int) -> int | None:
    """``floor(a * b / c)``; None on zero divisor or out-of-domain result."""
    if c == 0 or a < 0 or b < 0 or c < 0:
        return None
    result = (a * b) // c
    return result if _in_domain(result) else None


def mul_div_up(a: int, b: int, c: int) -> int | None:
    """``ceil(a * b / c)``; None on zero divisor or out-of-domain result."""
    if c == 0 or a < 0 or b < 0 or c < 0:
        return None
    result = (a * b + (c - 1)) // c
    return result if _in_domain(result) else None


def checked_add(a: int, b: int) -> int | None:
    total = a + b
    return total if _in_domain(total) else None


def checked_sub(a: int, b: int) -> int | None:
    diff = a - b
    return diff if _in_domain(diff) else None


# -- Fees --------------------------------------------------------------------

def apply_fee(amount: int, fee_bps: int) -> tuple[int, int] | None:
    """Split ``amount`` into ``(net, fee)``; the fee rounds down."""
    fee = mul_div_down(amount, fee_bps, BPS_SCALE)
    if fee is None:
        return None
    net = checked_sub(amount, fee)
    if net is None:
        return None
    return net, fee


# -- Rounding dust -----------------------------------------------------------

def compute_rounding_delta(conservative_out: int, favoring_out: int) -> int | None:
    """Units a user-favoring path would pay beyond the conservative path."""
    return checked_sub(favoring_out, conservative_out)


def usd_dust_to_base(delta_usd: int, price: int) -> int | None:
    """Stable-token dust expressed in base units (rounded up)."""
    return mul_div_up(delta_usd, RATE_SCALE, price)


def collateral_dust_to_base(delta_units: int, rate: int) -> int | None:
    """Collateral dust expressed in base units (rounded up)."""
    return mul_div_up(delta_units, rate, RATE_SCALE)


def equity_dust_to_base(delta_units: int, nav: int) -> int | None:
    """Equity-token dust expressed in base units (rounded up)."""
    return mul_div_up(delta_units, nav, RATE_SCALE)
