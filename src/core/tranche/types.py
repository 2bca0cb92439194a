"""Data types for the tranche ledger.

All types are frozen dataclasses (immutable).

Units/conventions:
- ``collateral_units`` are collateral base units (1e9 per coin).
- ``stable_supply`` is stable-token micro-units (1e6 per token).
- ``equity_supply`` is equity-token units (1e9 per token).
- ``rounding_reserve`` and every TVL/liability/equity value are base units.
- ``*_bps`` values are basis points (1/10_000).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique

from .errors import ErrorKind

DEFAULT_COLLATERAL = "collateral"
DEFAULT_TREASURY = "treasury"
VAULT = "vault"

STABLE_TOKEN = "stable"
EQUITY_TOKEN = "equity"


@unique
class Operation(Enum):
    """One member per state-mutating operation."""
    MINT_STABLE = "mint_stable"
    REDEEM_STABLE = "redeem_stable"
    MINT_EQUITY = "mint_equity"
    REDEEM_EQUITY = "redeem_equity"


@unique
class Event(Enum):
    """One member per audit record type."""
    PROTOCOL_INITIALIZED = "ProtocolInitialized"
    STABLE_MINTED = "StableMinted"
    STABLE_REDEEMED = "StableRedeemed"
    EQUITY_MINTED = "EquityMinted"
    EQUITY_REDEEMED = "EquityRedeemed"
    EMERGENCY_PAUSE = "EmergencyPause"
    PRICING_UPDATED = "PricingUpdated"
    PARAMETERS_UPDATED = "ParametersUpdated"


@unique
class LegKind(Enum):
    """External value-movement instruction types."""
    TRANSFER_IN = "transfer_in"        # collateral: user -> vault
    TRANSFER_OUT = "transfer_out"      # collateral: vault -> account
    MINT = "mint"                      # token: new units -> account
    BURN = "burn"                      # token: account -> destroyed
    TRANSFER_TOKEN = "transfer_token"  # token: user -> account (fees on redemption)


@dataclass(frozen=True)
class LedgerState:
    """Complete balance-sheet state of one protocol deployment."""

    version: int = 1
    operation_counter: int = 0

    # Identity
    supported_collateral: str = DEFAULT_COLLATERAL
    treasury: str = DEFAULT_TREASURY

    # Balance sheet
    collateral_units: int = 0
    stable_supply: int = 0
    equity_supply: int = 0
    rounding_reserve: int = 0
    max_rounding_reserve: int = 1_000_000_000

    # Risk thresholds
    min_cr_bps: int = 13_000
    target_cr_bps: int = 15_000

    # Fee curve
    fee_stable_mint_bps: int = 50
    fee_stable_redeem_bps: int = 25
    fee_equity_mint_bps: int = 30
    fee_equity_redeem_bps: int = 15
    fee_min_multiplier_bps: int = 10_000
    fee_max_multiplier_bps: int = 40_000
    uncertainty_index_bps: int = 0
    uncertainty_max_bps: int = 20_000

    # Circuit breakers
    mint_paused: bool = False
    redeem_paused: bool = False

    # Last committed pricing
    collateral_to_base_rate: int = 1_000_000_000
    base_price_in_quote: int = 100_000_000
    last_pricing_slot: int = 0
    max_staleness_slots: int = 150
    max_confidence_bps: int = 200


@dataclass(frozen=True)
class CallContext:
    """What the host knows about the current invocation."""

    top_level: bool = True
    current_slot: int = 0
    timestamp: int = 0


@dataclass(frozen=True)
class OperationParams:
    """Parameters for an operation. Unused fields default to 0/empty."""

    operation: Operation
    amount: int = 0                 # collateral in (mints) / tokens in (redeems)
    min_out: int = 0                # slippage floor on the user's output
    user: str = "user"
    collateral_id: str = DEFAULT_COLLATERAL  # mints only
    user_balance: int | None = None  # redeems: caller's token balance, if known


@dataclass(frozen=True)
class EffectLeg:
    """One external instruction for the value mover."""

    kind: LegKind
    asset: str
    account: str
    amount: int


@dataclass(frozen=True)
class EventRecord:
    """Structured audit record for one committed transition."""

    event: Event
    operation_id: int
    user: str = ""
    amount_in: int = 0
    amount_out: int = 0
    fee: int = 0
    old_tvl: int = 0
    new_tvl: int = 0
    old_cr_bps: int = 0
    new_cr_bps: int = 0
    nav: int | None = None
    old_equity: int = 0
    new_equity: int = 0
    reserve_delta: int = 0
    price_used: int = 0
    timestamp: int = 0


@dataclass(frozen=True)
class OperationResult:
    """Result of a single engine step."""

    accepted: bool
    state: LedgerState | None = None
    effects: tuple[EffectLeg, ...] = ()
    event: EventRecord | None = None
    rejection: ErrorKind | None = None
    detail: str = ""
