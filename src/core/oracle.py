"""
Pricing snapshot freshness and confidence kernel.

This module is intentionally small and pure:
- The functional core decides whether a snapshot may be priced against.
- The imperative shell is responsible for fetching prices and the current slot.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PricingSnapshot:
    """One price-source reading.

    ``collateral_to_base_rate`` is base units per collateral unit scaled by 1e9;
    ``base_price_in_quote`` is quote per base coin scaled by 1e6.
    """

    collateral_to_base_rate: int
    base_price_in_quote: int
    confidence_bps: int = 0
    snapshot_slot: int = 0

    def __post_init__(self) -> None:
        for name, v in (
            ("collateral_to_base_rate", self.collateral_to_base_rate),
            ("base_price_in_quote", self.base_price_in_quote),
            ("confidence_bps", self.confidence_bps),
            ("snapshot_slot", self.snapshot_slot),
        ):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")

    @property
    def usable(self) -> bool:
        """True when both rate and price are non-zero."""
        return self.collateral_to_base_rate > 0 and self.base_price_in_quote > 0


def is_fresh(
    snapshot: PricingSnapshot,
    current_slot: int,
    max_staleness_slots: int,
    last_committed_slot: int = 0,
) -> bool:
    """True if the snapshot is neither from the future, too old, nor older than
    the pricing the ledger already committed against."""
    if current_slot < 0:
        raise ValueError(f"current_slot must be non-negative: {current_slot}")
    if snapshot.snapshot_slot > current_slot:
        return False
    if snapshot.snapshot_slot < last_committed_slot:
        return False
    return (current_slot - snapshot.snapshot_slot) <= max_staleness_slots


def is_confident(snapshot: PricingSnapshot, max_confidence_bps: int) -> bool:
    """True if the stated confidence interval is within the configured cap."""
    return snapshot.confidence_bps <= max_confidence_bps
