"""
Multi-asset balance tracking and effect execution.

Implements BalanceTable[Account, Asset] -> Amount, plus the value mover that
executes a ledger effect descriptor against it all-or-nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from src.core.tranche.types import (
    EQUITY_TOKEN,
    STABLE_TOKEN,
    VAULT,
    EffectLeg,
    LedgerState,
    LegKind,
)


# Type aliases
Account = str
Asset = str
Amount = int  # Non-negative integer (arbitrary precision)


class BalanceTable:
    """
    Balance table mapping (account, asset) -> amount.

    Zero balances are dropped so two tables with the same holdings compare
    equal regardless of history.
    """

    def __init__(self, balances: Optional[Dict[Tuple[Account, Asset], Amount]] = None):
        self._balances: Dict[Tuple[Account, Asset], Amount] = {}
        for (account, asset), amount in (balances or {}).items():
            self.set(account, asset, amount)

    def get(self, account: Account, asset: Asset) -> Amount:
        """Get balance for (account, asset). Returns 0 if not found."""
        return self._balances.get((account, asset), 0)

    def set(self, account: Account, asset: Asset, amount: Amount) -> None:
        """
        Set balance for (account, asset).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            self._balances.pop((account, asset), None)
        else:
            self._balances[(account, asset)] = amount

    def add(self, account: Account, asset: Asset, delta: Amount) -> None:
        """
        Add delta to balance (negative delta subtracts).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(account, asset)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient {asset} for {account}: {current} + {delta} = {new_balance} < 0"
            )
        self.set(account, asset, new_balance)

    def subtract(self, account: Account, asset: Asset, delta: Amount) -> None:
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(account, asset, -delta)

    def total(self, asset: Asset) -> Amount:
        """Sum of every account's balance of ``asset``."""
        return sum(amount for (_, a), amount in self._balances.items() if a == asset)

    def copy(self) -> "BalanceTable":
        return BalanceTable(self._balances)

    def get_all_balances(self) -> Dict[Tuple[Account, Asset], Amount]:
        return dict(self._balances)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BalanceTable):
            return NotImplemented
        return self._balances == other._balances

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"


@dataclass(frozen=True)
class ApplyResult:
    """Outcome of executing one effect descriptor.

    On failure ``table`` is None and ``failed_leg`` is the index of the leg
    that could not be executed.
    """

    ok: bool
    table: Optional[BalanceTable] = None
    failed_leg: Optional[int] = None
    reason: str = ""


def _apply_leg(table: BalanceTable, leg: EffectLeg, user: Account) -> None:
    if leg.amount < 0:
        raise ValueError(f"negative leg amount {leg.amount}")
    if leg.kind is LegKind.TRANSFER_IN:
        table.subtract(leg.account, leg.asset, leg.amount)
        table.add(VAULT, leg.asset, leg.amount)
    elif leg.kind is LegKind.TRANSFER_OUT:
        table.subtract(VAULT, leg.asset, leg.amount)
        table.add(leg.account, leg.asset, leg.amount)
    elif leg.kind is LegKind.MINT:
        table.add(leg.account, leg.asset, leg.amount)
    elif leg.kind is LegKind.BURN:
        table.subtract(leg.account, leg.asset, leg.amount)
    elif leg.kind is LegKind.TRANSFER_TOKEN:
        table.subtract(user, leg.asset, leg.amount)
        table.add(leg.account, leg.asset, leg.amount)
    else:
        raise ValueError(f"unknown leg kind {leg.kind!r}")


def _payer(effects: Tuple[EffectLeg, ...]) -> Account:
    """The user an effect descriptor acts for: the first leg's account."""
    return effects[0].account if effects else ""


def apply_effects(table: BalanceTable, effects: Iterable[EffectLeg]) -> ApplyResult:
    """Execute every leg on a copy of ``table``; the input is never modified.

    ``TRANSFER_TOKEN`` legs move tokens from the acting user, who is the
    account named by the first leg (the collateral depositor or the burner).
    """
    legs = tuple(effects)
    user = _payer(legs)
    work = table.copy()
    for i, leg in enumerate(legs):
        try:
            _apply_leg(work, leg, user)
        except ValueError as exc:
            return ApplyResult(ok=False, failed_leg=i, reason=str(exc))
    return ApplyResult(ok=True, table=work)


def post_condition_errors(table: BalanceTable, state: LedgerState) -> list[str]:
    """Compare external holdings with the ledger. Empty = consistent."""
    errors: list[str] = []
    vault = table.get(VAULT, state.supported_collateral)
    if vault != state.collateral_units:
        errors.append(f"vault collateral {vault} != ledger {state.collateral_units}")
    for token, supply in ((STABLE_TOKEN, state.stable_supply), (EQUITY_TOKEN, state.equity_supply)):
        held = table.total(token)
        if held != supply:
            errors.append(f"{token} held {held} != ledger supply {supply}")
    return errors
