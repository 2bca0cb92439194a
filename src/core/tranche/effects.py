"""Effect descriptors and audit records for the tranche ledger.

The core never moves value itself. Each accepted operation returns an ordered
tuple of ``EffectLeg`` instructions that the value mover must execute
all-or-nothing, plus one ``EventRecord`` for the event sink.
"""

from __future__ import annotations

from .types import (
    EQUITY_TOKEN,
    STABLE_TOKEN,
    EffectLeg,
    LedgerState,
    LegKind,
)


def _mint_legs(token: str, user: str, treasury: str, net: int, fee: int) -> list[EffectLeg]:
    legs = [EffectLeg(LegKind.MINT, token, user, net)]
    if fee > 0:
        legs.append(EffectLeg(LegKind.MINT, token, treasury, fee))
    return legs


def _redeem_legs(
    token: str,
    collateral: str,
    user: str,
    treasury: str,
    burned: int,
    fee: int,
    collateral_out: int,
) -> tuple[EffectLeg, ...]:
    legs = [EffectLeg(LegKind.BURN, token, user, burned)]
    if fee > 0:
        legs.append(EffectLeg(LegKind.TRANSFER_TOKEN, token, treasury, fee))
    legs.append(EffectLeg(LegKind.TRANSFER_OUT, collateral, user, collateral_out))
    return tuple(legs)


def mint_stable_effects(state: LedgerState, user: str, collateral_in: int, net: int, fee: int) -> tuple[EffectLeg, ...]:
    legs = [EffectLeg(LegKind.TRANSFER_IN, state.supported_collateral, user, collateral_in)]
    legs.extend(_mint_legs(STABLE_TOKEN, user, state.treasury, net, fee))
    return tuple(legs)


def mint_equity_effects(state: LedgerState, user: str, collateral_in: int, net: int, fee: int) -> tuple[EffectLeg, ...]:
    legs = [EffectLeg(LegKind.TRANSFER_IN, state.supported_collateral, user, collateral_in)]
    legs.extend(_mint_legs(EQUITY_TOKEN, user, state.treasury, net, fee))
    return tuple(legs)


def redeem_stable_effects(
    state: LedgerState, user: str, burned: int, fee: int, collateral_out: int,
) -> tuple[EffectLeg, ...]:
    return _redeem_legs(
        STABLE_TOKEN, state.supported_collateral, user, state.treasury, burned, fee, collateral_out,
    )


def redeem_equity_effects(
    state: LedgerState, user: str, burned: int, fee: int, collateral_out: int,
) -> tuple[EffectLeg, ...]:
    return _redeem_legs(
        EQUITY_TOKEN, state.supported_collateral, user, state.treasury, burned, fee, collateral_out,
    )


def net_flows(effects: tuple[EffectLeg, ...]) -> dict[str, int]:
    """Net change of each asset held by or issued from the protocol.

    Collateral entries are vault deltas; token entries are supply deltas.
    Token transfers between holders do not change supply.
    """
    out: dict[str, int] = {}
    for leg in effects:
        if leg.kind is LegKind.TRANSFER_IN or leg.kind is LegKind.MINT:
            out[leg.asset] = out.get(leg.asset, 0) + leg.amount
        elif leg.kind is LegKind.TRANSFER_OUT or leg.kind is LegKind.BURN:
            out[leg.asset] = out.get(leg.asset, 0) - leg.amount
    return out
