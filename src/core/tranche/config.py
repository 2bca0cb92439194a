"""Risk-parameter configuration.

Parameters live in a small YAML mapping, for example::

    supported_collateral: jitosol
    treasury: treasury
    min_cr_bps: 13000
    target_cr_bps: 15000
    fees:
      stable_mint_bps: 50
      stable_redeem_bps: 25
      equity_mint_bps: 30
      equity_redeem_bps: 15
      min_multiplier_bps: 10000
      max_multiplier_bps: 40000
    uncertainty_max_bps: 20000
    max_rounding_reserve: 1000000000
    pricing:
      max_staleness_slots: 150
      max_confidence_bps: 200

Every key is optional; missing keys take the ``LedgerState`` defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from .types import DEFAULT_COLLATERAL, DEFAULT_TREASURY, LedgerState

_DEFAULTS = LedgerState()

# YAML section -> {yaml key: RiskParams field}
_NESTED: dict[str, dict[str, str]] = {
    "fees": {
        "stable_mint_bps": "fee_stable_mint_bps",
        "stable_redeem_bps": "fee_stable_redeem_bps",
        "equity_mint_bps": "fee_equity_mint_bps",
        "equity_redeem_bps": "fee_equity_redeem_bps",
        "min_multiplier_bps": "fee_min_multiplier_bps",
        "max_multiplier_bps": "fee_max_multiplier_bps",
    },
    "pricing": {
        "max_staleness_slots": "max_staleness_slots",
        "max_confidence_bps": "max_confidence_bps",
    },
}


@dataclass(frozen=True)
class RiskParams:
    """Administrator-controlled parameters of one deployment."""

    supported_collateral: str = DEFAULT_COLLATERAL
    treasury: str = DEFAULT_TREASURY
    min_cr_bps: int = _DEFAULTS.min_cr_bps
    target_cr_bps: int = _DEFAULTS.target_cr_bps
    fee_stable_mint_bps: int = _DEFAULTS.fee_stable_mint_bps
    fee_stable_redeem_bps: int = _DEFAULTS.fee_stable_redeem_bps
    fee_equity_mint_bps: int = _DEFAULTS.fee_equity_mint_bps
    fee_equity_redeem_bps: int = _DEFAULTS.fee_equity_redeem_bps
    fee_min_multiplier_bps: int = _DEFAULTS.fee_min_multiplier_bps
    fee_max_multiplier_bps: int = _DEFAULTS.fee_max_multiplier_bps
    uncertainty_index_bps: int = _DEFAULTS.uncertainty_index_bps
    uncertainty_max_bps: int = _DEFAULTS.uncertainty_max_bps
    max_rounding_reserve: int = _DEFAULTS.max_rounding_reserve
    max_staleness_slots: int = _DEFAULTS.max_staleness_slots
    max_confidence_bps: int = _DEFAULTS.max_confidence_bps

    def __post_init__(self) -> None:
        for f in fields(self):
            v = getattr(self, f.name)
            if f.type == "str":
                if not isinstance(v, str) or not v:
                    raise TypeError(f"{f.name} must be a non-empty str")
                continue
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{f.name} must be an int")
            if v < 0:
                raise ValueError(f"{f.name} must be non-negative: {v}")


PARAM_NAMES: tuple[str, ...] = tuple(RiskParams.__dataclass_fields__)


def params_from_dict(d: Mapping[str, Any]) -> RiskParams:
    """Build RiskParams from a (possibly nested) mapping. Unknown keys raise KeyError."""
    kwargs: dict[str, Any] = {}
    for key, val in d.items():
        if key in _NESTED:
            if not isinstance(val, Mapping):
                raise TypeError(f"section {key!r} must be a mapping")
            for sub_key, sub_val in val.items():
                try:
                    kwargs[_NESTED[key][sub_key]] = sub_val
                except KeyError:
                    raise KeyError(f"unknown parameter {key}.{sub_key}") from None
        elif key in PARAM_NAMES:
            kwargs[key] = val
        else:
            raise KeyError(f"unknown parameter {key}")
    return RiskParams(**kwargs)


def load_params(path: str | Path) -> RiskParams:
    """Load RiskParams from a YAML file."""
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        return RiskParams()
    if not isinstance(obj, Mapping):
        raise TypeError("risk parameter YAML must be a mapping")
    return params_from_dict(obj)
