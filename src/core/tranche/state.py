"""State construction and serialization for the tranche ledger.

`initial_state()` returns a fresh deployment with zero supplies and reserve.
`state_from_dict()` checks every value against the field's declared type:
the identity fields are non-empty strings, the pause flags are bools, and
every other field is an integer in the u64 domain.

Round-trip property (tested): `state_from_dict(state_to_dict(s)) == s` for all valid states.
"""

from __future__ import annotations

from dataclasses import fields
from typing import Any, Mapping

from .math import U64_MAX
from .types import LedgerState

STATE_VAR_NAMES: tuple[str, ...] = tuple(f.name for f in fields(LedgerState))

# Declared annotation per field ("int", "bool" or "str"; string form under postponed evaluation).
_FIELD_TYPES: dict[str, str] = {f.name: str(f.type) for f in fields(LedgerState)}


def initial_state() -> LedgerState:
    """Return the default LedgerState.

    Dataclass defaults are the default risk parameters, so ``LedgerState()``
    is the correct initial state.
    """
    return LedgerState()


def state_to_dict(state: LedgerState) -> dict[str, bool | int | str]:
    """Serialize a LedgerState to a plain dict."""
    return {name: getattr(state, name) for name in STATE_VAR_NAMES}


def _coerce(name: str, val: Any) -> bool | int | str:
    kind = _FIELD_TYPES[name]
    if kind == "str":
        if not isinstance(val, str) or not val:
            raise TypeError(f"state var {name!r} must be a non-empty str, got {val!r}")
        return val
    if kind == "bool":
        if not isinstance(val, bool):
            raise TypeError(f"state var {name!r} must be bool, got {type(val).__name__}")
        return val
    if not isinstance(val, int) or isinstance(val, bool):
        raise TypeError(f"state var {name!r} must be int, got {type(val).__name__}")
    if val < 0 or val > U64_MAX:
        raise ValueError(f"state var {name!r} out of u64 range: {val}")
    return int(val)  # normalize int subclasses (e.g. numpy)


def state_from_dict(d: Mapping[str, Any]) -> LedgerState:
    """Deserialize a dict to a LedgerState.

    Raises:
        KeyError: A field is missing.
        TypeError: A value has the wrong type for its field.
        ValueError: An integer field is outside ``[0, U64_MAX]``.
    """
    return LedgerState(**{name: _coerce(name, d[name]) for name in STATE_VAR_NAMES})
