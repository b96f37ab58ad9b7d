# src/refract/runtime/state_invariants.py
from __future__ import annotations

"""State invariants / normalization helpers.

Refract state is a nested JSON-like dict that is mutated deterministically by
apply_* modules. This module is the single place that:

  - validates the state is dict-like
  - ensures core top-level containers exist
  - checks the supply invariant after a tx is applied

Domain containers (token, vesting, bonds, distributor) remain the
responsibility of the matching refract.ledger module.
"""

from collections.abc import MutableMapping
from typing import Any, Dict

from refract.ledger.token import ensure_token_root, sum_balances

Json = Dict[str, Any]


class InvariantViolation(RuntimeError):
    pass


def ensure_state(st: Any) -> Json:
    """Ensure `st` is a dict and contains core keys.

    Raises:
        TypeError: if st is not a MutableMapping
    """
    if not isinstance(st, MutableMapping):
        raise TypeError(f"state must be MutableMapping, got {type(st)}")

    acc = st.get("accounts")
    if acc is None:
        st["accounts"] = {}
    elif not isinstance(acc, dict):
        # Fail closed: do not attempt to coerce arbitrary types.
        raise TypeError(f"state['accounts'] must be dict, got {type(acc)}")

    params = st.get("params")
    if params is None:
        st["params"] = {}
    elif not isinstance(params, dict):
        raise TypeError(f"state['params'] must be dict, got {type(params)}")

    return st  # type: ignore[return-value]


def check_supply_invariant(st: Json) -> None:
    """sum(balances) == total_minted - total_burned, and no negative balance."""
    tok = ensure_token_root(st)
    expected = int(tok["total_minted"]) - int(tok["total_burned"])
    actual = sum_balances(st)
    if actual != expected:
        raise InvariantViolation(f"supply mismatch: sum(balances)={actual} != minted-burned={expected}")

    for aid, acct in (st.get("accounts") or {}).items():
        if isinstance(acct, dict) and int(acct.get("balance", 0) or 0) < 0:
            raise InvariantViolation(f"negative balance for {aid!r}")

    pool = int(tok["fee_pool"])
    if pool < 0:
        raise InvariantViolation(f"negative fee pool {pool}")


__all__ = ["InvariantViolation", "check_supply_invariant", "ensure_state"]
