# src/refract/runtime/domain_apply.py
# ---------------------------------------------------------------------------
# Public, stable import path for applying tx envelopes.
# ---------------------------------------------------------------------------

from __future__ import annotations

import copy
from typing import Any, Dict, Optional

from refract.runtime.context import ApplyContext
from refract.runtime.domain_dispatch import apply_tx
from refract.runtime.errors import ApplyError
from refract.runtime.state_invariants import check_supply_invariant
from refract.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def _consume_nonce(state: Json, env: TxEnvelope) -> None:
    """Advance the signer nonce. Only the nonce is touched."""
    signer = str(env.signer or "").strip()
    if not signer:
        return
    accounts = state.get("accounts")
    if not isinstance(accounts, dict):
        accounts = {}
        state["accounts"] = accounts
    acct = accounts.get(signer)
    if not isinstance(acct, dict):
        acct = {"nonce": 0, "balance": 0}
        accounts[signer] = acct
    acct["nonce"] = int(env.nonce)


def apply_tx_atomic(
    state: Json,
    env: Any,
    ctx: Optional[ApplyContext] = None,
    *,
    consume_nonce: bool = False,
) -> Json:
    """Apply a tx with fail-atomic semantics.

    On success:
      - state is updated as if apply_tx() ran directly.

    On ApplyError:
      - state remains unchanged, except (optionally) nonce consumption.

    We must never allow partial state mutation when a tx is rejected during
    apply, including when a collaborator fails halfway through.
    """
    env_norm = TxEnvelope.from_json(env)

    # Apply on a deep copy to guarantee atomicity.
    snapshot = copy.deepcopy(state)

    try:
        meta = apply_tx(snapshot, env_norm, ctx)
    except ApplyError:
        if consume_nonce:
            _consume_nonce(state, env_norm)
        raise

    check_supply_invariant(snapshot)
    if consume_nonce:
        _consume_nonce(snapshot, env_norm)

    # Commit by replacing contents in-place so callers holding references
    # to `state` see the updated view.
    state.clear()
    state.update(snapshot)
    return meta


__all__ = ["ApplyError", "apply_tx", "apply_tx_atomic", "Json"]
