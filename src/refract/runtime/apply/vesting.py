# src/refract/runtime/apply/vesting.py
from __future__ import annotations

from typing import Any, Dict, Optional

from refract.ledger import vesting
from refract.runtime.context import CAP_VESTING_MANAGER, ApplyContext
from refract.runtime.supported_txs import VESTING_TX_TYPES
from refract.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def _apply_mint_and_vest(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Json:
    ctx.permissions.require(env.signer, CAP_VESTING_MANAGER)
    out = vesting.mint_and_vest(state)
    return {"applied": "MINT_AND_VEST", **out}


def _apply_claim_vested(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Json:
    """Release every unlocked tranche to the signer. Claiming nothing is not an error."""
    ctx.permissions.require(env.signer, CAP_VESTING_MANAGER)
    out = vesting.claim_vested(state, env.signer)
    return {"applied": "CLAIM_VESTED", **out}


def apply_vesting(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Optional[Json]:
    t = str(env.tx_type or "").strip().upper()
    if t not in VESTING_TX_TYPES:
        return None

    if t == "MINT_AND_VEST":
        return _apply_mint_and_vest(state, env, ctx)

    if t == "CLAIM_VESTED":
        return _apply_claim_vested(state, env, ctx)

    return None


__all__ = ["apply_vesting"]
