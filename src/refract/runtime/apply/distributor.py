from __future__ import annotations

from typing import Any, Dict, Optional

from refract.ledger.distributor import distribute_refraction_fees
from refract.runtime.context import CAP_DISTRIBUTOR, ApplyContext
from refract.runtime.supported_txs import DISTRIBUTOR_TX_TYPES
from refract.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def apply_distributor(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Optional[Json]:
    t = str(env.tx_type or "").strip().upper()
    if t not in DISTRIBUTOR_TX_TYPES:
        return None

    ctx.permissions.require(env.signer, CAP_DISTRIBUTOR)
    out = distribute_refraction_fees(state, ctx)
    return {"applied": "REFRACTION_FEES_DISTRIBUTE", **out}


__all__ = ["apply_distributor"]
