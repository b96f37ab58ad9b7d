from __future__ import annotations

from typing import Any, Dict

from refract.ledger import bonds, token
from refract.ledger.constants import BOND_REGISTRY_ACCOUNT, REFRACTION_POOL_ACCOUNT
from refract.ledger.events import emit_event
from refract.runtime.context import ApplyContext
from refract.runtime.errors import NoFeesToDistribute

Json = Dict[str, Any]


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def ensure_distributor_root(state: Json) -> Json:
    d = state.get("distributor")
    if not isinstance(d, dict):
        d = {}
        state["distributor"] = d
    d.setdefault("last_epoch_time", 0)
    d.setdefault("epochs", 0)
    d.setdefault("total_distributed", 0)
    return d


def distribute_refraction_fees(state: Json, ctx: ApplyContext) -> Json:
    """Empty the fee pool into the bond registry's reward index.

    The approve step precedes the registry call; if it raises, the registry
    is never invoked and the whole tx is discarded.
    """
    if token.fee_pool(state) <= 0:
        raise NoFeesToDistribute("fee_pool_empty", {"fee_pool": 0})

    amount = token.drain_fee_pool(state)
    d = ensure_distributor_root(state)
    d["last_epoch_time"] = _as_int(state.get("time"), 0)

    token.approve(state, REFRACTION_POOL_ACCOUNT, BOND_REGISTRY_ACCOUNT, amount)
    bonds.epoch_reward_share_index(state, ctx, amount)

    d["epochs"] = _as_int(d["epochs"]) + 1
    d["total_distributed"] = _as_int(d["total_distributed"]) + amount

    emit_event(state, "REFRACTION_FEES_DISTRIBUTED", amount=amount, epoch=d["epochs"])
    return {"amount": amount, "epoch": d["epochs"], "last_epoch_time": d["last_epoch_time"]}


__all__ = ["distribute_refraction_fees", "ensure_distributor_root"]
