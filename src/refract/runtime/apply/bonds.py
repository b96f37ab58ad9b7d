# src/refract/runtime/apply/bonds.py
from __future__ import annotations

from typing import Any, Dict, Optional

from refract.ledger import bonds
from refract.ledger.constants import NATIVE_ASSET
from refract.ledger.numbers import as_integral
from refract.runtime.context import ApplyContext
from refract.runtime.errors import InvalidParameter
from refract.runtime.supported_txs import BOND_TX_TYPES
from refract.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def _as_dict(v: Any) -> Json:
    return v if isinstance(v, dict) else {}


def _apply_bond_deposit(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Json:
    payload = _as_dict(env.payload)
    asset = str(payload.get("asset") or NATIVE_ASSET).strip()

    cert_id = bonds.deposit(
        state,
        ctx,
        depositor=env.signer,
        principal=payload.get("principal"),
        maturity_days=payload.get("maturity_days"),
        bond_fee_bps=payload.get("bond_fee_bps", 0),
        asset=asset,
        value=int(env.value or 0),
    )
    return {"applied": "BOND_DEPOSIT", "cert_id": cert_id}


def _apply_bond_withdraw(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Json:
    payload = _as_dict(env.payload)
    cert_id = payload.get("cert_id")
    if cert_id is None or isinstance(cert_id, bool):
        raise InvalidParameter("missing_cert_id", {"tx_type": env.tx_type})
    try:
        cid = as_integral(cert_id)
    except (TypeError, ValueError):
        raise InvalidParameter("bad_cert_id", {"cert_id": cert_id})

    out = bonds.withdraw(state, ctx, caller=env.signer, cert_id=cid)
    return {"applied": "BOND_WITHDRAW", **out}


def apply_bonds(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Optional[Json]:
    t = str(env.tx_type or "").strip().upper()
    if t not in BOND_TX_TYPES:
        return None

    if t == "BOND_DEPOSIT":
        return _apply_bond_deposit(state, env, ctx)

    if t == "BOND_WITHDRAW":
        return _apply_bond_withdraw(state, env, ctx)

    return None


__all__ = ["apply_bonds"]
