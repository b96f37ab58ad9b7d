# src/refract/runtime/apply/token.py
from __future__ import annotations

from typing import Any, Dict, Optional

from refract.ledger import token
from refract.runtime.context import CAP_ADMIN, CAP_MINTER, ApplyContext
from refract.runtime.errors import InvalidParameter
from refract.runtime.supported_txs import TOKEN_TX_TYPES
from refract.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def _as_str(v: Any) -> str:
    return str(v).strip() if isinstance(v, (str, int, float)) else ""


def _parse_flag(v: Any, field: str) -> bool:
    if isinstance(v, bool):
        return v
    if v is None:
        raise InvalidParameter(f"missing_{field}", {field: v})
    s = str(v).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    raise InvalidParameter(f"bad_{field}", {field: v})


def _as_dict(v: Any) -> Json:
    return v if isinstance(v, dict) else {}


def _require_amount(payload: Json, tx_type: str) -> Any:
    if payload.get("amount") is None:
        raise InvalidParameter("missing_amount", {"tx_type": tx_type})
    return payload.get("amount")


def _apply_transfer(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Json:
    payload = _as_dict(env.payload)
    to = _as_str(payload.get("to"))
    amount = _require_amount(payload, env.tx_type)

    fee, received = token.transfer(state, env.signer, to, amount)
    return {"applied": "TRANSFER", "from": env.signer, "to": to, "amount": fee + received, "fee": fee, "received": received}


def _apply_approve(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Json:
    payload = _as_dict(env.payload)
    spender = _as_str(payload.get("spender"))
    amt = token.approve(state, env.signer, spender, _require_amount(payload, env.tx_type))
    return {"applied": "APPROVE", "owner": env.signer, "spender": spender, "amount": amt}


def _apply_transfer_from(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Json:
    payload = _as_dict(env.payload)
    owner = _as_str(payload.get("owner") or payload.get("from"))
    to = _as_str(payload.get("to"))
    amount = _require_amount(payload, env.tx_type)

    fee, received = token.transfer_from(state, env.signer, owner, to, amount)
    return {"applied": "TRANSFER_FROM", "spender": env.signer, "from": owner, "to": to, "fee": fee, "received": received}


def _apply_mint(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Json:
    ctx.permissions.require(env.signer, CAP_MINTER)
    payload = _as_dict(env.payload)
    to = _as_str(payload.get("to"))
    amt = token.mint(state, to, _require_amount(payload, env.tx_type))
    return {"applied": "MINT", "to": to, "amount": amt}


def _apply_burn(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Json:
    ctx.permissions.require(env.signer, CAP_MINTER)
    payload = _as_dict(env.payload)
    frm = _as_str(payload.get("from") or payload.get("account"))
    amt = token.burn(state, frm, _require_amount(payload, env.tx_type))
    return {"applied": "BURN", "from": frm, "amount": amt}


def _apply_fee_percent_set(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Json:
    ctx.permissions.require(env.signer, CAP_ADMIN)
    payload = _as_dict(env.payload)
    if payload.get("percent") is None:
        raise InvalidParameter("missing_percent", {"tx_type": env.tx_type})
    old, new = token.set_refraction_fee_percent(state, payload.get("percent"))
    return {"applied": "REFRACTION_FEE_PERCENT_SET", "old": old, "new": new}


def _apply_fee_exemption_set(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Json:
    ctx.permissions.require(env.signer, CAP_ADMIN)
    payload = _as_dict(env.payload)
    account = _as_str(payload.get("account"))
    exempt = token.set_fee_exempt(state, account, _parse_flag(payload.get("exempt"), "exempt"))
    return {"applied": "FEE_EXEMPTION_SET", "account": account, "exempt": exempt}


def apply_token(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Optional[Json]:
    """
    Returns:
      - dict: applied result (debug/receipt convenience)
      - None: tx_type not in token domain
    """
    t = _as_str(env.tx_type).upper()
    if t not in TOKEN_TX_TYPES:
        return None

    if t == "TRANSFER":
        return _apply_transfer(state, env, ctx)

    if t == "APPROVE":
        return _apply_approve(state, env, ctx)

    if t == "TRANSFER_FROM":
        return _apply_transfer_from(state, env, ctx)

    if t == "MINT":
        return _apply_mint(state, env, ctx)

    if t == "BURN":
        return _apply_burn(state, env, ctx)

    if t == "REFRACTION_FEE_PERCENT_SET":
        return _apply_fee_percent_set(state, env, ctx)

    if t == "FEE_EXEMPTION_SET":
        return _apply_fee_exemption_set(state, env, ctx)

    return None


__all__ = ["apply_token"]
