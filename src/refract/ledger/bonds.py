# src/refract/ledger/bonds.py
from __future__ import annotations

"""Bond registry: time-locked principal with a 1:1 receipt balance.

A bond is Open until withdrawn, then Withdrawn forever. Records are never
deleted. Order of effects in `withdraw` is load-bearing: the terminal flag is
written before any ledger or collaborator call.
"""

from typing import Any, Dict

from refract.ledger import token
from refract.ledger.constants import (
    BOND_REGISTRY_ACCOUNT,
    DAY_SECONDS,
    MAX_BOND_FEE_BPS,
    MAX_MATURITY_DAYS,
    MIN_MATURITY_DAYS,
    NATIVE_ASSET,
    REFRACTION_POOL_ACCOUNT,
)
from refract.ledger.events import emit_event
from refract.ledger.numbers import as_integral
from refract.ledger.tiers import get_interest_rate, refraction_index_fixed
from refract.runtime.context import ApplyContext
from refract.runtime.errors import (
    AlreadyWithdrawn,
    CollaboratorFailed,
    InvalidAmount,
    InvalidFee,
    InvalidMaturity,
    InvalidParameter,
    NotFound,
    NotMatured,
    NotOwner,
)
from refract.runtime.reentrancy import non_reentrant

Json = Dict[str, Any]

REGISTRY_LOCK = "bond_registry"


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _strict_int(v: Any, err: type, reason: str) -> int:
    try:
        return as_integral(v)
    except (TypeError, ValueError):
        raise err(reason, {"value": v})


def _now(state: Json) -> int:
    return _as_int(state.get("time"), 0)


def ensure_bonds_root(state: Json) -> Json:
    b = state.get("bonds")
    if not isinstance(b, dict):
        b = {}
        state["bonds"] = b
    if not isinstance(b.get("by_id"), dict):
        b["by_id"] = {}
    if not isinstance(b.get("custody"), dict):
        b["custody"] = {}
    return b


def get_bond(state: Json, cert_id: Any) -> Json | None:
    rec = ensure_bonds_root(state)["by_id"].get(str(cert_id))
    return rec if isinstance(rec, dict) else None


def maturity_time(bond: Json) -> int:
    return _as_int(bond.get("start_time")) + _as_int(bond.get("maturity_days")) * DAY_SECONDS


def compute_yield(principal: int, maturity_days: int) -> int:
    return (int(principal) * get_interest_rate(maturity_days)) // 100


def deposit(
    state: Json,
    ctx: ApplyContext,
    *,
    depositor: str,
    principal: Any,
    maturity_days: Any,
    bond_fee_bps: Any,
    asset: str = NATIVE_ASSET,
    value: int = 0,
) -> int:
    """Lock `principal` of `asset` and return the new certificate id."""
    with non_reentrant(state, REGISTRY_LOCK):
        amt = _strict_int(principal, InvalidAmount, "bad_principal")
        if amt <= 0:
            raise InvalidAmount("principal_zero", {"principal": amt})

        days = _strict_int(maturity_days, InvalidMaturity, "bad_maturity")
        if days < MIN_MATURITY_DAYS or days > MAX_MATURITY_DAYS:
            raise InvalidMaturity(
                "maturity_out_of_range",
                {"maturity_days": days, "min": MIN_MATURITY_DAYS, "max": MAX_MATURITY_DAYS},
            )

        fee_bps = _strict_int(bond_fee_bps, InvalidFee, "bad_bond_fee")
        if fee_bps < 0 or fee_bps > MAX_BOND_FEE_BPS:
            raise InvalidFee("bond_fee_out_of_range", {"bond_fee_bps": fee_bps, "max": MAX_BOND_FEE_BPS})

        asset_id = str(asset or NATIVE_ASSET).strip()
        if asset_id == NATIVE_ASSET:
            if int(value) != amt:
                raise InvalidParameter("native_value_mismatch", {"value": int(value), "principal": amt})
        elif int(value) != 0:
            raise InvalidParameter("value_with_external_asset", {"value": int(value), "asset": asset_id})

        if not ctx.assets.transfer_in(state, asset_id, depositor, amt):
            raise CollaboratorFailed("asset_transfer_in_failed", {"asset": asset_id, "from": depositor, "amount": amt})

        root = ensure_bonds_root(state)
        root["custody"][asset_id] = _as_int(root["custody"].get(asset_id)) + amt

        token.mint(state, depositor, amt)

        cert_id = int(ctx.certificates.issue(state, depositor))
        if str(cert_id) in root["by_id"]:
            raise CollaboratorFailed("certificate_id_reused", {"cert_id": cert_id})

        index = refraction_index_fixed(days)
        root["by_id"][str(cert_id)] = {
            "cert_id": cert_id,
            "depositor": depositor,
            "withdrawn": False,
            "principal": amt,
            "start_time": _now(state),
            "maturity_days": days,
            "asset": asset_id,
            "bond_fee_bps": fee_bps,
            "refraction_index": index,
        }

        emit_event(
            state,
            "BOND_DEPOSITED",
            cert_id=cert_id,
            depositor=depositor,
            principal=amt,
            maturity_days=days,
            asset=asset_id,
            bond_fee_bps=fee_bps,
            refraction_index=index,
            start_time=_now(state),
        )
        return cert_id


def withdraw(state: Json, ctx: ApplyContext, *, caller: str, cert_id: Any) -> Json:
    with non_reentrant(state, REGISTRY_LOCK):
        bond = get_bond(state, cert_id)
        if bond is None:
            raise NotFound("bond_not_found", {"cert_id": cert_id})

        if bool(bond.get("withdrawn", False)):
            raise AlreadyWithdrawn("bond_already_withdrawn", {"cert_id": cert_id})

        owner = ctx.certificates.owner_of(state, _as_int(cert_id))
        if owner != caller:
            raise NotOwner("caller_not_certificate_owner", {"cert_id": cert_id, "caller": caller})

        now = _now(state)
        matures_at = maturity_time(bond)
        if now < matures_at:
            raise NotMatured("bond_not_matured", {"cert_id": cert_id, "now": now, "matures_at": matures_at})

        bond["withdrawn"] = True

        principal = _as_int(bond.get("principal"))
        days = _as_int(bond.get("maturity_days"))
        asset_id = str(bond.get("asset") or NATIVE_ASSET)

        token.burn(state, caller, principal)

        payout = compute_yield(principal, days)
        if payout > 0:
            token.mint(state, caller, payout)

        root = ensure_bonds_root(state)
        root["custody"][asset_id] = _as_int(root["custody"].get(asset_id)) - principal
        if not ctx.assets.transfer_out(state, asset_id, caller, principal):
            raise CollaboratorFailed("asset_transfer_out_failed", {"asset": asset_id, "to": caller, "amount": principal})

        emit_event(
            state,
            "BOND_WITHDRAWN",
            cert_id=_as_int(cert_id),
            owner=caller,
            principal=principal,
            interest_rate=get_interest_rate(days),
            payout=payout,
            asset=asset_id,
        )
        return {"cert_id": _as_int(cert_id), "principal": principal, "payout": payout}


def epoch_reward_share_index(state: Json, ctx: ApplyContext, amount: int) -> int:
    """Pull `amount` from the refraction pool and hand it to the reward sink.

    Requires a prior allowance from the pool account to the registry.
    """
    amt = int(amount)
    if amt <= 0:
        return 0
    token.transfer_from(state, BOND_REGISTRY_ACCOUNT, REFRACTION_POOL_ACCOUNT, BOND_REGISTRY_ACCOUNT, amt)
    ctx.reward_sink.epoch_reward_share_index(state, amt)
    return amt


__all__ = [
    "REGISTRY_LOCK",
    "compute_yield",
    "deposit",
    "ensure_bonds_root",
    "epoch_reward_share_index",
    "get_bond",
    "maturity_time",
    "withdraw",
]
