from __future__ import annotations

from fastapi import APIRouter, Request

from refract.api.errors import ApiError
from refract.api.routes_public_parts.common import _view
from refract.ledger.bonds import compute_yield, maturity_time
from refract.ledger.constants import MAX_MATURITY_DAYS, MIN_MATURITY_DAYS
from refract.ledger.tiers import get_interest_rate, get_refraction_index

router = APIRouter()


@router.get("/bonds/quote/{maturity_days}")
def v1_bond_quote(maturity_days: int, principal: int = 0):
    """Interest rate and refraction index a deposit of this maturity would get."""
    if maturity_days < MIN_MATURITY_DAYS or maturity_days > MAX_MATURITY_DAYS:
        raise ApiError.bad_request(
            "invalid_maturity",
            "maturity_days out of range",
            {"maturity_days": maturity_days, "min": MIN_MATURITY_DAYS, "max": MAX_MATURITY_DAYS},
        )
    if principal < 0:
        raise ApiError.bad_request("invalid_amount", "principal must be >= 0", {"principal": principal})
    return {
        "ok": True,
        "maturity_days": maturity_days,
        "interest_rate": get_interest_rate(maturity_days),
        "refraction_index": str(get_refraction_index(maturity_days)),
        "principal": principal,
        "yield": compute_yield(principal, maturity_days),
    }


@router.get("/bonds/{cert_id}")
def v1_bond_get(cert_id: str, request: Request):
    ledger = _view(request)
    b = ledger.bond_json(cert_id)
    if b is None:
        raise ApiError.not_found("bond_not_found", "no bond for certificate", {"cert_id": cert_id})
    raw = ledger.bond(cert_id) or {}
    return {"ok": True, "bond": b, "matures_at": maturity_time(raw)}
