from __future__ import annotations

from fastapi import APIRouter, Request

from refract.api.routes_public_parts.common import _view

router = APIRouter()


@router.get("/token")
def v1_token(request: Request):
    ledger = _view(request)
    tok = ledger.token
    return {
        "ok": True,
        "total_supply": ledger.total_supply,
        "total_minted": int(tok.get("total_minted", 0) or 0),
        "total_burned": int(tok.get("total_burned", 0) or 0),
        "fee_pool": ledger.fee_pool,
        "refraction_fee_percent": ledger.refraction_fee_percent,
        "fee_exempt": sorted(k for k, v in (tok.get("fee_exempt") or {}).items() if v),
    }
