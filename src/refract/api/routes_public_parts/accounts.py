from __future__ import annotations

from fastapi import APIRouter, Request

from refract.api.routes_public_parts.common import _view

router = APIRouter()


@router.get("/accounts/{account}")
def v1_account_get(account: str, request: Request):
    ledger = _view(request)
    a = ledger.accounts.get(account)
    allowances = (ledger.token.get("allowances") or {}).get(account) or {}
    return {
        "ok": True,
        "account": account,
        "exists": a is not None,
        "balance": ledger.balance_of(account),
        "nonce": ledger.get_nonce(account),
        "fee_exempt": ledger.is_fee_exempt(account),
        "allowances": dict(allowances),
    }
