from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from refract.api.errors import ApiError
from refract.api.routes_public_parts.common import _executor, _int_param
from refract.api.schemas import TxSubmitRequest
from refract.ledger.constants import RESERVED_ACCOUNTS

router = APIRouter()

Json = Dict[str, Any]


@router.post("/tx/submit")
def tx_submit(body: TxSubmitRequest, request: Request) -> Json:
    """Submit a tx envelope and apply it immediately.

    Returns the receipt. Rejected txs still return 200 with `ok: false`
    because the nonce was consumed; txs that fail admission return 400.
    """
    ex = _executor(request)

    signer = body.signer.strip()
    if signer in RESERVED_ACCOUNTS:
        raise ApiError.forbidden(
            "reserved_signer_forbidden",
            "reserved ledger accounts cannot submit txs",
            {"tx_type": body.tx_type, "signer": signer},
        )

    receipt = ex.submit_tx(body.model_dump())
    if receipt.get("status") == "not_admitted":
        err = receipt.get("error") or {}
        raise ApiError.bad_request(str(err.get("code") or "not_admitted"), str(err.get("reason") or ""), dict(err.get("details") or {}))
    return {"ok": bool(receipt.get("ok")), "receipt": receipt}


@router.get("/tx/receipts")
def tx_receipts(request: Request, signer: str = "", limit: Optional[str] = None) -> Json:
    ex = _executor(request)
    lim = min(max(1, _int_param(limit, 100)), 500)
    return {"ok": True, "receipts": ex.receipts(signer=signer.strip(), limit=lim)}
