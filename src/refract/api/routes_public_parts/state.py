# src/refract/api/routes_public_parts/state.py
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from refract.api.routes_public_parts.common import _snapshot

router = APIRouter()

Json = Dict[str, Any]


@router.get("/state/snapshot")
def state_snapshot(request: Request) -> Json:
    """Return the full ledger snapshot.

    This is a debugging endpoint; it grows with the number of accounts and bonds.
    """
    return {"ok": True, "state": _snapshot(request)}
