from __future__ import annotations

import time
from typing import Any, Dict

from fastapi import APIRouter, Request

router = APIRouter()


def _now_ms() -> int:
    return int(time.time() * 1000)


@router.get("/health")
def v1_health(request: Request) -> Dict[str, Any]:
    # health must not fail when the executor is missing
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        return {"ok": True, "ready": False, "chain_id": None, "time": None, "ts_ms": _now_ms()}

    view = ex.view()
    return {
        "ok": True,
        "ready": True,
        "chain_id": str(view.params.get("chain_id") or ex.chain_id),
        "time": int(view.time),
        "ts_ms": _now_ms(),
    }
