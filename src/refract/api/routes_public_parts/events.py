from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from refract.api.routes_public_parts.common import _executor, _int_param

router = APIRouter()

_MAX_LIMIT = 500


@router.get("/events")
def v1_events(
    request: Request,
    after_seq: Optional[str] = None,
    limit: Optional[str] = None,
    event_type: str = "",
) -> Dict[str, Any]:
    """Committed ledger events in sequence order, paged by `after_seq`."""
    ex = _executor(request)
    after = max(0, _int_param(after_seq, 0))
    lim = min(max(1, _int_param(limit, 100)), _MAX_LIMIT)
    events = ex.events(after_seq=after, limit=lim, event_type=event_type.strip().upper())
    next_seq = int(events[-1]["seq"]) if events else after
    return {"ok": True, "events": events, "next_after_seq": next_seq}
