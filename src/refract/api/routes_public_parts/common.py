from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from refract.api.errors import ApiError
from refract.ledger.state import LedgerView

Json = Dict[str, Any]


def _executor(request: Request):
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.unavailable("not_ready", "executor not attached to app.state", {})
    return ex


def _snapshot(request: Request) -> Json:
    st = _executor(request).read_state()
    return st if isinstance(st, dict) else dict(st)


def _view(request: Request) -> LedgerView:
    return LedgerView.from_ledger(_snapshot(request))


def _int_param(v: Any, default: int) -> int:
    """Parse an int-ish query param safely."""
    if v is None:
        return int(default)
    try:
        s = str(v).strip()
        if s == "":
            return int(default)
        return int(s)
    except ValueError:
        return int(default)
