from __future__ import annotations

from fastapi import APIRouter, Request

from refract.api.errors import ApiError
from refract.api.routes_public_parts.common import _snapshot
from refract.ledger.constants import MINT_WAIT_SECONDS, YEAR_SECONDS
from refract.ledger.state import LedgerView
from refract.ledger.vesting import releasable, year_index

router = APIRouter()


@router.get("/vesting")
def v1_vesting(request: Request):
    ledger = LedgerView.from_ledger(_snapshot(request))
    return {
        "ok": True,
        "time": ledger.time,
        "current_year_index": year_index(ledger.time),
        "last_year_index": ledger.last_year_index,
        "current_mint_fee_bps": ledger.current_mint_fee_bps,
        "next_mint_at": ledger.last_year_index * YEAR_SECONDS + MINT_WAIT_SECONDS,
        "vesting_pool_balance": ledger.vesting_pool_balance,
        "cohort_years": ledger.cohort_years(),
    }


@router.get("/vesting/cohorts/{year}")
def v1_vesting_cohort(year: int, request: Request):
    st = _snapshot(request)
    ledger = LedgerView.from_ledger(st)
    cohort = ledger.cohort(year)
    if cohort is None:
        raise ApiError.not_found("cohort_not_found", "no cohort minted for year", {"year_index": year})
    return {
        "ok": True,
        "year_index": year,
        "cohort": cohort,
        "claimable_now": [{"tranche": f, "amount": a} for f, a in releasable(st, year, ledger.time)],
    }
