# src/refract/ledger/vesting.py
from __future__ import annotations

"""Annual supply expansion with three-tranche vesting per yearly cohort.

Years are fixed 31,536,000-second epochs counted from unix time 0, so the
year index of a timestamp is simply `now // YEAR_SECONDS` and a cohort
starts at `year_index * YEAR_SECONDS`.

Claims only inspect two cohorts: the one at `last_year_index` and the one
for the current year. A cohort that falls strictly between them (claims
skipped for more than a year) is not revisited and its tokens stay in the
vesting pool.
"""

from typing import Any, Dict, List, Tuple

from refract.ledger.constants import (
    BPS_DENOMINATOR,
    DAY_SECONDS,
    FIFTEEN_MONTH_DAYS,
    MINT_FEE_DECAY_BPS,
    MINT_FEE_FLOOR_BPS,
    MINT_WAIT_SECONDS,
    NINE_MONTH_DAYS,
    STARTING_MINT_FEE_BPS,
    TWELVE_MONTH_DAYS,
    VESTING_POOL_ACCOUNT,
    YEAR_SECONDS,
)
from refract.ledger.events import emit_event
from refract.ledger import token
from refract.runtime.errors import WaitingTimeNotCompleted

Json = Dict[str, Any]

# (flag, days after cohort start). The last tranche takes the remainder.
TRANCHES: Tuple[Tuple[str, int], ...] = (
    ("nine_month_released", NINE_MONTH_DAYS),
    ("twelve_month_released", TWELVE_MONTH_DAYS),
    ("fifteen_month_released", FIFTEEN_MONTH_DAYS),
)


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _now(state: Json) -> int:
    return _as_int(state.get("time"), 0)


def year_index(now_s: int) -> int:
    return int(now_s) // YEAR_SECONDS


def ensure_vesting_root(state: Json) -> Json:
    v = state.get("vesting")
    if not isinstance(v, dict):
        v = {}
        state["vesting"] = v
    v.setdefault("last_year_index", 0)
    v.setdefault("current_mint_fee_bps", STARTING_MINT_FEE_BPS)
    if not isinstance(v.get("cohorts"), dict):
        v["cohorts"] = {}
    return v


def get_cohort(state: Json, year: int) -> Json | None:
    c = ensure_vesting_root(state)["cohorts"].get(str(int(year)))
    return c if isinstance(c, dict) else None


def next_mint_fee_bps(current_bps: int) -> int:
    if current_bps <= MINT_FEE_FLOOR_BPS:
        return current_bps
    return max(current_bps - MINT_FEE_DECAY_BPS, MINT_FEE_FLOOR_BPS)


def tranche_amount(total: int, flag: str) -> int:
    third = int(total) // 3
    if flag == "fifteen_month_released":
        return int(total) - 2 * third
    return third


def mint_and_vest(state: Json) -> Json:
    v = ensure_vesting_root(state)
    now = _now(state)
    last = _as_int(v["last_year_index"])

    ready_at = last * YEAR_SECONDS + MINT_WAIT_SECONDS
    if now < ready_at:
        raise WaitingTimeNotCompleted("mint_waiting_period", {"now": now, "ready_at": ready_at})

    year = year_index(now)
    if get_cohort(state, year) is not None:
        raise WaitingTimeNotCompleted(
            "cohort_already_minted",
            {"year_index": year, "ready_at": (year + 1) * YEAR_SECONDS},
        )

    bps = _as_int(v["current_mint_fee_bps"], STARTING_MINT_FEE_BPS)
    amount = (token.total_supply(state) * bps) // BPS_DENOMINATOR

    v["cohorts"][str(year)] = {
        "total_amount": amount,
        "nine_month_released": False,
        "twelve_month_released": False,
        "fifteen_month_released": False,
    }
    token.mint(state, VESTING_POOL_ACCOUNT, amount)

    v["current_mint_fee_bps"] = next_mint_fee_bps(bps)
    if last == 0:
        v["last_year_index"] = year

    emit_event(
        state,
        "MINTED_AND_VESTED",
        year_index=year,
        amount=amount,
        mint_fee_bps=bps,
        next_mint_fee_bps=v["current_mint_fee_bps"],
    )
    return {"year_index": year, "amount": amount, "mint_fee_bps": bps}


def releasable(state: Json, cohort_year: int, now_s: int) -> List[Tuple[str, int]]:
    """Tranches of one cohort that are unlocked and not yet released."""
    cohort = get_cohort(state, cohort_year)
    if cohort is None:
        return []
    start = int(cohort_year) * YEAR_SECONDS
    total = _as_int(cohort.get("total_amount"))
    out: List[Tuple[str, int]] = []
    for flag, days in TRANCHES:
        if bool(cohort.get(flag, False)):
            continue
        if now_s >= start + days * DAY_SECONDS:
            out.append((flag, tranche_amount(total, flag)))
    return out


def claim_vested(state: Json, caller: str) -> Json:
    v = ensure_vesting_root(state)
    now = _now(state)
    last = _as_int(v["last_year_index"])
    current = year_index(now)

    years = [last] if current == last else [last, current]

    total = 0
    releases: List[Json] = []
    for y in years:
        cohort = get_cohort(state, y)
        for flag, amount in releasable(state, y, now):
            cohort[flag] = True  # type: ignore[index]
            total += amount
            releases.append({"year_index": y, "tranche": flag, "amount": amount})

    if current != last:
        v["last_year_index"] = current

    if total > 0:
        token.transfer(state, VESTING_POOL_ACCOUNT, caller, total)

    emit_event(state, "VESTED_CLAIMED", caller=caller, amount=total, releases=releases)
    return {"amount": total, "releases": releases, "last_year_index": v["last_year_index"]}


__all__ = [
    "TRANCHES",
    "claim_vested",
    "ensure_vesting_root",
    "get_cohort",
    "mint_and_vest",
    "next_mint_fee_bps",
    "releasable",
    "tranche_amount",
    "year_index",
]
