from __future__ import annotations

from typing import Any, Callable, Dict

from refract.ledger.constants import (
    DEFAULT_REFRACTION_FEE_PERCENT,
    RESERVED_ACCOUNTS,
    STARTING_MINT_FEE_BPS,
)

Json = Dict[str, Any]

# Increment this when you add a new migration step.
CURRENT_STATE_VERSION = 1


def _as_int(v: Any, default: int = 0) -> int:
    try:
        if isinstance(v, bool):
            return default
        return int(v)
    except Exception:
        return default


def _ensure_dict(root: Json, key: str) -> Json:
    v = root.get(key)
    if not isinstance(v, dict):
        v = {}
        root[key] = v
    return v


def _ensure_list(root: Json, key: str) -> list:
    v = root.get(key)
    if not isinstance(v, list):
        v = []
        root[key] = v
    return v


def _ensure_int(root: Json, key: str, default: int = 0) -> int:
    if key not in root:
        root[key] = int(default)
        return int(default)
    x = _as_int(root.get(key), default)
    root[key] = int(x)
    return int(x)


def _migrate_v0_to_v1(st: Json) -> Json:
    """
    v0 -> v1: introduce explicit state_version and the four ledger roots.

    v0 characteristics:
      - no 'state_version'
      - may have missing roots or wrong shapes
    """
    _ensure_int(st, "time", 0)
    _ensure_dict(st, "params")

    accounts = _ensure_dict(st, "accounts")
    for aid, acct in list(accounts.items()):
        if not isinstance(acct, dict):
            accounts[aid] = {}
            acct = accounts[aid]
        _ensure_int(acct, "nonce", 0)
        _ensure_int(acct, "balance", 0)

    token = _ensure_dict(st, "token")
    _ensure_int(token, "total_minted", 0)
    _ensure_int(token, "total_burned", 0)
    _ensure_int(token, "fee_pool", 0)
    _ensure_int(token, "refraction_fee_percent", DEFAULT_REFRACTION_FEE_PERCENT)
    if not isinstance(token.get("fee_exempt"), dict):
        token["fee_exempt"] = {a: True for a in RESERVED_ACCOUNTS}
    _ensure_dict(token, "allowances")

    vesting = _ensure_dict(st, "vesting")
    _ensure_int(vesting, "last_year_index", 0)
    _ensure_int(vesting, "current_mint_fee_bps", STARTING_MINT_FEE_BPS)
    _ensure_dict(vesting, "cohorts")

    bonds = _ensure_dict(st, "bonds")
    _ensure_dict(bonds, "by_id")
    _ensure_dict(bonds, "custody")

    dist = _ensure_dict(st, "distributor")
    _ensure_int(dist, "last_epoch_time", 0)
    _ensure_int(dist, "epochs", 0)
    _ensure_int(dist, "total_distributed", 0)

    _ensure_list(st, "events")

    st["state_version"] = 1
    return st


_MIGRATIONS: Dict[int, Callable[[Json], Json]] = {
    0: _migrate_v0_to_v1,
}


def migrate_state_dict(raw: Any) -> Json:
    """
    Upgrade a raw persisted JSON dict to CURRENT_STATE_VERSION.

    - Best-effort: never raises for simple shape issues; it normalizes.
    - If raw isn't a dict, returns an empty vCURRENT state skeleton.
    """
    st: Json = raw if isinstance(raw, dict) else {}

    v = _as_int(st.get("state_version"), 0)
    if v > CURRENT_STATE_VERSION:
        # Future state created by a newer binary; refuse to downgrade silently.
        raise ValueError(
            f"Ledger state version {v} is newer than this binary supports (max {CURRENT_STATE_VERSION})."
        )

    while v < CURRENT_STATE_VERSION:
        step = _MIGRATIONS.get(v)
        if step is None:
            raise ValueError(f"No migration path from state_version={v} to {CURRENT_STATE_VERSION}.")
        st = step(st)
        v = _as_int(st.get("state_version"), v + 1)

    st["state_version"] = CURRENT_STATE_VERSION
    return st


__all__ = ["CURRENT_STATE_VERSION", "migrate_state_dict"]
