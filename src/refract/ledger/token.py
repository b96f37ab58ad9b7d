# src/refract/ledger/token.py
from __future__ import annotations

"""Fee-bearing token ledger.

Balances live on `state["accounts"][id]["balance"]`; supply counters, the fee
pool, the exemption set and allowances live under `state["token"]`.

Every mutation here keeps

    sum(balances) == total_minted - total_burned

at the end of each call. Callers never touch balances directly.
"""

from typing import Any, Dict, Tuple

from refract.ledger.constants import (
    DEFAULT_REFRACTION_FEE_PERCENT,
    MAX_REFRACTION_FEE_PERCENT,
    NULL_ACCOUNT,
    REFRACTION_POOL_ACCOUNT,
    RESERVED_ACCOUNTS,
    UINT256_MAX,
)
from refract.ledger.events import emit_event
from refract.ledger.numbers import as_integral
from refract.runtime.errors import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidAmount,
    InvalidParameter,
    ZeroAddress,
)

Json = Dict[str, Any]


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _check_amount(amount: Any) -> int:
    try:
        amt = as_integral(amount)
    except (TypeError, ValueError):
        raise InvalidAmount("bad_amount", {"amount": amount})
    if amt < 0 or amt > UINT256_MAX:
        raise InvalidAmount("amount_out_of_range", {"amount": amt})
    return amt


def ensure_token_root(state: Json) -> Json:
    tok = state.get("token")
    if not isinstance(tok, dict):
        tok = {}
        state["token"] = tok
    tok.setdefault("total_minted", 0)
    tok.setdefault("total_burned", 0)
    tok.setdefault("fee_pool", 0)
    tok.setdefault("refraction_fee_percent", DEFAULT_REFRACTION_FEE_PERCENT)
    if not isinstance(tok.get("fee_exempt"), dict):
        # ledger-internal accounts start exempt; admins may still toggle them
        tok["fee_exempt"] = {a: True for a in RESERVED_ACCOUNTS}
    if not isinstance(tok.get("allowances"), dict):
        tok["allowances"] = {}
    return tok


def ensure_account(state: Json, account_id: str) -> Json:
    accts = state.get("accounts")
    if not isinstance(accts, dict):
        accts = {}
        state["accounts"] = accts
    acct = accts.get(account_id)
    if not isinstance(acct, dict):
        acct = {"nonce": 0, "balance": 0}
        accts[account_id] = acct
    acct.setdefault("balance", 0)
    acct.setdefault("nonce", 0)
    return acct


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def balance_of(state: Json, account_id: str) -> int:
    acct = (state.get("accounts") or {}).get(account_id)
    if not isinstance(acct, dict):
        return 0
    return _as_int(acct.get("balance"), 0)


def total_supply(state: Json) -> int:
    tok = ensure_token_root(state)
    return _as_int(tok["total_minted"]) - _as_int(tok["total_burned"])


def fee_pool(state: Json) -> int:
    return _as_int(ensure_token_root(state)["fee_pool"])


def is_fee_exempt(state: Json, account_id: str) -> bool:
    return bool(ensure_token_root(state)["fee_exempt"].get(account_id, False))


def allowance(state: Json, owner: str, spender: str) -> int:
    per_owner = ensure_token_root(state)["allowances"].get(owner)
    if not isinstance(per_owner, dict):
        return 0
    return _as_int(per_owner.get(spender), 0)


def sum_balances(state: Json) -> int:
    accts = state.get("accounts")
    if not isinstance(accts, dict):
        return 0
    return sum(_as_int(a.get("balance"), 0) for a in accts.values() if isinstance(a, dict))


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def _move(state: Json, frm: str, to: str, amount: int) -> None:
    fa = ensure_account(state, frm)
    fb = _as_int(fa.get("balance"), 0)
    if fb < amount:
        raise InsufficientBalance("insufficient_funds", {"account": frm, "balance": fb, "amount": amount})
    fa["balance"] = fb - amount
    ta = ensure_account(state, to)
    ta["balance"] = _as_int(ta.get("balance"), 0) + amount


def _add_to_fee_pool(state: Json, fee: int) -> int:
    tok = ensure_token_root(state)
    pool = _as_int(tok["fee_pool"]) + int(fee)
    tok["fee_pool"] = min(pool, UINT256_MAX)
    return int(tok["fee_pool"])


def compute_refraction_fee(state: Json, frm: str, to: str, amount: int) -> int:
    if is_fee_exempt(state, frm) or is_fee_exempt(state, to):
        return 0
    pct = _as_int(ensure_token_root(state)["refraction_fee_percent"])
    return (int(amount) * pct) // 100


def transfer(state: Json, frm: str, to: str, amount: Any) -> Tuple[int, int]:
    """Move `amount` from `frm` to `to`, skimming the refraction fee.

    Returns (fee, received).
    """
    amt = _check_amount(amount)
    if frm == NULL_ACCOUNT:
        raise ZeroAddress("zero_sender", {"from": frm})
    if to == NULL_ACCOUNT:
        raise ZeroAddress("zero_recipient", {"to": to})

    bal = balance_of(state, frm)
    if bal < amt:
        raise InsufficientBalance("insufficient_funds", {"account": frm, "balance": bal, "amount": amt})

    fee = compute_refraction_fee(state, frm, to, amt)
    if fee > 0:
        _move(state, frm, REFRACTION_POOL_ACCOUNT, fee)
        _add_to_fee_pool(state, fee)
    received = amt - fee
    _move(state, frm, to, received)

    emit_event(state, "TRANSFER", **{"from": frm, "to": to, "amount": amt, "fee": fee, "received": received})
    return fee, received


def approve(state: Json, owner: str, spender: str, amount: Any) -> int:
    amt = _check_amount(amount)
    if owner == NULL_ACCOUNT or spender == NULL_ACCOUNT:
        raise ZeroAddress("zero_approval_party", {"owner": owner, "spender": spender})
    allowances = ensure_token_root(state)["allowances"]
    per_owner = allowances.get(owner)
    if not isinstance(per_owner, dict):
        per_owner = {}
        allowances[owner] = per_owner
    per_owner[spender] = amt
    emit_event(state, "APPROVAL", owner=owner, spender=spender, amount=amt)
    return amt


def transfer_from(state: Json, spender: str, owner: str, to: str, amount: Any) -> Tuple[int, int]:
    amt = _check_amount(amount)
    current = allowance(state, owner, spender)
    if current < amt:
        raise InsufficientAllowance(
            "insufficient_allowance",
            {"owner": owner, "spender": spender, "allowance": current, "amount": amt},
        )
    fee, received = transfer(state, owner, to, amt)
    ensure_token_root(state)["allowances"][owner][spender] = current - amt
    return fee, received


def mint(state: Json, to: str, amount: Any) -> int:
    amt = _check_amount(amount)
    if to == NULL_ACCOUNT:
        raise ZeroAddress("mint_to_zero_address", {"to": to})
    tok = ensure_token_root(state)
    acct = ensure_account(state, to)
    acct["balance"] = _as_int(acct.get("balance"), 0) + amt
    tok["total_minted"] = _as_int(tok["total_minted"]) + amt
    emit_event(state, "MINT", to=to, amount=amt)
    return amt


def burn(state: Json, frm: str, amount: Any) -> int:
    amt = _check_amount(amount)
    if frm == NULL_ACCOUNT:
        raise ZeroAddress("burn_from_zero_address", {"from": frm})
    bal = balance_of(state, frm)
    if bal < amt:
        raise InsufficientBalance("insufficient_funds", {"account": frm, "balance": bal, "amount": amt})
    tok = ensure_token_root(state)
    ensure_account(state, frm)["balance"] = bal - amt
    tok["total_burned"] = _as_int(tok["total_burned"]) + amt
    emit_event(state, "BURN", **{"from": frm, "amount": amt})
    return amt


def set_refraction_fee_percent(state: Json, percent: Any) -> Tuple[int, int]:
    try:
        pct = as_integral(percent)
    except (TypeError, ValueError):
        raise InvalidParameter("bad_fee_percent", {"percent": percent})
    if pct <= 0:
        raise InvalidParameter("fee_percent_zero", {"percent": pct})
    if pct > MAX_REFRACTION_FEE_PERCENT:
        raise InvalidParameter("fee_percent_too_high", {"percent": pct, "max": MAX_REFRACTION_FEE_PERCENT})

    tok = ensure_token_root(state)
    old = _as_int(tok["refraction_fee_percent"])
    tok["refraction_fee_percent"] = pct
    emit_event(state, "REFRACTION_FEE_PERCENT_SET", old=old, new=pct)
    return old, pct


def set_fee_exempt(state: Json, account_id: str, exempt: bool) -> bool:
    if account_id == NULL_ACCOUNT:
        raise ZeroAddress("exempt_zero_address", {"account": account_id})
    tbl = ensure_token_root(state)["fee_exempt"]
    if exempt:
        tbl[account_id] = True
    else:
        tbl.pop(account_id, None)
    emit_event(state, "FEE_EXEMPTION_SET", account=account_id, exempt=bool(exempt))
    return bool(exempt)


def drain_fee_pool(state: Json) -> int:
    """Read and zero the fee pool. Only the epoch distributor calls this."""
    tok = ensure_token_root(state)
    amount = _as_int(tok["fee_pool"])
    tok["fee_pool"] = 0
    return amount


__all__ = [
    "allowance",
    "approve",
    "balance_of",
    "burn",
    "compute_refraction_fee",
    "drain_fee_pool",
    "ensure_account",
    "ensure_token_root",
    "fee_pool",
    "is_fee_exempt",
    "mint",
    "set_fee_exempt",
    "set_refraction_fee_percent",
    "sum_balances",
    "total_supply",
    "transfer",
    "transfer_from",
]
