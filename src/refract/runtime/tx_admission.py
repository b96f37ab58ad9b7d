from __future__ import annotations

from typing import Any, Dict

from refract.ledger.constants import NULL_ACCOUNT, RESERVED_ACCOUNTS
from refract.runtime.supported_txs import SUPPORTED_TX_TYPES
from refract.runtime.tx_admission_types import TxEnvelope, TxVerdict

Json = Dict[str, Any]


def _expected_nonce(state: Json, signer: str) -> int:
    acct = (state.get("accounts") or {}).get(signer)
    if not isinstance(acct, dict):
        return 1
    try:
        return int(acct.get("nonce", 0)) + 1
    except Exception:
        return 1


def admit_tx(state: Json, env: Any) -> TxVerdict:
    """Stateless shape checks plus the signer nonce rule.

    Admission never mutates state. A tx that passes admission may still be
    rejected by apply; its nonce is consumed either way.
    """
    try:
        e = TxEnvelope.from_json(env)
    except (TypeError, ValueError) as exc:
        return TxVerdict.reject("invalid_tx", "malformed_envelope", {"error": str(exc)})

    t = e.tx_type.strip().upper()
    if not t:
        return TxVerdict.reject("invalid_tx", "missing_tx_type", {})
    if t not in SUPPORTED_TX_TYPES:
        return TxVerdict.reject("tx_unimplemented", "tx_type_not_supported", {"tx_type": t})

    signer = e.signer.strip()
    if signer == NULL_ACCOUNT:
        return TxVerdict.reject("invalid_tx", "missing_signer", {"tx_type": t})
    if signer in RESERVED_ACCOUNTS:
        return TxVerdict.reject("forbidden", "reserved_signer", {"signer": signer})

    if e.value < 0:
        return TxVerdict.reject("invalid_tx", "negative_value", {"value": e.value})

    expected = _expected_nonce(state, signer)
    if int(e.nonce) != expected:
        return TxVerdict.reject("bad_nonce", "nonce_mismatch", {"expected": expected, "got": int(e.nonce)})

    return TxVerdict.admit()


__all__ = ["admit_tx"]
