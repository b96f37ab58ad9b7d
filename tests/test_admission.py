from __future__ import annotations

from refract.ledger.constants import VESTING_POOL_ACCOUNT
from refract.runtime.tx_admission import admit_tx


def _env(**kw) -> dict:
    base = {"tx_type": "TRANSFER", "signer": "alice", "nonce": 1, "payload": {"to": "bob", "amount": 1}}
    base.update(kw)
    return base


def test_first_tx_needs_nonce_one() -> None:
    ok, rej = admit_tx({}, _env())
    assert ok and rej is None

    ok, rej = admit_tx({}, _env(nonce=2))
    assert not ok
    assert rej.code == "bad_nonce"
    assert rej.details == {"expected": 1, "got": 2}


def test_nonce_follows_account_state() -> None:
    st = {"accounts": {"alice": {"nonce": 4, "balance": 0}}}
    assert admit_tx(st, _env(nonce=5)).ok
    assert not admit_tx(st, _env(nonce=4)).ok


def test_rejects_unknown_type_missing_signer_and_reserved_signer() -> None:
    assert admit_tx({}, _env(tx_type="NOPE")).code == "tx_unimplemented"
    assert admit_tx({}, _env(signer="")).reason == "missing_signer"
    assert admit_tx({}, _env(signer=VESTING_POOL_ACCOUNT)).code == "forbidden"
    assert admit_tx({}, _env(value=-1)).reason == "negative_value"


def test_admission_does_not_mutate_state() -> None:
    st: dict = {}
    admit_tx(st, _env())
    assert st == {}


def test_fractional_nonce_or_value_is_malformed() -> None:
    for kw in ({"value": 1.5}, {"nonce": 1.5}, {"value": "0.1"}):
        verdict = admit_tx({}, _env(**kw))
        assert not verdict.ok
        assert (verdict.code, verdict.reason) == ("invalid_tx", "malformed_envelope")


def test_whole_number_float_nonce_is_admitted() -> None:
    assert admit_tx({}, _env(nonce=1.0)).ok
