# tests/test_apply_dispatch.py
from __future__ import annotations

import copy

import pytest

from refract.ledger import token
from refract.runtime import domain_dispatch
from refract.runtime.context import ApplyContext, PermissionTable
from refract.runtime.domain_apply import ApplyError, apply_tx, apply_tx_atomic
from refract.runtime.state_invariants import InvariantViolation, check_supply_invariant


def _env(tx_type: str, payload: dict, *, signer: str = "alice", nonce: int = 1, value: int = 0) -> dict:
    return {"tx_type": tx_type, "signer": signer, "nonce": nonce, "payload": payload, "value": value}


def _ctx(**roles) -> ApplyContext:
    return ApplyContext(permissions=PermissionTable.from_json(roles))


def test_unknown_tx_type_fails_closed() -> None:
    with pytest.raises(ApplyError) as e:
        apply_tx({}, _env("NOT_A_TX", {}))
    assert e.value.code == "tx_unimplemented"
    assert e.value.reason == "tx_type_not_implemented"


def test_value_rejected_on_non_payable_tx() -> None:
    with pytest.raises(ApplyError) as e:
        apply_tx({}, _env("TRANSFER", {"to": "bob", "amount": 1}, value=5))
    assert (e.value.code, e.value.reason) == ("invalid_tx", "value_not_accepted")


def test_mint_requires_minter_capability() -> None:
    st: dict = {}
    with pytest.raises(ApplyError) as e:
        apply_tx(st, _env("MINT", {"to": "bob", "amount": 10}), _ctx())
    assert e.value.code == "unauthorized"

    out = apply_tx(st, _env("MINT", {"to": "bob", "amount": 10}), _ctx(minter=["alice"]))
    assert out == {"applied": "MINT", "to": "bob", "amount": 10}


def test_admin_toggles_exemption_through_dispatch() -> None:
    st: dict = {}
    ctx = _ctx(admin=["ops"])
    apply_tx(st, _env("FEE_EXEMPTION_SET", {"account": "bob", "exempt": True}, signer="ops"), ctx)
    assert token.is_fee_exempt(st, "bob")

    with pytest.raises(ApplyError) as e:
        apply_tx(st, _env("REFRACTION_FEE_PERCENT_SET", {"percent": 0}, signer="ops"), ctx)
    assert e.value.code == "invalid_parameter"


@pytest.mark.parametrize(
    "payload",
    [{"account": "bob"}, {"account": "bob", "exempt": None}, {"account": "bob", "exempt": "maybe"}],
)
def test_exemption_flag_must_be_explicit(payload: dict) -> None:
    st: dict = {}
    with pytest.raises(ApplyError) as e:
        apply_tx(st, _env("FEE_EXEMPTION_SET", payload, signer="ops"), _ctx(admin=["ops"]))
    assert e.value.code == "invalid_parameter"
    assert not token.is_fee_exempt(st, "bob")


def test_exemption_flag_accepts_string_forms() -> None:
    st: dict = {}
    ctx = _ctx(admin=["ops"])
    apply_tx(st, _env("FEE_EXEMPTION_SET", {"account": "bob", "exempt": "yes"}, signer="ops"), ctx)
    assert token.is_fee_exempt(st, "bob")
    apply_tx(st, _env("FEE_EXEMPTION_SET", {"account": "bob", "exempt": "false"}, signer="ops"), ctx)
    assert not token.is_fee_exempt(st, "bob")


def test_fractional_transfer_amount_is_rejected_without_moving_funds() -> None:
    st: dict = {}
    token.mint(st, "alice", 100)
    before = copy.deepcopy(st)

    with pytest.raises(ApplyError) as e:
        apply_tx_atomic(st, _env("TRANSFER", {"to": "bob", "amount": 19.9}))

    assert (e.value.code, e.value.reason) == ("invalid_parameter", "bad_amount")
    assert st == before


def test_fractional_cert_id_is_rejected() -> None:
    with pytest.raises(ApplyError) as e:
        apply_tx({}, _env("BOND_WITHDRAW", {"cert_id": 1.5}))
    assert (e.value.code, e.value.reason) == ("invalid_parameter", "bad_cert_id")


def test_vesting_and_distributor_txs_are_gated() -> None:
    for tx_type in ("MINT_AND_VEST", "CLAIM_VESTED", "REFRACTION_FEES_DISTRIBUTE"):
        with pytest.raises(ApplyError) as e:
            apply_tx({}, _env(tx_type, {}), _ctx())
        assert e.value.code == "unauthorized"


def test_atomic_apply_leaves_state_untouched_on_failure() -> None:
    st: dict = {}
    token.mint(st, "alice", 100)
    before = copy.deepcopy(st)

    with pytest.raises(ApplyError):
        apply_tx_atomic(st, _env("TRANSFER", {"to": "bob", "amount": 101}))

    assert st == before


def test_atomic_apply_consumes_nonce_on_failure_only_when_asked() -> None:
    st: dict = {}
    token.mint(st, "alice", 100)

    with pytest.raises(ApplyError):
        apply_tx_atomic(st, _env("TRANSFER", {"to": "bob", "amount": 101}, nonce=1), consume_nonce=True)
    assert st["accounts"]["alice"]["nonce"] == 1
    assert st["accounts"]["alice"]["balance"] == 100

    apply_tx_atomic(st, _env("TRANSFER", {"to": "bob", "amount": 100}, nonce=2), consume_nonce=True)
    assert st["accounts"]["alice"]["nonce"] == 2
    assert st["accounts"]["bob"]["balance"] == 95


def test_non_apply_errors_are_rewrapped(monkeypatch: pytest.MonkeyPatch) -> None:
    def _boom(state, env, ctx):
        raise KeyError("missing")

    monkeypatch.setattr(domain_dispatch, "_APPLIERS", (_boom,))
    with pytest.raises(ApplyError) as e:
        apply_tx({}, _env("TRANSFER", {}))
    assert e.value.code == "domain_error"
    assert e.value.reason == "KeyError"


def test_supply_invariant_detects_tampering() -> None:
    st: dict = {}
    token.mint(st, "alice", 100)
    check_supply_invariant(st)

    st["accounts"]["alice"]["balance"] = 101
    with pytest.raises(InvariantViolation):
        check_supply_invariant(st)
