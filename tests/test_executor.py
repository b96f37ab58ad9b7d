from __future__ import annotations

from pathlib import Path

import pytest

from helpers import T0, Clock, env, event_types, make_executor
from refract.ledger.constants import DAY_SECONDS, REFRACTION_POOL_ACCOUNT
from refract.runtime.executor import ExecutorError, LedgerExecutor


def test_genesis_events_are_persisted(tmp_path: Path) -> None:
    ex = make_executor(tmp_path)
    assert event_types(ex.events()) == ["MINT"]
    assert ex.view().balance_of("alice") == 1000
    assert ex.view().time == T0


def test_submit_transfer_returns_receipt_and_persists(tmp_path: Path) -> None:
    clock = Clock(T0 + 10)
    ex = make_executor(tmp_path, clock)

    r = ex.submit_tx(env("TRANSFER", "alice", 1, {"to": "bob", "amount": 1000}))

    assert r["ok"] is True and r["status"] == "applied"
    assert r["time"] == T0 + 10
    assert r["result"]["fee"] == 50 and r["result"]["received"] == 950
    assert len(r["events"]) == 1

    again = LedgerExecutor(db_path=str(tmp_path / "refract.db"), chain_id="refract-test")
    v = again.view()
    assert v.balance_of("bob") == 950
    assert v.balance_of(REFRACTION_POOL_ACCOUNT) == 50
    assert v.get_nonce("alice") == 1
    assert event_types(again.events()) == ["MINT", "TRANSFER"]
    assert again.receipts(signer="alice")[0]["nonce"] == 1


def test_bad_nonce_is_not_admitted_and_changes_nothing(tmp_path: Path) -> None:
    ex = make_executor(tmp_path)
    before = ex.read_state()

    r = ex.submit_tx(env("TRANSFER", "alice", 2, {"to": "bob", "amount": 1}))

    assert r["status"] == "not_admitted"
    assert r["error"]["code"] == "bad_nonce"
    assert ex.read_state() == before
    assert ex.receipts() == []


def test_rejected_tx_consumes_nonce_and_records_receipt(tmp_path: Path) -> None:
    ex = make_executor(tmp_path)

    r = ex.submit_tx(env("TRANSFER", "alice", 1, {"to": "bob", "amount": 1001}))

    assert r["ok"] is False and r["status"] == "rejected"
    assert r["error"]["code"] == "insufficient_balance"
    assert ex.view().get_nonce("alice") == 1
    assert ex.view().balance_of("alice") == 1000
    assert ex.receipts(signer="alice")[0]["status"] == "rejected"


def test_chain_time_never_moves_backwards(tmp_path: Path) -> None:
    clock = Clock(T0 - 100)
    ex = make_executor(tmp_path, clock)
    r = ex.submit_tx(env("TRANSFER", "alice", 1, {"to": "bob", "amount": 1}))
    assert r["time"] == T0


def test_chain_id_mismatch_refuses_to_start(tmp_path: Path) -> None:
    make_executor(tmp_path)
    with pytest.raises(ExecutorError):
        LedgerExecutor(db_path=str(tmp_path / "refract.db"), chain_id="other-chain")


def test_bond_lifecycle_through_executor(tmp_path: Path) -> None:
    clock = Clock(T0)
    ex = make_executor(tmp_path, clock)

    dep = ex.submit_tx(env("BOND_DEPOSIT", "alice", 1, {"principal": 1000, "maturity_days": 360}, value=1000))
    assert dep["ok"], dep
    cert_id = dep["result"]["cert_id"]

    early = ex.submit_tx(env("BOND_WITHDRAW", "alice", 2, {"cert_id": cert_id}))
    assert early["error"]["code"] == "not_matured"

    clock.now = T0 + 360 * DAY_SECONDS
    done = ex.submit_tx(env("BOND_WITHDRAW", "alice", 3, {"cert_id": cert_id}))
    assert done["ok"] and done["result"]["payout"] == 150
    assert ex.view().balance_of("alice") == 1150
    assert ex.view().bond(cert_id)["withdrawn"] is True


def test_fee_distribution_through_executor(tmp_path: Path) -> None:
    ex = make_executor(tmp_path)
    ex.submit_tx(env("TRANSFER", "alice", 1, {"to": "bob", "amount": 1000}))

    denied = ex.submit_tx(env("REFRACTION_FEES_DISTRIBUTE", "bob", 1))
    assert denied["error"]["code"] == "unauthorized"

    r = ex.submit_tx(env("REFRACTION_FEES_DISTRIBUTE", "keeper", 1))
    assert r["ok"] and r["result"]["amount"] == 50
    assert ex.view().fee_pool == 0

    empty = ex.submit_tx(env("REFRACTION_FEES_DISTRIBUTE", "keeper", 2))
    assert empty["error"]["code"] == "no_fees_to_distribute"
