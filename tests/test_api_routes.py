from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from helpers import env, make_executor


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    from refract.api import app as api_app

    ex = make_executor(tmp_path)
    monkeypatch.setattr(api_app, "build_executor", lambda: ex)
    with TestClient(api_app.create_app(boot_runtime=True)) as c:
        yield c


def _submit(client: TestClient, tx_type: str, signer: str, nonce: int, payload: dict | None = None, value: int = 0):
    return client.post("/v1/tx/submit", json=env(tx_type, signer, nonce, payload, value))


def test_health_reports_chain(client: TestClient) -> None:
    body = client.get("/v1/health").json()
    assert body["ready"] is True
    assert body["chain_id"] == "refract-test"


def test_transfer_round_trip(client: TestClient) -> None:
    r = _submit(client, "TRANSFER", "alice", 1, {"to": "bob", "amount": 1000})
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.json()["receipt"]["result"]["fee"] == 50

    bob = client.get("/v1/accounts/bob").json()
    assert bob["balance"] == 950
    assert bob["exists"] is True

    tok = client.get("/v1/token").json()
    assert tok["fee_pool"] == 50
    assert tok["total_supply"] == 1000
    assert tok["refraction_fee_percent"] == 5

    events = client.get("/v1/events", params={"event_type": "transfer"}).json()
    assert [e["type"] for e in events["events"]] == ["TRANSFER"]

    receipts = client.get("/v1/tx/receipts", params={"signer": "alice"}).json()["receipts"]
    assert receipts[0]["status"] == "applied"


def test_rejected_tx_returns_receipt_with_error(client: TestClient) -> None:
    r = _submit(client, "TRANSFER", "alice", 1, {"to": "bob", "amount": 5000})
    assert r.status_code == 200
    assert r.json()["ok"] is False
    assert r.json()["receipt"]["error"]["code"] == "insufficient_balance"


def test_bad_nonce_is_400(client: TestClient) -> None:
    r = _submit(client, "TRANSFER", "alice", 7, {"to": "bob", "amount": 1})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_nonce"


def test_reserved_signer_is_403(client: TestClient) -> None:
    r = _submit(client, "TRANSFER", "REFRACTION_POOL", 1, {"to": "bob", "amount": 1})
    assert r.status_code == 403


def test_unknown_body_fields_are_422(client: TestClient) -> None:
    body = env("TRANSFER", "alice", 1, {"to": "bob", "amount": 1})
    body["sig"] = "deadbeef"
    assert client.post("/v1/tx/submit", json=body).status_code == 422


def test_bond_routes(client: TestClient) -> None:
    quote = client.get("/v1/bonds/quote/15", params={"principal": 1000}).json()
    assert quote["refraction_index"] == "11.5"
    assert quote["interest_rate"] == 6
    assert quote["yield"] == 60

    assert client.get("/v1/bonds/quote/5").status_code == 400
    assert client.get("/v1/bonds/1").status_code == 404

    r = _submit(client, "BOND_DEPOSIT", "alice", 1, {"principal": 1000, "maturity_days": 360}, value=1000)
    assert r.json()["ok"] is True

    bond = client.get("/v1/bonds/1").json()
    assert bond["bond"]["refraction_index"] == "46"
    assert bond["bond"]["principal"] == 1000
    assert bond["matures_at"] == bond["bond"]["start_time"] + 360 * 86_400


def test_vesting_routes(client: TestClient) -> None:
    body = client.get("/v1/vesting").json()
    assert body["current_mint_fee_bps"] == 500
    assert body["cohort_years"] == []
    assert client.get("/v1/vesting/cohorts/3").status_code == 404


def test_state_snapshot(client: TestClient) -> None:
    body = client.get("/v1/state/snapshot").json()
    assert body["ok"] is True
    assert body["state"]["params"]["chain_id"] == "refract-test"
