#!/usr/bin/env python3

"""Production-ish smoke test for the refract ledger.

It verifies:
  - executor boots on a fresh SQLite db from a YAML genesis
  - FastAPI app boots and serves /v1/health
  - a transfer skims the refraction fee and the distributor drains it

Usage:
  python3 scripts/prod_smoke.py
"""

from __future__ import annotations

import os
import tempfile

import yaml
from fastapi.testclient import TestClient

from refract.api.app import create_app


def _genesis() -> dict:
    return {
        "chain_id": "smoke-chain",
        "genesis_time": 1_700_000_000,
        "balances": {"alice": 1000},
        "roles": {"distributor": ["keeper"]},
    }


def _submit(client: TestClient, tx_type: str, signer: str, nonce: int, payload: dict) -> dict:
    r = client.post("/v1/tx/submit", json={"tx_type": tx_type, "signer": signer, "nonce": nonce, "payload": payload})
    r.raise_for_status()
    body = r.json()
    if not body.get("ok"):
        raise RuntimeError(f"{tx_type} rejected: {body}")
    return body["receipt"]


def main() -> int:
    # Fresh isolated db
    with tempfile.TemporaryDirectory(prefix="refract-smoke-") as td:
        genesis_path = os.path.join(td, "genesis.yaml")
        with open(genesis_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(_genesis(), f)

        os.environ["REFRACT_DB_PATH"] = os.path.join(td, "refract.db")
        os.environ["REFRACT_GENESIS_PATH"] = genesis_path
        os.environ["REFRACT_CHAIN_ID"] = "smoke-chain"
        os.environ.setdefault("REFRACT_MODE", "dev")

        with TestClient(create_app(boot_runtime=True)) as client:
            health = client.get("/v1/health").json()
            if not health.get("ready"):
                raise RuntimeError(f"executor not ready: {health}")

            receipt = _submit(client, "TRANSFER", "alice", 1, {"to": "bob", "amount": 1000})
            fee = int(receipt["result"]["fee"])

            dist = _submit(client, "REFRACTION_FEES_DISTRIBUTE", "keeper", 1, {})
            if int(dist["result"]["amount"]) != fee:
                raise RuntimeError(f"distributed {dist['result']['amount']} != fee {fee}")

            token = client.get("/v1/token").json()
            if int(token["fee_pool"]) != 0:
                raise RuntimeError(f"fee pool not drained: {token}")

    print("OK: refract smoke passed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
