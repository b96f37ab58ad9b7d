from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

from refract.runtime.executor import LedgerExecutor
from refract.runtime.genesis_config import parse_genesis

T0 = 1_700_000_000

GENESIS: Dict[str, Any] = {
    "chain_id": "refract-test",
    "genesis_time": T0,
    "balances": {"alice": 1000},
    "assets": {"native": {"alice": 5000}},
    "roles": {"admin": ["ops"], "vesting_manager": ["mgr"], "distributor": ["keeper"], "minter": ["ops"]},
}


class Clock:
    """Settable wall clock for executors under test."""

    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


def make_executor(tmp_path: Path, clock: Clock | None = None, **genesis_overrides: Any) -> LedgerExecutor:
    doc = dict(GENESIS)
    doc.update(genesis_overrides)
    return LedgerExecutor(
        db_path=str(tmp_path / "refract.db"),
        chain_id=str(doc["chain_id"]),
        genesis=parse_genesis(doc),
        clock=clock or Clock(),
    )


def env(tx_type: str, signer: str, nonce: int, payload: Dict[str, Any] | None = None, value: int = 0) -> Dict[str, Any]:
    return {"tx_type": tx_type, "signer": signer, "nonce": nonce, "payload": payload or {}, "value": value}


def event_types(events: List[Dict[str, Any]]) -> List[str]:
    return [str(e["type"]) for e in events]
