from __future__ import annotations

import copy
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from refract.ledger.events import drain_events
from refract.ledger.migrations import migrate_state_dict
from refract.ledger.state import LedgerView
from refract.runtime.collaborators import (
    AssetTransferProvider,
    CertificateIssuer,
    RewardIndexSink,
    ShareIndexRewardSink,
    StateAssetProvider,
    StateCertificateIssuer,
)
from refract.runtime.context import ApplyContext
from refract.runtime.domain_apply import apply_tx_atomic
from refract.runtime.errors import ApplyError
from refract.runtime.genesis_config import (
    GenesisConfig,
    apply_genesis_config_to_ledger_state,
    permissions_from_state,
)
from refract.runtime.sqlite_db import SqliteDB, SqliteLedgerStore
from refract.runtime.state_invariants import InvariantViolation
from refract.runtime.tx_admission import admit_tx
from refract.runtime.tx_admission_types import TxEnvelope
from refract.structured_logging import log_event

Json = Dict[str, Any]

log = logging.getLogger("refract.executor")


def _wall_clock_s() -> int:
    return int(time.time())


class ExecutorError(RuntimeError):
    pass


class LedgerExecutor:
    """Serialized ledger executor backed by SQLite.

    Every submission is admitted, stamped with chain time, applied atomically
    and persisted together with its events and receipt, all under one lock.
    """

    def __init__(
        self,
        *,
        db_path: str,
        chain_id: str,
        genesis: Optional[GenesisConfig] = None,
        assets: Optional[AssetTransferProvider] = None,
        certificates: Optional[CertificateIssuer] = None,
        reward_sink: Optional[RewardIndexSink] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.chain_id = str(chain_id)
        self.db_path = str(db_path)
        self._clock = clock or _wall_clock_s
        self._lock = threading.Lock()

        self._db = SqliteDB(path=self.db_path)
        self._store = SqliteLedgerStore(db=self._db)

        if self._store.exists():
            self.state = migrate_state_dict(self._store.read())
            st_chain_id = str((self.state.get("params") or {}).get("chain_id") or "").strip()
            if st_chain_id and st_chain_id != self.chain_id:
                raise ExecutorError(
                    f"chain_id mismatch: db={st_chain_id!r} executor={self.chain_id!r}. Refuse to start."
                )
        else:
            self.state = self._initial_state(genesis)

        self.ctx = ApplyContext(
            permissions=permissions_from_state(self.state),
            assets=assets or StateAssetProvider(),
            certificates=certificates or StateCertificateIssuer(),
            reward_sink=reward_sink or ShareIndexRewardSink(),
        )

    def _initial_state(self, genesis: Optional[GenesisConfig]) -> Json:
        st = migrate_state_dict({})
        st["params"]["chain_id"] = self.chain_id
        if genesis is not None:
            if genesis.chain_id and genesis.chain_id != self.chain_id:
                raise ExecutorError(
                    f"genesis chain_id {genesis.chain_id!r} does not match executor chain_id {self.chain_id!r}"
                )
            apply_genesis_config_to_ledger_state(st, genesis)
        events = drain_events(st)
        self._store.commit(st, events=events)
        log_event(log, "genesis_applied", chain_id=self.chain_id, events=len(events), genesis=genesis is not None)
        return st

    # ---- Reads ----

    def read_state(self) -> Json:
        with self._lock:
            return copy.deepcopy(self.state)

    def view(self) -> LedgerView:
        return LedgerView.from_ledger(self.read_state())

    def events(self, *, after_seq: int = 0, limit: int = 100, event_type: str = "") -> List[Json]:
        return self._store.read_events(after_seq=after_seq, limit=limit, event_type=event_type)

    def receipts(self, *, signer: str = "", limit: int = 100) -> List[Json]:
        return self._store.read_receipts(signer=signer, limit=limit)

    # ---- Writes ----

    def submit_tx(self, env: Any, *, now_s: Optional[int] = None) -> Json:
        """Admit, apply and persist one tx. Returns its receipt.

        Admission failures are returned without touching state. Apply failures
        consume the signer nonce and are persisted as rejected receipts.
        """
        with self._lock:
            verdict = admit_tx(self.state, env)
            if not verdict.ok:
                log_event(log, "tx_not_admitted", code=verdict.code, reason=verdict.reason, details=verdict.details)
                return {
                    "ok": False,
                    "status": "not_admitted",
                    "error": {"code": verdict.code, "reason": verdict.reason, "details": verdict.details},
                }

            e = TxEnvelope.from_json(env)
            # Chain time never moves backwards.
            now = max(int(self.state.get("time", 0) or 0), int(self._clock() if now_s is None else now_s))
            self.state["time"] = now

            receipt: Json = {
                "tx_type": e.tx_type.strip().upper(),
                "signer": e.signer,
                "nonce": int(e.nonce),
                "time": now,
            }
            try:
                meta = apply_tx_atomic(self.state, e, self.ctx, consume_nonce=True)
                receipt.update({"ok": True, "status": "applied", "result": meta})
            except ApplyError as err:
                receipt.update({"ok": False, "status": "rejected", "error": err.to_json()})
            except InvariantViolation as err:
                log_event(log, "invariant_violation", level=logging.ERROR, tx=e.to_json(), error=str(err))
                raise ExecutorError(f"invariant violated by {receipt['tx_type']}: {err}") from err

            events = drain_events(self.state)
            receipt["events"] = [int(ev["seq"]) for ev in events]
            self._store.commit(self.state, events=events, receipt=receipt)

        if receipt["ok"]:
            log_event(log, "tx_applied", tx_type=receipt["tx_type"], signer=e.signer, nonce=e.nonce, result=receipt["result"])
        else:
            log_event(log, "tx_rejected", level=logging.WARNING, tx_type=receipt["tx_type"], signer=e.signer, error=receipt["error"])
        for ev in events:
            log_event(log, "ledger_event", **{k: v for k, v in ev.items() if k != "event"})
        return receipt


__all__ = ["ExecutorError", "LedgerExecutor"]
