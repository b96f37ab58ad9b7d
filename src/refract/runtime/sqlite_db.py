# src/refract/runtime/sqlite_db.py
from __future__ import annotations

import json
import os
import random
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

Json = Dict[str, Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _canon_json(obj: Any) -> str:
    """Canonical JSON encoding.

    Do not silently coerce unknown types (e.g. default=str). If non-JSON
    types leak into persisted state we must fail fast.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    try:
        raw = str(os.environ.get(name, "")).strip()
        return int(raw) if raw else int(default)
    except Exception:
        return int(default)


class SqliteDB:
    """SQLite manager for the ledger runtime.

    Design goals:
      - single durable DB file for ledger snapshot + event log + receipts
      - cross-thread safe by never sharing connections
      - bounded retry when another writer holds the lock
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    @staticmethod
    def _sqlite_synchronous_pragma() -> str:
        """prod -> FULL, dev/testnet -> NORMAL; override with REFRACT_SQLITE_SYNCHRONOUS."""
        mode = (os.environ.get("REFRACT_MODE") or "prod").strip().lower()
        default = "FULL" if mode == "prod" else "NORMAL"
        raw = (os.environ.get("REFRACT_SQLITE_SYNCHRONOUS") or default).strip().upper()
        if raw not in {"OFF", "NORMAL", "FULL", "EXTRA"}:
            raw = default
        return raw

    def ensure_parent_dir(self) -> None:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        self.ensure_parent_dir()
        connect_timeout_s = float(_env_int("REFRACT_SQLITE_CONNECT_TIMEOUT_MS", 30_000)) / 1000.0

        con = sqlite3.connect(
            self.path,
            timeout=connect_timeout_s,
            isolation_level=None,  # we manage BEGIN/COMMIT ourselves
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
        mode = str(row[0]).strip().lower() if row is not None else ""
        if mode and mode != "wal":
            con.close()
            raise RuntimeError(f"sqlite journal_mode is '{mode}', expected 'wal'")

        con.execute(f"PRAGMA synchronous={self._sqlite_synchronous_pragma()};")
        con.execute("PRAGMA foreign_keys=ON;")
        con.execute("PRAGMA temp_store=MEMORY;")
        con.execute(f"PRAGMA busy_timeout={int(connect_timeout_s * 1000)};")
        return con

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS ledger_state (
                  id INTEGER PRIMARY KEY CHECK (id = 1),
                  chain_time INTEGER NOT NULL,
                  state_json TEXT NOT NULL,
                  updated_ts_ms INTEGER NOT NULL
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS events (
                  seq INTEGER PRIMARY KEY,
                  event_type TEXT NOT NULL,
                  chain_time INTEGER NOT NULL,
                  event_json TEXT NOT NULL
                );
                """
            )
            con.execute("CREATE INDEX IF NOT EXISTS idx_events_type ON events(event_type);")
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS receipts (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  tx_type TEXT NOT NULL,
                  signer TEXT NOT NULL,
                  nonce INTEGER NOT NULL,
                  ok INTEGER NOT NULL,
                  receipt_json TEXT NOT NULL,
                  created_ts_ms INTEGER NOT NULL
                );
                """
            )
            con.execute("CREATE INDEX IF NOT EXISTS idx_receipts_signer ON receipts(signer);")

            row = con.execute("SELECT value FROM meta WHERE key='schema_version' LIMIT 1;").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
            else:
                try:
                    v = int(str(row["value"]))
                except ValueError:
                    v = 0
                if v != self.SCHEMA_VERSION:
                    raise RuntimeError(
                        f"sqlite schema_version mismatch: have={v} want={self.SCHEMA_VERSION}. "
                        "Refuse to start to avoid corrupting data."
                    )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @staticmethod
    def _is_locked_error(e: Exception) -> bool:
        msg = str(e).lower()
        return ("database is locked" in msg) or ("database is busy" in msg)

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """Open a write transaction with bounded retry on writer-lock contention.

        Policy:
          - retry BEGIN IMMEDIATE until a deadline
          - exponential backoff with jitter
          - then raise (fail closed) if we cannot acquire within deadline
        """
        deadline_ts = _now_ms() + max(250, _env_int("REFRACT_SQLITE_WRITE_DEADLINE_MS", 30_000))
        base_sleep = 0.005
        max_sleep = 0.25

        with self.connection() as con:
            attempt = 0
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                        raise
                    sleep_s = min(max_sleep, base_sleep * (2.0 ** min(attempt, 8)))
                    time.sleep(sleep_s * (0.5 + random.random()))
                    attempt += 1

            try:
                yield con
                con.execute("COMMIT;")
            except Exception:
                con.execute("ROLLBACK;")
                raise


class SqliteLedgerStore:
    """Ledger snapshot + event log persisted in SQLite.

    The authoritative snapshot is a single row; events and receipts are
    append-only and written in the same transaction as the snapshot they
    belong to.
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM ledger_state WHERE id=1;").fetchone() is not None

    def read(self) -> Json:
        with self._db.connection() as con:
            row = con.execute("SELECT state_json FROM ledger_state WHERE id=1;").fetchone()
            if row is None:
                raise FileNotFoundError("sqlite ledger_state is missing")
            st = json.loads(str(row["state_json"]))
            if not isinstance(st, dict):
                raise ValueError("ledger_state is not a JSON object")
            return st

    @staticmethod
    def _write_state(con: sqlite3.Connection, st: Json) -> None:
        con.execute(
            """
            INSERT INTO ledger_state(id, chain_time, state_json, updated_ts_ms)
            VALUES(1, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
              chain_time=excluded.chain_time,
              state_json=excluded.state_json,
              updated_ts_ms=excluded.updated_ts_ms;
            """,
            (int(st.get("time", 0) or 0), _canon_json(st), _now_ms()),
        )

    def commit(self, st: Json, *, events: List[Json], receipt: Optional[Json] = None) -> None:
        """Persist snapshot, its events and the tx receipt atomically."""
        with self._db.write_tx() as con:
            self._write_state(con, st)
            for ev in events:
                con.execute(
                    "INSERT INTO events(seq, event_type, chain_time, event_json) VALUES(?, ?, ?, ?);",
                    (int(ev["seq"]), str(ev["type"]), int(ev.get("time", 0) or 0), _canon_json(ev)),
                )
            if receipt is not None:
                con.execute(
                    """
                    INSERT INTO receipts(tx_type, signer, nonce, ok, receipt_json, created_ts_ms)
                    VALUES(?, ?, ?, ?, ?, ?);
                    """,
                    (
                        str(receipt.get("tx_type") or ""),
                        str(receipt.get("signer") or ""),
                        int(receipt.get("nonce") or 0),
                        1 if receipt.get("ok") else 0,
                        _canon_json(receipt),
                        _now_ms(),
                    ),
                )

    def read_events(self, *, after_seq: int = 0, limit: int = 100, event_type: str = "") -> List[Json]:
        q = "SELECT event_json FROM events WHERE seq > ?"
        args: list = [int(after_seq)]
        if event_type:
            q += " AND event_type = ?"
            args.append(str(event_type))
        q += " ORDER BY seq ASC LIMIT ?;"
        args.append(max(1, int(limit)))
        with self._db.connection() as con:
            return [json.loads(str(r["event_json"])) for r in con.execute(q, args).fetchall()]

    def read_receipts(self, *, signer: str = "", limit: int = 100) -> List[Json]:
        q = "SELECT receipt_json FROM receipts"
        args: list = []
        if signer:
            q += " WHERE signer = ?"
            args.append(str(signer))
        q += " ORDER BY id DESC LIMIT ?;"
        args.append(max(1, int(limit)))
        with self._db.connection() as con:
            return [json.loads(str(r["receipt_json"])) for r in con.execute(q, args).fetchall()]


__all__ = ["SqliteDB", "SqliteLedgerStore"]
