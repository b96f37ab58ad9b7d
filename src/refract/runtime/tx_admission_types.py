from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from refract.ledger.numbers import as_integral


@dataclass(frozen=True)
class TxReject:
    code: str
    reason: str
    details: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class TxVerdict:
    ok: bool
    code: str
    reason: str
    details: Optional[Dict[str, Any]] = None

    def __iter__(self) -> Iterator[Any]:
        """Allow `ok, rej = admit_tx(...)` unpacking for tests."""
        if self.ok:
            yield True
            yield None
        else:
            yield False
            yield TxReject(self.code, self.reason, self.details)

    @staticmethod
    def admit() -> "TxVerdict":
        return TxVerdict(True, "ok", "admitted", None)

    @staticmethod
    def reject(code: str, reason: str, details: Optional[Dict[str, Any]] = None) -> "TxVerdict":
        return TxVerdict(False, code, reason, details)


@dataclass(frozen=True)
class TxEnvelope:
    tx_type: str
    signer: str
    nonce: int
    payload: Dict[str, Any]
    # Native asset attached to the call. Only payable tx types accept it.
    value: int = 0

    @staticmethod
    def from_json(j: Any) -> "TxEnvelope":
        if isinstance(j, TxEnvelope):
            return j
        if not isinstance(j, dict):
            j = dict(j)  # type: ignore[arg-type]
        return TxEnvelope(
            tx_type=str(j.get("tx_type", "")),
            signer=str(j.get("signer", "") or ""),
            nonce=as_integral(j.get("nonce", 0) or 0),
            payload=dict(j.get("payload", {}) or {}),
            value=as_integral(j.get("value", 0) or 0),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "tx_type": self.tx_type,
            "signer": self.signer,
            "nonce": self.nonce,
            "payload": self.payload,
            "value": self.value,
        }
