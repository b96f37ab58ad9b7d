# src/refract/runtime/collaborators.py
from __future__ import annotations

"""External collaborator interfaces and their in-state default implementations.

The core only depends on the Protocols below. Every method receives the
state dict being mutated so that the defaults keep their bookkeeping inside
that same dict. Because the dispatcher applies each tx on a deep copy, a
failing collaborator call rolls back everything the tx touched, including the
collaborator's own records.

State layout of the defaults:
  state["assets"][asset_id][account]   -> int   (StateAssetProvider)
  state["certificates"]                -> {"next_id": int, "owners": {id: owner}}
  state["rewards"]                     -> share-index bookkeeping (ShareIndexRewardSink)
"""

from typing import Any, Dict, Protocol, runtime_checkable

from refract.ledger.constants import BOND_REGISTRY_ACCOUNT, REWARD_INDEX_SCALE

Json = Dict[str, Any]


@runtime_checkable
class AssetTransferProvider(Protocol):
    def transfer_in(self, state: Json, asset: str, frm: str, amount: int) -> bool: ...

    def transfer_out(self, state: Json, asset: str, to: str, amount: int) -> bool: ...


@runtime_checkable
class CertificateIssuer(Protocol):
    def issue(self, state: Json, owner: str) -> int: ...

    def owner_of(self, state: Json, cert_id: int) -> str: ...


@runtime_checkable
class RewardIndexSink(Protocol):
    def epoch_reward_share_index(self, state: Json, amount: int) -> None: ...


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _ensure_dict(root: Json, key: str) -> Json:
    v = root.get(key)
    if not isinstance(v, dict):
        v = {}
        root[key] = v
    return v


class StateAssetProvider:
    """Per-asset balance book. Custody for bonds is held by BOND_REGISTRY."""

    def __init__(self, *, custody_account: str = BOND_REGISTRY_ACCOUNT) -> None:
        self.custody_account = custody_account

    def balance(self, state: Json, asset: str, account: str) -> int:
        book = (state.get("assets") or {}).get(asset)
        if not isinstance(book, dict):
            return 0
        return _as_int(book.get(account), 0)

    def credit(self, state: Json, asset: str, account: str, amount: int) -> None:
        book = _ensure_dict(_ensure_dict(state, "assets"), asset)
        book[account] = _as_int(book.get(account), 0) + int(amount)

    def _move(self, state: Json, asset: str, frm: str, to: str, amount: int) -> bool:
        amt = int(amount)
        if amt < 0:
            return False
        have = self.balance(state, asset, frm)
        if have < amt:
            return False
        book = _ensure_dict(_ensure_dict(state, "assets"), asset)
        book[frm] = have - amt
        book[to] = _as_int(book.get(to), 0) + amt
        return True

    def transfer_in(self, state: Json, asset: str, frm: str, amount: int) -> bool:
        return self._move(state, asset, frm, self.custody_account, amount)

    def transfer_out(self, state: Json, asset: str, to: str, amount: int) -> bool:
        return self._move(state, asset, self.custody_account, to, amount)


class StateCertificateIssuer:
    """Sequential certificate ids starting at 1."""

    def _root(self, state: Json) -> Json:
        root = _ensure_dict(state, "certificates")
        root.setdefault("next_id", 1)
        _ensure_dict(root, "owners")
        return root

    def issue(self, state: Json, owner: str) -> int:
        root = self._root(state)
        cert_id = _as_int(root["next_id"], 1)
        root["owners"][str(cert_id)] = str(owner)
        root["next_id"] = cert_id + 1
        return cert_id

    def owner_of(self, state: Json, cert_id: int) -> str:
        return str(self._root(state)["owners"].get(str(cert_id), "") or "")


class ShareIndexRewardSink:
    """Cumulative reward-per-weight index over open bonds.

    weight(bond) = principal * refraction_index (fixed-point)
    index += amount * REWARD_INDEX_SCALE // total_weight

    Rounding dust and amounts that arrive while no bond is open are parked in
    `undistributed` and folded into the next epoch that has weight.
    """

    def _root(self, state: Json) -> Json:
        root = _ensure_dict(state, "rewards")
        root.setdefault("share_index", 0)
        root.setdefault("undistributed", 0)
        root.setdefault("total_received", 0)
        root.setdefault("epochs", 0)
        return root

    @staticmethod
    def total_weight(state: Json) -> int:
        by_id = ((state.get("bonds") or {}).get("by_id")) or {}
        total = 0
        for b in by_id.values():
            if not isinstance(b, dict) or bool(b.get("withdrawn", False)):
                continue
            total += _as_int(b.get("principal")) * _as_int(b.get("refraction_index"))
        return total

    def epoch_reward_share_index(self, state: Json, amount: int) -> None:
        amt = _as_int(amount, 0)
        if amt <= 0:
            return

        root = self._root(state)
        root["total_received"] = _as_int(root["total_received"]) + amt
        root["epochs"] = _as_int(root["epochs"]) + 1

        pending = _as_int(root["undistributed"]) + amt
        weight = self.total_weight(state)
        if weight <= 0:
            root["undistributed"] = pending
            return

        delta = (pending * REWARD_INDEX_SCALE) // weight
        spent = (delta * weight) // REWARD_INDEX_SCALE
        root["share_index"] = _as_int(root["share_index"]) + delta
        root["undistributed"] = pending - spent


__all__ = [
    "AssetTransferProvider",
    "CertificateIssuer",
    "RewardIndexSink",
    "ShareIndexRewardSink",
    "StateAssetProvider",
    "StateCertificateIssuer",
]
