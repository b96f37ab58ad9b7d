from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping

from refract.runtime.collaborators import (
    AssetTransferProvider,
    CertificateIssuer,
    RewardIndexSink,
    ShareIndexRewardSink,
    StateAssetProvider,
    StateCertificateIssuer,
)
from refract.runtime.errors import Unauthorized

Json = Dict[str, Any]

CAP_ADMIN = "admin"
CAP_MINTER = "minter"
CAP_VESTING_MANAGER = "vesting_manager"
CAP_DISTRIBUTOR = "distributor"

CAPABILITIES = (CAP_ADMIN, CAP_MINTER, CAP_VESTING_MANAGER, CAP_DISTRIBUTOR)


@dataclass(frozen=True)
class PermissionTable:
    """capability -> accounts holding it. Assigned at genesis; read-only at apply time."""

    grants: Mapping[str, FrozenSet[str]] = field(default_factory=dict)

    @classmethod
    def from_json(cls, raw: Any) -> "PermissionTable":
        if not isinstance(raw, dict):
            return cls()
        grants: Dict[str, FrozenSet[str]] = {}
        for cap, accts in raw.items():
            c = str(cap).strip()
            if c not in CAPABILITIES:
                raise ValueError(f"unknown capability {c!r}; expected one of {CAPABILITIES}")
            if isinstance(accts, str):
                accts = [accts]
            grants[c] = frozenset(str(a).strip() for a in (accts or []) if str(a).strip())
        return cls(grants=grants)

    def to_json(self) -> Json:
        return {cap: sorted(accts) for cap, accts in sorted(self.grants.items())}

    def has(self, account: str, capability: str) -> bool:
        return str(account) in self.grants.get(capability, frozenset())

    def require(self, account: str, capability: str) -> None:
        if not self.has(account, capability):
            raise Unauthorized("missing_capability", {"account": account, "capability": capability})


@dataclass(frozen=True)
class ApplyContext:
    """Everything an apply function needs besides state and the tx itself."""

    permissions: PermissionTable = field(default_factory=PermissionTable)
    assets: AssetTransferProvider = field(default_factory=StateAssetProvider)
    certificates: CertificateIssuer = field(default_factory=StateCertificateIssuer)
    reward_sink: RewardIndexSink = field(default_factory=ShareIndexRewardSink)


__all__ = [
    "ApplyContext",
    "PermissionTable",
    "CAP_ADMIN",
    "CAP_MINTER",
    "CAP_VESTING_MANAGER",
    "CAP_DISTRIBUTOR",
    "CAPABILITIES",
]
