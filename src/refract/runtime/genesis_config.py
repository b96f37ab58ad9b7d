# src/refract/runtime/genesis_config.py
from __future__ import annotations

from dataclasses import dataclass, field
import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml

from refract.ledger import token
from refract.ledger.constants import (
    DEFAULT_REFRACTION_FEE_PERCENT,
    MAX_REFRACTION_FEE_PERCENT,
    NULL_ACCOUNT,
    RESERVED_ACCOUNTS,
)
from refract.ledger.migrations import migrate_state_dict
from refract.runtime.collaborators import StateAssetProvider
from refract.runtime.context import PermissionTable

Json = Dict[str, Any]


@dataclass(frozen=True)
class GenesisConfig:
    chain_id: str
    genesis_time: int = 0
    refraction_fee_percent: int = DEFAULT_REFRACTION_FEE_PERCENT
    # token balances minted at genesis
    balances: Dict[str, int] = field(default_factory=dict)
    # external/native asset books: asset -> account -> amount
    assets: Dict[str, Dict[str, int]] = field(default_factory=dict)
    roles: PermissionTable = field(default_factory=PermissionTable)
    fee_exempt: List[str] = field(default_factory=list)


def _int_map(raw: Any, *, where: str) -> Dict[str, int]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"genesis {where} must be a mapping of account -> amount")
    out: Dict[str, int] = {}
    for k, v in raw.items():
        acct = str(k).strip()
        if acct == NULL_ACCOUNT:
            raise ValueError(f"genesis {where} has an empty account id")
        amt = int(v)
        if amt < 0:
            raise ValueError(f"genesis {where}[{acct!r}] must be >= 0")
        out[acct] = amt
    return out


def parse_genesis(obj: Any) -> GenesisConfig:
    """Build a GenesisConfig from a decoded JSON/YAML document.

    Shape:
      {
        "chain_id": "refract-dev",
        "genesis_time": 1700000000,
        "refraction_fee_percent": 5,
        "balances": {"alice": 1000},
        "assets": {"native": {"alice": 5000}},
        "roles": {"admin": ["ops"], "distributor": ["keeper"]},
        "fee_exempt": ["treasury"]
      }
    """
    if not isinstance(obj, dict):
        raise ValueError("genesis config must be a mapping")

    pct = int(obj.get("refraction_fee_percent", DEFAULT_REFRACTION_FEE_PERCENT))
    if pct <= 0 or pct > MAX_REFRACTION_FEE_PERCENT:
        raise ValueError(f"refraction_fee_percent must be 1..{MAX_REFRACTION_FEE_PERCENT}; got {pct}")

    assets_raw = obj.get("assets") or {}
    if not isinstance(assets_raw, dict):
        raise ValueError("genesis assets must be a mapping of asset -> balances")

    exempt = obj.get("fee_exempt") or []
    if not isinstance(exempt, list):
        raise ValueError("genesis fee_exempt must be a list")

    return GenesisConfig(
        chain_id=str(obj.get("chain_id") or "").strip(),
        genesis_time=int(obj.get("genesis_time") or 0),
        refraction_fee_percent=pct,
        balances=_int_map(obj.get("balances"), where="balances"),
        assets={str(a): _int_map(b, where=f"assets[{a!r}]") for a, b in assets_raw.items()},
        roles=PermissionTable.from_json(obj.get("roles")),
        fee_exempt=[str(x).strip() for x in exempt if str(x).strip()],
    )


def load_genesis(path: str) -> GenesisConfig:
    """Load GenesisConfig from a .json, .yaml or .yml file."""
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(str(p))

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        obj = yaml.safe_load(text)
    else:
        obj = json.loads(text)
    return parse_genesis(obj)


def is_genesis_applied(state: Json) -> bool:
    return bool((state.get("params") or {}).get("genesis_applied", False))


def apply_genesis_config_to_ledger_state(state: Json, cfg: GenesisConfig) -> Tuple[bool, Json]:
    """Seed a fresh ledger state from genesis.

    Returns (changed, state). Safe to call repeatedly; only the first call on
    a state that has never seen genesis changes anything.
    """
    if is_genesis_applied(state):
        return False, state

    migrate_state_dict(state)
    params = state.setdefault("params", {})
    if cfg.chain_id:
        params["chain_id"] = cfg.chain_id
    params["roles"] = cfg.roles.to_json()
    state["time"] = int(cfg.genesis_time)

    tok = token.ensure_token_root(state)
    tok["refraction_fee_percent"] = int(cfg.refraction_fee_percent)
    for acct in list(RESERVED_ACCOUNTS) + list(cfg.fee_exempt):
        tok["fee_exempt"][acct] = True

    for acct, amt in sorted(cfg.balances.items()):
        token.mint(state, acct, amt)

    books = StateAssetProvider()
    for asset, per_acct in sorted(cfg.assets.items()):
        for acct, amt in sorted(per_acct.items()):
            books.credit(state, asset, acct, amt)

    params["genesis_applied"] = True
    return True, state


def permissions_from_state(state: Json) -> PermissionTable:
    return PermissionTable.from_json((state.get("params") or {}).get("roles"))


__all__ = [
    "GenesisConfig",
    "apply_genesis_config_to_ledger_state",
    "is_genesis_applied",
    "load_genesis",
    "parse_genesis",
    "permissions_from_state",
]
