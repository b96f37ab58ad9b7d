from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class ChainConfig:
    chain_id: str
    mode: str  # "dev" | "testnet" | "prod"

    # Single SQLite DB file path for ledger state + event log.
    db_path: str
    # Optional genesis file (JSON or YAML); only read on a fresh DB.
    genesis_path: str

    api_host: str
    api_port: int

    log_level: str


_ALLOWED_MODES = {"dev", "testnet", "prod"}
_ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_chain_config(cfg: ChainConfig) -> None:
    """Fail-fast validation for operator config."""

    if not isinstance(cfg.chain_id, str) or not cfg.chain_id.strip():
        raise ValueError("chain_id must be a non-empty string")

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if not isinstance(cfg.db_path, str) or not cfg.db_path.strip():
        raise ValueError("db_path must be a non-empty string")

    if str(cfg.log_level or "").strip().upper() not in _ALLOWED_LOG_LEVELS:
        raise ValueError(f"log_level must be one of {_ALLOWED_LOG_LEVELS}; got: {cfg.log_level!r}")

    if cfg.genesis_path and not Path(cfg.genesis_path).is_file():
        raise ValueError(f"genesis_path does not exist or is not a file: {cfg.genesis_path!r}")


def default_chain_config() -> ChainConfig:
    return ChainConfig(
        chain_id="refract-dev",
        mode="prod",
        db_path="./data/refract.db",
        genesis_path="",
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
    )


def read_chain_config_file(path: str) -> ChainConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("chain config must be a JSON object")

    d = default_chain_config()

    cfg = ChainConfig(
        chain_id=_as_str(raw.get("chain_id"), d.chain_id),
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        db_path=_as_str(raw.get("db_path"), d.db_path),
        genesis_path=str(raw.get("genesis_path") or d.genesis_path),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level).strip().upper(),
    )

    validate_chain_config(cfg)
    return cfg


def load_chain_config(*, config_path: Optional[str] = None) -> ChainConfig:
    """Config file (REFRACT_CHAIN_CONFIG_PATH) first, then per-field env overrides."""
    p = config_path or os.environ.get("REFRACT_CHAIN_CONFIG_PATH")
    base = read_chain_config_file(p) if p else default_chain_config()

    cfg = ChainConfig(
        chain_id=os.environ.get("REFRACT_CHAIN_ID") or base.chain_id,
        mode=(os.environ.get("REFRACT_MODE") or base.mode).strip().lower(),
        db_path=os.environ.get("REFRACT_DB_PATH") or base.db_path,
        genesis_path=os.environ.get("REFRACT_GENESIS_PATH") or base.genesis_path,
        api_host=os.environ.get("REFRACT_API_HOST") or base.api_host,
        api_port=_as_int(os.environ.get("REFRACT_API_PORT"), base.api_port),
        log_level=(os.environ.get("REFRACT_LOG_LEVEL") or base.log_level).strip().upper(),
    )
    validate_chain_config(cfg)
    return cfg


__all__ = ["ChainConfig", "default_chain_config", "load_chain_config", "read_chain_config_file", "validate_chain_config"]
