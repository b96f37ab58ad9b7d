# src/refract/runtime/executor_boot.py

from __future__ import annotations

from typing import Optional

from refract.runtime.chain_config import ChainConfig, load_chain_config
from refract.runtime.executor import LedgerExecutor
from refract.runtime.genesis_config import load_genesis


def build_executor(cfg: Optional[ChainConfig] = None) -> LedgerExecutor:
    """
    Build a LedgerExecutor from an explicit chain config or, if omitted,
    from REFRACT_* environment variables / REFRACT_CHAIN_CONFIG_PATH.

    The genesis file is only consulted when the DB is fresh; an existing DB
    keeps its own roles and balances.
    """
    c = cfg or load_chain_config()
    genesis = load_genesis(c.genesis_path) if c.genesis_path else None
    return LedgerExecutor(db_path=c.db_path, chain_id=c.chain_id, genesis=genesis)


__all__ = ["build_executor"]
