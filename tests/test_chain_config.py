from __future__ import annotations

import json
from pathlib import Path

import pytest

from refract.runtime.chain_config import (
    default_chain_config,
    load_chain_config,
    read_chain_config_file,
    validate_chain_config,
)

_ENV_KEYS = (
    "REFRACT_CHAIN_CONFIG_PATH",
    "REFRACT_CHAIN_ID",
    "REFRACT_MODE",
    "REFRACT_DB_PATH",
    "REFRACT_GENESIS_PATH",
    "REFRACT_API_HOST",
    "REFRACT_API_PORT",
    "REFRACT_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for k in _ENV_KEYS:
        monkeypatch.delenv(k, raising=False)


def test_defaults_without_file_or_env() -> None:
    assert load_chain_config() == default_chain_config()


def test_file_then_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / "chain.json"
    p.write_text(json.dumps({"chain_id": "refract-file", "mode": "dev", "api_port": 9000}), encoding="utf-8")
    monkeypatch.setenv("REFRACT_CHAIN_CONFIG_PATH", str(p))
    monkeypatch.setenv("REFRACT_API_PORT", "9100")

    cfg = load_chain_config()

    assert cfg.chain_id == "refract-file"
    assert cfg.mode == "dev"
    assert cfg.api_port == 9100


def test_config_file_must_be_object(tmp_path: Path) -> None:
    p = tmp_path / "chain.json"
    p.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        read_chain_config_file(str(p))


@pytest.mark.parametrize(
    "field,value",
    [("chain_id", " "), ("mode", "staging"), ("api_port", 0), ("log_level", "LOUD"), ("genesis_path", "/nope.yaml")],
)
def test_validation_fails_fast(field: str, value) -> None:
    import dataclasses

    cfg = dataclasses.replace(default_chain_config(), **{field: value})
    with pytest.raises(ValueError):
        validate_chain_config(cfg)
