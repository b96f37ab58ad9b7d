from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from refract.env import load_dotenv_if_present, reset_dotenv_state
from refract.structured_logging import log_event


def test_dotenv_loaded_once_and_env_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / ".env"
    p.write_text("REFRACT_CHAIN_ID=from-file\nREFRACT_TEST_ONLY=yes\n", encoding="utf-8")
    monkeypatch.setenv("REFRACT_CHAIN_ID", "from-env")
    monkeypatch.delenv("REFRACT_TEST_ONLY", raising=False)
    reset_dotenv_state()
    try:
        assert load_dotenv_if_present(str(p)) is True
        assert load_dotenv_if_present(str(p)) is False
        import os

        assert os.environ["REFRACT_CHAIN_ID"] == "from-env"
        assert os.environ["REFRACT_TEST_ONLY"] == "yes"
    finally:
        monkeypatch.delenv("REFRACT_TEST_ONLY", raising=False)
        reset_dotenv_state()


def test_missing_dotenv_is_not_an_error(tmp_path: Path) -> None:
    reset_dotenv_state()
    try:
        assert load_dotenv_if_present(str(tmp_path / "absent.env")) is False
    finally:
        reset_dotenv_state()


def test_log_event_emits_one_json_line(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("refract.test")
    with caplog.at_level(logging.INFO, logger="refract.test"):
        log_event(logger, "tx_applied", tx_type="TRANSFER", nonce=3)

    rec = json.loads(caplog.records[-1].getMessage())
    assert rec["event"] == "tx_applied"
    assert rec["tx_type"] == "TRANSFER"
    assert rec["nonce"] == 3
    assert "ts_ms" in rec


def test_log_event_falls_back_for_unserializable_fields(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("refract.test")
    with caplog.at_level(logging.INFO, logger="refract.test"):
        log_event(logger, "odd", obj=object())
    assert caplog.records[-1].getMessage().startswith("event=odd")
