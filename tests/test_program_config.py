from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest

from stakeledger.ledger.constants import DEFAULT_TIMELOCK_SECONDS, MAX_RATE, PROGRAM_HOLDER_ID, RATE_BASE
from stakeledger.runtime.program_config import (
    default_program_config,
    load_program_config,
    read_program_config_file,
    resolve_window,
    validate_program_config,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "STAKELEDGER_PROGRAM_CONFIG_PATH",
        "STAKELEDGER_MODE",
        "STAKELEDGER_DB_PATH",
        "STAKELEDGER_ADMIN",
        "STAKELEDGER_RATE",
        "STAKELEDGER_START",
        "STAKELEDGER_END",
        "STAKELEDGER_API_PORT",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults_are_production_safe() -> None:
    cfg = load_program_config()
    assert cfg.mode == "prod"
    assert cfg.holder == PROGRAM_HOLDER_ID
    assert cfg.rate == RATE_BASE // 100
    assert cfg.timelock_seconds == DEFAULT_TIMELOCK_SECONDS


def test_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("STAKELEDGER_MODE", "DEV")
    monkeypatch.setenv("STAKELEDGER_DB_PATH", str(tmp_path / "x.db"))
    monkeypatch.setenv("STAKELEDGER_ADMIN", "ops")
    monkeypatch.setenv("STAKELEDGER_RATE", str(5 * 10**16))
    monkeypatch.setenv("STAKELEDGER_API_PORT", "9001")

    cfg = load_program_config()
    assert cfg.mode == "dev"
    assert cfg.db_path == str(tmp_path / "x.db")
    assert cfg.admin == "ops"
    assert cfg.rate == 5 * 10**16
    assert cfg.api_port == 9001


def test_file_takes_precedence_over_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    p = tmp_path / "program.json"
    p.write_text(json.dumps({"mode": "testnet", "admin": "treasury", "start": 100, "end": 200}), encoding="utf-8")
    monkeypatch.setenv("STAKELEDGER_PROGRAM_CONFIG_PATH", str(p))
    monkeypatch.setenv("STAKELEDGER_ADMIN", "ignored")

    cfg = load_program_config()
    assert cfg.admin == "treasury"
    assert resolve_window(cfg, now=50) == (100, 200)


def test_file_must_be_json_object(tmp_path: Path) -> None:
    p = tmp_path / "program.json"
    p.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        read_program_config_file(str(p))


def test_resolve_window_from_delay_and_duration() -> None:
    cfg = replace(default_program_config(), start_delay_seconds=30, duration_seconds=1000)
    assert resolve_window(cfg, now=10) == (40, 1040)


@pytest.mark.parametrize(
    "changes",
    [
        {"mode": "staging"},
        {"admin": " "},
        {"admin": PROGRAM_HOLDER_ID},
        {"rate": MAX_RATE + 1},
        {"start": 200, "end": 100},
        {"duration_seconds": 0},
        {"timelock_seconds": -1},
        {"api_port": 0},
    ],
)
def test_validation_rejects(changes: dict) -> None:
    with pytest.raises(ValueError):
        validate_program_config(replace(default_program_config(), **changes))


def test_dotenv_loaded_once_without_overriding(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    from stakeledger import env as env_mod

    p = tmp_path / ".env"
    p.write_text("STAKELEDGER_ADMIN=from_file\nSTAKELEDGER_MODE=dev\n", encoding="utf-8")
    # Register STAKELEDGER_ADMIN with monkeypatch so the value loaded from the file is undone.
    monkeypatch.setenv("STAKELEDGER_ADMIN", "placeholder")
    monkeypatch.delenv("STAKELEDGER_ADMIN")
    monkeypatch.setenv("STAKELEDGER_MODE", "testnet")
    monkeypatch.setattr(env_mod, "_LOADED", False)

    assert env_mod.load_dotenv_if_present(str(p)) is True
    assert env_mod.load_dotenv_if_present(str(p)) is False

    cfg = load_program_config()
    assert cfg.admin == "from_file"
    assert cfg.mode == "testnet"
