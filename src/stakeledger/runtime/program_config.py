# src/stakeledger/runtime/program_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from stakeledger.ledger.constants import DEFAULT_TIMELOCK_SECONDS, MAX_RATE, MIN_RATE, PROGRAM_HOLDER_ID, RATE_BASE

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
class ProgramConfig:
    mode: str  # "dev" | "testnet" | "prod"

    # Single SQLite DB file path for program + asset persistence.
    db_path: str

    admin: str
    holder: str
    asset_symbol: str

    rate: int
    # 0 means "resolve at boot" (start = now + start_delay_seconds, end = start + duration_seconds)
    start: int
    end: int
    start_delay_seconds: int
    duration_seconds: int
    timelock_seconds: int

    api_host: str
    api_port: int

    log_level: str


_ALLOWED_MODES = {"dev", "testnet", "prod"}


def validate_program_config(cfg: ProgramConfig) -> None:
    """Fail-fast validation for operator config.

    Start-in-past is NOT checked here: an existing database may legitimately
    hold a program that already started. StakingProgram enforces it on
    first creation.
    """

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    for name, v in (("admin", cfg.admin), ("holder", cfg.holder), ("db_path", cfg.db_path)):
        if not isinstance(v, str) or not v.strip():
            raise ValueError(f"{name} must be a non-empty string")

    if cfg.admin.strip() == cfg.holder.strip():
        raise ValueError("admin must differ from the program holder id")

    if not (MIN_RATE <= int(cfg.rate) <= MAX_RATE):
        raise ValueError(f"rate must be within [{MIN_RATE}, {MAX_RATE}]; got: {cfg.rate}")

    if int(cfg.start) and int(cfg.end) and int(cfg.start) >= int(cfg.end):
        raise ValueError(f"start must be before end; got: start={cfg.start} end={cfg.end}")

    if not int(cfg.end) and int(cfg.duration_seconds) <= 0:
        raise ValueError(f"duration_seconds must be > 0 when end is unset; got: {cfg.duration_seconds}")

    if int(cfg.start_delay_seconds) < 0:
        raise ValueError(f"start_delay_seconds must be >= 0; got: {cfg.start_delay_seconds}")

    if int(cfg.timelock_seconds) < 0:
        raise ValueError(f"timelock_seconds must be >= 0; got: {cfg.timelock_seconds}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")


def resolve_window(cfg: ProgramConfig, *, now: int) -> tuple[int, int]:
    start = int(cfg.start) or int(now) + int(cfg.start_delay_seconds)
    end = int(cfg.end) or start + int(cfg.duration_seconds)
    return start, end


def default_program_config() -> ProgramConfig:
    return ProgramConfig(
        # Production-safe defaults: API docs off unless explicitly dev/testnet.
        mode="prod",
        db_path="./data/stakeledger.db",
        admin="admin",
        holder=PROGRAM_HOLDER_ID,
        asset_symbol="WBTC",
        rate=RATE_BASE // 100,  # 1% over the whole window
        start=0,
        end=0,
        start_delay_seconds=0,
        duration_seconds=365 * 24 * 60 * 60,
        timelock_seconds=DEFAULT_TIMELOCK_SECONDS,
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
    )


def _from_mapping(raw: Json, d: ProgramConfig) -> ProgramConfig:
    return ProgramConfig(
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        db_path=_as_str(raw.get("db_path"), d.db_path),
        admin=_as_str(raw.get("admin"), d.admin),
        holder=_as_str(raw.get("holder"), d.holder),
        asset_symbol=_as_str(raw.get("asset_symbol"), d.asset_symbol),
        rate=_as_int(raw.get("rate"), d.rate),
        start=_as_int(raw.get("start"), d.start),
        end=_as_int(raw.get("end"), d.end),
        start_delay_seconds=_as_int(raw.get("start_delay_seconds"), d.start_delay_seconds),
        duration_seconds=_as_int(raw.get("duration_seconds"), d.duration_seconds),
        timelock_seconds=_as_int(raw.get("timelock_seconds"), d.timelock_seconds),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level),
    )


def read_program_config_file(path: str) -> ProgramConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("program config must be a JSON object")

    cfg = _from_mapping(raw, default_program_config())
    validate_program_config(cfg)
    return cfg


_ENV_KEYS = {
    "mode": "STAKELEDGER_MODE",
    "db_path": "STAKELEDGER_DB_PATH",
    "admin": "STAKELEDGER_ADMIN",
    "holder": "STAKELEDGER_HOLDER",
    "asset_symbol": "STAKELEDGER_ASSET_SYMBOL",
    "rate": "STAKELEDGER_RATE",
    "start": "STAKELEDGER_START",
    "end": "STAKELEDGER_END",
    "start_delay_seconds": "STAKELEDGER_START_DELAY_SECONDS",
    "duration_seconds": "STAKELEDGER_DURATION_SECONDS",
    "timelock_seconds": "STAKELEDGER_TIMELOCK_SECONDS",
    "api_host": "STAKELEDGER_API_HOST",
    "api_port": "STAKELEDGER_API_PORT",
    "log_level": "STAKELEDGER_LOG_LEVEL",
}


def load_program_config(*, config_path: Optional[str] = None) -> ProgramConfig:
    p = config_path or os.environ.get("STAKELEDGER_PROGRAM_CONFIG_PATH")
    if p:
        return read_program_config_file(p)

    raw: Json = {}
    for key, env_name in _ENV_KEYS.items():
        v = os.environ.get(env_name)
        if v is not None and v.strip():
            raw[key] = v.strip()

    cfg = _from_mapping(raw, default_program_config())
    validate_program_config(cfg)
    return cfg


__all__ = [
    "ProgramConfig",
    "default_program_config",
    "load_program_config",
    "read_program_config_file",
    "resolve_window",
    "validate_program_config",
]
