import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ApiConfig:
    mode: str  # "dev" | "testnet" | "prod"
    faucet_enabled: bool


def _is_truthy(v: str | None) -> bool:
    if v is None:
        return False
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


def load_api_config() -> ApiConfig:
    mode = os.getenv("STAKELEDGER_MODE", "prod").strip().lower()
    faucet = os.getenv("STAKELEDGER_FAUCET")
    # Minting test funds is never on in prod unless explicitly forced.
    enabled = _is_truthy(faucet) if faucet is not None else mode != "prod"
    return ApiConfig(mode=mode, faucet_enabled=enabled)
