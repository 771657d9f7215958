from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure local "src/" takes precedence over any globally-installed "stakeledger" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)

from stakeledger.ledger.constants import PROGRAM_HOLDER_ID, RATE_BASE  # noqa: E402
from stakeledger.runtime.clock import ManualClock  # noqa: E402
from stakeledger.runtime.custody import AssetCustody, MemoryAsset  # noqa: E402
from stakeledger.runtime.program import StakingProgram  # noqa: E402

GENESIS = 1_700_000_000
YEAR = 60 * 60 * 24 * 365
ONE_PERCENT = RATE_BASE // 100
TOKEN = 10**8

OWNER = "owner"
ALICE = "alice"
BOB = "bob"


class Env:
    """Deployed program + asset + clock, mirroring a fresh test chain."""

    def __init__(self, *, rate: int = ONE_PERCENT, start_delay: int = 5000, duration: int = YEAR) -> None:
        self.clock = ManualClock(GENESIS)
        self.start = GENESIS + start_delay
        self.end = self.start + duration
        self.asset = MemoryAsset(symbol="WBTC", decimals=8)
        self.program = StakingProgram(
            admin=OWNER,
            custody=AssetCustody(self.asset, holder=PROGRAM_HOLDER_ID),
            clock=self.clock,
            rate=rate,
            start=self.start,
            end=self.end,
        )
        for acct, amount in ((OWNER, 1000 * TOKEN), (ALICE, 5000 * TOKEN), (BOB, 5000 * TOKEN)):
            self.asset.mint(acct, amount)
            self.asset.approve(acct, PROGRAM_HOLDER_ID, amount)

    def at(self, ts: int) -> "Env":
        self.clock.set(ts)
        return self

    def balance(self, acct: str) -> int:
        return self.asset.balance_of(acct)

    @property
    def custody(self) -> int:
        return self.asset.balance_of(PROGRAM_HOLDER_ID)


@pytest.fixture
def env() -> Env:
    return Env()
