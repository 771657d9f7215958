# src/stakeledger/ledger/constants.py
from __future__ import annotations

"""Fixed-point and governance constants.

Rates are fractions of principal paid over ONE FULL PROGRAM WINDOW (not
annualized), scaled by RATE_BASE:

  RATE_BASE        = 1.0
  RATE_BASE // 100 = 1%
"""

RATE_DECIMALS: int = 18
RATE_BASE: int = 10**RATE_DECIMALS

# Bounds enforced on the initial rate and on every proposal.
MIN_RATE: int = 10**15  # 0.1%
MAX_RATE: int = 10**20  # 100x principal

# Delay between RATE propose and commit.
DEFAULT_TIMELOCK_SECONDS: int = 24 * 60 * 60

# Default holder id for the program's own custody balance.
PROGRAM_HOLDER_ID: str = "STAKING_PROGRAM"
