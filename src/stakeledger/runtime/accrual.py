# src/stakeledger/runtime/accrual.py
from __future__ import annotations

"""Time-weighted reward accounting.

Reward for a slice of time is

    earned = principal * elapsed * rate // (RATE_BASE * window.duration)

so a position held for the whole window earns principal * rate // RATE_BASE.

Each record is settled (elapsed time converted into stored reward) on every
touch, at the rate current AT SETTLEMENT TIME. A rate committed while a
participant is dormant therefore also prices the dormant interval once the
participant next interacts. Settlement is clamped to window.end, so a
record settled at or past the end never earns again.

Functions here mutate the ProgramState they are handed and return a
settlement dict (or None) that the program folds into its receipt.
"""

from typing import Any, Dict, Optional, Tuple

from stakeledger.ledger.constants import RATE_BASE
from stakeledger.ledger.types import ProgramState, StakeRecord
from stakeledger.runtime.errors import NothingToClaim, NothingToWithdraw, StakingWindowClosed, ZeroAmount
from stakeledger.runtime.rate_governor import current_rate

Json = Dict[str, Any]


def _earned(state: ProgramState, increment: int, rate: int) -> int:
    denom = RATE_BASE * state.window.duration
    return (int(increment) * int(rate)) // denom


def settle(state: ProgramState, account: str, *, now: int) -> Optional[Json]:
    """Bring `account` up to min(now, window.end). Idempotent per timestamp."""
    rec = state.record(account)
    effective_now = state.window.clamp(now)
    if effective_now <= int(rec.last_touch):
        return None

    elapsed = effective_now - int(rec.last_touch)
    increment = int(rec.principal) * elapsed
    rate = current_rate(state.rate)
    earned = _earned(state, increment, rate)

    rec.accumulator = int(rec.accumulator) + increment
    rec.stored_reward = int(rec.stored_reward) + earned
    prev_touch = int(rec.last_touch)
    rec.last_touch = effective_now

    return {
        "account": account,
        "from": prev_touch,
        "to": effective_now,
        "elapsed": elapsed,
        "increment": increment,
        "rate": rate,
        "earned": earned,
    }


def check_stake(state: ProgramState, amount: int, *, now: int) -> None:
    w = state.window
    n = int(now)
    if n < int(w.start):
        raise StakingWindowClosed("staking_not_started", {"now": n, "start": int(w.start)})
    if n > int(w.end):
        raise StakingWindowClosed("staking_ended", {"now": n, "end": int(w.end)})
    if int(amount) <= 0:
        raise ZeroAmount({"op": "stake", "amount": int(amount)})


def stake(state: ProgramState, account: str, amount: int, *, now: int) -> Optional[Json]:
    check_stake(state, amount, now=now)

    settled = settle(state, account, now=now)
    rec = state.record(account)
    rec.principal = int(rec.principal) + int(amount)
    state.total_staked = int(state.total_staked) + int(amount)
    return settled


def claim(state: ProgramState, account: str, *, now: int) -> Tuple[int, Optional[Json]]:
    settled = settle(state, account, now=now)
    rec = state.record(account)
    reward = int(rec.stored_reward)
    if reward == 0:
        raise NothingToClaim({"account": account})
    rec.stored_reward = 0
    return reward, settled


def withdraw(state: ProgramState, account: str, *, now: int) -> Tuple[int, int, Optional[Json]]:
    """Return (principal, reward); a zero reward is a valid no-payout case."""
    settled = settle(state, account, now=now)
    rec = state.record(account)
    principal = int(rec.principal)
    if principal <= 0:
        raise NothingToWithdraw({"account": account})

    reward = int(rec.stored_reward)
    rec.stored_reward = 0
    rec.principal = 0
    state.total_staked = int(state.total_staked) - principal
    return principal, reward, settled


def pending_reward(state: ProgramState, account: str, *, now: int) -> int:
    """Stored reward plus what a settle at `now` would add. Read-only."""
    rec = state.records.get(account)
    if rec is None:
        return 0
    return int(rec.stored_reward) + _unsettled(state, rec, now=now)


def _unsettled(state: ProgramState, rec: StakeRecord, *, now: int) -> int:
    effective_now = state.window.clamp(now)
    if effective_now <= int(rec.last_touch):
        return 0
    increment = int(rec.principal) * (effective_now - int(rec.last_touch))
    return _earned(state, increment, current_rate(state.rate))


__all__ = ["settle", "check_stake", "stake", "claim", "withdraw", "pending_reward"]
