# src/stakeledger/runtime/reward_pool.py
from __future__ import annotations

"""Reward pool bookkeeping.

The pool is the only source of reward payouts. It tracks:

  supply        allocated by the operator and not yet paid out
  total_funded  lifetime sum of fund() calls
  total_paid    lifetime sum of disbursed rewards

supply == total_funded - total_paid at all times. Principal never enters
the pool, so `total_staked + supply` is the amount custody must hold; any
balance above that is excess that sweep_excess() may recover.
"""

from typing import Any, Dict

from stakeledger.ledger.types import PoolState
from stakeledger.runtime.errors import RewardPoolExhausted, ZeroAmount

Json = Dict[str, Any]


def fund(pool: PoolState, amount: int) -> Json:
    amt = int(amount)
    if amt <= 0:
        raise ZeroAmount({"op": "fund", "amount": amt})
    pool.supply = int(pool.supply) + amt
    pool.total_funded = int(pool.total_funded) + amt
    return {"amount": amt, "supply": int(pool.supply)}


def disburse(pool: PoolState, amount: int) -> int:
    """Reserve `amount` of the pool for an outbound reward transfer."""
    amt = int(amount)
    if amt <= 0:
        return 0
    if amt > int(pool.supply):
        raise RewardPoolExhausted({"requested": amt, "supply": int(pool.supply)})
    pool.supply = int(pool.supply) - amt
    pool.total_paid = int(pool.total_paid) + amt
    return amt


def _obligations(pool: PoolState, *, total_staked: int) -> int:
    return int(total_staked) + int(pool.supply)


def excess(pool: PoolState, *, custody_balance: int, total_staked: int) -> int:
    """Balance held beyond principal + allocated rewards (never negative)."""
    ex = int(custody_balance) - _obligations(pool, total_staked=total_staked)
    return ex if ex > 0 else 0


__all__ = ["fund", "disburse", "excess"]
