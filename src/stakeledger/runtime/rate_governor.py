# src/stakeledger/runtime/rate_governor.py
from __future__ import annotations

"""Timelocked two-phase rate governance.

    Stable --propose--> Pending{rate, since} --commit (now >= since + timelock)--> Stable

  - propose() overwrites any pending value and restarts the timelock.
  - commit() with nothing pending is an IdenticalRate rejection, checked
    before the timelock (a second commit after a successful one reports
    "same rates", not "timelock").
  - committing never settles participants; unsettled time is priced at
    whatever rate is current when each record is next touched.

Authorization is the caller's job (StakingProgram checks admin first).
"""

from typing import Any, Dict

from stakeledger.ledger.constants import MAX_RATE, MIN_RATE
from stakeledger.ledger.types import Pending, RateState, Stable
from stakeledger.runtime.errors import IdenticalRate, RateOutOfBounds, TimelockNotElapsed

Json = Dict[str, Any]


def check_rate_bounds(rate: int) -> None:
    r = int(rate)
    if r < MIN_RATE:
        raise RateOutOfBounds("lower_than_min_rate", {"rate": r, "min_rate": MIN_RATE})
    if r > MAX_RATE:
        raise RateOutOfBounds("greater_than_max_rate", {"rate": r, "max_rate": MAX_RATE})


def current_rate(rs: RateState) -> int:
    return int(rs.current)


def is_pending(rs: RateState) -> bool:
    return isinstance(rs.proposal, Pending)


def propose(rs: RateState, new_rate: int, *, now: int) -> Json:
    r = int(new_rate)
    if r == int(rs.current):
        raise IdenticalRate("same_rates", {"rate": r})
    check_rate_bounds(r)

    prev = rs.proposal
    rs.proposal = Pending(rate=r, since=int(now))
    out: Json = {
        "proposed_rate": r,
        "proposal_timestamp": int(now),
        "unlocks_at": rs.proposal.unlocks_at(rs.timelock_seconds),
    }
    if isinstance(prev, Pending):
        out["replaced_rate"] = int(prev.rate)
    return out


def commit(rs: RateState, *, now: int) -> Json:
    p = rs.proposal
    if not isinstance(p, Pending):
        raise IdenticalRate("no_pending_rate", {"rate": int(rs.current)})

    unlocks_at = p.unlocks_at(rs.timelock_seconds)
    if int(now) < unlocks_at:
        raise TimelockNotElapsed({"now": int(now), "unlocks_at": unlocks_at})

    if int(p.rate) == int(rs.current):
        raise IdenticalRate("same_rates", {"rate": int(p.rate)})

    prev = int(rs.current)
    rs.current = int(p.rate)
    rs.proposal = Stable()
    return {"previous_rate": prev, "rate": int(rs.current)}


__all__ = ["check_rate_bounds", "current_rate", "is_pending", "propose", "commit"]
