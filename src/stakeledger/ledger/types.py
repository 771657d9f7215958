"""stakeledger.ledger.types

Program state object model.

This module defines:
  - ProgramWindow: the immutable [start, end] staking interval
  - StakeRecord: per-participant bookkeeping
  - Stable / Pending: tagged rate-proposal state
  - RateState: current rate + proposal + timelock
  - PoolState: reward funds allocated by the operator
  - ProgramState: the aggregate owned by StakingProgram

Every type round-trips through plain JSON (to_json / from_json) so the
aggregate can be snapshotted, persisted in SQLite and restored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

Json = Dict[str, Any]


def _coerce_int(v: Any, *, field: str) -> int:
    try:
        # bool is an int subclass; disallow it explicitly
        if isinstance(v, bool):
            raise ValueError("bool is not a valid int")
        return int(v)
    except Exception as e:
        raise ValueError(f"ProgramState schema error: field '{field}' must be int-coercible (got {type(v).__name__})") from e


def _require_dict(v: Any, *, field: str) -> Json:
    if isinstance(v, dict):
        return v
    raise ValueError(f"ProgramState schema error: field '{field}' must be dict (got {type(v).__name__})")


@dataclass(frozen=True, slots=True)
class ProgramWindow:
    start: int
    end: int

    @property
    def duration(self) -> int:
        return int(self.end) - int(self.start)

    def contains(self, now: int) -> bool:
        return int(self.start) <= int(now) <= int(self.end)

    def clamp(self, now: int) -> int:
        return min(int(now), int(self.end))

    def to_json(self) -> Json:
        return {"start": int(self.start), "end": int(self.end)}

    @staticmethod
    def from_json(j: Any) -> "ProgramWindow":
        d = _require_dict(j, field="window")
        return ProgramWindow(
            start=_coerce_int(d.get("start"), field="window.start"),
            end=_coerce_int(d.get("end"), field="window.end"),
        )


@dataclass(slots=True)
class StakeRecord:
    principal: int = 0
    stored_reward: int = 0
    accumulator: int = 0
    last_touch: int = 0

    def to_json(self) -> Json:
        return {
            "principal": int(self.principal),
            "stored_reward": int(self.stored_reward),
            "accumulator": int(self.accumulator),
            "last_touch": int(self.last_touch),
        }

    @staticmethod
    def from_json(j: Any) -> "StakeRecord":
        d = _require_dict(j, field="record")
        return StakeRecord(
            principal=_coerce_int(d.get("principal", 0), field="record.principal"),
            stored_reward=_coerce_int(d.get("stored_reward", 0), field="record.stored_reward"),
            accumulator=_coerce_int(d.get("accumulator", 0), field="record.accumulator"),
            last_touch=_coerce_int(d.get("last_touch", 0), field="record.last_touch"),
        )


@dataclass(frozen=True, slots=True)
class Stable:
    """No rate proposal is awaiting commit."""

    tag = "stable"


@dataclass(frozen=True, slots=True)
class Pending:
    """A proposed rate waiting out the timelock that started at `since`."""

    rate: int
    since: int

    tag = "pending"

    def unlocks_at(self, timelock_seconds: int) -> int:
        return int(self.since) + int(timelock_seconds)


Proposal = Union[Stable, Pending]


def _proposal_to_json(p: Proposal) -> Json:
    if isinstance(p, Pending):
        return {"state": Pending.tag, "rate": int(p.rate), "since": int(p.since)}
    return {"state": Stable.tag}


def _proposal_from_json(j: Any) -> Proposal:
    d = j if isinstance(j, dict) else {}
    if str(d.get("state") or "").strip().lower() == Pending.tag:
        return Pending(
            rate=_coerce_int(d.get("rate"), field="rate.proposal.rate"),
            since=_coerce_int(d.get("since"), field="rate.proposal.since"),
        )
    return Stable()


@dataclass(slots=True)
class RateState:
    current: int
    timelock_seconds: int
    proposal: Proposal = field(default_factory=Stable)

    @property
    def proposed_rate(self) -> Optional[int]:
        return int(self.proposal.rate) if isinstance(self.proposal, Pending) else None

    @property
    def proposal_timestamp(self) -> Optional[int]:
        return int(self.proposal.since) if isinstance(self.proposal, Pending) else None

    def to_json(self) -> Json:
        return {
            "current": int(self.current),
            "timelock_seconds": int(self.timelock_seconds),
            "proposal": _proposal_to_json(self.proposal),
        }

    @staticmethod
    def from_json(j: Any) -> "RateState":
        d = _require_dict(j, field="rate")
        return RateState(
            current=_coerce_int(d.get("current"), field="rate.current"),
            timelock_seconds=_coerce_int(d.get("timelock_seconds"), field="rate.timelock_seconds"),
            proposal=_proposal_from_json(d.get("proposal")),
        )


@dataclass(slots=True)
class PoolState:
    supply: int = 0
    total_funded: int = 0
    total_paid: int = 0

    def to_json(self) -> Json:
        return {
            "supply": int(self.supply),
            "total_funded": int(self.total_funded),
            "total_paid": int(self.total_paid),
        }

    @staticmethod
    def from_json(j: Any) -> "PoolState":
        d = j if isinstance(j, dict) else {}
        return PoolState(
            supply=_coerce_int(d.get("supply", 0), field="pool.supply"),
            total_funded=_coerce_int(d.get("total_funded", 0), field="pool.total_funded"),
            total_paid=_coerce_int(d.get("total_paid", 0), field="pool.total_paid"),
        )


@dataclass(slots=True)
class ProgramState:
    """Aggregate owned by StakingProgram; no other component keeps state."""

    admin: str
    window: ProgramWindow
    rate: RateState
    pool: PoolState = field(default_factory=PoolState)
    records: Dict[str, StakeRecord] = field(default_factory=dict)
    total_staked: int = 0

    def record(self, account: str) -> StakeRecord:
        """Return the caller's record, creating it on first touch."""
        rec = self.records.get(account)
        if rec is None:
            rec = StakeRecord()
            self.records[account] = rec
        return rec

    def to_json(self) -> Json:
        return {
            "admin": str(self.admin),
            "window": self.window.to_json(),
            "rate": self.rate.to_json(),
            "pool": self.pool.to_json(),
            "records": {k: v.to_json() for k, v in sorted(self.records.items())},
            "total_staked": int(self.total_staked),
        }

    @staticmethod
    def from_json(j: Any) -> "ProgramState":
        d = _require_dict(j, field="program")
        records = d.get("records")
        if records is None:
            records = {}
        records = _require_dict(records, field="records")
        return ProgramState(
            admin=str(d.get("admin") or ""),
            window=ProgramWindow.from_json(d.get("window")),
            rate=RateState.from_json(d.get("rate")),
            pool=PoolState.from_json(d.get("pool")),
            records={str(k): StakeRecord.from_json(v) for k, v in records.items()},
            total_staked=_coerce_int(d.get("total_staked", 0), field="total_staked"),
        )


__all__ = [
    "Json",
    "ProgramWindow",
    "StakeRecord",
    "Stable",
    "Pending",
    "Proposal",
    "RateState",
    "PoolState",
    "ProgramState",
]
