from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


Json = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class ProgramView:
    """
    Immutable read-only view over a ProgramState snapshot (ProgramState.to_json()).
    """

    admin: str = ""
    window: Dict[str, Any] = field(default_factory=dict)
    rate: Dict[str, Any] = field(default_factory=dict)
    pool: Dict[str, Any] = field(default_factory=dict)
    records: Dict[str, Any] = field(default_factory=dict)
    total_staked: int = 0

    @classmethod
    def from_snapshot(cls, snap: Dict[str, Any]) -> "ProgramView":
        return cls(
            admin=str(snap.get("admin") or ""),
            window=copy.deepcopy(snap.get("window", {})),
            rate=copy.deepcopy(snap.get("rate", {})),
            pool=copy.deepcopy(snap.get("pool", {})),
            records=copy.deepcopy(snap.get("records", {})),
            total_staked=int(snap.get("total_staked", 0) or 0),
        )

    @property
    def current_rate(self) -> int:
        try:
            return int(self.rate.get("current", 0))
        except Exception:
            return 0

    @property
    def proposed_rate(self) -> Optional[int]:
        p = self.rate.get("proposal")
        if isinstance(p, dict) and p.get("state") == "pending":
            return int(p.get("rate", 0))
        return None

    @property
    def proposal_timestamp(self) -> Optional[int]:
        p = self.rate.get("proposal")
        if isinstance(p, dict) and p.get("state") == "pending":
            return int(p.get("since", 0))
        return None

    @property
    def reward_pool_supply(self) -> int:
        try:
            return int(self.pool.get("supply", 0))
        except Exception:
            return 0

    def summary(self) -> Json:
        return {
            "admin": self.admin,
            "window": dict(self.window),
            "current_rate": self.current_rate,
            "proposed_rate": self.proposed_rate,
            "proposal_timestamp": self.proposal_timestamp,
            "timelock_seconds": int(self.rate.get("timelock_seconds", 0) or 0),
            "total_staked": int(self.total_staked),
            "reward_pool": dict(self.pool),
            "participants": len(self.records),
        }
