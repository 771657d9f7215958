# src/stakeledger/ledger/audit.py
from __future__ import annotations

"""Settlement-log helpers.

Every committed operation leaves a receipt; receipts that settled a record
carry a `settled` block:

  {"account", "from", "to", "elapsed", "increment", "rate", "earned"}

A record's time-weighted accumulator is exactly the sum of its settled
increments, so it can always be rebuilt from the log instead of being
trusted as a second source of truth.
"""

from typing import Any, Dict, Iterable, List

Json = Dict[str, Any]


def _settlements(events: Iterable[Any], account: str) -> List[Json]:
    out: List[Json] = []
    for ev in events or []:
        if not isinstance(ev, dict):
            continue
        s = ev.get("settled")
        if isinstance(s, dict) and str(s.get("account") or "") == account:
            out.append(s)
    return out


def replay_accumulator(events: Iterable[Any], account: str) -> int:
    return sum(int(s.get("increment", 0)) for s in _settlements(events, account))


def replay_earned(events: Iterable[Any], account: str) -> int:
    """Total reward ever settled for `account` (claimed or not)."""
    return sum(int(s.get("earned", 0)) for s in _settlements(events, account))


__all__ = ["replay_accumulator", "replay_earned"]
