# src/stakeledger/runtime/program.py
from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from stakeledger.ledger.constants import DEFAULT_TIMELOCK_SECONDS, MAX_RATE, MIN_RATE, PROGRAM_HOLDER_ID
from stakeledger.ledger.types import PoolState, ProgramState, ProgramWindow, RateState, StakeRecord
from stakeledger.runtime import accrual, rate_governor, reward_pool
from stakeledger.runtime.clock import Clock
from stakeledger.runtime.custody import Custody
from stakeledger.runtime.errors import (
    ConfigError,
    ReentrantCall,
    ReservedAccount,
    StakingError,
    Unauthorized,
    ZeroAmount,
)
from stakeledger.runtime.runtime_logging import log_event

Json = Dict[str, Any]

_log = logging.getLogger("stakeledger.program")


def validate_program_params(*, start: int, end: int, rate: int, timelock_seconds: int, now: int) -> None:
    if int(start) < int(now):
        raise ConfigError("invalid_config", "start_in_past", {"start": int(start), "now": int(now)})
    if int(start) >= int(end):
        raise ConfigError("invalid_config", "start_not_before_end", {"start": int(start), "end": int(end)})
    if not (MIN_RATE <= int(rate) <= MAX_RATE):
        raise ConfigError(
            "invalid_config",
            "rate_out_of_bounds",
            {"rate": int(rate), "min_rate": MIN_RATE, "max_rate": MAX_RATE},
        )
    if int(timelock_seconds) < 0:
        raise ConfigError("invalid_config", "negative_timelock", {"timelock_seconds": int(timelock_seconds)})


class StakingProgram:
    """Public surface of the staking ledger.

    Every mutating call:
      1. takes the re-entry guard (nested calls fail with ReentrantCall)
      2. snapshots the aggregate
      3. validates, pulls inbound funds, settles and mutates
      4. records its receipt, THEN pushes outbound funds
    and restores the snapshot if anything raises along the way.

    Time comes from the injected clock, read once per call. The program's
    own holder id can never act as a caller: a transfer from the holder to
    itself would add principal or pool supply with no new funds behind it.

    Only the last `history_limit` receipts are kept in memory (all of them
    when None); the durable log lives in the executor's store.
    """

    def __init__(
        self,
        *,
        admin: str,
        custody: Custody,
        clock: Clock,
        rate: int,
        start: int,
        end: int,
        timelock_seconds: int = DEFAULT_TIMELOCK_SECONDS,
        holder: str = PROGRAM_HOLDER_ID,
        history_limit: Optional[int] = None,
    ) -> None:
        validate_program_params(
            start=start, end=end, rate=rate, timelock_seconds=timelock_seconds, now=clock.now()
        )
        if not str(admin or "").strip():
            raise ConfigError("invalid_config", "missing_admin", {})
        if str(admin).strip() == str(holder):
            raise ConfigError("invalid_config", "admin_is_holder", {"admin": str(admin)})

        state = ProgramState(
            admin=str(admin),
            window=ProgramWindow(start=int(start), end=int(end)),
            rate=RateState(current=int(rate), timelock_seconds=int(timelock_seconds)),
            pool=PoolState(),
        )
        self._init(state=state, custody=custody, clock=clock, holder=holder, events=[], history_limit=history_limit)

    @classmethod
    def from_state(
        cls,
        state: ProgramState,
        *,
        custody: Custody,
        clock: Clock,
        holder: str = PROGRAM_HOLDER_ID,
        events: Optional[List[Json]] = None,
        seq: Optional[int] = None,
        history_limit: Optional[int] = None,
    ) -> "StakingProgram":
        """Restore a program from a persisted aggregate (no start-in-past check).

        `events` may be just the tail of the log; pass `seq` so numbering
        continues from the last durable receipt.
        """
        prog = cls.__new__(cls)
        prog._init(
            state=state,
            custody=custody,
            clock=clock,
            holder=holder,
            events=list(events or []),
            seq=seq,
            history_limit=history_limit,
        )
        return prog

    def _init(
        self,
        *,
        state: ProgramState,
        custody: Custody,
        clock: Clock,
        holder: str,
        events: List[Json],
        seq: Optional[int] = None,
        history_limit: Optional[int] = None,
    ) -> None:
        self._state = state
        self._custody = custody
        self._clock = clock
        self._holder = str(holder)
        self._events = events
        self._seq = max((int(e.get("seq", 0)) for e in events), default=0)
        if seq is not None:
            self._seq = max(self._seq, int(seq))
        self._history_limit = None if history_limit is None else max(0, int(history_limit))
        self._trim_history()
        self._active_op: Optional[str] = None

    # ------------------------------------------------------------------
    # operation plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self, op: str, caller: str) -> Iterator[int]:
        if self._active_op is not None:
            raise ReentrantCall({"op": op, "active_op": self._active_op, "caller": caller})

        self._active_op = op
        saved = copy.deepcopy(self._state)
        saved_seq = self._seq
        saved_events = len(self._events)
        try:
            if str(caller) == self._holder:
                raise ReservedAccount({"op": op, "caller": str(caller)})
            yield int(self._clock.now())
        except Exception as e:
            self._state = saved
            self._seq = saved_seq
            del self._events[saved_events:]
            if isinstance(e, StakingError):
                log_event(_log, "staking_op_rejected", op=op, caller=caller, code=e.code, reason=e.reason)
            raise
        else:
            self._trim_history()
        finally:
            self._active_op = None

    def _trim_history(self) -> None:
        if self._history_limit is not None and len(self._events) > self._history_limit:
            del self._events[: len(self._events) - self._history_limit]

    def _require_admin(self, caller: str, op: str) -> None:
        if str(caller) != self._state.admin:
            raise Unauthorized({"op": op, "caller": str(caller)})

    def _commit(self, receipt: Json, *, now: int, caller: str) -> Json:
        self._seq += 1
        receipt["seq"] = self._seq
        receipt["at"] = int(now)
        receipt["caller"] = str(caller)
        self._events.append(receipt)
        log_event(_log, "staking_op", **{k: v for k, v in receipt.items() if k != "settled"})
        return copy.deepcopy(receipt)

    # ------------------------------------------------------------------
    # participant operations
    # ------------------------------------------------------------------

    def stake(self, caller: str, amount: int) -> Json:
        with self._operation("STAKE", caller) as now:
            accrual.check_stake(self._state, amount, now=now)
            self._custody.transfer_in(caller, int(amount))
            settled = accrual.stake(self._state, caller, int(amount), now=now)
            rec = self._state.record(caller)
            return self._commit(
                {
                    "applied": "STAKE",
                    "amount": int(amount),
                    "principal": int(rec.principal),
                    "total_staked": int(self._state.total_staked),
                    "settled": settled,
                },
                now=now,
                caller=caller,
            )

    def claim(self, caller: str) -> Json:
        with self._operation("CLAIM", caller) as now:
            reward, settled = accrual.claim(self._state, caller, now=now)
            reward_pool.disburse(self._state.pool, reward)
            receipt = self._commit(
                {"applied": "CLAIM", "reward": int(reward), "settled": settled},
                now=now,
                caller=caller,
            )
            self._custody.transfer_out(caller, int(reward))
            return receipt

    def withdraw(self, caller: str) -> Json:
        with self._operation("WITHDRAW", caller) as now:
            principal, reward, settled = accrual.withdraw(self._state, caller, now=now)
            reward_pool.disburse(self._state.pool, reward)
            receipt = self._commit(
                {
                    "applied": "WITHDRAW",
                    "principal": int(principal),
                    "reward": int(reward),
                    "total_staked": int(self._state.total_staked),
                    "settled": settled,
                },
                now=now,
                caller=caller,
            )
            self._custody.transfer_out(caller, int(principal) + int(reward))
            return receipt

    # ------------------------------------------------------------------
    # admin operations
    # ------------------------------------------------------------------

    def propose_rate(self, caller: str, new_rate: int) -> Json:
        with self._operation("RATE_PROPOSE", caller) as now:
            self._require_admin(caller, "RATE_PROPOSE")
            out = rate_governor.propose(self._state.rate, int(new_rate), now=now)
            return self._commit({"applied": "RATE_PROPOSE", **out}, now=now, caller=caller)

    def commit_rate(self, caller: str) -> Json:
        with self._operation("RATE_COMMIT", caller) as now:
            self._require_admin(caller, "RATE_COMMIT")
            out = rate_governor.commit(self._state.rate, now=now)
            return self._commit({"applied": "RATE_COMMIT", **out}, now=now, caller=caller)

    def fund(self, caller: str, amount: int) -> Json:
        with self._operation("FUND", caller) as now:
            self._require_admin(caller, "FUND")
            if int(amount) <= 0:
                raise ZeroAmount({"op": "fund", "amount": int(amount)})
            self._custody.transfer_in(caller, int(amount))
            out = reward_pool.fund(self._state.pool, int(amount))
            return self._commit({"applied": "FUND", **out}, now=now, caller=caller)

    def sweep_excess(self, caller: str) -> Json:
        with self._operation("SWEEP", caller) as now:
            self._require_admin(caller, "SWEEP")
            balance = int(self._custody.balance_of(self._holder))
            ex = reward_pool.excess(
                self._state.pool, custody_balance=balance, total_staked=self._state.total_staked
            )
            if ex <= 0:
                return {"applied": "SWEEP", "amount": 0, "noop": True, "at": int(now), "caller": str(caller)}
            receipt = self._commit(
                {"applied": "SWEEP", "amount": int(ex), "balance_before": balance},
                now=now,
                caller=caller,
            )
            self._custody.transfer_out(caller, int(ex))
            return receipt

    def transfer_admin(self, caller: str, new_admin: str) -> Json:
        with self._operation("ADMIN_TRANSFER", caller) as now:
            self._require_admin(caller, "ADMIN_TRANSFER")
            nxt = str(new_admin or "").strip()
            if not nxt:
                raise ConfigError("invalid_config", "missing_admin", {"new_admin": new_admin})
            if nxt == self._holder:
                raise ReservedAccount({"op": "ADMIN_TRANSFER", "new_admin": nxt})
            prev = self._state.admin
            self._state.admin = nxt
            return self._commit({"applied": "ADMIN_TRANSFER", "previous_admin": prev, "admin": nxt}, now=now, caller=caller)

    # ------------------------------------------------------------------
    # read-only views
    # ------------------------------------------------------------------

    def pending_reward(self, account: str) -> int:
        return accrual.pending_reward(self._state, str(account), now=self._clock.now())

    def record(self, account: str) -> StakeRecord:
        rec = self._state.records.get(str(account))
        return copy.copy(rec) if rec is not None else StakeRecord()

    @property
    def admin(self) -> str:
        return self._state.admin

    @property
    def holder(self) -> str:
        return self._holder

    @property
    def window(self) -> ProgramWindow:
        return self._state.window

    @property
    def total_staked(self) -> int:
        return int(self._state.total_staked)

    @property
    def current_rate(self) -> int:
        return rate_governor.current_rate(self._state.rate)

    @property
    def proposed_rate(self) -> Optional[int]:
        return self._state.rate.proposed_rate

    @property
    def proposal_timestamp(self) -> Optional[int]:
        return self._state.rate.proposal_timestamp

    @property
    def timelock_seconds(self) -> int:
        return int(self._state.rate.timelock_seconds)

    @property
    def reward_pool_supply(self) -> int:
        return int(self._state.pool.supply)

    @property
    def pool(self) -> PoolState:
        return copy.copy(self._state.pool)

    def custody_balance(self) -> int:
        return int(self._custody.balance_of(self._holder))

    @property
    def seq(self) -> int:
        return int(self._seq)

    @property
    def events(self) -> List[Json]:
        return self.recent_events()

    def recent_events(self, limit: Optional[int] = None) -> List[Json]:
        """Copies of the newest `limit` in-memory receipts, oldest first."""
        if limit is None:
            tail = self._events
        elif int(limit) <= 0:
            return []
        else:
            tail = self._events[-int(limit):]
        return copy.deepcopy(tail)

    def snapshot(self) -> Json:
        return self._state.to_json()


__all__ = ["StakingProgram", "validate_program_params"]
