# src/stakeledger/runtime/executor.py
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from stakeledger.ledger.state import ProgramView
from stakeledger.ledger.types import ProgramState
from stakeledger.runtime.clock import Clock, SystemClock
from stakeledger.runtime.custody import AssetCustody, MemoryAsset
from stakeledger.runtime.errors import ReservedAccount
from stakeledger.runtime.program import StakingProgram
from stakeledger.runtime.program_config import ProgramConfig, load_program_config, resolve_window
from stakeledger.runtime.runtime_logging import log_event
from stakeledger.runtime.sqlite_db import SqliteDB, SqliteProgramStore

Json = Dict[str, Any]

_log = logging.getLogger("stakeledger.executor")

# Receipts kept in memory; the full log stays in SQLite.
EVENT_HISTORY_LIMIT = 1000


class ExecutorError(RuntimeError):
    pass


class StakingExecutor:
    """Serializes program operations and persists each committed one.

    One lock guards the program and the asset: HTTP workers may run on
    threads, the program itself assumes strictly sequential calls.

    After a successful operation the program snapshot, the asset snapshot
    and the receipt are written in a single SQLite transaction. If that
    write fails, in-memory state is reloaded from the last durable snapshot
    and ExecutorError is raised.
    """

    def __init__(
        self,
        *,
        program: StakingProgram,
        asset: MemoryAsset,
        clock: Clock,
        store: Optional[SqliteProgramStore] = None,
        mode: str = "prod",
    ) -> None:
        self.program = program
        self.asset = asset
        self.clock = clock
        self.store = store
        self.mode = str(mode)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # boot
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, cfg: ProgramConfig, *, clock: Optional[Clock] = None) -> "StakingExecutor":
        clk = clock or SystemClock()
        store = SqliteProgramStore(db=SqliteDB(path=cfg.db_path))

        if store.exists():
            snap = store.read()
            asset = MemoryAsset.from_json(snap["asset"])
            program = StakingProgram.from_state(
                ProgramState.from_json(snap["program"]),
                custody=AssetCustody(asset, holder=cfg.holder),
                clock=clk,
                holder=cfg.holder,
                events=store.events(limit=EVENT_HISTORY_LIMIT),
                seq=int(snap["seq"]),
                history_limit=EVENT_HISTORY_LIMIT,
            )
            log_event(_log, "executor_restored", db_path=cfg.db_path, seq=int(snap["seq"]))
            return cls(program=program, asset=asset, clock=clk, store=store, mode=cfg.mode)

        start, end = resolve_window(cfg, now=clk.now())
        asset = MemoryAsset(symbol=cfg.asset_symbol)
        program = StakingProgram(
            admin=cfg.admin,
            custody=AssetCustody(asset, holder=cfg.holder),
            clock=clk,
            rate=cfg.rate,
            start=start,
            end=end,
            timelock_seconds=cfg.timelock_seconds,
            holder=cfg.holder,
            history_limit=EVENT_HISTORY_LIMIT,
        )
        store.commit(program=program.snapshot(), asset=asset.to_json())
        log_event(_log, "executor_created", db_path=cfg.db_path, start=start, end=end, rate=int(cfg.rate))
        return cls(program=program, asset=asset, clock=clk, store=store, mode=cfg.mode)

    def _reload(self) -> None:
        if self.store is None:
            return
        snap = self.store.read()
        self.asset = MemoryAsset.from_json(snap["asset"])
        self.program = StakingProgram.from_state(
            ProgramState.from_json(snap["program"]),
            custody=AssetCustody(self.asset, holder=self.program.holder),
            clock=self.clock,
            holder=self.program.holder,
            events=self.store.events(limit=EVENT_HISTORY_LIMIT),
            seq=int(snap["seq"]),
            history_limit=EVENT_HISTORY_LIMIT,
        )

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    def _run(self, fn: Callable[[], Json]) -> Json:
        with self._lock:
            receipt = fn()
            if self.store is None or receipt.get("noop"):
                return receipt
            try:
                self.store.commit(program=self.program.snapshot(), asset=self.asset.to_json(), receipt=receipt)
            except Exception as e:
                log_event(_log, "executor_persist_failed", level=logging.ERROR, error=str(e), seq=receipt.get("seq"))
                self._reload()
                raise ExecutorError(f"persist_failed:{e}") from e
            return receipt

    def stake(self, caller: str, amount: int) -> Json:
        return self._run(lambda: self.program.stake(caller, amount))

    def claim(self, caller: str) -> Json:
        return self._run(lambda: self.program.claim(caller))

    def withdraw(self, caller: str) -> Json:
        return self._run(lambda: self.program.withdraw(caller))

    def propose_rate(self, caller: str, rate: int) -> Json:
        return self._run(lambda: self.program.propose_rate(caller, rate))

    def commit_rate(self, caller: str) -> Json:
        return self._run(lambda: self.program.commit_rate(caller))

    def fund(self, caller: str, amount: int) -> Json:
        return self._run(lambda: self.program.fund(caller, amount))

    def sweep_excess(self, caller: str) -> Json:
        return self._run(lambda: self.program.sweep_excess(caller))

    def transfer_admin(self, caller: str, new_admin: str) -> Json:
        return self._run(lambda: self.program.transfer_admin(caller, new_admin))

    # asset helpers (the asset is the in-process custody ledger)

    def approve(self, owner: str, amount: int) -> Json:
        def _approve() -> Json:
            if str(owner) == self.program.holder:
                raise ReservedAccount({"op": "ASSET_APPROVE", "owner": str(owner)})
            self.asset.approve(owner, self.program.holder, int(amount))
            return {"applied": "ASSET_APPROVE", "owner": owner, "spender": self.program.holder, "amount": int(amount)}

        return self._persist_asset_only(_approve)

    def mint(self, to: str, amount: int) -> Json:
        def _mint() -> Json:
            self.asset.mint(to, int(amount))
            return {"applied": "ASSET_MINT", "to": to, "amount": int(amount)}

        return self._persist_asset_only(_mint)

    def _persist_asset_only(self, fn: Callable[[], Json]) -> Json:
        with self._lock:
            out = fn()
            if self.store is not None:
                try:
                    self.store.commit(program=self.program.snapshot(), asset=self.asset.to_json())
                except Exception as e:
                    log_event(_log, "executor_persist_failed", level=logging.ERROR, error=str(e), op=out.get("applied"))
                    self._reload()
                    raise ExecutorError(f"persist_failed:{e}") from e
            return out

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def view(self) -> ProgramView:
        with self._lock:
            return ProgramView.from_snapshot(self.program.snapshot())

    def account(self, account: str) -> Json:
        with self._lock:
            rec = self.program.record(account)
            return {
                **rec.to_json(),
                "pending_reward": self.program.pending_reward(account),
                "balance": self.asset.balance_of(account),
                "allowance": self.asset.allowance(account, self.program.holder),
            }

    def pending_reward(self, account: str) -> int:
        with self._lock:
            return self.program.pending_reward(account)

    def custody_balance(self) -> int:
        with self._lock:
            return self.program.custody_balance()

    def events(self, *, limit: Optional[int] = None, caller: Optional[str] = None) -> List[Json]:
        """Newest receipts, oldest first. Served from SQLite when a store is attached."""
        if self.store is not None:
            return self.store.events(limit=limit, caller=caller)
        with self._lock:
            evs = self.program.recent_events(None if caller else limit)
        if caller:
            evs = [e for e in evs if e.get("caller") == caller]
            if limit is not None:
                evs = evs[-int(limit):] if int(limit) > 0 else []
        return evs


def build_executor(*, clock: Optional[Clock] = None) -> StakingExecutor:
    """Build the runtime executor from env / config file."""
    return StakingExecutor.from_config(load_program_config(), clock=clock)


__all__ = ["ExecutorError", "StakingExecutor", "build_executor"]
