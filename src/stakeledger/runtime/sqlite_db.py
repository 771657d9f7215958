# src/stakeledger/runtime/sqlite_db.py
from __future__ import annotations

import os
import json
import sqlite3
import time
import random
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

Json = Dict[str, Any]

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS meta (
      key TEXT PRIMARY KEY,
      value TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS program_state (
      id INTEGER PRIMARY KEY CHECK (id = 1),
      seq INTEGER NOT NULL,
      program_json TEXT NOT NULL,
      asset_json TEXT NOT NULL,
      updated_ts_ms INTEGER NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS events (
      seq INTEGER PRIMARY KEY,
      applied TEXT NOT NULL,
      caller TEXT NOT NULL,
      at INTEGER NOT NULL,
      receipt_json TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_events_caller ON events(caller);",
)

_SYNC_LEVELS = ("OFF", "NORMAL", "FULL", "EXTRA")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _canon_json(obj: Any) -> str:
    """Canonical JSON encoding; a non-JSON value in persisted state must fail fast."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    raw = str(os.environ.get(name, "")).strip()
    try:
        return int(raw) if raw else int(default)
    except ValueError:
        return int(default)


class SqliteDB:
    """One SQLite file holding the program snapshot, the asset and the receipt log.

    Connections are opened per use and never shared across threads. Every
    connection runs in WAL mode so readers (GET /v1/events) do not block the
    single writer. Writers use BEGIN IMMEDIATE and retry while the file is
    locked, up to STAKELEDGER_SQLITE_WRITE_DEADLINE_MS.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    @staticmethod
    def synchronous_level() -> str:
        # FULL in prod so an acknowledged stake survives power loss.
        mode = (os.environ.get("STAKELEDGER_MODE") or "prod").strip().lower()
        default = "FULL" if mode == "prod" else "NORMAL"
        level = (os.environ.get("STAKELEDGER_SQLITE_SYNCHRONOUS") or default).strip().upper()
        return level if level in _SYNC_LEVELS else default

    def _connect(self) -> sqlite3.Connection:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        busy_ms = max(0, _env_int("STAKELEDGER_SQLITE_BUSY_TIMEOUT_MS", 30_000))

        con = sqlite3.connect(self.path, timeout=busy_ms / 1000.0, isolation_level=None, check_same_thread=False)
        con.row_factory = sqlite3.Row
        try:
            mode = str(con.execute("PRAGMA journal_mode=WAL;").fetchone()[0]).lower()
            if mode != "wal":
                raise RuntimeError(f"sqlite journal_mode is '{mode}', expected 'wal'")
            con.execute(f"PRAGMA synchronous={self.synchronous_level()};")
            con.execute(f"PRAGMA busy_timeout={busy_ms};")
        except Exception:
            con.close()
            raise
        return con

    def init_schema(self) -> None:
        with self.write_tx() as con:
            for stmt in _SCHEMA:
                con.execute(stmt)

            row = con.execute("SELECT value FROM meta WHERE key='schema_version';").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
            elif str(row["value"]) != str(self.SCHEMA_VERSION):
                raise RuntimeError(
                    f"sqlite schema_version mismatch: have={row['value']} want={self.SCHEMA_VERSION}. "
                    "Refuse to start to avoid corrupting data."
                )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        deadline = _now_ms() + max(250, _env_int("STAKELEDGER_SQLITE_WRITE_DEADLINE_MS", 30_000))

        with self.connection() as con:
            delay = 0.005
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    if "locked" not in str(e).lower() or _now_ms() >= deadline:
                        raise
                    time.sleep(delay * (0.5 + random.random()))
                    delay = min(0.25, delay * 2)

            try:
                yield con
                con.execute("COMMIT;")
            except Exception:
                con.execute("ROLLBACK;")
                raise


class SqliteProgramStore:
    """Program snapshot + receipt log persisted in SQLite.

    This provides:
      - exists(): whether a program has been persisted
      - read(): latest {"seq", "program", "asset"} snapshot
      - commit(program, asset, receipt): snapshot + receipt in ONE transaction
      - events(): receipts in seq order
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM program_state WHERE id=1;").fetchone() is not None

    def read(self) -> Json:
        with self._db.connection() as con:
            row = con.execute("SELECT seq, program_json, asset_json FROM program_state WHERE id=1;").fetchone()
            if row is None:
                raise FileNotFoundError("sqlite program_state is missing")
            program = json.loads(str(row["program_json"]))
            asset = json.loads(str(row["asset_json"]))
            if not isinstance(program, dict) or not isinstance(asset, dict):
                raise ValueError("program_state is not a JSON object")
            return {"seq": int(row["seq"]), "program": program, "asset": asset}

    def commit(self, *, program: Json, asset: Json, receipt: Optional[Json] = None) -> None:
        seq = int(receipt.get("seq", 0)) if isinstance(receipt, dict) else 0
        now = _now_ms()
        with self._db.write_tx() as con:
            if isinstance(receipt, dict):
                con.execute(
                    "INSERT INTO events(seq, applied, caller, at, receipt_json) VALUES(?, ?, ?, ?, ?);",
                    (
                        seq,
                        str(receipt.get("applied") or ""),
                        str(receipt.get("caller") or ""),
                        int(receipt.get("at", 0)),
                        _canon_json(receipt),
                    ),
                )
            else:
                row = con.execute("SELECT seq FROM program_state WHERE id=1;").fetchone()
                seq = int(row["seq"]) if row is not None else 0
            con.execute(
                """
                INSERT INTO program_state(id, seq, program_json, asset_json, updated_ts_ms)
                VALUES(1, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                  seq=excluded.seq,
                  program_json=excluded.program_json,
                  asset_json=excluded.asset_json,
                  updated_ts_ms=excluded.updated_ts_ms;
                """,
                (seq, _canon_json(program), _canon_json(asset), now),
            )

    def events(self, *, limit: Optional[int] = None, caller: Optional[str] = None) -> List[Json]:
        sql = "SELECT receipt_json FROM events"
        args: List[Any] = []
        if caller:
            sql += " WHERE caller=?"
            args.append(str(caller))
        sql += " ORDER BY seq DESC"
        if limit is not None:
            sql += " LIMIT ?"
            args.append(max(0, int(limit)))
        with self._db.connection() as con:
            rows = con.execute(sql + ";", tuple(args)).fetchall()
        return [json.loads(str(r["receipt_json"])) for r in reversed(rows)]


__all__ = ["SqliteDB", "SqliteProgramStore"]
