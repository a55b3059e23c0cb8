"""SQLite implementation of the history source, pin-state and report stores."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite

from event_pinner.errors import PinStateStoreError
from event_pinner.models.events import RawLogEntry
from event_pinner.models.records import CycleReport, PinRecord

SCHEMA = """
-- Ingested contract logs (written by the ingestion layer)
CREATE TABLE IF NOT EXISTS tx_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    address TEXT NOT NULL,
    signature TEXT NOT NULL,
    args TEXT NOT NULL,
    block_number INTEGER NOT NULL,
    tx_index INTEGER NOT NULL,
    log_index INTEGER NOT NULL,
    removed INTEGER NOT NULL DEFAULT 0,
    data_index_start INTEGER NOT NULL DEFAULT -1,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_tx_logs_identity
    ON tx_logs(address, signature, block_number, tx_index, log_index, removed);

-- Live pin-set: one row per (hash, event type) holding it
CREATE TABLE IF NOT EXISTS pins (
    hash TEXT NOT NULL,
    multihash TEXT NOT NULL,
    address TEXT NOT NULL,
    signature TEXT NOT NULL,
    block_number INTEGER,
    tx_index INTEGER,
    log_index INTEGER,
    pinned_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (hash, address, signature)
);
CREATE INDEX IF NOT EXISTS idx_pins_event ON pins(address, signature);

-- Reconciliation cycle history
CREATE TABLE IF NOT EXISTS cycle_reports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_name TEXT NOT NULL,
    address TEXT NOT NULL,
    signature TEXT NOT NULL,
    started_at TEXT NOT NULL,
    completed_at TEXT NOT NULL,
    records_seen INTEGER NOT NULL,
    records_skipped INTEGER NOT NULL,
    desired INTEGER NOT NULL,
    pinned INTEGER NOT NULL,
    unpinned INTEGER NOT NULL,
    failed INTEGER NOT NULL,
    overlap_skipped INTEGER NOT NULL,
    duration_ms INTEGER NOT NULL,
    error TEXT
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return value


class SQLiteStateStore:
    """SQLite-backed EventHistorySource, PinStateStore and CycleReportStore."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise PinStateStoreError("store is not open; call initialize() first")
        return self._db

    # ── Event history ──────────────────────────────────────

    async def save_log(self, raw: RawLogEntry) -> bool:
        """Store an ingested log. False if the identical entry already exists."""
        cur = await self.db.execute(
            "INSERT OR IGNORE INTO tx_logs"
            " (address, signature, args, block_number, tx_index, log_index,"
            "  removed, data_index_start, created_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                raw.address.lower(), raw.signature.lower(),
                json.dumps([_jsonable(a) for a in raw.args]),
                raw.block_number, raw.tx_index, raw.log_index,
                int(raw.removed), raw.data_index_start, _now(),
            ),
        )
        await self.db.commit()
        return cur.rowcount > 0

    async def get_logs(self, address: str, signature: str) -> list[RawLogEntry]:
        async with self.db.execute(
            "SELECT * FROM tx_logs WHERE address=? AND signature=?"
            " ORDER BY block_number, tx_index, log_index, removed",
            (address.lower(), signature.lower()),
        ) as cur:
            return [_row_to_log(row) async for row in cur]

    async def count_logs(self) -> int:
        async with self.db.execute("SELECT COUNT(*) AS c FROM tx_logs") as cur:
            row = await cur.fetchone()
            return row["c"] if row else 0

    # ── Pins ───────────────────────────────────────────────

    async def upsert_pin(self, record: PinRecord) -> None:
        try:
            await self.db.execute(
                "INSERT INTO pins"
                " (hash, multihash, address, signature, block_number, tx_index,"
                "  log_index, pinned_at)"
                " VALUES (?, ?, ?, ?, ?, ?, ?, ?)"
                " ON CONFLICT(hash, address, signature) DO UPDATE SET"
                " multihash=excluded.multihash, block_number=excluded.block_number,"
                " tx_index=excluded.tx_index, log_index=excluded.log_index",
                (
                    record.hash, record.multihash,
                    record.contract_address.lower(), record.signature.lower(),
                    record.block_number, record.tx_index, record.log_index,
                    record.pinned_at or _now(),
                ),
            )
            await self.db.commit()
        except aiosqlite.OperationalError as exc:
            raise PinStateStoreError(f"upsert {record.hash}: {exc}") from exc

    async def delete_pin(self, hash: str, address: str, signature: str) -> None:
        """Drop one event type's hold on ``hash``."""
        try:
            await self.db.execute(
                "DELETE FROM pins WHERE hash=? AND address=? AND signature=?",
                (hash, address.lower(), signature.lower()),
            )
            await self.db.commit()
        except aiosqlite.OperationalError as exc:
            raise PinStateStoreError(f"delete {hash}: {exc}") from exc

    async def count_by_hash(self, hash: str) -> int:
        """0 or 1, however many event types hold the hash."""
        async with self.db.execute(
            "SELECT COUNT(DISTINCT hash) AS c FROM pins WHERE hash=?", (hash,)
        ) as cur:
            row = await cur.fetchone()
            return row["c"] if row else 0

    async def count_holders(self, hash: str) -> int:
        """Number of (address, signature) pairs currently holding ``hash``."""
        async with self.db.execute(
            "SELECT COUNT(*) AS c FROM pins WHERE hash=?", (hash,)
        ) as cur:
            row = await cur.fetchone()
            return row["c"] if row else 0

    async def list_active(self, address: str, signature: str) -> set[str]:
        async with self.db.execute(
            "SELECT hash FROM pins WHERE address=? AND signature=?",
            (address.lower(), signature.lower()),
        ) as cur:
            return {row["hash"] async for row in cur}

    async def get_pin(
        self, hash: str, address: str | None = None, signature: str | None = None,
    ) -> PinRecord | None:
        """The pin row for ``hash``, optionally for one event type only."""
        sql = "SELECT * FROM pins WHERE hash=?"
        params: tuple = (hash,)
        if address and signature:
            sql += " AND address=? AND signature=?"
            params = (hash, address.lower(), signature.lower())
        async with self.db.execute(sql + " ORDER BY pinned_at LIMIT 1", params) as cur:
            row = await cur.fetchone()
            return _row_to_pin(row) if row else None

    async def get_all_pins(self) -> list[PinRecord]:
        async with self.db.execute("SELECT * FROM pins ORDER BY pinned_at") as cur:
            return [_row_to_pin(row) async for row in cur]

    async def count_pins(self) -> int:
        async with self.db.execute("SELECT COUNT(DISTINCT hash) AS c FROM pins") as cur:
            row = await cur.fetchone()
            return row["c"] if row else 0

    # ── Cycle reports ──────────────────────────────────────

    async def save_cycle_report(self, report: CycleReport) -> None:
        cur = await self.db.execute(
            "INSERT INTO cycle_reports"
            " (event_name, address, signature, started_at, completed_at,"
            "  records_seen, records_skipped, desired, pinned, unpinned, failed,"
            "  overlap_skipped, duration_ms, error)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                report.event_name, report.contract_address, report.signature,
                report.started_at, report.completed_at or _now(),
                report.records_seen, report.records_skipped, report.desired,
                report.pinned, report.unpinned, report.failed,
                int(report.overlap_skipped), report.duration_ms, report.error,
            ),
        )
        await self.db.commit()
        report.cycle_id = cur.lastrowid

    async def get_cycle_history(
        self, limit: int = 10, event_name: str | None = None,
    ) -> list[CycleReport]:
        if event_name:
            sql = "SELECT * FROM cycle_reports WHERE event_name=? ORDER BY id DESC LIMIT ?"
            params: tuple = (event_name, limit)
        else:
            sql = "SELECT * FROM cycle_reports ORDER BY id DESC LIMIT ?"
            params = (limit,)
        async with self.db.execute(sql, params) as cur:
            return [
                CycleReport(
                    cycle_id=row["id"],
                    event_name=row["event_name"],
                    contract_address=row["address"],
                    signature=row["signature"],
                    started_at=row["started_at"],
                    completed_at=row["completed_at"],
                    records_seen=row["records_seen"],
                    records_skipped=row["records_skipped"],
                    desired=row["desired"],
                    pinned=row["pinned"],
                    unpinned=row["unpinned"],
                    failed=row["failed"],
                    overlap_skipped=bool(row["overlap_skipped"]),
                    duration_ms=row["duration_ms"],
                    error=row["error"],
                )
                async for row in cur
            ]


# ── Row converters ─────────────────────────────────────────


def _row_to_log(row: aiosqlite.Row) -> RawLogEntry:
    return RawLogEntry(
        address=row["address"],
        signature=row["signature"],
        args=tuple(json.loads(row["args"])),
        block_number=row["block_number"],
        tx_index=row["tx_index"],
        log_index=row["log_index"],
        removed=bool(row["removed"]),
        data_index_start=row["data_index_start"],
    )


def _row_to_pin(row: aiosqlite.Row) -> PinRecord:
    return PinRecord(
        hash=row["hash"],
        multihash=row["multihash"],
        contract_address=row["address"],
        signature=row["signature"],
        block_number=row["block_number"],
        tx_index=row["tx_index"],
        log_index=row["log_index"],
        pinned_at=row["pinned_at"],
    )
