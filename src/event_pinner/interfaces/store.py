"""PinStateStore protocol - the live materialized view of pinned hashes."""

from __future__ import annotations

from typing import Protocol

from event_pinner.models.records import CycleReport, PinRecord


class PinStateStore(Protocol):
    """Persists which hashes are pinned, one row per hash and holding event type."""

    async def upsert_pin(self, record: PinRecord) -> None:
        ...

    async def delete_pin(self, hash: str, address: str, signature: str) -> None:
        ...

    async def count_by_hash(self, hash: str) -> int:
        """0 or 1."""
        ...

    async def count_holders(self, hash: str) -> int:
        """How many (address, signature) pairs hold the hash."""
        ...

    async def list_active(self, address: str, signature: str) -> set[str]:
        ...


class CycleReportStore(Protocol):
    """Keeps a history of reconciliation cycles."""

    async def save_cycle_report(self, report: CycleReport) -> None:
        ...

    async def get_cycle_history(self, limit: int = 10) -> list[CycleReport]:
        ...
