"""Internal record types for pin state persistence and operation results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from event_pinner.models.events import EventRecord


class RunState(str, Enum):
    """Per-(address, signature) run state."""

    IDLE = "idle"
    RUNNING = "running"


@dataclass
class PinRecord:
    """A hash currently pinned on behalf of one event type."""

    hash: str  # fixed-width bytes32
    multihash: str
    contract_address: str
    signature: str
    block_number: int | None = None
    tx_index: int | None = None
    log_index: int | None = None
    pinned_at: str = ""

    @classmethod
    def from_event(cls, record: EventRecord, multihash: str) -> PinRecord:
        return cls(
            hash=record.new_hash or "",
            multihash=multihash,
            contract_address=record.contract_address,
            signature=record.signature,
            block_number=record.block_number,
            tx_index=record.tx_index,
            log_index=record.log_index,
        )

    @property
    def source_event(self) -> tuple[int, int, int] | None:
        if self.block_number is None:
            return None
        return (self.block_number, self.tx_index or 0, self.log_index or 0)


@dataclass(frozen=True)
class PinDiff:
    """Delta between the desired pin-set and the persisted snapshot."""

    to_pin: frozenset[str] = frozenset()
    to_unpin: frozenset[str] = frozenset()
    sources: Mapping[str, EventRecord] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not self.to_pin and not self.to_unpin


@dataclass
class ApplyReport:
    """Outcome of one PinDriver.apply() call."""

    pinned: set[str] = field(default_factory=set)
    unpinned: set[str] = field(default_factory=set)
    failed: dict[str, str] = field(default_factory=dict)  # hash -> error
    skipped: bool = False  # overlapping application for the same pair


@dataclass
class CycleReport:
    """Summary of one fetch-reconcile-pin cycle."""

    event_name: str
    contract_address: str
    signature: str
    started_at: str = ""
    completed_at: str = ""
    records_seen: int = 0
    records_skipped: int = 0  # malformed hash values
    desired: int = 0
    pinned: int = 0
    unpinned: int = 0
    failed: int = 0
    overlap_skipped: bool = False
    duration_ms: int = 0
    error: str | None = None
    cycle_id: int | None = None
