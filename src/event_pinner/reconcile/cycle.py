"""One fetch -> decode -> reconcile -> apply cycle for a configured event type."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from event_pinner.decoding.decoder import EventDecoder
from event_pinner.errors import HashFormatError
from event_pinner.interfaces.source import EventHistorySource
from event_pinner.interfaces.store import CycleReportStore, PinStateStore
from event_pinner.models.config import EventTypeConfig
from event_pinner.models.events import EventDefinition, EventRecord
from event_pinner.models.records import CycleReport
from event_pinner.pinning.driver import PinDriver
from event_pinner.reconcile.reconciler import Reconciler

log = logging.getLogger(__name__)


@dataclass
class ResolvedEventType:
    """An event type whose layout and schedule passed validation."""

    config: EventTypeConfig
    definition: EventDefinition
    address: str
    schedule: str
    decoder: EventDecoder

    @property
    def name(self) -> str:
        return self.config.event_name

    @property
    def signature(self) -> str:
        return self.decoder.layout.signature

    @property
    def key(self) -> tuple[str, str]:
        return (self.address.lower(), self.signature)


class ReconcileCycle:
    """Runs the per-cycle pipeline as plain sequential steps.

    1. Read the full log history for (address, signature)
    2. Decode every entry (malformed hash values are skipped)
    3. Fold into the desired set and diff against persisted pin state
    4. Apply the diff through the PinDriver
    5. Record the cycle report
    """

    def __init__(
        self,
        source: EventHistorySource,
        pin_store: PinStateStore,
        driver: PinDriver,
        reports: CycleReportStore | None = None,
    ) -> None:
        self._source = source
        self._pin_store = pin_store
        self._driver = driver
        self._reports = reports

    async def run(self, event_type: ResolvedEventType) -> CycleReport:
        address, signature = event_type.key
        start_time = time.monotonic()
        report = CycleReport(
            event_name=event_type.name,
            contract_address=address,
            signature=signature,
            started_at=datetime.now(timezone.utc).isoformat(),
        )

        try:
            raw_logs = await self._source.get_logs(address, signature)
            report.records_seen = len(raw_logs)

            records: list[EventRecord] = []
            for raw in raw_logs:
                try:
                    records.append(event_type.decoder.decode(raw))
                except HashFormatError as exc:
                    report.records_skipped += 1
                    log.warning(
                        "Skipping %s log at %d/%d/%d: %s",
                        event_type.name, raw.block_number, raw.tx_index, raw.log_index, exc,
                    )

            persisted = await self._pin_store.list_active(address, signature)
            reconciler = Reconciler(address, signature)
            diff = reconciler.diff(records, persisted)
            report.desired = len(diff.sources)

            applied = await self._driver.apply(address, signature, diff)
            report.pinned = len(applied.pinned)
            report.unpinned = len(applied.unpinned)
            report.failed = len(applied.failed)
            report.overlap_skipped = applied.skipped
        except asyncio.CancelledError:
            report.error = "cancelled"
            raise
        except Exception as exc:
            report.error = str(exc) or type(exc).__name__
            raise
        finally:
            report.duration_ms = int((time.monotonic() - start_time) * 1000)
            report.completed_at = datetime.now(timezone.utc).isoformat()
            if self._reports is not None:
                await self._reports.save_cycle_report(report)

        log.info(
            "Cycle %s: %d logs, %d desired, %d pinned, %d unpinned, %d failed in %dms",
            event_type.name, report.records_seen, report.desired, report.pinned,
            report.unpinned, report.failed, report.duration_ms,
        )
        return report
