"""Reconciler - folds an event history into the desired pin-set."""

from __future__ import annotations

import logging
from typing import Iterable

from event_pinner.models.events import EventRecord
from event_pinner.models.records import PinDiff

log = logging.getLogger(__name__)


class Reconciler:
    """Computes the desired pin-set for one (address, signature) pair.

    Stateless: every call recomputes from the full history it is given, so a
    reorg that retroactively removes an old event is always honoured.

    Fold rules, applied in canonical ``(block, tx, log)`` order:
    1. records whose identity was cancelled by a ``removed`` record are dropped
    2. ``old_hash``, when currently active, leaves the set
    3. ``new_hash`` enters the set (re-announcing is a no-op)
    """

    def __init__(self, address: str, signature: str) -> None:
        self._address = address.lower()
        self._signature = signature.lower()

    def live_records(self, records: Iterable[EventRecord]) -> list[EventRecord]:
        """Records that survive reorg cancellation, in canonical order."""
        mine = [
            r for r in records
            if r.contract_address == self._address and r.signature == self._signature
        ]
        cancelled = {r.identity for r in mine if r.removed}
        live = [r for r in mine if not r.removed and r.identity not in cancelled]
        if cancelled:
            log.debug(
                "%d event(s) cancelled by reorg for %s/%s",
                len(cancelled), self._address, self._signature[:10],
            )
        return sorted(live, key=lambda r: r.order_key)

    def desired(self, records: Iterable[EventRecord]) -> dict[str, EventRecord]:
        """Desired hash -> the record that last announced it."""
        active: dict[str, EventRecord] = {}
        for record in self.live_records(records):
            if record.old_hash is not None:
                active.pop(record.old_hash, None)
            if record.new_hash is not None:
                active[record.new_hash] = record
        return active

    def diff(self, records: Iterable[EventRecord], persisted: Iterable[str]) -> PinDiff:
        """Delta that turns the persisted snapshot into the desired set."""
        desired = self.desired(records)
        current = set(persisted)
        wanted = set(desired)
        return PinDiff(
            to_pin=frozenset(wanted - current),
            to_unpin=frozenset(current - wanted),
            sources=desired,
        )
