"""EventHistorySource protocol - supplies raw contract logs per event type."""

from __future__ import annotations

from typing import Protocol

from event_pinner.models.events import RawLogEntry


class EventHistorySource(Protocol):
    """Read access to the ingested event log."""

    async def get_logs(self, address: str, signature: str) -> list[RawLogEntry]:
        """Return every stored log for (address, signature), removed ones included."""
        ...
