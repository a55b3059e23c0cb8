"""Protocol interfaces for the external collaborators of event_pinner."""

from event_pinner.interfaces.content import ContentStore
from event_pinner.interfaces.source import EventHistorySource
from event_pinner.interfaces.store import CycleReportStore, PinStateStore

__all__ = [
    "ContentStore",
    "CycleReportStore",
    "EventHistorySource",
    "PinStateStore",
]
