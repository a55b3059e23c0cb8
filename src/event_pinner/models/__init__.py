"""Data models for the event_pinner daemon."""

from event_pinner.models.events import (
    EventDefinition,
    EventInput,
    EventRecord,
    FieldLayout,
    RawLogEntry,
)
from event_pinner.models.records import (
    ApplyReport,
    CycleReport,
    PinDiff,
    PinRecord,
    RunState,
)
from event_pinner.models.config import (
    DaemonConfig,
    EventTypeConfig,
    PinningConfig,
)

__all__ = [
    "EventDefinition", "EventInput", "EventRecord", "FieldLayout", "RawLogEntry",
    "ApplyReport", "CycleReport", "PinDiff", "PinRecord", "RunState",
    "DaemonConfig", "EventTypeConfig", "PinningConfig",
]
