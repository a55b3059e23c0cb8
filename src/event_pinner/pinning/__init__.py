"""Application of pin diffs."""

from event_pinner.pinning.driver import PinDriver
from event_pinner.pinning.guard import RunGuard

__all__ = ["PinDriver", "RunGuard"]
