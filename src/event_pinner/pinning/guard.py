"""Per-key run state with compare-and-set transitions."""

from __future__ import annotations

from typing import Hashable

from event_pinner.models.records import RunState


class RunGuard:
    """Tracks IDLE/RUNNING per key.

    ``try_begin`` and ``finish`` never await, so on a single event loop the
    IDLE -> RUNNING check-and-set cannot interleave with another task.
    """

    def __init__(self) -> None:
        self._states: dict[Hashable, RunState] = {}

    def state(self, key: Hashable) -> RunState:
        return self._states.get(key, RunState.IDLE)

    def try_begin(self, key: Hashable) -> bool:
        """Move key from IDLE to RUNNING. False if it was already RUNNING."""
        if self._states.get(key, RunState.IDLE) is RunState.RUNNING:
            return False
        self._states[key] = RunState.RUNNING
        return True

    def finish(self, key: Hashable) -> None:
        self._states[key] = RunState.IDLE

    def running(self) -> list[Hashable]:
        return [k for k, s in self._states.items() if s is RunState.RUNNING]
