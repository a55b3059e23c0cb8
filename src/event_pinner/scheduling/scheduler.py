"""Cron scheduler - one independent reconcile loop per event type."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from croniter import croniter

from event_pinner.errors import ConfigurationError
from event_pinner.models.records import CycleReport, RunState
from event_pinner.pinning.guard import RunGuard
from event_pinner.reconcile.cycle import ReconcileCycle, ResolvedEventType

log = logging.getLogger(__name__)


def validate_schedule(expression: str) -> str:
    """Return the expression if croniter accepts it, else raise ConfigurationError."""
    if not expression or not croniter.is_valid(expression):
        raise ConfigurationError(f"invalid cron expression: {expression!r}")
    return expression


def next_fire_time(expression: str, after: datetime) -> datetime:
    return croniter(expression, after).get_next(datetime)


class CronScheduler:
    """Triggers ReconcileCycle.run per event type on its cron schedule.

    Each event type moves IDLE -> RUNNING -> IDLE. A tick that arrives while
    the type is RUNNING is dropped; the next tick recomputes everything
    anyway. A failing cycle is logged and never stops other types or future
    ticks of the same type.
    """

    def __init__(
        self,
        cycle: ReconcileCycle,
        event_types: list[ResolvedEventType],
        cycle_timeout: float | None = 600.0,
        shutdown_grace: float = 30.0,
    ) -> None:
        self._cycle = cycle
        self._types: dict[str, ResolvedEventType] = {}
        for event_type in event_types:
            if event_type.name in self._types:
                raise ConfigurationError(f"duplicate event type: {event_type.name!r}")
            self._types[event_type.name] = event_type
        self._cycle_timeout = cycle_timeout or None
        self._shutdown_grace = shutdown_grace
        self._guard = RunGuard()
        self._running = False
        self._loops: list[asyncio.Task] = []
        self._in_flight: set[asyncio.Task] = set()
        self._last_reports: dict[str, CycleReport] = {}

    @property
    def event_types(self) -> list[ResolvedEventType]:
        return list(self._types.values())

    def state(self, name: str) -> RunState:
        return self._guard.state(name)

    def last_report(self, name: str) -> CycleReport | None:
        return self._last_reports.get(name)

    def next_fire_time(self, name: str, now: datetime | None = None) -> datetime:
        event_type = self._types[name]
        return next_fire_time(event_type.schedule, now or datetime.now(timezone.utc))

    # ── Lifecycle ─────────────────────────────────────────

    async def start(self) -> None:
        """Start one tick loop per event type."""
        self._running = True
        for event_type in self._types.values():
            self._loops.append(asyncio.create_task(self._tick_loop(event_type)))
            log.info(
                "Scheduled %s (%s) next at %s",
                event_type.name, event_type.schedule,
                self.next_fire_time(event_type.name).isoformat(),
            )

    async def stop(self) -> int:
        """Stop ticking; let in-flight cycles finish within the grace period.

        Returns the number of cycles still running when the grace period ran out.
        """
        self._running = False
        for task in self._loops:
            task.cancel()
        for task in self._loops:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._loops.clear()

        pending: set[asyncio.Task] = set()
        if self._in_flight:
            log.info("Waiting for %d in-flight cycle(s)", len(self._in_flight))
            done, pending = await asyncio.wait(
                set(self._in_flight), timeout=self._shutdown_grace,
            )
            if pending:
                log.warning(
                    "%d cycle(s) still running after %.0fs grace period",
                    len(pending), self._shutdown_grace,
                )
        log.info("Scheduler stopped")
        return len(pending)

    async def _tick_loop(self, event_type: ResolvedEventType) -> None:
        last_fired: datetime | None = None
        while self._running:
            now = datetime.now(timezone.utc)
            # sleep may wake slightly early; never fire the same slot twice
            base = max(now, last_fired) if last_fired else now
            fire_at = next_fire_time(event_type.schedule, base)
            last_fired = fire_at
            try:
                await asyncio.sleep(max(0.0, (fire_at - now).total_seconds()))
            except asyncio.CancelledError:
                break
            self.tick(event_type.name)

    # ── Triggering ────────────────────────────────────────

    def tick(self, name: str) -> asyncio.Task | None:
        """Launch a cycle for ``name`` unless one is already running."""
        event_type = self._types[name]
        if not self._guard.try_begin(name):
            log.warning("Tick for %s dropped: previous cycle still running", name)
            return None
        task = asyncio.create_task(self._run_guarded(event_type))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def run_now(self, name: str) -> CycleReport | None:
        """Run one cycle immediately. None if the type was already running."""
        task = self.tick(name)
        if task is None:
            return None
        return await task

    async def _run_guarded(self, event_type: ResolvedEventType) -> CycleReport | None:
        try:
            report = await asyncio.wait_for(
                self._cycle.run(event_type), timeout=self._cycle_timeout,
            )
            self._last_reports[event_type.name] = report
            return report
        except asyncio.TimeoutError:
            log.error(
                "Cycle for %s timed out after %.0fs", event_type.name, self._cycle_timeout,
            )
        except asyncio.CancelledError:
            log.info("Cycle for %s cancelled", event_type.name)
            raise
        except Exception as exc:
            log.error("Cycle for %s failed: %s", event_type.name, exc, exc_info=True)
        finally:
            self._guard.finish(event_type.name)
        return None
