"""Main daemon - wires all components together."""

from __future__ import annotations

import asyncio
import logging
import signal

from event_pinner.contracts import find_event, load_event_definitions
from event_pinner.decoding.decoder import EventDecoder
from event_pinner.errors import ConfigurationError
from event_pinner.interfaces.content import ContentStore
from event_pinner.ipfs.content_store import KuboContentStore
from event_pinner.models.config import DaemonConfig
from event_pinner.models.events import EventDefinition
from event_pinner.models.records import CycleReport
from event_pinner.pinning.driver import PinDriver
from event_pinner.reconcile.cycle import ReconcileCycle, ResolvedEventType
from event_pinner.scheduling.scheduler import CronScheduler, validate_schedule
from event_pinner.storage.sqlite import SQLiteStateStore

log = logging.getLogger(__name__)


class PinnerDaemon:
    """Event-driven IPFS pinning sidecar.

    Resolves the configured event types against the contract ABI, then runs
    one cron-scheduled reconcile cycle per type until stopped. Collaborators
    can be injected; by default they are built from the config.
    """

    def __init__(
        self,
        cfg: DaemonConfig,
        store: SQLiteStateStore | None = None,
        content_store: ContentStore | None = None,
        definitions: list[EventDefinition] | None = None,
    ) -> None:
        self._cfg = cfg
        self._definitions = definitions
        self._stop_event: asyncio.Event | None = None

        self.store = store or SQLiteStateStore(cfg.db_path)
        self.content_store = content_store or KuboContentStore(
            cfg.kubo_rpc_url, cfg.request_timeout,
        )
        self.driver = PinDriver(
            self.content_store,
            self.store,
            max_attempts=cfg.pinning.max_attempts,
            base_delay=cfg.pinning.base_delay,
            max_delay=cfg.pinning.max_delay,
            max_concurrent=cfg.pinning.max_concurrent,
        )
        self.cycle = ReconcileCycle(self.store, self.store, self.driver, reports=self.store)
        self.event_types: list[ResolvedEventType] = []
        self.excluded: dict[str, str] = {}
        self.scheduler: CronScheduler | None = None

    def resolve_event_types(self, definitions: list[EventDefinition]) -> list[ResolvedEventType]:
        """Validate every configured event type; misconfigured ones are excluded."""
        resolved: list[ResolvedEventType] = []
        claimed: dict[tuple[str, str], str] = {}
        self.excluded.clear()
        for event_type in self._cfg.events:
            try:
                definition = find_event(definitions, event_type.event_name)
                decoder = EventDecoder.for_event_type(definition, event_type)
                schedule = validate_schedule(self._cfg.schedule_for(event_type))
            except ConfigurationError as exc:
                log.error("Excluding event type %s: %s", event_type.event_name, exc)
                self.excluded[event_type.event_name] = str(exc)
                continue

            candidate = ResolvedEventType(
                config=event_type,
                definition=definition,
                address=self._cfg.contract_address.lower(),
                schedule=schedule,
                decoder=decoder,
            )
            # one event type per (address, signature); pins are tracked per pair
            if candidate.key in claimed:
                reason = (
                    f"duplicate event type: {definition.name} is already "
                    f"configured as {claimed[candidate.key]!r}"
                )
                log.error("Excluding event type %s: %s", event_type.event_name, reason)
                self.excluded[event_type.event_name] = reason
                continue
            claimed[candidate.key] = event_type.event_name
            resolved.append(candidate)
        return resolved

    async def setup(self) -> CronScheduler:
        """Open the store, resolve event types and build the scheduler."""
        if not self._cfg.contract_address:
            raise ConfigurationError("no contract address configured")

        await self.store.initialize()

        definitions = self._definitions
        if definitions is None:
            definitions = load_event_definitions(self._cfg.abi_path)
        self.event_types = self.resolve_event_types(definitions)
        if not self.event_types:
            log.warning("No schedulable event types configured")

        self.scheduler = CronScheduler(
            self.cycle,
            self.event_types,
            cycle_timeout=self._cfg.cycle_timeout,
            shutdown_grace=self._cfg.shutdown_grace,
        )
        return self.scheduler

    async def start(self) -> None:
        """Run until stop() is called."""
        log.info("Starting event_pinner daemon")
        log.info("  Contract: %s", self._cfg.contract_address)
        log.info("  Kubo: %s", self._cfg.kubo_rpc_url)
        log.info("  DB: %s", self._cfg.db_path)

        self._stop_event = asyncio.Event()
        try:
            scheduler = await self.setup()
            for event_type in self.event_types:
                log.info(
                    "  Event %s: new=%s old=%s schedule=%s",
                    event_type.name, event_type.config.new_hash_field,
                    event_type.config.old_hash_field or "-", event_type.schedule,
                )
            await scheduler.start()
            await self._stop_event.wait()
        finally:
            if self.scheduler is not None:
                abandoned = await self.scheduler.stop()
                if abandoned:
                    log.warning(
                        "Closing store under %d unfinished cycle(s); their remaining"
                        " writes will fail and the next run heals them", abandoned,
                    )
            await self.store.close()
            log.info("Daemon shut down cleanly")

    async def stop(self) -> None:
        """Signal the daemon to stop gracefully."""
        log.info("Stop requested")
        if self._stop_event is not None:
            self._stop_event.set()

    async def reconcile_once(self) -> list[CycleReport]:
        """Run one cycle per event type now (store must be set up)."""
        assert self.scheduler is not None, "call setup() first"
        reports: list[CycleReport] = []
        for event_type in self.event_types:
            report = await self.scheduler.run_now(event_type.name)
            if report is not None:
                reports.append(report)
        return reports


async def run_daemon(cfg: DaemonConfig) -> None:
    """Entry point for running the daemon."""
    daemon = PinnerDaemon(cfg)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await daemon.start()
