"""Pin driver - applies a PinDiff to the content store and the pin-state store."""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Awaitable, Callable, TypeVar

from event_pinner.decoding.multihash import bytes32_to_multihash
from event_pinner.errors import PinnerError, TransientError
from event_pinner.interfaces.content import ContentStore
from event_pinner.interfaces.store import PinStateStore
from event_pinner.models.events import EventRecord
from event_pinner.models.records import ApplyReport, PinDiff, PinRecord
from event_pinner.pinning.guard import RunGuard

log = logging.getLogger(__name__)

T = TypeVar("T")


class PinDriver:
    """The only writer of pin state.

    For every hash to pin: content-store pin, then upsert the PinRecord.
    For every hash to unpin: content-store unpin, then delete the PinRecord.
    The content stays pinned while another event type still holds the hash.
    Transient failures are retried with bounded exponential backoff; a hash
    that still fails is reported and left for the next cycle to heal.
    """

    def __init__(
        self,
        content_store: ContentStore,
        pin_store: PinStateStore,
        max_attempts: int = 5,
        base_delay: float = 0.5,
        max_delay: float = 30.0,
        max_concurrent: int = 8,
    ) -> None:
        self._content = content_store
        self._store = pin_store
        self._max_attempts = max(1, max_attempts)
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._max_concurrent = max(1, max_concurrent)
        self._guard = RunGuard()
        # content pin state is shared by every pair holding a hash
        self._hash_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def is_busy(self, address: str, signature: str) -> bool:
        return (address.lower(), signature.lower()) in self._guard.running()

    def _lock_for(self, hash: str) -> asyncio.Lock:
        lock = self._hash_locks.get(hash)
        if lock is None:
            lock = asyncio.Lock()
            self._hash_locks[hash] = lock
        return lock

    async def apply(self, address: str, signature: str, diff: PinDiff) -> ApplyReport:
        """Apply one diff. Skipped (not queued) if the pair is already in flight."""
        key = (address.lower(), signature.lower())
        if not self._guard.try_begin(key):
            log.warning(
                "Diff for %s/%s already being applied, skipping", key[0], key[1][:10],
            )
            return ApplyReport(skipped=True)

        try:
            report = ApplyReport()
            if diff.empty:
                return report

            semaphore = asyncio.Semaphore(self._max_concurrent)

            async def _bounded(call: Awaitable[None]) -> None:
                async with semaphore:
                    await call

            jobs: list[tuple[str, Awaitable[None]]] = []
            for h in sorted(diff.to_pin):
                jobs.append((h, self._pin_one(h, key, diff.sources.get(h), report)))
            for h in sorted(diff.to_unpin):
                jobs.append((h, self._unpin_one(h, key, report)))

            results = await asyncio.gather(
                *(_bounded(call) for _, call in jobs), return_exceptions=True,
            )
            for (h, _), result in zip(jobs, results):
                if isinstance(result, Exception):
                    log.error("Unexpected error applying %s: %s", h, result, exc_info=result)
                    report.failed[h] = str(result)

            log.info(
                "Applied diff for %s/%s: %d pinned, %d unpinned, %d failed",
                key[0], key[1][:10], len(report.pinned), len(report.unpinned),
                len(report.failed),
            )
            return report
        finally:
            self._guard.finish(key)

    async def _pin_one(
        self,
        hash: str,
        key: tuple[str, str],
        source: EventRecord | None,
        report: ApplyReport,
    ) -> None:
        multihash = bytes32_to_multihash(hash)
        if source is not None:
            record = PinRecord.from_event(source, multihash)
        else:
            record = PinRecord(
                hash=hash, multihash=multihash,
                contract_address=key[0], signature=key[1],
            )
        try:
            async with self._lock_for(hash):
                await self._with_retry("pin", hash, lambda: self._content.pin(multihash))
                await self._with_retry("save pin", hash, lambda: self._store.upsert_pin(record))
        except PinnerError as exc:
            report.failed[hash] = str(exc)
            return
        report.pinned.add(hash)
        log.debug("Pinned %s (%s)", hash, multihash)

    async def _unpin_one(self, hash: str, key: tuple[str, str], report: ApplyReport) -> None:
        multihash = bytes32_to_multihash(hash)
        try:
            async with self._lock_for(hash):
                if await self._store.count_holders(hash) > 1:
                    log.info("%s still held by another event type, keeping content pin", hash)
                else:
                    await self._with_retry(
                        "unpin", hash, lambda: self._content.unpin(multihash),
                    )
                await self._with_retry(
                    "delete pin", hash, lambda: self._store.delete_pin(hash, key[0], key[1]),
                )
        except PinnerError as exc:
            report.failed[hash] = str(exc)
            return
        report.unpinned.add(hash)
        log.debug("Unpinned %s (%s)", hash, multihash)

    async def _with_retry(
        self, action: str, hash: str, call: Callable[[], Awaitable[T]],
    ) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await call()
            except TransientError as exc:
                retryable = getattr(exc, "retryable", True)
                if not retryable:
                    log.warning("%s %s failed (not retryable): %s", action, hash, exc)
                    raise
                if attempt >= self._max_attempts:
                    log.warning(
                        "%s %s failed after %d attempts: %s",
                        action, hash, attempt, exc,
                    )
                    raise
                delay = min(self._base_delay * 2 ** (attempt - 1), self._max_delay)
                log.debug(
                    "%s %s failed (attempt %d/%d), retrying in %.2fs: %s",
                    action, hash, attempt, self._max_attempts, delay, exc,
                )
                await asyncio.sleep(delay)
