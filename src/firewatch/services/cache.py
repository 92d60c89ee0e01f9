"""Two-tier cache for merged domain payloads: in-memory with a TTL, disk as fallback."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional

from firewatch.exceptions import CacheMissNoFallbackError
from firewatch.models.enums import Domain, Provenance
from firewatch.services.storage import SnapshotStore

logger = logging.getLogger(__name__)

Refresher = Callable[[], Awaitable[Any]]
Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float


@dataclass(frozen=True)
class CachedResult:
    domain: Domain
    value: Any
    provenance: Provenance
    stored_at: Optional[float] = None


class CacheManager:
    """Owns the latest merged value of every domain.

    Entries are immutable and replaced in a single assignment, so a reader always
    sees either the previous payload or the new one. At most one refresh per
    domain runs at a time; concurrent requests for the same domain await the
    refresh already in flight.
    """

    def __init__(
        self,
        refreshers: Mapping[Domain, Refresher],
        store: SnapshotStore,
        ttl_seconds: float = 3600,
        clock: Clock = time.monotonic,
    ):
        self._refreshers = {Domain(d): fn for d, fn in refreshers.items()}
        self._store = store
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Domain, CacheEntry] = {}
        self._inflight: dict[Domain, asyncio.Task] = {}

    @property
    def domains(self) -> list[Domain]:
        return list(self._refreshers)

    def entry(self, domain: Domain) -> Optional[CacheEntry]:
        return self._entries.get(Domain(domain))

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.stored_at < self.ttl_seconds

    async def get(self, domain: Domain) -> CachedResult:
        """Return the domain's payload, refreshing it when memory has expired.

        Falls back to the persisted snapshot if the refresh fails. Raises
        CacheMissNoFallbackError when there is no snapshot either.
        """
        domain = Domain(domain)
        entry = self._entries.get(domain)
        if entry is not None and self.is_fresh(entry):
            return CachedResult(domain, entry.value, Provenance.MEMORY, entry.stored_at)

        try:
            entry = await self.refresh(domain)
        except Exception as e:
            logger.warning("Refresh of %s failed (%s), trying disk snapshot", domain.value, e)
            return await self._load_snapshot(domain, e)
        return CachedResult(domain, entry.value, Provenance.FRESH, entry.stored_at)

    async def refresh(self, domain: Domain) -> CacheEntry:
        """Run the domain's refresher, or join the refresh already in flight."""
        domain = Domain(domain)
        task = self._inflight.get(domain)
        if task is None or task.done():
            task = asyncio.ensure_future(self._run_refresh(domain))
            self._inflight[domain] = task
            task.add_done_callback(lambda t, d=domain: self._finish(d, t))
        else:
            logger.debug("Joining in-flight refresh of %s", domain.value)
        return await asyncio.shield(task)

    async def refreshed(self, domain: Domain, value: Any) -> CacheEntry:
        """Make a newly computed value the current entry, then persist it."""
        domain = Domain(domain)
        entry = CacheEntry(value=value, stored_at=self._clock())
        self._entries[domain] = entry
        try:
            await asyncio.to_thread(self._store.write, domain, value)
        except OSError as e:
            logger.error("Could not write %s snapshot: %s", domain.value, e)
        return entry

    def status(self) -> dict:
        now = self._clock()
        report = {}
        for domain in self._refreshers:
            entry = self._entries.get(domain)
            task = self._inflight.get(domain)
            report[domain.value] = {
                "cached": entry is not None,
                "age_seconds": round(now - entry.stored_at, 1) if entry else None,
                "fresh": bool(entry and self.is_fresh(entry)),
                "refreshing": bool(task and not task.done()),
                "snapshot": self._store.exists(domain),
            }
        return report

    async def _run_refresh(self, domain: Domain) -> CacheEntry:
        refresher = self._refreshers.get(domain)
        if refresher is None:
            raise ValueError(f"No refresher registered for domain '{domain.value}'")

        started = time.monotonic()
        logger.info("Refreshing %s from upstream", domain.value)
        value = await refresher()
        entry = await self.refreshed(domain, value)
        logger.info("Refreshed %s in %.2fs", domain.value, time.monotonic() - started)
        return entry

    def _finish(self, domain: Domain, task: asyncio.Task):
        if self._inflight.get(domain) is task:
            del self._inflight[domain]
        # Waiters re-raise the failure; mark it retrieved for refreshes nobody awaited.
        if not task.cancelled():
            task.exception()

    async def _load_snapshot(self, domain: Domain, cause: BaseException) -> CachedResult:
        try:
            value = await asyncio.to_thread(self._store.read, domain)
            if not isinstance(value, dict):
                raise ValueError(f"expected a JSON object, got {type(value).__name__}")
        except (OSError, ValueError) as e:
            logger.error("No usable %s snapshot: %s", domain.value, e)
            raise CacheMissNoFallbackError(domain.value, cause) from cause
        logger.warning("Serving %s from disk snapshot", domain.value)
        return CachedResult(domain, value, Provenance.DISK)
