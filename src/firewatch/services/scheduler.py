"""Periodic refresh of every cached domain, plus one pass at startup."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from firewatch.models.enums import Domain
from firewatch.pipelines.runner import refresh_all
from firewatch.services.cache import CacheManager

logger = logging.getLogger(__name__)


def job_id(domain: Domain) -> str:
    return f"refresh_{Domain(domain).value}"


class RefreshScheduler:
    """Refreshes each domain on a fixed interval inside the app's event loop.

    Every domain gets its own job, so a slow or hung refresh only holds back the
    next tick of that domain. Must be started from a running event loop.
    """

    def __init__(self, cache: CacheManager, interval_minutes: int = 15, run_on_start: bool = True):
        self.cache = cache
        self.interval_minutes = interval_minutes
        self.run_on_start = run_on_start
        self._scheduler = AsyncIOScheduler(timezone=timezone.utc)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self):
        job_kwargs = {}
        if self.run_on_start:
            job_kwargs["next_run_time"] = datetime.now(timezone.utc)

        for domain in self.cache.domains:
            self._scheduler.add_job(
                refresh_all,
                IntervalTrigger(minutes=self.interval_minutes),
                args=[self.cache, [domain]],
                id=job_id(domain),
                name=f"Refresh {domain.value}",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                **job_kwargs,
            )
        self._scheduler.start()
        logger.info(
            "Scheduler started - refreshing %d domains every %d minutes",
            len(self.cache.domains),
            self.interval_minutes,
        )

    def shutdown(self):
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler shut down")
