"""Refresh runner - wires each domain's feeds to its transform and refreshes them."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Callable, Optional

from firewatch.config import Settings, settings
from firewatch.models.enums import Domain
from firewatch.models.schemas import FireOutputSchema, feature_collection
from firewatch.pipelines.points import reduce_points
from firewatch.pipelines.reconciler import get_timestamp_formatter, reconcile
from firewatch.pipelines.time_series import SeriesConfig, build_series, parse_daily_csv
from firewatch.services.cache import CacheManager, Refresher
from firewatch.services.fetcher import UpstreamFetcher

logger = logging.getLogger(__name__)


def build_refreshers(
    fetcher: UpstreamFetcher,
    config: Settings = settings,
    today: Callable[[], date] = date.today,
) -> dict[Domain, Refresher]:
    """Return a refresher per configured domain.

    Domains without any configured feed are left out, so they are neither
    scheduled nor refreshable.
    """
    formatter = get_timestamp_formatter(config.timestamp_format)
    output_schema = FireOutputSchema() if config.fires_public_output else None

    async def refresh_fires():
        feeds = [
            config.active_perimeters_url,
            config.active_incidents_url,
            config.inactive_perimeters_url,
            config.inactive_incidents_url,
        ]
        urls = [url for url in feeds if url]
        payloads = dict(zip(urls, await fetcher.fetch_json(urls)))
        active_perimeters, active_incidents, inactive_perimeters, inactive_incidents = (
            payloads[url] if url else None for url in feeds
        )
        features = reconcile(
            active_perimeters,
            active_incidents,
            inactive_perimeters,
            inactive_incidents,
            formatter=formatter,
            output_schema=output_schema,
        )
        return feature_collection(features)

    async def refresh_viirs():
        collections = await fetcher.fetch_json(list(config.viirs_urls))
        return feature_collection(reduce_points(collections, config.viirs_output_mode))

    async def refresh_lightning():
        collections = await fetcher.fetch_json(list(config.lightning_urls))
        return feature_collection(reduce_points(collections))

    async def refresh_tally():
        result = await fetcher.fetch(config.tally_csv_url)
        rows = parse_daily_csv(result.body, result.url)
        series_config = SeriesConfig.for_date(
            today(),
            start_day=config.season_start_day,
            end_day=config.season_end_day,
            top_years=tuple(config.top_years),
            include_average=config.include_average,
        )
        return build_series(rows, series_config)

    refreshers: dict[Domain, Refresher] = {}
    if config.active_perimeters_url or config.active_incidents_url:
        refreshers[Domain.FIRES] = refresh_fires
    if config.viirs_urls:
        refreshers[Domain.VIIRS] = refresh_viirs
    if config.lightning_urls:
        refreshers[Domain.LIGHTNING] = refresh_lightning
    if config.tally_csv_url:
        refreshers[Domain.TALLY] = refresh_tally

    logger.info("Configured domains: %s", ", ".join(d.value for d in refreshers) or "none")
    return refreshers


async def refresh_all(
    cache: CacheManager,
    domains: Optional[list[Domain]] = None,
) -> dict[str, bool]:
    """Refresh domains concurrently; one domain failing never affects the others."""
    domains = [Domain(d) for d in domains] if domains else cache.domains
    results = await asyncio.gather(
        *(cache.refresh(domain) for domain in domains), return_exceptions=True
    )

    summary = {}
    for domain, result in zip(domains, results):
        if isinstance(result, BaseException):
            logger.error("Refresh of %s failed: %s", domain.value, result, exc_info=result)
            summary[domain.value] = False
        else:
            summary[domain.value] = True

    logger.info(
        "Refresh pass complete: %d/%d domains updated",
        sum(summary.values()),
        len(summary),
    )
    return summary
