"""Data routes - serve cached domain payloads with CORS and provenance headers."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from firewatch.models.enums import Domain
from firewatch.services.cache import CacheManager, CachedResult

logger = logging.getLogger(__name__)

router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "*",
}

# Set by the app lifespan (or tests) once the cache manager exists
_cache_manager: Optional[CacheManager] = None


def set_cache_manager(manager: Optional[CacheManager]):
    global _cache_manager
    _cache_manager = manager


def current_cache_manager() -> Optional[CacheManager]:
    return _cache_manager


def get_cache_manager() -> CacheManager:
    if _cache_manager is None:
        raise HTTPException(status_code=503, detail="Cache not yet initialized.")
    return _cache_manager


def _respond(result: CachedResult) -> JSONResponse:
    body = result.value
    if result.domain.is_feature_collection:
        body = {**body, "source": result.provenance.value}
    headers = {**CORS_HEADERS, "X-Data-Source": result.provenance.value}
    return JSONResponse(content=body, headers=headers)


@router.get("/fires")
async def get_fires():
    """Merged fire incidents and perimeters as a FeatureCollection."""
    return _respond(await get_cache_manager().get(Domain.FIRES))


@router.get("/viirs")
async def get_viirs():
    """VIIRS hotspot detections as a FeatureCollection."""
    return _respond(await get_cache_manager().get(Domain.VIIRS))


@router.get("/lightning-data")
async def get_lightning():
    return _respond(await get_cache_manager().get(Domain.LIGHTNING))


@router.get("/fire-time-series")
@router.get("/tally")
async def get_fire_time_series():
    """Gap-filled cumulative acres burned per fire season: {year: {dates, acres}}."""
    return _respond(await get_cache_manager().get(Domain.TALLY))
