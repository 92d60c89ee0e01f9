"""FIREWATCH application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from firewatch.api.routes import (
    CORS_HEADERS,
    current_cache_manager,
    router,
    set_cache_manager,
)
from firewatch.config import settings
from firewatch.exceptions import CacheMissNoFallbackError

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize Sentry if DSN is configured
if settings.sentry_dsn:
    try:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration

        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            traces_sample_rate=0.1,
            environment="production" if not settings.debug else "development",
            release=f"firewatch@{settings.app_version}",
            integrations=[FastApiIntegration()],
        )
        logger.info("Sentry error tracking initialized")
    except ImportError:
        logger.warning("sentry-sdk not installed, error tracking disabled")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    from firewatch.pipelines.runner import build_refreshers
    from firewatch.services.cache import CacheManager
    from firewatch.services.fetcher import UpstreamFetcher
    from firewatch.services.scheduler import RefreshScheduler
    from firewatch.services.storage import SnapshotStore

    logger.info("FIREWATCH %s starting up", settings.app_version)

    fetcher = UpstreamFetcher(
        timeout=settings.fetch_timeout_seconds,
        max_concurrent=settings.max_concurrent_fetches,
    )
    cache = CacheManager(
        build_refreshers(fetcher, settings),
        SnapshotStore(settings.public_root),
        ttl_seconds=settings.cache_ttl_seconds,
    )
    set_cache_manager(cache)

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = RefreshScheduler(cache, settings.refresh_interval_minutes)
        scheduler.start()
    else:
        logger.info(
            "Refresh scheduler disabled (set FIREWATCH_SCHEDULER_ENABLED=true to enable); "
            "domains refresh on first request"
        )

    yield

    # Shutdown
    if scheduler:
        scheduler.shutdown()
    await fetcher.close()
    set_cache_manager(None)


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Merged wildfire, hotspot, lightning and acreage feeds, refreshed on a timer.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.exception_handler(CacheMissNoFallbackError)
async def cache_miss_handler(request: Request, exc: CacheMissNoFallbackError):
    logger.error("Returning 500 for %s: %s", request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=CORS_HEADERS,
    )


@app.get("/", include_in_schema=False)
async def root():
    """Liveness check."""
    return PlainTextResponse("OK")


@app.get("/health", include_in_schema=False)
async def health():
    """Health check with per-domain cache state."""
    cache = current_cache_manager()
    return {
        "status": "ok",
        "version": settings.app_version,
        "domains": cache.status() if cache else {},
    }
