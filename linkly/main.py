"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from linkly.api.redirect import router as redirect_router
from linkly.api.v1.router import router as v1_router
from linkly.core.cache import LinkCache
from linkly.core.config import get_settings
from linkly.core.database import async_session_factory, close_db, init_db
from linkly.core.middleware import SecurityHeadersMiddleware
from linkly.core.observability import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    setup_observability,
)
from linkly.core.rate_limit import limiter
from linkly.core.security import SessionAuthenticator
from linkly.services import link_service
from linkly.services.click_ingestion import ClickIngestionPipeline
from linkly.services.geoip import GeoLookupCache, IpApiGeoService
from linkly.services.redirect import RedirectResolver

settings = get_settings()

# Get logger (will be configured by setup_observability)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the in-process components on startup and tear them down on shutdown."""
    logger.info("Starting Linkly", version=settings.app_version)

    if settings.auto_create_tables:
        await init_db()

    link_cache = LinkCache()
    async with async_session_factory() as session:
        await link_service.warm_cache(session, link_cache)

    geo_service: IpApiGeoService | None = None
    geo_cache: GeoLookupCache | None = None
    if settings.geo_lookup_enabled:
        geo_service = IpApiGeoService(
            settings.geo_api_url,
            timeout=settings.geo_lookup_timeout_seconds,
        )
        geo_cache = GeoLookupCache(
            geo_service.fetch,
            timeout=settings.geo_lookup_timeout_seconds,
            failure_ttl=settings.geo_failure_ttl_seconds,
        )

    pipeline = ClickIngestionPipeline(
        geo=geo_cache,
        max_queue_size=settings.click_queue_size,
        workers=settings.click_workers,
        drain_timeout=settings.click_drain_timeout_seconds,
    )
    await pipeline.start()

    app.state.link_cache = link_cache
    app.state.pipeline = pipeline
    app.state.resolver = RedirectResolver(link_cache, pipeline)
    app.state.authenticator = SessionAuthenticator(
        settings.admin_password,
        session_duration=timedelta(hours=settings.session_duration_hours),
        failure_delay=settings.login_failure_delay_seconds,
    )

    yield

    logger.info("Shutting down Linkly")
    await pipeline.stop()
    if geo_service is not None:
        await geo_service.aclose()
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Self-hosted link shortener with click analytics",
    lifespan=lifespan,
)

# Set up observability (logging, tracing, metrics, Sentry)
setup_observability(app)

# Rate limiter state and exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Middleware stack (first added = innermost)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    SecurityHeadersMiddleware,
    enable_hsts=not settings.debug,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


@app.get("/", include_in_schema=False)
async def root() -> RedirectResponse:
    """Send visitors of the bare domain to the configured landing page."""
    return RedirectResponse(url=settings.root_redirect_url, status_code=302)


@app.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Liveness check with cache and click pipeline counters."""
    return {
        "status": "healthy",
        "links_cached": len(request.app.state.link_cache),
        "click_pipeline": request.app.state.pipeline.stats,
    }


app.include_router(v1_router)

# Must come last: /{short_code} would otherwise shadow every single-segment route
app.include_router(redirect_router)
