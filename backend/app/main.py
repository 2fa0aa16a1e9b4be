"""
FastAPI application entry point.

Run with:
    uvicorn backend.app.main:app --reload --port 8000

Or from the project root:
    python -m uvicorn backend.app.main:app --reload
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# ── Core infrastructure ──
from backend.app.core.config import settings
from backend.app.core.logging_config import setup_logging, get_logger
from backend.app.core.errors import register_error_handlers
from backend.app.core.health import run_health_check
from backend.app.core.http_clients import build_relay_client, build_upstream_client
from backend.app.core.middleware import RequestLoggingMiddleware

# ── Hazard feed ──
from backend.app.hazards.aggregator import build_aggregator
from backend.app.hazards.refresher import HazardFeedRefresher

# ── API routers ──
from backend.app.api.v1.hazards import router as hazard_router
from backend.app.api.v1.proxy import router as proxy_router

# ── Initialise logging ──
setup_logging()
logger = get_logger(__name__)


# ── Application lifespan (startup / shutdown) ──

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the HTTP clients and the refresher for the app's lifetime."""
    logger.info(
        "Starting %s v%s [%s]",
        settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
    )
    app.state.upstream_client = build_upstream_client()
    app.state.relay_client = build_relay_client(app)
    app.state.aggregator = build_aggregator(app.state.upstream_client, app.state.relay_client)
    app.state.refresher = None

    if settings.HAZARD_REFRESH_ENABLED:
        app.state.refresher = HazardFeedRefresher(
            app.state.aggregator,
            interval_seconds=settings.HAZARD_REFRESH_INTERVAL_SECONDS,
        )
        await app.state.refresher.start()

    yield

    if app.state.refresher is not None:
        await app.state.refresher.stop()
    await app.state.relay_client.aclose()
    await app.state.upstream_client.aclose()
    logger.info("Shutting down %s", settings.APP_NAME)


# ── Create application ──

app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Live hazard feed for disaster-relief coordination. "
        "Merges USGS earthquakes, NOAA tsunami warnings, NASA FIRMS "
        "wildfire hotspots, NWS severe weather alerts and USGS gauge "
        "heights into one normalized marker feed, and relays the feeds "
        "that block cross-origin browser access."
    ),
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── Middleware stack (outermost first) ──

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS if not settings.CORS_ALLOW_ALL else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# ── Error handlers ──
register_error_handlers(app)

# ── Register routers ──
app.include_router(hazard_router)
app.include_router(proxy_router)


# ── Root & health endpoints ──

@app.get("/", tags=["root"])
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "sources": [
            "USGS Earthquakes",
            "NOAA Tsunamis",
            "NASA FIRMS Wildfires",
            "NOAA Weather",
            "USGS Water Services",
        ],
        "docs": "/docs",
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Configuration and refresher health."""
    report = await run_health_check(getattr(app.state, "refresher", None))
    return report.to_dict()


@app.get("/health/live", tags=["health"])
async def liveness():
    """Kubernetes liveness probe — is the process alive?"""
    return {"status": "alive"}


@app.get("/health/ready", tags=["health"])
async def readiness():
    """Kubernetes readiness probe — can we serve traffic?"""
    report = await run_health_check(getattr(app.state, "refresher", None))
    if report.status.value == "unhealthy":
        return JSONResponse(status_code=503, content=report.to_dict())
    return report.to_dict()
