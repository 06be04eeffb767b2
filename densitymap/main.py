"""
Store Density API — Application entry point.

Bootstraps FastAPI, wires up middleware, registers route groups, and
manages the analysis session lifecycle.

Extension points:
  - Add new route groups with app.include_router() below
  - Add new middleware in the middleware block
  - Change startup behaviour (e.g. preloaded regions) in the lifespan context manager
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from densitymap.core.config import settings
from densitymap.core.errors import (
    DensityMapError,
    InvalidCoordinate,
    InvalidResponse,
    RegionNotFound,
    ServiceError,
    ServiceUnavailable,
)
from densitymap.core.rate_limit import limiter
from densitymap.core.session import build_orchestrator
from densitymap.routes.analysis import router as analysis_router
from densitymap.routes.health import router as health_router
from densitymap.routes.regions import router as regions_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage startup and shutdown lifecycle.

    Code before `yield` runs on startup; code after runs on shutdown.
    A failed preload is logged, not fatal: the caller can re-request the
    same regions and anything committed before the failure stays cached.
    """
    logger.info("Starting Store Density API (env: %s)", settings.environment)
    app.state.orchestrator = build_orchestrator(settings)

    if settings.preload_regions:
        try:
            await app.state.orchestrator.analyze_regions(settings.preload_regions)
        except DensityMapError as exc:
            logger.warning("Preload of %s failed: %s", settings.preload_regions, exc.message)
    yield
    logger.info("Shutting down Store Density API")


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="Store Density API",
    description=(
        "Aggregates OpenStreetMap shop locations into an H3 hex grid per region "
        "and suggests new commercial hotspots. AI predictions are advisory."
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Attach the limiter to app state so slowapi can find it.
# Routes opt-in with @limiter.limit("N/minute") + request: Request parameter.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ─── Engine errors ─────────────────────────────────────────────────────────────
# Most specific class first; Starlette resolves handlers along the MRO, so
# one handler on the base class covers the whole family.
_STATUS_BY_ERROR: list[tuple[type[DensityMapError], int]] = [
    (RegionNotFound, 404),
    (InvalidCoordinate, 422),
    (ServiceUnavailable, 503),
    (InvalidResponse, 502),
    (ServiceError, 502),
]


async def _density_error_handler(request: Request, exc: DensityMapError) -> JSONResponse:
    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    return JSONResponse(status_code=status, content=exc.to_dict())


app.add_exception_handler(DensityMapError, _density_error_handler)

# ─── Middleware ─────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(regions_router)
app.include_router(analysis_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "Store Density API",
        "version": "0.1.0",
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs",
    }
