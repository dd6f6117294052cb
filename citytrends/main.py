"""
City Trends API — Application entry point.

Bootstraps FastAPI, wires up middleware, registers route groups,
and manages the MongoDB connection lifecycle.

Run locally:
  uvicorn citytrends.main:app --reload

Extension points:
  - Add new route groups with app.include_router() below
  - Add new middleware in the middleware block
  - Change startup behaviour in the lifespan context manager
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from citytrends.core.config import APP_VERSION, settings
from citytrends.core.database import close_mongo_connection, connect_to_mongo
from citytrends.core.rate_limit import limiter
from citytrends.routes.city_trends import router as city_trends_router
from citytrends.routes.cron import router as cron_router
from citytrends.routes.health import router as health_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to MongoDB on startup, disconnect on shutdown."""
    logger.info("Starting City Trends API (env: %s)", settings.environment)
    await connect_to_mongo()
    yield
    logger.info("Shutting down City Trends API")
    await close_mongo_connection()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="City Trends API",
    description=(
        "Collects Instagram and TikTok fashion posts per city, extracts "
        "weekly trends with Gemini and serves them to the dashboard."
    ),
    version=APP_VERSION,
    lifespan=lifespan,
    # Disable docs in production to reduce attack surface
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Routes opt-in with @limiter.limit(...) + request: Request parameter.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

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

# Scheduler-triggered collection + processing
app.include_router(cron_router)

# Dashboard read API
app.include_router(city_trends_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "City Trends API",
        "version": APP_VERSION,
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs",
    }
