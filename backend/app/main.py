"""
app/main.py
────────────
FastAPI application factory.

All business logic lives in ``data_engine/`` and the route handlers in
``app/api/v1/endpoints/``.  This file is intentionally slim — it wires
together logging, middleware, routers, error handlers and lifecycle
events only.

API Layout
----------
GET    /                               Liveness probe (no auth)
GET    /health                         Readiness probe: 503 if Supabase is unreachable
GET    /api/crypto/top                 Top 100 coins (cached 30 s)
GET    /api/crypto/coin/{id}           Coin detail
POST   /api/crypto/watchlist           Add to watchlist     (bearer auth)
DELETE /api/crypto/watchlist/{coin_id} Remove from watchlist (bearer auth)
GET    /api/crypto/watchlist           Watchlist with market data (bearer auth)

OpenAPI docs
------------
- Swagger UI:  http://localhost:8000/docs
- ReDoc:       http://localhost:8000/redoc
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from supabase import Client

from app.api.dependencies import get_db, get_market_client
from app.api.v1.router import api_router
from core.config import get_settings
from core.database import get_supabase_client
from core.exceptions import CryptoTrackerError

logger = logging.getLogger(__name__)

settings = get_settings()
_STARTED_AT = time.monotonic()

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


# ── Lifespan ──────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application startup and shutdown logic.

    Startup:  Warm up the Supabase client singleton so the first request
              doesn't pay the connection overhead.
    Shutdown: Close the CoinGecko HTTP session.
    """
    logger.info(
        "Starting %s v%s (debug=%s)",
        settings.APP_TITLE,
        settings.APP_VERSION,
        settings.DEBUG,
    )
    try:
        get_supabase_client()  # warm up — raises early if env vars are wrong
        logger.info("Supabase connection verified")
    except Exception as exc:
        logger.error("Supabase initialisation failed: %s", exc)
        raise

    yield  # ← application runs here

    await get_market_client().aclose()
    logger.info("Shutting down %s", settings.APP_TITLE)


# ── App factory ───────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.APP_TITLE,
    version=settings.APP_VERSION,
    description=settings.APP_DESCRIPTION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── Middleware ────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# ── Error handlers ────────────────────────────────────────────────────────────


@app.exception_handler(CryptoTrackerError)
async def crypto_tracker_error_handler(request: Request, exc: CryptoTrackerError) -> JSONResponse:
    """Render domain errors as ``{"error": message}`` with their status code."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %r", request.method, request.url.path, exc.__cause__ or exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Keep framework errors (404, 405, …) in the same ``{"error": ...}`` shape."""
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    if exc.status_code == 404:
        logger.warning("404: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report the first invalid field as ``{"error": "Invalid request: <field>: <reason>"}``."""
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=422, content={"error": "Invalid request"})
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body") or "body"
    return JSONResponse(
        status_code=422,
        content={"error": f"Invalid request: {field}: {first.get('msg', 'invalid')}"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(api_router, prefix=settings.API_PREFIX)

# ── Root health-check ─────────────────────────────────────────────────────────


@app.get("/", tags=["health"], summary="Health check")
def health_check() -> dict:
    """
    Lightweight liveness probe.

    Returns:
        Status and current API version.
    """
    return {"status": "ok", "version": settings.APP_VERSION}


@app.get("/health", tags=["health"], summary="Readiness check")
def readiness_check(db: Client = Depends(get_db)) -> JSONResponse:
    """
    Readiness probe used by the hosting platform.

    Runs a one-row query against the users table; any failure marks the
    service unhealthy.

    Returns:
        200 with ``status="healthy"`` when Supabase answers, else 503.
    """
    try:
        db.table(settings.USERS_TABLE).select("id").limit(1).execute()
        connected = True
    except Exception as exc:
        logger.warning("Health check: Supabase unreachable: %s", exc)
        connected = False

    return JSONResponse(
        status_code=200 if connected else 503,
        content={
            "status": "healthy" if connected else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - _STARTED_AT, 3),
            "database": "connected" if connected else "disconnected",
            "version": settings.APP_VERSION,
        },
    )
