"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from adaptive_engine import __version__
from adaptive_engine.config import settings
from adaptive_engine.core.exceptions import AdaptiveEngineError, StorageUnavailable
from adaptive_engine.schemas.common import ErrorResponse
from adaptive_engine.services.catalog_client import close_catalog_client
from adaptive_engine.api import (
    health_router,
    attempts_router,
    enrollments_router,
    progress_router,
)

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s  %(name)-25s  %(levelname)-8s  %(message)s",
)
logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 5


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Adaptive learning engine starting (env=%s, locks=%s)…", settings.ENV, settings.LOCK_BACKEND)
    yield
    close_catalog_client()
    logger.info("✅ Adaptive learning engine shut down")


app = FastAPI(
    title="Adaptive Learning Engine API",
    description="Per-topic mastery, difficulty adaptation and study recommendations",
    version=__version__,
    lifespan=lifespan,
)

# ── Middleware ─────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# ── Error envelope ────────────────────────────────────────────────────────────


@app.exception_handler(AdaptiveEngineError)
async def adaptive_engine_error_handler(request: Request, exc: AdaptiveEngineError):
    body = ErrorResponse(error_code=exc.error_code, message=exc.message, details=exc.details)
    headers = None
    if isinstance(exc, StorageUnavailable):
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}
    if exc.status_code >= 500:
        logger.error("%s %s → %s: %s", request.method, request.url.path, exc.error_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(), headers=headers)


# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(health_router, tags=["Health"])
app.include_router(attempts_router, prefix="/api/attempts", tags=["Attempts"])
app.include_router(enrollments_router, prefix="/api/enrollments", tags=["Enrollments"])
app.include_router(progress_router, prefix="/api/progress", tags=["Progress"])


@app.get("/")
async def root():
    return {
        "name": "Adaptive Learning Engine API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }
