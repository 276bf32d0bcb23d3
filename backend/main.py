"""
ThemeForge FastAPI application.

Entry point for the API server.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend import db
from backend.config import settings
from backend.routes import editor as editor_routes
from backend.routes import themes as theme_routes
from backend.routes import ws as ws_routes
from backend.services.themes import init_services, reset_services
from themeforge.kernel.errors import ConflictError, NotFoundError, PackagingError, ValidationError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Handles startup and shutdown logic:
    - Initialize database pool (when DATABASE_URL is set)
    - Build the editor / packaging services
    - Close database pool on shutdown
    """
    if settings.DATABASE_URL:
        pool = await db.init_pool()
        logger.info("Database pool initialized")
        init_services(pool)
    else:
        logger.warning("DATABASE_URL not set; themes are kept in memory")
        init_services()

    yield

    reset_services()
    await db.close_pool()
    logger.info("Shutdown complete")


app = FastAPI(
    title="ThemeForge",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)


# -- kernel errors -> HTTP --


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(PackagingError)
async def packaging_error_handler(request: Request, exc: PackagingError) -> JSONResponse:
    logger.error("packaging failed on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# Register routes
app.include_router(editor_routes.templates_router)
app.include_router(editor_routes.router)
app.include_router(theme_routes.router)
app.include_router(ws_routes.router)


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {"status": "ok"}
