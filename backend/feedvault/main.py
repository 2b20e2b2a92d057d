"""
FeedVault Backend - FastAPI Application

Main entry point for the query API and the pipeline runtime.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from feedvault.core.config import Settings, get_settings
from feedvault.api.v1 import router as api_v1_router
from feedvault.services.base import (
    InvalidCursorError,
    RecordNotFoundError,
    ServiceError,
)
from feedvault.services.container import PipelineContainer

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = ["Content-Type", "X-Api-Key"]
CORS_ALLOW_METHODS = ["GET", "POST", "OPTIONS"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    if app.state.container is not None:
        # Pre-wired (tests, embedding)
        yield
        return

    # Curated store
    from feedvault.db.database import init_db, close_db
    session_factory = await init_db(settings.database_url)

    # Capture queue
    from feedvault.services.queue import init_redis, close_redis, get_message_queue
    redis_client = await init_redis(settings.redis_url)
    if redis_client:
        logger.info("Redis queue connected")
    else:
        logger.warning("Redis unavailable - using in-memory queue")
    queue = get_message_queue()

    from feedvault.services.container import build_container
    container = build_container(settings, session_factory, queue)
    app.state.container = container

    # Background ingest + transform loops
    from feedvault.services.worker import PipelineWorker
    worker = None
    if settings.enable_worker:
        worker = PipelineWorker(
            container.ingestion,
            container.transform,
            container.queue,
            ingest_interval=settings.ingest_interval_seconds,
            poll_interval=settings.poll_interval_seconds,
            batch_size=settings.transform_batch_size,
            partial_ack=settings.partial_batch_ack,
        )
        await worker.start()
    else:
        logger.info("Pipeline worker disabled (enable_worker=false)")

    yield

    logger.info("Shutting down...")
    if worker:
        await worker.stop()
    await container.close()
    app.state.container = None
    await close_redis()
    await close_db()


def _cors_headers(request: Request, settings: Settings) -> dict:
    origin = request.headers.get("origin")
    if "*" in settings.allowed_origins:
        allow_origin = "*"
    elif origin in settings.allowed_origins:
        allow_origin = origin
    else:
        allow_origin = settings.allowed_origins[0] if settings.allowed_origins else ""
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Headers": ",".join(CORS_ALLOW_HEADERS),
        "Access-Control-Allow-Methods": ",".join(CORS_ALLOW_METHODS),
    }


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RecordNotFoundError)
    async def record_not_found_handler(request: Request, exc: RecordNotFoundError):
        return JSONResponse(
            status_code=404,
            content={"error": "Record not found", "id": exc.record_id},
        )

    @app.exception_handler(InvalidCursorError)
    async def invalid_cursor_handler(request: Request, exc: InvalidCursorError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid cursor", "message": exc.message},
        )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        if request.app.state.settings.expose_error_details:
            message = exc.message
        else:
            message = "An internal error occurred"
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": message},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if isinstance(exc.detail, dict):
            content = exc.detail
        elif exc.status_code == 404:
            content = {
                "error": "Route not found",
                "path": request.url.path,
                "method": request.method,
            }
        else:
            content = {"error": exc.detail, "message": f"{request.method} {request.url.path}: {exc.detail}"}
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        message = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        return JSONResponse(
            status_code=422,
            content={"error": "Invalid request", "message": message},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
        message = str(exc) if request.app.state.settings.expose_error_details else "An internal error occurred"
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": message},
        )


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[PipelineContainer] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    With `container` given, the lifespan skips database/queue setup and serves
    the supplied pipeline instead.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
        FeedVault Ingestion Pipeline API

        ## Architecture
        - **Ingestor**: Captures external JSON feeds into the raw store and queues them
        - **Transformer**: Normalizes captures into curated records (idempotent)
        - **Query/Analytics**: Paginated listing, lookup and aggregate statistics

        ## Guarantees
        - Raw captures are never modified after storage
        - Replayed queue messages never duplicate curated records
        """,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
    )

    # Any OPTIONS request is answered directly, whatever the path
    @app.middleware("http")
    async def options_middleware(request: Request, call_next):
        if request.method == "OPTIONS":
            return JSONResponse(status_code=200, content={}, headers=_cors_headers(request, settings))
        return await call_next(request)

    _register_exception_handlers(app)

    app.include_router(api_v1_router)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        pipeline = request.app.state.container
        body = {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        }
        if pipeline is not None:
            store_ok = await pipeline.curated_store.health_check()
            body["curated_store"] = "ok" if store_ok else "unavailable"
            body["queue"] = "ok" if await pipeline.ingestion.health_check() else "unavailable"
            if not store_ok:
                body["status"] = "degraded"
        return body

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "FeedVault Backend API",
            "docs": "/docs",
            "health": "/health",
            "records": "/records",
            "analytics": "/analytics",
        }

    return app


app = create_app()
