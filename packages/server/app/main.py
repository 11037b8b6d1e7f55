"""
Fort Admin Server

Entry point for the FastAPI application.
"""

import structlog
import uvicorn
from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from app.api import router as api_router
from app.core.config import get_settings
from app.core.database import async_session_factory, init_db, ping_db
from app.core.errors import register_exception_handlers
from app.core.logconfig import configure_logging
from app.core.middleware import (
    EXPOSED_HEADERS,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)
from app.core.notifier import get_notifier
from app.core.redis import close_redis, ping_redis

settings = get_settings()
log = structlog.get_logger()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Fort",
        description="Multi-app authorization administration and resource update hub.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Middleware (order matters: outermost first)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=[
            "Content-Type",
            "X-Fort-App",
            "X-Fort-User",
            "X-App-Key",
            "X-App-Secret",
        ],
        expose_headers=EXPOSED_HEADERS,
    )

    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check: the store (and Redis, when relaying) must answer."""
        checks = {}
        try:
            async with async_session_factory() as session:
                await ping_db(session)
            checks["database"] = "ok"
        except (SQLAlchemyError, OSError) as exc:
            log.warning("readiness.database_failed", error=str(exc))
            checks["database"] = "unavailable"

        if settings.update_relay_enabled:
            try:
                await ping_redis()
                checks["redis"] = "ok"
            except (RedisError, OSError) as exc:
                log.warning("readiness.redis_failed", error=str(exc))
                checks["redis"] = "unavailable"

        if any(value != "ok" for value in checks.values()):
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unavailable", "checks": checks},
            )
        return {"status": "ready", "checks": checks}

    @app.on_event("startup")
    async def on_startup():
        log.info("Fort starting", relay=settings.update_relay_enabled)
        if settings.auto_create_schema:
            await init_db()
        await get_notifier().start()

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("Fort shutting down")
        await get_notifier().close()
        await close_redis()

    return app


app = create_app()


def run() -> None:
    """`fort-server` entry point."""
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )
