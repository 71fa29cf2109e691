"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dispute_engine.api.v1.router import api_router
from dispute_engine.config import settings
from dispute_engine.core.exceptions import (
    AppException,
    ConcurrentModificationError,
    LockUnavailableError,
)
from dispute_engine.core.immutability import register_immutability_enforcement
from dispute_engine.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from dispute_engine.database import close_db, init_db

logger = logging.getLogger(__name__)

CONFLICT_RETRY_AFTER_SECONDS = 1


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    register_immutability_enforcement()

    # Schema is managed by Alembic outside development
    if settings.debug:
        await init_db()

    logger.info(f"{settings.app_name} {settings.app_version} started ({settings.environment})")

    yield

    await close_db()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Dispute & chargeback lifecycle API",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        """Render engine errors as {"detail": ...}.

        Lock and version conflicts are safe to retry, so they carry Retry-After.
        """
        headers = dict(exc.headers or {})
        if isinstance(exc, (LockUnavailableError, ConcurrentModificationError)):
            logger.warning(f"{request.method} {request.url.path} conflicted: {exc.detail}")
            headers.setdefault("Retry-After", str(CONFLICT_RETRY_AFTER_SECONDS))
        elif exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")

        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers or None,
        )

    # Middleware (order matters - first added = last executed)
    # 1. Security headers (outermost)
    app.add_middleware(SecurityHeadersMiddleware)

    # 2. Request logging
    app.add_middleware(RequestLoggingMiddleware)

    # 3. CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routes
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check() -> dict:
        """Liveness plus the chargeback gateway this instance files with."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "chargeback_gateway": settings.chargeback_gateway,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "dispute_engine.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers,
    )
