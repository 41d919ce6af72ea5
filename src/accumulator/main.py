"""
Invocation Batch Accumulator - Main Entry Point

Provides APIs for committing invocation batches to a Merkle root and
producing and checking inclusion proofs.
"""

import signal
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from prometheus_client import make_asgi_app
from starlette.responses import Response

from accumulator.api.v1 import router as api_v1_router
from accumulator.core.config import settings
from accumulator.core.logging import setup_logging
from accumulator.metrics import get_accumulator_metrics

setup_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info(
        "Starting Accumulator Service",
        version=settings.VERSION,
        environment=settings.ENV,
        target_batch_size=settings.TARGET_BATCH_SIZE,
    )

    get_accumulator_metrics().set_service_info(
        version=settings.VERSION,
        environment=settings.ENV,
    )

    yield

    logger.info("Accumulator Service shutdown complete")


def create_application() -> FastAPI:
    """Create FastAPI application."""
    app = FastAPI(
        title="Invocation Batch Accumulator API",
        description="Merkle commitments and inclusion proofs for settlement batches",
        version=settings.VERSION,
        docs_url="/docs" if settings.ENV != "production" else None,
        redoc_url="/redoc" if settings.ENV != "production" else None,
        lifespan=lifespan,
    )

    app.include_router(api_v1_router, prefix="/api/v1")

    if settings.METRICS_ENABLED:
        metrics_app = make_asgi_app()
        app.mount("/metrics", metrics_app)

    @app.get("/health")
    async def health() -> dict:
        """Overall service health check."""
        return {
            "status": "healthy",
            "service": "batch-accumulator",
            "version": settings.VERSION,
        }

    @app.get("/live")
    async def live() -> Response:
        """Liveness probe for Kubernetes."""
        return Response(status_code=200, content="alive")

    @app.get("/status")
    async def status() -> dict:
        """Detailed service status."""
        return {
            "service": "batch-accumulator",
            "version": settings.VERSION,
            "environment": settings.ENV,
            "hash_function": "keccak256",
            "target_batch_size": settings.TARGET_BATCH_SIZE,
            "verify_proofs_on_build": settings.VERIFY_PROOFS_ON_BUILD,
        }

    return app


app = create_application()


def handle_signal(signum: int, frame: object) -> None:
    """Handle shutdown signals."""
    logger.info(f"Received signal {signum}, initiating shutdown")
    sys.exit(0)


def main() -> None:
    """Run the service."""
    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    logger.info(
        "Starting Accumulator service",
        host=settings.HOST,
        port=settings.PORT,
    )

    uvicorn.run(
        "accumulator.main:app",
        host=settings.HOST,
        port=settings.PORT,
        workers=settings.WORKERS,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
