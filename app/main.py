"""
FastAPI application factory.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api.router import api_router
from app.dependencies import get_llm_provider, get_ocr_engine, get_storage
from app.models.database import close_db, init_db
from app.observability.logging import setup_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    # Startup
    setup_logging()

    # Sentry init if configured
    if settings.SENTRY_DSN:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            integrations=[FastApiIntegration()],
            traces_sample_rate=0.1,
        )

    await init_db()

    # Backends are chosen once per process
    storage = get_storage()
    ocr = get_ocr_engine()
    llm = get_llm_provider()
    logger.info(
        "app_started",
        version=settings.APP_VERSION,
        storage=storage.backend_name,
        ocr_engine=ocr.engine_name,
        llm_provider=llm.provider_name,
        processing_mode=settings.INVOICE_PROCESSING_MODE,
    )

    yield

    # Shutdown
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Expense Ingestion Service",
        description="Bank CSV transaction import and invoice OCR/LLM extraction.",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Prometheus metrics endpoint
    if settings.PROMETHEUS_ENABLED:
        from prometheus_client import make_asgi_app
        metrics_app = make_asgi_app()
        app.mount("/metrics", metrics_app)

    # Include all API routes
    app.include_router(api_router)

    # Local storage URLs point here
    if settings.STORAGE_BACKEND == "local":
        from pathlib import Path
        from fastapi.staticfiles import StaticFiles
        Path(settings.STORAGE_LOCAL_ROOT).mkdir(parents=True, exist_ok=True)
        app.mount("/files", StaticFiles(directory=settings.STORAGE_LOCAL_ROOT), name="files")

    return app


# Application instance
app = create_app()
