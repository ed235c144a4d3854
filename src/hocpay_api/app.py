from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from hocpay_api.core.settings import settings
from hocpay_api.db.session import engine
from .api.routes import api_router
from .core.logging import configure_logging
from .observability.tracing import configure_tracing


APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Rewards engine configured",
        timezone=settings.rewards_timezone,
        plan_lock_days=settings.rewards_plan_lock_days,
        recent_fallback_cap=settings.rewards_recent_fallback_cap,
    )
    try:
        yield
    finally:
        await engine.dispose()


def create_app() -> FastAPI:
    """Application factory for the HocPay merchant rewards API."""
    configure_logging(
        service_name="hocpay-api",
        environment=settings.environment,
        version=APP_VERSION,
    )

    app = FastAPI(
        title="HocPay Merchant Rewards API",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    if settings.otel_enabled:
        configure_tracing(
            app,
            service_name="hocpay-api",
            service_version=APP_VERSION,
            environment=settings.environment,
        )

    app.include_router(api_router)

    @app.get("/healthz", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": settings.environment,
            "version": APP_VERSION,
        }

    return app
