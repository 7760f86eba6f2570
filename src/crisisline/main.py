"""
CRISISLINE FastAPI Application Entry Point

Main application initialization with:
- Lifespan management (startup/shutdown, timeout sweeper)
- CORS configuration
- Error handling middleware
- Router registration
- Metrics endpoint

This is the production entry point for the CRISISLINE backend.
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crisisline import __version__
from crisisline.config import Settings, get_settings
from crisisline.config.logging_config import configure_logging, get_logger
from crisisline.infrastructure.metrics import metrics_router, update_system_info
from crisisline.infrastructure.monitoring import init_sentry
from crisisline.services.container import ServiceContainer, build_container
from crisisline.api.v1.router import api_router
from crisisline.api.middleware import ErrorHandlerMiddleware, register_exception_handlers

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Starts the service container and the escalation timeout sweeper,
    and stops both on shutdown.
    """
    container: ServiceContainer = app.state.container
    settings = container.settings

    logger.info(
        "Starting CRISISLINE application",
        env=settings.env,
        version=__version__,
        storage_backend=settings.storage_backend,
    )

    await container.startup()
    sweeper = asyncio.create_task(
        container.engine.run_sweeper(settings.escalation.sweep_interval_seconds)
    )

    try:
        yield
    finally:
        logger.info("Shutting down CRISISLINE application")

        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
        await container.shutdown()

        logger.info("CRISISLINE application shutdown complete")


def create_application(
    settings: Optional[Settings] = None,
    container: Optional[ServiceContainer] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Settings override (defaults to environment settings)
        container: Pre-built services (tests inject fakes here)

    Returns:
        Configured FastAPI application
    """
    settings = settings or (container.settings if container else get_settings())
    configure_logging(settings)

    init_sentry(
        dsn=settings.monitoring.dsn.get_secret_value(),
        environment=settings.env,
        release=f"crisisline@{__version__}",
        sample_rate=settings.monitoring.sample_rate,
        traces_sample_rate=settings.monitoring.traces_sample_rate,
    )
    update_system_info(settings.env, __version__)

    app = FastAPI(
        title="CRISISLINE API",
        description="Crisis detection, escalation and SMS messaging",
        version=__version__,
        docs_url="/docs" if not settings.is_production() else None,
        redoc_url="/redoc" if not settings.is_production() else None,
        lifespan=lifespan,
    )
    app.state.container = container or build_container(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ErrorHandlerMiddleware)
    register_exception_handlers(app)

    app.include_router(api_router, prefix=f"/api/{settings.api_version}")
    app.include_router(metrics_router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        return {
            "name": "CRISISLINE API",
            "version": __version__,
            "status": "operational",
        }

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "crisisline.main:app",
        host="0.0.0.0",
        port=8000,
        reload=_settings.env == "development",
        log_level=_settings.log_level.lower(),
    )
