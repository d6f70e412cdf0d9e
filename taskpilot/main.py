"""
FastAPI application entry point for the TaskPilot AI API.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskpilot import __version__
from taskpilot.api.errors import setup_error_handlers
from taskpilot.api.v1 import v1_router
from taskpilot.infra.ai.metrics import metrics_router
from taskpilot.infra.config.logging_config import get_logger, setup_logging
from taskpilot.infra.config.settings import get_settings
from taskpilot.infra.container import Container
from taskpilot.infra.middleware.request_context import RequestContextMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    logger = get_logger("app")
    container: Container = app.state.container
    settings = container.settings
    logger.info(
        "app.startup",
        app_name=settings.app_name,
        environment=settings.environment,
        ai_enabled=container.orchestrator().is_enabled(),
        provider=container.provider().name,
    )
    container.metrics_sink().start()

    yield

    # Shutdown
    await container.metrics_sink().stop()
    logger.info("app.shutdown", app_name=settings.app_name)


def create_app(container: Optional[Container] = None) -> FastAPI:
    """Create and configure FastAPI application."""
    container = container or Container(get_settings())
    settings = container.settings
    app = FastAPI(
        title=settings.app_name,
        description="Governed, fault-tolerant AI features for task management",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.container = container

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request context + logging middleware
    app.add_middleware(RequestContextMiddleware)

    setup_error_handlers(app)

    # Include routers
    app.include_router(v1_router, prefix="/api")
    app.include_router(metrics_router)

    @app.get("/health")
    async def health_check():
        """Detailed health check endpoint."""
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": __version__,
            "ai": container.orchestrator().health(),
        }

    return app


# Create FastAPI application
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "taskpilot.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="info" if not settings.debug else "debug",
    )
