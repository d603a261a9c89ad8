"""Workload compliance service entry point.

Initializes the FastAPI application with:
- A process-wide ComplianceEngine built from Settings (baseline rules,
  threshold, trusted registries)
- The cluster-level admission context loaded from settings.context_path

Run with any ASGI server, e.g. ``uvicorn workload_compliance.main:app``.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from workload_compliance import __version__
from workload_compliance.api.router import router
from workload_compliance.compliance.engine import create_default_engine
from workload_compliance.core.models import WorkloadDescriptor
from workload_compliance.ingest.documents import load_descriptor_document
from workload_compliance.observability import configure_logging, get_logger
from workload_compliance.settings import Settings

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log service startup and shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None
    """
    settings: Settings = app.state.settings
    logger.info(
        "Compliance service startup complete",
        service=settings.service_name,
        rules=len(app.state.engine.rules),
        threshold=app.state.engine.threshold,
        admission_enforce=settings.admission_enforce,
    )

    yield

    logger.info("Compliance service shutdown complete", service=settings.service_name)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application.

    The engine and admission context are created eagerly so configuration
    errors (invalid threshold, unreadable context file) fail at startup.

    Args:
        settings: Settings to use. Defaults to settings read from the environment.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or Settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.service_name,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = create_default_engine(settings)
    app.state.admission_context = (
        load_descriptor_document(settings.context_path)
        if settings.context_path is not None
        else WorkloadDescriptor()
    )
    if settings.context_path is not None:
        logger.info("Admission context loaded", path=str(settings.context_path))

    app.include_router(router, prefix="/api/v1")
    return app


app: FastAPI = create_app()
