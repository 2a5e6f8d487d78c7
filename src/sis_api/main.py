"""FastAPI application factory.

Builds the export pipeline API: lifespan (logging, database engine,
in-process export task drain), the ``ValueError`` handler and routers.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from sis_api.core.background import task_runner
from sis_api.core.config import get_settings
from sis_api.core.database import dispose_engine, init_engine
from sis_api.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Set up logging and the engine on startup; drain export tasks and dispose on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir, log_json=settings.log_json)
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)
    mode = "remote" if settings.export_processor_url else "in-process"
    logger.info("SIS API started (export processing: {})", mode)

    yield

    if task_runner.in_flight:
        logger.info("Waiting for {} in-process export tasks", task_runner.in_flight)
    await task_runner.drain()
    await dispose_engine()
    logger.info("SIS API stopped")


def create_app() -> FastAPI:
    """Create the FastAPI application from current settings."""
    settings = get_settings()

    app = FastAPI(
        title="SIS API",
        description="Student information system: document export pipeline",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        logger.debug("{} {} rejected: {}", request.method, request.url.path, exc)
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    from sis_api.api.router import create_router, setup_middleware

    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
