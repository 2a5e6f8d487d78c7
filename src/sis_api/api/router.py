"""Root API router with /api/v1 prefix and middleware registration."""

from fastapi import APIRouter, FastAPI

from sis_api.api.middleware import SecurityHeadersMiddleware, setup_cors
from sis_api.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included.

    Args:
        settings: Application settings.

    Returns:
        Configured API router.
    """
    from sis_api.api.v1.export_templates import export_templates_router
    from sis_api.api.v1.exports import exports_router
    from sis_api.api.v1.external_ids import external_ids_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(exports_router)
    root_router.include_router(export_templates_router)
    root_router.include_router(external_ids_router)

    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register CORS and security-header middleware on the app."""
    setup_cors(app, settings)
    app.add_middleware(SecurityHeadersMiddleware)
