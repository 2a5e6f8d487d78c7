"""Fixtures for API tests: the full router on the test database and storage."""

from collections.abc import AsyncGenerator, Callable

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from sis_api.api.router import create_router
from sis_api.core.config import get_settings
from sis_api.core.dependencies import get_async_session, get_export_storage


@pytest.fixture
def api_app(settings, session_factory, memory_storage) -> FastAPI:
    async def _session():
        async with session_factory() as session:
            yield session

    app = FastAPI()
    app.include_router(create_router(settings))
    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_export_storage] = lambda: memory_storage
    return app


@pytest.fixture
async def client(api_app: FastAPI) -> AsyncGenerator[AsyncClient]:
    transport = ASGITransport(app=api_app)
    async with AsyncClient(transport=transport, base_url="https://test") as ac:
        yield ac


@pytest.fixture
def auth_headers(token_for) -> Callable[..., dict[str, str]]:
    def _headers(profile) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(profile)}"}

    return _headers
