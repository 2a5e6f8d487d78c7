"""Unit tests for database engine lifecycle helpers."""

from unittest.mock import patch

import pytest
from sqlalchemy import text

from sis_api.core import database
from sis_api.core.database import engine_scope, get_session_factory, init_engine


class TestInitEngine:
    def test_sqlite_has_no_pool_sizing(self) -> None:
        with patch("sis_api.core.database.create_async_engine") as mock_create:
            init_engine("sqlite+aiosqlite:///:memory:")

        assert "pool_size" not in mock_create.call_args.kwargs
        database._engine = None
        database._session_factory = None

    def test_schema_sets_search_path(self) -> None:
        with patch("sis_api.core.database.create_async_engine") as mock_create:
            init_engine("postgresql+asyncpg://u:p@db/sis", schema="pr_42")

        kwargs = mock_create.call_args.kwargs
        assert kwargs["connect_args"] == {"server_settings": {"search_path": "pr_42,public"}}
        assert kwargs["pool_size"] == 10
        database._engine = None
        database._session_factory = None

    def test_factory_requires_init(self) -> None:
        with pytest.raises(RuntimeError, match="not initialized"):
            get_session_factory()


class TestEngineScope:
    @pytest.mark.asyncio
    async def test_yields_working_factory_then_disposes(self) -> None:
        async with engine_scope("sqlite+aiosqlite:///:memory:") as factory, factory() as session:
            result = await session.execute(text("SELECT 1"))
            assert result.scalar_one() == 1

        with pytest.raises(RuntimeError):
            get_session_factory()
