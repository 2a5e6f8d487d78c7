"""Tests for the export service module."""

import json
import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from sis_api.core.background import task_runner
from sis_api.core.config import Settings
from sis_api.services.export_service import (
    archive_export_job,
    create_export_job,
    get_download_url,
    get_export_job,
    list_export_jobs,
    regenerate_export_job,
    trigger_export_job,
)

PROCESSOR_URL = "https://processor.test/api/v1/exports/process"


@pytest.fixture
def remote_settings(settings: Settings) -> Settings:
    return settings.model_copy(update={"export_processor_url": PROCESSOR_URL})


class TestCreateExportJob:
    @pytest.mark.asyncio
    async def test_creates_pending_job(self, async_session, admin_profile) -> None:
        school_id = uuid.uuid4()
        job = await create_export_job(
            async_session,
            organization_id=admin_profile.organization_id,
            requested_by=admin_profile.id,
            export_type="report_card",
            export_parameters={"term_period": "Q1"},
            school_id=school_id,
        )

        assert job.id is not None
        assert job.status == "pending"
        assert job.school_id == school_id
        assert job.export_parameters == {"term_period": "Q1"}
        assert job.file_path is None
        assert job.started_at is None

    @pytest.mark.asyncio
    async def test_rejects_unknown_type(self, async_session, admin_profile) -> None:
        with pytest.raises(ValueError, match="Unsupported export type: diploma"):
            await create_export_job(
                async_session,
                organization_id=admin_profile.organization_id,
                requested_by=admin_profile.id,
                export_type="diploma",
                export_parameters={},
            )


class TestGetExportJob:
    @pytest.mark.asyncio
    async def test_scoped_to_organization(self, async_session, admin_profile, make_job, other_organization_id) -> None:
        job = await make_job(admin_profile, "transcript")

        assert await get_export_job(async_session, job.id) is not None
        assert await get_export_job(async_session, job.id, organization_id=admin_profile.organization_id) is not None
        assert await get_export_job(async_session, job.id, organization_id=other_organization_id) is None

    @pytest.mark.asyncio
    async def test_archived_job_hidden(self, async_session, admin_profile, make_job) -> None:
        job = await make_job(admin_profile, "transcript")
        await archive_export_job(async_session, job)

        assert job.archived_at is not None
        assert job.status == "pending"
        assert await get_export_job(async_session, job.id) is None


class TestListExportJobs:
    @pytest.mark.asyncio
    async def test_filters(self, async_session, admin_profile, registrar_profile, make_job, other_organization_id) -> None:
        await make_job(admin_profile, "transcript")
        await make_job(admin_profile, "report_card", status="completed")
        await make_job(registrar_profile, "compliance_export")
        await make_job(admin_profile, "transcript", organization_id=other_organization_id)
        await make_job(admin_profile, "transcript", archived_at=datetime.now(UTC))
        org = admin_profile.organization_id

        jobs, total = await list_export_jobs(async_session, org)
        assert total == 3
        assert len(jobs) == 3

        _, total = await list_export_jobs(async_session, None)
        assert total == 4

        jobs, total = await list_export_jobs(async_session, org, export_type="transcript")
        assert total == 1
        assert jobs[0].export_type == "transcript"

        jobs, total = await list_export_jobs(async_session, org, status_filter="completed")
        assert [j.export_type for j in jobs] == ["report_card"]

        jobs, total = await list_export_jobs(async_session, org, requested_by=registrar_profile.id)
        assert [j.export_type for j in jobs] == ["compliance_export"]

    @pytest.mark.asyncio
    async def test_date_range(self, async_session, admin_profile, make_job) -> None:
        await make_job(admin_profile, "transcript")
        now = datetime.now(UTC)

        _, total = await list_export_jobs(async_session, None, date_from=now - timedelta(days=1))
        assert total == 1
        _, total = await list_export_jobs(async_session, None, date_from=now + timedelta(days=1))
        assert total == 0
        _, total = await list_export_jobs(async_session, None, date_to=now - timedelta(days=1))
        assert total == 0

    @pytest.mark.asyncio
    async def test_pagination(self, async_session, admin_profile, make_job) -> None:
        for _ in range(5):
            await make_job(admin_profile, "transcript")

        first, total = await list_export_jobs(async_session, None, page=1, page_size=2)
        third, _ = await list_export_jobs(async_session, None, page=3, page_size=2)

        assert total == 5
        assert len(first) == 2
        assert len(third) == 1


class TestRegenerateExportJob:
    @pytest.mark.asyncio
    async def test_copies_into_independent_job(self, async_session, admin_profile, make_profile, make_job) -> None:
        school_id = uuid.uuid4()
        original = await make_job(
            admin_profile,
            "report_card",
            {"term_period": "Q1", "format": "csv"},
            school_id=school_id,
            status="failed",
            error_message="No confirmed grades found for selected scope",
        )
        principal = await make_profile("principal")

        job = await regenerate_export_job(async_session, original.id, requested_by=principal.id)

        assert job is not None
        assert job.id != original.id
        assert job.status == "pending"
        assert job.requested_by == principal.id
        assert job.organization_id == original.organization_id
        assert job.school_id == school_id
        assert job.export_type == "report_card"
        assert job.export_parameters == original.export_parameters
        assert job.error_message is None

        await async_session.refresh(original)
        assert original.status == "failed"
        assert original.error_message == "No confirmed grades found for selected scope"

    @pytest.mark.asyncio
    async def test_unknown_original(self, async_session, admin_profile) -> None:
        assert await regenerate_export_job(async_session, uuid.uuid4(), requested_by=admin_profile.id) is None

    @pytest.mark.asyncio
    async def test_other_organization_not_found(
        self, async_session, admin_profile, make_job, other_organization_id
    ) -> None:
        original = await make_job(admin_profile, "transcript")

        job = await regenerate_export_job(
            async_session, original.id, requested_by=admin_profile.id, organization_id=other_organization_id
        )

        assert job is None


class TestGetDownloadUrl:
    @pytest.mark.asyncio
    async def test_signs_path(self, memory_storage) -> None:
        url = await get_download_url(memory_storage, "org/null/job/report.pdf", expires_in=600)

        assert url == "https://storage.test/exports/org/null/job/report.pdf?expires=600"


class TestTriggerExportJobRemote:
    @pytest.mark.asyncio
    async def test_accepted(self, remote_settings) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True})

        job_id = uuid.uuid4()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            outcome = await trigger_export_job(job_id, settings=remote_settings, token="abc", client=client)

        assert outcome.accepted is True
        assert len(seen) == 1
        assert str(seen[0].url) == PROCESSOR_URL
        assert seen[0].headers["Authorization"] == "Bearer abc"
        assert json.loads(seen[0].content) == {"export_job_id": str(job_id)}

    @pytest.mark.asyncio
    async def test_no_token_no_header(self, remote_settings) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await trigger_export_job(uuid.uuid4(), settings=remote_settings, client=client)

        assert "Authorization" not in seen[0].headers

    @pytest.mark.asyncio
    async def test_error_status_is_not_raised(self, remote_settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "Storage upload failed"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            outcome = await trigger_export_job(uuid.uuid4(), settings=remote_settings, client=client)

        assert outcome.accepted is False
        assert "500" in outcome.detail

    @pytest.mark.asyncio
    async def test_unreachable_is_not_raised(self, remote_settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            msg = "connection refused"
            raise httpx.ConnectError(msg, request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            outcome = await trigger_export_job(uuid.uuid4(), settings=remote_settings, client=client)

        assert outcome.accepted is False
        assert "connection refused" in outcome.detail


class TestTriggerExportJobInProcess:
    @pytest.mark.asyncio
    async def test_schedules_run(self, settings) -> None:
        job_id = uuid.uuid4()
        with patch("sis_api.services.export_processor.run_export_job", new_callable=AsyncMock) as mock_run:
            outcome = await trigger_export_job(job_id, settings=settings)
            await task_runner.drain()

        assert outcome.accepted is True
        assert outcome.task_id is not None
        mock_run.assert_awaited_once_with(job_id, settings=settings)

    @pytest.mark.asyncio
    async def test_scheduling_failure_is_not_raised(self, settings) -> None:
        def reject(coro):
            coro.close()
            msg = "no running event loop"
            raise RuntimeError(msg)

        with (
            patch("sis_api.services.export_processor.run_export_job", new_callable=AsyncMock),
            patch.object(task_runner, "submit_task", side_effect=reject),
        ):
            outcome = await trigger_export_job(uuid.uuid4(), settings=settings)

        assert outcome.accepted is False
        assert outcome.detail == "no running event loop"
