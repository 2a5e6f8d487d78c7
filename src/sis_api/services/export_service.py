"""Export service — export job records and the processor trigger.

Job creation never depends on the processor being reachable: a job is
inserted as ``pending`` and ``trigger_export_job`` is a separate,
best-effort call whose failure only leaves the job pending for a later
scheduled or manual run.
"""

import asyncio
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sis_api.core.background import task_runner
from sis_api.core.config import Settings
from sis_api.lib.storage import ExportStorage
from sis_api.models.export_job import ExportJob, ExportStatus, ExportType


async def create_export_job(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    requested_by: uuid.UUID,
    export_type: str,
    export_parameters: dict,
    school_id: uuid.UUID | None = None,
) -> ExportJob:
    """Create a new pending export job.

    Args:
        session: Database session.
        organization_id: Owning organization.
        requested_by: Profile ID of the requester.
        export_type: transcript, report_card or compliance_export.
        export_parameters: Opaque job configuration.
        school_id: Optional school scope.

    Returns:
        The created ExportJob.

    Raises:
        ValueError: If the export type is unsupported.
    """
    if export_type not in {t.value for t in ExportType}:
        msg = f"Unsupported export type: {export_type}"
        raise ValueError(msg)

    job = ExportJob(
        organization_id=organization_id,
        school_id=school_id,
        requested_by=requested_by,
        export_type=export_type,
        export_parameters=export_parameters,
        status=ExportStatus.PENDING.value,
    )
    session.add(job)
    await session.commit()
    await session.refresh(job)
    logger.info(f"Created export job {job.id} (type={export_type}, organization={organization_id})")
    return job


async def get_export_job(
    session: AsyncSession,
    job_id: uuid.UUID,
    *,
    organization_id: uuid.UUID | None = None,
) -> ExportJob | None:
    """Get a non-archived export job by ID, optionally scoped to an organization."""
    query = select(ExportJob).where(ExportJob.id == job_id, ExportJob.archived_at.is_(None))
    if organization_id is not None:
        query = query.where(ExportJob.organization_id == organization_id)
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def list_export_jobs(
    session: AsyncSession,
    organization_id: uuid.UUID | None,
    *,
    export_type: str | None = None,
    status_filter: str | None = None,
    requested_by: uuid.UUID | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    page: int = 1,
    page_size: int = 50,
) -> tuple[list[ExportJob], int]:
    """List non-archived export jobs, newest first.

    Args:
        session: Database session.
        organization_id: Organization scope; None lists every organization.
        export_type: Optional export type filter.
        status_filter: Optional status filter.
        requested_by: Optional requester filter.
        date_from: Only jobs created at or after this time.
        date_to: Only jobs created at or before this time.
        page: Page number.
        page_size: Items per page.

    Returns:
        Tuple of (jobs, total count).
    """
    conditions = [ExportJob.archived_at.is_(None)]
    if organization_id is not None:
        conditions.append(ExportJob.organization_id == organization_id)
    if export_type:
        conditions.append(ExportJob.export_type == export_type)
    if status_filter:
        conditions.append(ExportJob.status == status_filter)
    if requested_by is not None:
        conditions.append(ExportJob.requested_by == requested_by)
    if date_from is not None:
        conditions.append(ExportJob.created_at >= date_from)
    if date_to is not None:
        conditions.append(ExportJob.created_at <= date_to)

    total = (await session.execute(select(func.count(ExportJob.id)).where(*conditions))).scalar_one()
    offset = (page - 1) * page_size
    query = select(ExportJob).where(*conditions).order_by(ExportJob.created_at.desc()).offset(offset).limit(page_size)
    result = await session.execute(query)
    jobs = list(result.scalars().all())

    return jobs, total


async def archive_export_job(session: AsyncSession, job: ExportJob) -> ExportJob:
    """Soft-delete an export job. The job's status is left untouched."""
    job.archived_at = datetime.now(UTC)
    await session.commit()
    await session.refresh(job)
    logger.info(f"Archived export job {job.id}")
    return job


async def regenerate_export_job(
    session: AsyncSession,
    original_id: uuid.UUID,
    *,
    requested_by: uuid.UUID,
    organization_id: uuid.UUID | None = None,
) -> ExportJob | None:
    """Create a new pending job with the type, scope and parameters of an existing one.

    The original job is never modified.

    Args:
        session: Database session.
        original_id: ID of the job to copy.
        requested_by: Profile requesting the regeneration.
        organization_id: Optional organization scope for the lookup.

    Returns:
        The new ExportJob, or None if the original was not found.
    """
    original = await get_export_job(session, original_id, organization_id=organization_id)
    if original is None:
        return None

    job = await create_export_job(
        session,
        organization_id=original.organization_id,
        school_id=original.school_id,
        requested_by=requested_by,
        export_type=original.export_type,
        export_parameters=dict(original.export_parameters or {}),
    )
    logger.info(f"Regenerated export job {original_id} as {job.id}")
    return job


async def get_download_url(storage: ExportStorage, file_path: str, expires_in: int = 3600) -> str:
    """Return a time-limited signed URL for a stored export file."""
    return await asyncio.to_thread(storage.signed_url, file_path, expires_in)


@dataclass(frozen=True)
class TriggerOutcome:
    """Result of asking the processor to run a job.

    A rejected trigger is not an error for the caller: the job stays
    ``pending`` and can be processed later.
    """

    accepted: bool
    detail: str | None = None
    task_id: str | None = None


async def _post_to_processor(
    client: httpx.AsyncClient,
    url: str,
    job_id: uuid.UUID,
    token: str | None,
) -> httpx.Response:
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return await client.post(url, json={"export_job_id": str(job_id)}, headers=headers)


async def trigger_export_job(
    job_id: uuid.UUID,
    *,
    settings: Settings,
    token: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> TriggerOutcome:
    """Best-effort invocation of the export processor.

    With ``export_processor_url`` configured the processor is called over
    HTTP; otherwise the job is processed by the in-process task runner.
    Invocation failures are logged and reported in the outcome, never raised.

    Args:
        job_id: The pending job to process.
        settings: Application settings.
        token: Bearer token forwarded to a remote processor.
        client: Optional HTTP client (a fresh one is created per call otherwise).

    Returns:
        TriggerOutcome describing whether the processor accepted the job.
    """
    if not settings.export_processor_url:
        from sis_api.services.export_processor import run_export_job

        try:
            task_id = task_runner.submit_task(run_export_job(job_id, settings=settings))
        except RuntimeError as exc:
            logger.warning(f"Could not schedule export job {job_id}; it remains pending: {exc}")
            return TriggerOutcome(accepted=False, detail=str(exc))
        logger.info(f"Scheduled export job {job_id} in-process (task {task_id})")
        return TriggerOutcome(accepted=True, task_id=task_id)

    url = settings.export_processor_url
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.export_trigger_timeout) as new_client:
                response = await _post_to_processor(new_client, url, job_id, token)
        else:
            response = await _post_to_processor(client, url, job_id, token)
    except httpx.HTTPError as exc:
        logger.warning(f"Export processor unreachable for job {job_id}; it remains pending: {exc}")
        return TriggerOutcome(accepted=False, detail=str(exc))

    if response.is_error:
        detail = f"Processor returned {response.status_code}: {response.text}"
        logger.warning(f"Export processor rejected job {job_id}: {detail}")
        return TriggerOutcome(accepted=False, detail=detail)

    logger.info(f"Export processor handled job {job_id}")
    return TriggerOutcome(accepted=True)
