"""Export processor — drives one export job through its lifecycle.

States move strictly forward: ``pending -> processing -> completed | failed``.
Each call to ``process_export_job`` is a single attempt with no internal
retry. Authorization and precondition failures are raised before any
state change. Once a job is ``processing``, read, render and upload
failures are recorded on the job as ``failed`` before the error propagates.
If only the completion write fails after upload, the job stays
``processing`` until ``fail_stale_jobs`` reaps it.
"""

import asyncio
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sis_api.core.config import Settings, get_settings
from sis_api.core.database import get_session_factory
from sis_api.core.dependencies import get_export_storage
from sis_api.lib.exporter import DEFAULT_MAX_ROWS, render_export
from sis_api.lib.storage import ExportStorage
from sis_api.models.export_job import ExportJob, ExportStatus, ExportType
from sis_api.models.export_template import ExportTemplate
from sis_api.models.profile import ROLE_ADMIN, ROLE_PRINCIPAL, ROLE_REGISTRAR, Profile
from sis_api.services.export_reader import read_export_data
from sis_api.services.export_service import get_export_job
from sis_api.services.export_template_service import get_template

FULL_ACCESS_ROLES = frozenset({ROLE_ADMIN, ROLE_PRINCIPAL})


class ExportProcessingError(Exception):
    """Base class for errors raised while processing an export job."""


class ExportJobNotFoundError(ExportProcessingError, LookupError):
    """The job does not exist or is archived."""


class RequesterNotFoundError(ExportProcessingError, LookupError):
    """The job's requester has no profile."""


class ExportJobConflictError(ExportProcessingError, ValueError):
    """The job is not in the state the operation requires."""


class ExportPermissionError(ExportProcessingError, PermissionError):
    """The requester may not generate this export."""


class ExportGenerationError(ExportProcessingError, RuntimeError):
    """Reading data or rendering the document failed; the job is now ``failed``."""


class ExportStorageError(ExportProcessingError, RuntimeError):
    """Uploading the document failed; the job is now ``failed``."""


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of a successful processing attempt."""

    export_job_id: uuid.UUID
    file_path: str
    file_size_bytes: int


def can_generate_export(profile: Profile, export_type: str) -> bool:
    """Return True if the profile's role allows generating this export type.

    Admins and principals may generate every export; registrars only
    compliance exports; super-admins anything.
    """
    if profile.is_super_admin or profile.role in FULL_ACCESS_ROLES:
        return True
    return profile.role == ROLE_REGISTRAR and export_type == ExportType.COMPLIANCE_EXPORT


def authorize_export(profile: Profile, *, export_type: str, organization_id: uuid.UUID) -> None:
    """Check role and organization scope for generating an export.

    Raises:
        ExportPermissionError: If the role is insufficient or the organization differs.
    """
    if not can_generate_export(profile, export_type):
        msg = "Insufficient permissions to generate this export type"
        raise ExportPermissionError(msg)
    if not profile.is_super_admin and profile.organization_id != organization_id:
        msg = "Cannot access export job from another organization"
        raise ExportPermissionError(msg)


def build_storage_key(job: ExportJob, file_name: str) -> str:
    """Return the storage key ``{organization}/{school or 'null'}/{job}/{file}``."""
    school = str(job.school_id) if job.school_id else "null"
    return f"{job.organization_id}/{school}/{job.id}/{file_name}"


async def _mark_processing(session: AsyncSession, job: ExportJob) -> None:
    """Move a job from pending to processing with a compare-and-swap update."""
    now = datetime.now(UTC)
    result = await session.execute(
        update(ExportJob)
        .where(
            ExportJob.id == job.id,
            ExportJob.status == ExportStatus.PENDING.value,
            ExportJob.archived_at.is_(None),
        )
        .values(status=ExportStatus.PROCESSING.value, started_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    if result.rowcount == 0:
        await session.refresh(job)
        msg = f"Export job is not pending (current status: {job.status})"
        raise ExportJobConflictError(msg)
    await session.refresh(job)
    logger.info(f"Export job {job.id} is processing")


async def _mark_completed(session: AsyncSession, job: ExportJob, file_path: str, file_size_bytes: int) -> None:
    now = datetime.now(UTC)
    result = await session.execute(
        update(ExportJob)
        .where(ExportJob.id == job.id, ExportJob.status == ExportStatus.PROCESSING.value)
        .values(
            status=ExportStatus.COMPLETED.value,
            file_path=file_path,
            file_size_bytes=file_size_bytes,
            completed_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    await session.refresh(job)
    if result.rowcount == 0:
        logger.warning(f"Export job {job.id} left processing before completion was recorded (status={job.status})")
        return
    logger.info(f"Export job {job.id} completed: {file_size_bytes} bytes at {file_path}")


async def _mark_failed(session: AsyncSession, job: ExportJob, message: str) -> None:
    """Record a failure. Best-effort: a failing write is logged, not raised."""
    job_id = job.id
    now = datetime.now(UTC)
    try:
        await session.rollback()
        await session.execute(
            update(ExportJob)
            .where(ExportJob.id == job_id, ExportJob.status == ExportStatus.PROCESSING.value)
            .values(
                status=ExportStatus.FAILED.value,
                error_message=message,
                completed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await session.commit()
        await session.refresh(job)
    except SQLAlchemyError:
        logger.exception(f"Could not record failure of export job {job_id}: {message}")
        return
    logger.warning(f"Export job {job_id} failed: {message}")


async def _resolve_template(session: AsyncSession, job: ExportJob) -> ExportTemplate | None:
    template_id = (job.export_parameters or {}).get("template_id")
    if not template_id:
        return None
    template = await get_template(session, uuid.UUID(str(template_id)))
    if (
        template is None
        or template.organization_id != job.organization_id
        or template.template_type != job.export_type
        or not template.is_active
    ):
        msg = "Export template not found"
        raise ValueError(msg)
    return template


def _render_parameters(job: ExportJob, template: ExportTemplate | None) -> Mapping[str, Any]:
    parameters = dict(job.export_parameters or {})
    if template is not None and not parameters.get("format"):
        parameters["format"] = template.export_format
    return parameters


async def process_export_job(
    session: AsyncSession,
    job_id: uuid.UUID,
    *,
    storage: ExportStorage,
    max_rows: int = DEFAULT_MAX_ROWS,
) -> ProcessResult:
    """Run one processing attempt for a pending export job.

    Steps run strictly in order: authorize, mark processing, read, render,
    upload, record outcome.

    Args:
        session: Database session.
        job_id: The job to process.
        storage: Blob storage receiving the document.
        max_rows: Row cap for page-oriented documents.

    Returns:
        ProcessResult with the stored file location and size.

    Raises:
        ExportJobNotFoundError: The job does not exist or is archived.
        ExportJobConflictError: The job is not pending.
        RequesterNotFoundError: The requester profile is missing.
        ExportPermissionError: The requester may not generate this export.
        ExportGenerationError: No eligible data, or rendering failed (job failed).
        ExportStorageError: Upload failed (job failed).
    """
    job = await get_export_job(session, job_id)
    if job is None:
        msg = "Export job not found"
        raise ExportJobNotFoundError(msg)
    if job.status != ExportStatus.PENDING:
        msg = f"Export job is not pending (current status: {job.status})"
        raise ExportJobConflictError(msg)

    requester = await session.get(Profile, job.requested_by)
    if requester is None:
        msg = "Requester profile not found"
        raise RequesterNotFoundError(msg)
    authorize_export(requester, export_type=job.export_type, organization_id=job.organization_id)

    await _mark_processing(session, job)

    try:
        template = await _resolve_template(session, job)
        data = await read_export_data(session, job)
        logger.info(f"Export job {job.id} read {data.record_count} records")
        document = render_export(
            job.export_type,
            data,
            _render_parameters(job, template),
            file_stem=f"{job.export_type}_{job.id}",
            title=(template.template_config or {}).get("title") if template else None,
            max_rows=max_rows,
        )
    except Exception as exc:
        await _mark_failed(session, job, str(exc))
        raise ExportGenerationError(str(exc)) from exc

    storage_key = build_storage_key(job, document.file_name)
    try:
        file_size = await asyncio.to_thread(storage.upload, storage_key, document.file_buffer, document.content_type)
    except Exception as exc:
        message = f"Storage upload failed: {exc}"
        await _mark_failed(session, job, message)
        raise ExportStorageError(message) from exc

    try:
        await _mark_completed(session, job, storage_key, file_size)
    except SQLAlchemyError:
        # The document is stored; only the bookkeeping write is missing.
        logger.exception(f"Export job {job.id} uploaded to {storage_key} but completion could not be recorded")

    return ProcessResult(export_job_id=job.id, file_path=storage_key, file_size_bytes=file_size)


async def run_export_job(
    job_id: uuid.UUID,
    *,
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    storage: ExportStorage | None = None,
) -> ProcessResult | None:
    """Process a job in its own session, logging rather than raising domain errors.

    Used by detached invocations (in-process trigger, scheduled sweep) where
    no caller waits for the result; the job row is the record of truth.
    """
    settings = settings or get_settings()
    factory = session_factory or get_session_factory()
    storage = storage or get_export_storage(settings)
    async with factory() as session:
        try:
            return await process_export_job(session, job_id, storage=storage, max_rows=settings.export_pdf_max_rows)
        except ExportProcessingError as exc:
            logger.warning(f"Export job {job_id} was not completed: {exc}")
            return None
        except SQLAlchemyError:
            logger.exception(f"Database error while processing export job {job_id}")
            return None


@dataclass
class SweepResult:
    """Counts from a pending-job sweep."""

    attempted: int = 0
    completed: int = 0
    not_completed: int = 0


async def process_pending_jobs(
    *,
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    storage: ExportStorage | None = None,
    limit: int | None = None,
) -> SweepResult:
    """Process pending jobs oldest-first, one independent attempt each.

    Args:
        settings: Application settings.
        session_factory: Session factory (defaults to the global one).
        storage: Blob storage (built from settings by default).
        limit: Maximum number of jobs to attempt.

    Returns:
        SweepResult with attempt counts.
    """
    settings = settings or get_settings()
    factory = session_factory or get_session_factory()
    storage = storage or get_export_storage(settings)

    async with factory() as session:
        query = (
            select(ExportJob.id)
            .where(ExportJob.status == ExportStatus.PENDING.value, ExportJob.archived_at.is_(None))
            .order_by(ExportJob.created_at)
        )
        if limit is not None:
            query = query.limit(limit)
        job_ids = list((await session.execute(query)).scalars().all())

    sweep = SweepResult()
    for job_id in job_ids:
        sweep.attempted += 1
        result = await run_export_job(job_id, settings=settings, session_factory=factory, storage=storage)
        if result is None:
            sweep.not_completed += 1
        else:
            sweep.completed += 1

    logger.info(f"Pending export sweep: {sweep.attempted} attempted, {sweep.completed} completed")
    return sweep


async def fail_stale_jobs(session: AsyncSession, *, older_than: timedelta) -> int:
    """Fail jobs that have been processing longer than ``older_than``.

    Args:
        session: Database session.
        older_than: Maximum time a job may spend in processing.

    Returns:
        Number of jobs moved to failed.
    """
    now = datetime.now(UTC)
    cutoff = now - older_than
    minutes = int(older_than.total_seconds() // 60)
    result = await session.execute(
        update(ExportJob)
        .where(ExportJob.status == ExportStatus.PROCESSING.value, ExportJob.started_at < cutoff)
        .values(
            status=ExportStatus.FAILED.value,
            error_message=f"Export timed out after {minutes} minutes in processing",
            completed_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    if result.rowcount:
        logger.warning(f"Failed {result.rowcount} export jobs stuck in processing since before {cutoff.isoformat()}")
    return result.rowcount
