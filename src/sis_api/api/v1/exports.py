"""Export job API endpoints.

POST /exports — create a pending job and trigger processing in the background
GET /exports — list jobs in the caller's organization
GET /exports/{id} — job status
POST /exports/{id}/archive — soft-delete a job
POST /exports/{id}/regenerate — new pending job with the same parameters
GET /exports/{id}/download-url — signed URL for a completed document
POST /exports/process — processor invocation for one pending job
"""

import math
import uuid
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sis_api.core.config import Settings, get_settings
from sis_api.core.dependencies import (
    get_async_session,
    get_current_profile,
    get_export_storage,
    oauth2_scheme,
    optional_oauth2_scheme,
    require_role,
    resolve_token_profile,
)
from sis_api.lib.storage import ExportStorage
from sis_api.models.export_job import ExportJob, ExportStatus
from sis_api.models.profile import ROLE_ADMIN, ROLE_PRINCIPAL, ROLE_REGISTRAR, Profile
from sis_api.schemas.common import ErrorResponse, PaginationMeta
from sis_api.schemas.export import (
    DownloadUrlResponse,
    ExportJobCreateRequest,
    ExportJobResponse,
    PaginatedExportJobResponse,
    ProcessExportRequest,
    ProcessExportResponse,
)
from sis_api.services import export_service
from sis_api.services.export_processor import (
    ExportGenerationError,
    ExportJobConflictError,
    ExportJobNotFoundError,
    ExportPermissionError,
    ExportProcessingError,
    ExportStorageError,
    RequesterNotFoundError,
    authorize_export,
    process_export_job,
)
from sis_api.services.export_service import trigger_export_job

exports_router = APIRouter(prefix="/exports", tags=["exports"])

_export_staff = require_role(ROLE_ADMIN, ROLE_PRINCIPAL, ROLE_REGISTRAR)

# Checked in order; the first matching class decides the response.
_PROCESS_ERRORS: tuple[tuple[type[ExportProcessingError], int, str], ...] = (
    (ExportJobNotFoundError, status.HTTP_404_NOT_FOUND, "Export job not found"),
    (RequesterNotFoundError, status.HTTP_404_NOT_FOUND, "Requester profile not found"),
    (ExportJobConflictError, status.HTTP_400_BAD_REQUEST, "Export job is not pending"),
    (ExportPermissionError, status.HTTP_403_FORBIDDEN, "Forbidden"),
    (ExportGenerationError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Export generation failed"),
    (ExportStorageError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Export upload failed"),
)


def _scope(profile: Profile) -> uuid.UUID | None:
    """Organization scope for reads; super-admins see every organization."""
    return None if profile.is_super_admin else profile.organization_id


def _error(
    status_code: int, error: str, details: str | None = None, *, headers: dict[str, str] | None = None
) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def _forbidden(exc: ExportPermissionError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))


async def _get_job_or_404(session: AsyncSession, job_id: uuid.UUID, profile: Profile) -> ExportJob:
    job = await export_service.get_export_job(session, job_id, organization_id=_scope(profile))
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Export job not found")
    return job


@exports_router.post("", response_model=ExportJobResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_export(
    request: ExportJobCreateRequest,
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(get_current_profile)],
    token: Annotated[str, Depends(oauth2_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ExportJobResponse:
    """Create a pending export job and request processing.

    The job is stored even when the processor cannot be reached; it then
    stays pending until a later sweep picks it up.
    """
    organization_id = current_profile.organization_id
    if current_profile.is_super_admin and request.organization_id is not None:
        organization_id = request.organization_id
    school_id = request.school_id
    if school_id is None and organization_id == current_profile.organization_id:
        school_id = current_profile.school_id

    try:
        authorize_export(current_profile, export_type=request.export_type, organization_id=organization_id)
    except ExportPermissionError as exc:
        raise _forbidden(exc) from exc

    job = await export_service.create_export_job(
        session,
        organization_id=organization_id,
        school_id=school_id,
        requested_by=current_profile.id,
        export_type=request.export_type,
        export_parameters=request.export_parameters.model_dump(mode="json", exclude_none=True),
    )
    background_tasks.add_task(trigger_export_job, job.id, settings=settings, token=token)
    return ExportJobResponse.model_validate(job)


@exports_router.get("", response_model=PaginatedExportJobResponse)
async def list_exports(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(get_current_profile)],
    export_type: str | None = Query(default=None, description="Filter by export type"),
    status_filter: str | None = Query(default=None, alias="status", description="Filter by status"),
    requested_by: uuid.UUID | None = Query(default=None, description="Filter by requester"),
    date_from: datetime | None = Query(default=None, description="Created at or after"),
    date_to: datetime | None = Query(default=None, description="Created at or before"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=100),
) -> PaginatedExportJobResponse:
    """List export jobs in the caller's organization, newest first."""
    jobs, total = await export_service.list_export_jobs(
        session,
        _scope(current_profile),
        export_type=export_type,
        status_filter=status_filter,
        requested_by=requested_by,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )
    return PaginatedExportJobResponse(
        items=[ExportJobResponse.model_validate(j) for j in jobs],
        pagination=PaginationMeta(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if total else 0,
        ),
    )


@exports_router.post(
    "/process",
    response_model=ProcessExportResponse,
    responses={code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 500)},
)
async def process_export(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    token: Annotated[str | None, Depends(optional_oauth2_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
    storage: Annotated[ExportStorage, Depends(get_export_storage)],
):
    """Process one pending export job synchronously.

    The bearer token authenticates the caller; authorization is checked
    against the profile that requested the job.
    """
    if await resolve_token_profile(session, token, settings) is None:
        return _error(
            status.HTTP_401_UNAUTHORIZED,
            "Unauthorized",
            "Missing or invalid bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        body = ProcessExportRequest.model_validate(await request.json())
    except ValueError as exc:
        return _error(status.HTTP_400_BAD_REQUEST, "export_job_id is required", str(exc))

    try:
        result = await process_export_job(
            session,
            body.export_job_id,
            storage=storage,
            max_rows=settings.export_pdf_max_rows,
        )
    except ExportProcessingError as exc:
        for error_class, status_code, summary in _PROCESS_ERRORS:
            if isinstance(exc, error_class):
                return _error(status_code, summary, str(exc))
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Export processing failed", str(exc))
    except SQLAlchemyError as exc:
        logger.exception(f"Database error while processing export job {body.export_job_id}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", str(exc))

    return ProcessExportResponse(
        export_job_id=result.export_job_id,
        file_path=result.file_path,
        file_size_bytes=result.file_size_bytes,
    )


@exports_router.get("/{job_id}", response_model=ExportJobResponse)
async def get_export(
    job_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(get_current_profile)],
) -> ExportJobResponse:
    """Get an export job's status."""
    job = await _get_job_or_404(session, job_id, current_profile)
    return ExportJobResponse.model_validate(job)


@exports_router.post("/{job_id}/archive", response_model=ExportJobResponse)
async def archive_export(
    job_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(_export_staff)],
) -> ExportJobResponse:
    """Archive an export job. Archived jobs disappear from lists and lookups."""
    job = await _get_job_or_404(session, job_id, current_profile)
    job = await export_service.archive_export_job(session, job)
    return ExportJobResponse.model_validate(job)


@exports_router.post("/{job_id}/regenerate", response_model=ExportJobResponse, status_code=status.HTTP_202_ACCEPTED)
async def regenerate_export(
    job_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(get_current_profile)],
    token: Annotated[str, Depends(oauth2_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ExportJobResponse:
    """Create a new pending job copying an existing job's type and parameters."""
    original = await _get_job_or_404(session, job_id, current_profile)
    try:
        authorize_export(current_profile, export_type=original.export_type, organization_id=original.organization_id)
    except ExportPermissionError as exc:
        raise _forbidden(exc) from exc

    job = await export_service.regenerate_export_job(
        session,
        original.id,
        requested_by=current_profile.id,
        organization_id=original.organization_id,
    )
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Export job not found")
    background_tasks.add_task(trigger_export_job, job.id, settings=settings, token=token)
    return ExportJobResponse.model_validate(job)


@exports_router.get("/{job_id}/download-url", response_model=DownloadUrlResponse)
async def get_export_download_url(
    job_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(get_current_profile)],
    settings: Annotated[Settings, Depends(get_settings)],
    storage: Annotated[ExportStorage, Depends(get_export_storage)],
) -> DownloadUrlResponse:
    """Return a time-limited signed URL for a completed export."""
    job = await _get_job_or_404(session, job_id, current_profile)
    if job.status != ExportStatus.COMPLETED or not job.file_path:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Export not yet completed")

    url = await export_service.get_download_url(storage, job.file_path, settings.export_signed_url_ttl)
    return DownloadUrlResponse(url=url, expires_in=settings.export_signed_url_ttl)
