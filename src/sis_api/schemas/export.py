"""Export job Pydantic v2 request/response schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from sis_api.schemas.common import PaginationMeta

ExportTypeLiteral = Literal["transcript", "report_card", "compliance_export"]


class ExportParameters(BaseModel):
    """Job configuration. Unknown keys are preserved."""

    model_config = ConfigDict(extra="allow")

    student_ids: list[UUID] | None = None
    school_year_id: UUID | None = None
    term_period: str | None = None
    program_id: UUID | None = None
    section_id: UUID | None = None
    template_id: UUID | None = None
    include_external_ids: bool | None = None
    include_grade_entries: bool | None = None
    format: Literal["pdf", "csv", "excel"] | None = None


class ExportJobCreateRequest(BaseModel):
    """Request to create an export job."""

    export_type: ExportTypeLiteral
    export_parameters: ExportParameters = Field(default_factory=ExportParameters)
    school_id: UUID | None = None
    organization_id: UUID | None = Field(
        default=None,
        description="Target organization (super-admins only; defaults to the caller's)",
    )


class ExportJobResponse(BaseModel):
    """Response for an export job."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    school_id: UUID | None = None
    requested_by: UUID
    export_type: str
    export_parameters: dict
    status: str
    file_path: str | None = None
    file_size_bytes: int | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class PaginatedExportJobResponse(BaseModel):
    """Paginated list of export jobs."""

    items: list[ExportJobResponse]
    pagination: PaginationMeta


class DownloadUrlResponse(BaseModel):
    """Signed download URL for a completed export."""

    url: str
    expires_in: int


class ProcessExportRequest(BaseModel):
    """Body of a processor invocation."""

    export_job_id: UUID


class ProcessExportResponse(BaseModel):
    """Successful processor invocation."""

    success: bool = True
    export_job_id: UUID
    file_path: str
    file_size_bytes: int
