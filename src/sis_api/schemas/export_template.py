"""Export template Pydantic v2 schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from sis_api.schemas.export import ExportTypeLiteral

ExportFormatLiteral = Literal["pdf", "csv", "excel"]


class ExportTemplateCreateRequest(BaseModel):
    """Request to create a template."""

    template_name: str = Field(min_length=1, max_length=200)
    template_type: ExportTypeLiteral
    template_config: dict = Field(default_factory=dict)
    export_format: ExportFormatLiteral
    school_id: UUID | None = None
    is_active: bool = True


class ExportTemplateUpdateRequest(BaseModel):
    """Partial template update."""

    template_name: str | None = Field(default=None, min_length=1, max_length=200)
    template_config: dict | None = None
    export_format: ExportFormatLiteral | None = None
    is_active: bool | None = None


class ExportTemplateResponse(BaseModel):
    """Template as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    school_id: UUID | None = None
    template_name: str
    template_type: str
    template_config: dict
    export_format: str
    is_active: bool
    version: int
    created_at: datetime
    updated_at: datetime
