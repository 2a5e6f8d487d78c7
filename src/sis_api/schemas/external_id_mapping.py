"""External ID mapping Pydantic v2 schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

EntityTypeLiteral = Literal["student", "school", "program", "section", "school_year", "staff"]


class ExternalIdMappingCreateRequest(BaseModel):
    """Request to create a mapping."""

    entity_type: EntityTypeLiteral
    internal_id: UUID
    external_system: str = Field(min_length=1, max_length=100)
    external_id: str = Field(min_length=1, max_length=255)
    external_id_display_name: str | None = None
    is_active: bool = True


class ExternalIdMappingUpdateRequest(BaseModel):
    """Partial mapping update."""

    external_id: str | None = Field(default=None, min_length=1, max_length=255)
    external_id_display_name: str | None = None
    is_active: bool | None = None


class ExternalIdMappingResponse(BaseModel):
    """Mapping as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    entity_type: str
    internal_id: UUID
    external_system: str
    external_id: str
    external_id_display_name: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
