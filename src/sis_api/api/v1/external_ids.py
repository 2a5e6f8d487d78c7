"""External ID mapping API endpoints."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sis_api.core.dependencies import get_async_session, get_current_profile, require_role
from sis_api.models.external_id_mapping import ExternalIdMapping
from sis_api.models.profile import ROLE_ADMIN, ROLE_REGISTRAR, Profile
from sis_api.schemas.external_id_mapping import (
    ExternalIdMappingCreateRequest,
    ExternalIdMappingResponse,
    ExternalIdMappingUpdateRequest,
)
from sis_api.services import external_id_mapping_service

external_ids_router = APIRouter(prefix="/external-ids", tags=["external-ids"])

_mapping_admin = require_role(ROLE_ADMIN, ROLE_REGISTRAR)


async def _get_mapping_or_404(session: AsyncSession, mapping_id: uuid.UUID, profile: Profile) -> ExternalIdMapping:
    mapping = await external_id_mapping_service.get_mapping(session, mapping_id)
    if mapping is None or (not profile.is_super_admin and mapping.organization_id != profile.organization_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="External ID mapping not found")
    return mapping


@external_ids_router.get("", response_model=list[ExternalIdMappingResponse])
async def list_external_ids(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(get_current_profile)],
    entity_type: str | None = Query(default=None),
    external_system: str | None = Query(default=None),
    is_active: bool | None = Query(default=None),
) -> list[ExternalIdMappingResponse]:
    """List mappings in the caller's organization, newest first."""
    mappings = await external_id_mapping_service.list_mappings(
        session,
        None if current_profile.is_super_admin else current_profile.organization_id,
        entity_type=entity_type,
        external_system=external_system,
        is_active=is_active,
    )
    return [ExternalIdMappingResponse.model_validate(m) for m in mappings]


@external_ids_router.post("", response_model=ExternalIdMappingResponse, status_code=status.HTTP_201_CREATED)
async def create_external_id(
    request: ExternalIdMappingCreateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(_mapping_admin)],
) -> ExternalIdMappingResponse:
    mapping = await external_id_mapping_service.create_mapping(
        session,
        organization_id=current_profile.organization_id,
        entity_type=request.entity_type,
        internal_id=request.internal_id,
        external_system=request.external_system,
        external_id=request.external_id,
        external_id_display_name=request.external_id_display_name,
        is_active=request.is_active,
        created_by=current_profile.id,
    )
    return ExternalIdMappingResponse.model_validate(mapping)


@external_ids_router.get("/{mapping_id}", response_model=ExternalIdMappingResponse)
async def get_external_id(
    mapping_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(get_current_profile)],
) -> ExternalIdMappingResponse:
    mapping = await _get_mapping_or_404(session, mapping_id, current_profile)
    return ExternalIdMappingResponse.model_validate(mapping)


@external_ids_router.patch("/{mapping_id}", response_model=ExternalIdMappingResponse)
async def update_external_id(
    mapping_id: uuid.UUID,
    request: ExternalIdMappingUpdateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(_mapping_admin)],
) -> ExternalIdMappingResponse:
    mapping = await _get_mapping_or_404(session, mapping_id, current_profile)
    mapping = await external_id_mapping_service.update_mapping(
        session,
        mapping,
        updated_by=current_profile.id,
        **request.model_dump(exclude_unset=True),
    )
    return ExternalIdMappingResponse.model_validate(mapping)


@external_ids_router.post("/{mapping_id}/archive", status_code=status.HTTP_204_NO_CONTENT)
async def archive_external_id(
    mapping_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(_mapping_admin)],
) -> None:
    mapping = await _get_mapping_or_404(session, mapping_id, current_profile)
    await external_id_mapping_service.archive_mapping(session, mapping)
