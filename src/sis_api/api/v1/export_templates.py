"""Export template API endpoints."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sis_api.core.dependencies import get_async_session, get_current_profile, require_role
from sis_api.models.export_template import ExportTemplate
from sis_api.models.profile import ROLE_ADMIN, ROLE_PRINCIPAL, ROLE_REGISTRAR, Profile
from sis_api.schemas.export_template import (
    ExportTemplateCreateRequest,
    ExportTemplateResponse,
    ExportTemplateUpdateRequest,
)
from sis_api.services import export_template_service

export_templates_router = APIRouter(prefix="/export-templates", tags=["export-templates"])

_template_admin = require_role(ROLE_ADMIN, ROLE_PRINCIPAL, ROLE_REGISTRAR)


async def _get_template_or_404(session: AsyncSession, template_id: uuid.UUID, profile: Profile) -> ExportTemplate:
    template = await export_template_service.get_template(session, template_id)
    if template is None or (not profile.is_super_admin and template.organization_id != profile.organization_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Export template not found")
    return template


@export_templates_router.get("", response_model=list[ExportTemplateResponse])
async def list_export_templates(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(get_current_profile)],
    template_type: str | None = Query(default=None, description="Filter by export type"),
    export_format: str | None = Query(default=None, description="Filter by format"),
    is_active: bool | None = Query(default=None, description="Filter by active flag"),
) -> list[ExportTemplateResponse]:
    """List templates in the caller's organization."""
    templates = await export_template_service.list_templates(
        session,
        None if current_profile.is_super_admin else current_profile.organization_id,
        template_type=template_type,
        export_format=export_format,
        is_active=is_active,
    )
    return [ExportTemplateResponse.model_validate(t) for t in templates]


@export_templates_router.post("", response_model=ExportTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_export_template(
    request: ExportTemplateCreateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(_template_admin)],
) -> ExportTemplateResponse:
    """Create a template (version 1)."""
    template = await export_template_service.create_template(
        session,
        organization_id=current_profile.organization_id,
        school_id=request.school_id,
        template_name=request.template_name,
        template_type=request.template_type,
        template_config=request.template_config,
        export_format=request.export_format,
        is_active=request.is_active,
        created_by=current_profile.id,
    )
    return ExportTemplateResponse.model_validate(template)


@export_templates_router.get("/{template_id}", response_model=ExportTemplateResponse)
async def get_export_template(
    template_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(get_current_profile)],
) -> ExportTemplateResponse:
    """Get a template."""
    template = await _get_template_or_404(session, template_id, current_profile)
    return ExportTemplateResponse.model_validate(template)


@export_templates_router.patch("/{template_id}", response_model=ExportTemplateResponse)
async def update_export_template(
    template_id: uuid.UUID,
    request: ExportTemplateUpdateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(_template_admin)],
) -> ExportTemplateResponse:
    """Update a template. Changing its configuration bumps the version."""
    template = await _get_template_or_404(session, template_id, current_profile)
    template = await export_template_service.update_template(
        session,
        template,
        updated_by=current_profile.id,
        **request.model_dump(exclude_unset=True),
    )
    return ExportTemplateResponse.model_validate(template)


@export_templates_router.post("/{template_id}/archive", status_code=status.HTTP_204_NO_CONTENT)
async def archive_export_template(
    template_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_profile: Annotated[Profile, Depends(_template_admin)],
) -> None:
    """Archive a template."""
    template = await _get_template_or_404(session, template_id, current_profile)
    await export_template_service.archive_template(session, template)
