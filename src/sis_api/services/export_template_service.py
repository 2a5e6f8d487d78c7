"""Export template service — CRUD for versioned rendering configuration."""

import uuid
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sis_api.models.export_template import ExportTemplate

_UPDATABLE_FIELDS = ("template_name", "template_config", "export_format", "is_active")


async def list_templates(
    session: AsyncSession,
    organization_id: uuid.UUID | None,
    *,
    template_type: str | None = None,
    export_format: str | None = None,
    is_active: bool | None = None,
) -> list[ExportTemplate]:
    """List non-archived templates ordered by name.

    Args:
        session: Database session.
        organization_id: Organization scope; None lists every organization.
        template_type: Optional export type filter.
        export_format: Optional format filter.
        is_active: Optional active flag filter.
    """
    query = select(ExportTemplate).where(ExportTemplate.archived_at.is_(None))
    if organization_id is not None:
        query = query.where(ExportTemplate.organization_id == organization_id)
    if template_type:
        query = query.where(ExportTemplate.template_type == template_type)
    if export_format:
        query = query.where(ExportTemplate.export_format == export_format)
    if is_active is not None:
        query = query.where(ExportTemplate.is_active == is_active)

    result = await session.execute(query.order_by(ExportTemplate.template_name))
    return list(result.scalars().all())


async def get_template(session: AsyncSession, template_id: uuid.UUID) -> ExportTemplate | None:
    """Get a non-archived template by ID."""
    result = await session.execute(
        select(ExportTemplate).where(
            ExportTemplate.id == template_id,
            ExportTemplate.archived_at.is_(None),
        )
    )
    return result.scalar_one_or_none()


async def create_template(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    template_name: str,
    template_type: str,
    template_config: dict,
    export_format: str,
    created_by: uuid.UUID,
    school_id: uuid.UUID | None = None,
    is_active: bool = True,
) -> ExportTemplate:
    """Create a template at version 1."""
    template = ExportTemplate(
        organization_id=organization_id,
        school_id=school_id,
        template_name=template_name,
        template_type=template_type,
        template_config=template_config,
        export_format=export_format,
        is_active=is_active,
        version=1,
        created_by=created_by,
        updated_by=created_by,
    )
    session.add(template)
    await session.commit()
    await session.refresh(template)
    logger.info(f"Created export template {template.id} ({template_type}/{export_format})")
    return template


async def update_template(
    session: AsyncSession,
    template: ExportTemplate,
    *,
    updated_by: uuid.UUID,
    **changes: object,
) -> ExportTemplate:
    """Update a template, bumping ``version`` when ``template_config`` changes."""
    new_config = changes.get("template_config")
    if new_config is not None and new_config != template.template_config:
        template.version += 1

    for field_name, value in changes.items():
        if field_name in _UPDATABLE_FIELDS and value is not None:
            setattr(template, field_name, value)
    template.updated_by = updated_by
    await session.commit()
    await session.refresh(template)
    return template


async def archive_template(session: AsyncSession, template: ExportTemplate) -> ExportTemplate:
    """Soft-delete a template."""
    template.archived_at = datetime.now(UTC)
    await session.commit()
    return template
