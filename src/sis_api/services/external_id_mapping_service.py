"""External ID mapping service — cross-references to external systems."""

import uuid
from collections import defaultdict
from collections.abc import Iterable
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sis_api.models.external_id_mapping import ENTITY_TYPES, ExternalIdMapping

_UPDATABLE_FIELDS = ("external_id", "external_id_display_name", "is_active")


async def list_mappings(
    session: AsyncSession,
    organization_id: uuid.UUID | None,
    *,
    entity_type: str | None = None,
    external_system: str | None = None,
    is_active: bool | None = None,
) -> list[ExternalIdMapping]:
    """List non-archived mappings, newest first.

    Args:
        session: Database session.
        organization_id: Organization scope; None lists every organization.
        entity_type: Optional entity type filter.
        external_system: Optional external system filter.
        is_active: Optional active flag filter.
    """
    query = select(ExternalIdMapping).where(ExternalIdMapping.archived_at.is_(None))
    if organization_id is not None:
        query = query.where(ExternalIdMapping.organization_id == organization_id)
    if entity_type:
        query = query.where(ExternalIdMapping.entity_type == entity_type)
    if external_system:
        query = query.where(ExternalIdMapping.external_system == external_system)
    if is_active is not None:
        query = query.where(ExternalIdMapping.is_active == is_active)

    result = await session.execute(query.order_by(ExternalIdMapping.created_at.desc()))
    return list(result.scalars().all())


async def get_mapping(session: AsyncSession, mapping_id: uuid.UUID) -> ExternalIdMapping | None:
    """Get a non-archived mapping by ID."""
    result = await session.execute(
        select(ExternalIdMapping).where(
            ExternalIdMapping.id == mapping_id,
            ExternalIdMapping.archived_at.is_(None),
        )
    )
    return result.scalar_one_or_none()


async def create_mapping(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    entity_type: str,
    internal_id: uuid.UUID,
    external_system: str,
    external_id: str,
    created_by: uuid.UUID,
    external_id_display_name: str | None = None,
    is_active: bool = True,
) -> ExternalIdMapping:
    """Create an external ID mapping.

    Raises:
        ValueError: If the entity type is unknown.
    """
    if entity_type not in ENTITY_TYPES:
        msg = f"Unsupported entity type: {entity_type}"
        raise ValueError(msg)

    mapping = ExternalIdMapping(
        organization_id=organization_id,
        entity_type=entity_type,
        internal_id=internal_id,
        external_system=external_system,
        external_id=external_id,
        external_id_display_name=external_id_display_name,
        is_active=is_active,
        created_by=created_by,
        updated_by=created_by,
    )
    session.add(mapping)
    await session.commit()
    await session.refresh(mapping)
    logger.info(f"Created external id mapping {mapping.id} ({entity_type} -> {external_system})")
    return mapping


async def update_mapping(
    session: AsyncSession,
    mapping: ExternalIdMapping,
    *,
    updated_by: uuid.UUID,
    **changes: object,
) -> ExternalIdMapping:
    """Apply changes to the external id, display name or active flag."""
    for field_name, value in changes.items():
        if field_name in _UPDATABLE_FIELDS:
            setattr(mapping, field_name, value)
    mapping.updated_by = updated_by
    await session.commit()
    await session.refresh(mapping)
    return mapping


async def archive_mapping(session: AsyncSession, mapping: ExternalIdMapping) -> ExternalIdMapping:
    """Soft-delete a mapping."""
    mapping.archived_at = datetime.now(UTC)
    await session.commit()
    return mapping


async def lookup_external_ids(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    entity_type: str,
    internal_ids: Iterable[uuid.UUID],
) -> dict[uuid.UUID, list[tuple[str, str]]]:
    """Return active ``(external_system, external_id)`` pairs per internal id."""
    ids = list(set(internal_ids))
    if not ids:
        return {}

    result = await session.execute(
        select(ExternalIdMapping)
        .where(
            ExternalIdMapping.organization_id == organization_id,
            ExternalIdMapping.entity_type == entity_type,
            ExternalIdMapping.internal_id.in_(ids),
            ExternalIdMapping.is_active.is_(True),
            ExternalIdMapping.archived_at.is_(None),
        )
        .order_by(ExternalIdMapping.external_system)
    )
    pairs: dict[uuid.UUID, list[tuple[str, str]]] = defaultdict(list)
    for mapping in result.scalars().all():
        pairs[mapping.internal_id].append((mapping.external_system, mapping.external_id))
    return dict(pairs)
