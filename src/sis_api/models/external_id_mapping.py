"""ExternalIdMapping model — cross-references internal entities to external systems."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sis_api.models.base import Base, TimestampMixin, UUIDMixin

ENTITY_TYPES = ("student", "school", "program", "section", "school_year", "staff")


class ExternalIdMapping(Base, UUIDMixin, TimestampMixin):
    """Maps an internal entity id to its identifier in a named external system."""

    __tablename__ = "external_id_mappings"

    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    internal_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    external_system: Mapped[str] = mapped_column(String(100), nullable=False)
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    external_id_display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_external_id_mappings_organization_id", "organization_id"),
        Index("ix_external_id_mappings_entity", "entity_type", "internal_id"),
    )
