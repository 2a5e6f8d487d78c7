"""ExportTemplate model — named, versioned rendering configuration."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sis_api.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class ExportTemplate(Base, UUIDMixin, TimestampMixin):
    """Per-organization template; ``version`` increments whenever ``template_config`` changes."""

    __tablename__ = "export_templates"

    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    school_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    template_name: Mapped[str] = mapped_column(String(200), nullable=False)
    template_type: Mapped[str] = mapped_column(String(30), nullable=False)
    template_config: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    export_format: Mapped[str] = mapped_column(String(10), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_export_templates_organization_id", "organization_id"),)
