"""ExportJob model — tracks one document generation request end to end."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sis_api.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class ExportType(enum.StrEnum):
    """Kinds of documents the export pipeline can produce."""

    TRANSCRIPT = "transcript"
    REPORT_CARD = "report_card"
    COMPLIANCE_EXPORT = "compliance_export"


class ExportStatus(enum.StrEnum):
    """Lifecycle states: pending -> processing -> completed | failed."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"



class ExportJob(Base, UUIDMixin, TimestampMixin):
    """A requested export.

    ``organization_id``, ``requested_by`` and ``export_type`` never change
    after creation. Only the export processor mutates the lifecycle columns;
    ``file_path``/``file_size_bytes`` are set only on completion and
    ``error_message`` only on failure.
    """

    __tablename__ = "export_jobs"

    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    school_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    requested_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    export_type: Mapped[str] = mapped_column(String(30), nullable=False)
    export_parameters: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ExportStatus.PENDING.value,
        server_default=ExportStatus.PENDING.value,
    )
    file_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    file_size_bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "export_type IN ('transcript', 'report_card', 'compliance_export')",
            name="ck_export_jobs_export_type",
        ),
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="ck_export_jobs_status",
        ),
        Index("ix_export_jobs_organization_id", "organization_id"),
        Index("ix_export_jobs_status", "status"),
        Index("ix_export_jobs_requested_by", "requested_by"),
        Index("ix_export_jobs_created_at", "created_at"),
    )
