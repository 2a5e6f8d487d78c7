"""TranscriptRecord model — reviewed transcript lines derived from grades."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sis_api.models.base import Base, TimestampMixin, UUIDMixin

TRANSCRIPT_FINALIZED = "finalized"


class TranscriptRecord(Base, UUIDMixin, TimestampMixin):
    """A transcript line. Only ``finalized`` rows are eligible for export."""

    __tablename__ = "transcript_records"

    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    school_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("students.id", ondelete="RESTRICT"), nullable=False)
    student_grade_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("student_grades.id", ondelete="RESTRICT"), nullable=True
    )
    program_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("programs.id", ondelete="SET NULL"), nullable=True
    )
    school_year_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("school_years.id", ondelete="RESTRICT"), nullable=False
    )
    term_period: Mapped[str] = mapped_column(String(50), nullable=False)
    course_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    grade_value: Mapped[str] = mapped_column(String(50), nullable=False)
    credits: Mapped[Decimal | None] = mapped_column(Numeric(4, 2), nullable=True)
    transcript_status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", server_default="draft")
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("transcript_status IN ('draft', 'finalized')", name="ck_transcript_records_status"),
        Index("ix_transcript_records_organization_id", "organization_id"),
        Index("ix_transcript_records_student_id", "student_id"),
        Index("ix_transcript_records_school_year_id", "school_year_id"),
        Index("ix_transcript_records_transcript_status", "transcript_status"),
    )
