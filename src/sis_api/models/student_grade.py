"""StudentGrade model — term grades produced by the grading workflow.

The export pipeline only ever reads rows whose status is ``confirmed`` or
``overridden``; drafts and grades awaiting confirmation are never exported.
"""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sis_api.models.base import Base, TimestampMixin, UUIDMixin

GRADE_STATUSES = ("draft", "pending_confirmation", "confirmed", "overridden")
EXPORTABLE_GRADE_STATUSES = ("confirmed", "overridden")


class StudentGrade(Base, UUIDMixin, TimestampMixin):
    """One student's grade for a school year and term."""

    __tablename__ = "student_grades"

    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    school_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("students.id", ondelete="RESTRICT"), nullable=False)
    program_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("programs.id", ondelete="SET NULL"), nullable=True
    )
    section_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("sections.id", ondelete="SET NULL"), nullable=True
    )
    school_year_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("school_years.id", ondelete="RESTRICT"), nullable=False
    )
    term_period: Mapped[str | None] = mapped_column(String(50), nullable=True)
    grade_value: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="draft", server_default="draft")
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'pending_confirmation', 'confirmed', 'overridden')",
            name="ck_student_grades_status",
        ),
        Index("ix_student_grades_organization_id", "organization_id"),
        Index("ix_student_grades_student_id", "student_id"),
        Index("ix_student_grades_school_year_id", "school_year_id"),
        Index("ix_student_grades_status", "status"),
    )
