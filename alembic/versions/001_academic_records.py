"""Create profiles and the academic record tables read by exports.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create profiles, students, school_years, programs, sections, student_grades, transcript_records."""
    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("school_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("role", sa.String(30), nullable=False),
        sa.Column("is_super_admin", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_profiles_organization_id", "profiles", ["organization_id"])

    op.create_table(
        "students",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("student_number", sa.String(50), nullable=True),
        sa.Column("lrn", sa.String(20), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_students_organization_id", "students", ["organization_id"])

    op.create_table(
        "school_years",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_school_years_organization_id", "school_years", ["organization_id"])

    op.create_table(
        "programs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_programs_organization_id", "programs", ["organization_id"])

    op.create_table(
        "sections",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("program_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(200), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["program_id"], ["programs.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sections_organization_id", "sections", ["organization_id"])

    op.create_table(
        "student_grades",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("school_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("program_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("section_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("school_year_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("term_period", sa.String(50), nullable=True),
        sa.Column("grade_value", sa.String(50), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="draft"),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["program_id"], ["programs.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["section_id"], ["sections.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["school_year_id"], ["school_years.id"], ondelete="RESTRICT"),
        sa.CheckConstraint(
            "status IN ('draft', 'pending_confirmation', 'confirmed', 'overridden')",
            name="ck_student_grades_status",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_student_grades_organization_id", "student_grades", ["organization_id"])
    op.create_index("ix_student_grades_student_id", "student_grades", ["student_id"])
    op.create_index("ix_student_grades_school_year_id", "student_grades", ["school_year_id"])
    op.create_index("ix_student_grades_status", "student_grades", ["status"])

    op.create_table(
        "transcript_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("school_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("student_grade_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("program_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("school_year_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("term_period", sa.String(50), nullable=False),
        sa.Column("course_name", sa.String(200), nullable=True),
        sa.Column("grade_value", sa.String(50), nullable=False),
        sa.Column("credits", sa.Numeric(4, 2), nullable=True),
        sa.Column("transcript_status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("finalized_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["student_grade_id"], ["student_grades.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["program_id"], ["programs.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["school_year_id"], ["school_years.id"], ondelete="RESTRICT"),
        sa.CheckConstraint("transcript_status IN ('draft', 'finalized')", name="ck_transcript_records_status"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_transcript_records_organization_id", "transcript_records", ["organization_id"])
    op.create_index("ix_transcript_records_student_id", "transcript_records", ["student_id"])
    op.create_index("ix_transcript_records_school_year_id", "transcript_records", ["school_year_id"])
    op.create_index("ix_transcript_records_transcript_status", "transcript_records", ["transcript_status"])


def downgrade() -> None:
    """Drop the academic record tables in dependency order."""
    op.drop_table("transcript_records")
    op.drop_table("student_grades")
    op.drop_table("sections")
    op.drop_table("programs")
    op.drop_table("school_years")
    op.drop_table("students")
    op.drop_table("profiles")
