"""Export data reader — read-only queries against grade and transcript tables.

This is the only place the export pipeline touches upstream academic data.
It issues SELECTs exclusively, always scoped to the job's organization, and
only ever returns confirmed/overridden grades or finalized transcript lines.
"""

import uuid
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from sis_api.lib.exporter import ExportData, GradeRow, TranscriptRow
from sis_api.models.export_job import ExportJob, ExportType
from sis_api.models.program import Program, Section
from sis_api.models.school_year import SchoolYear
from sis_api.models.student import Student
from sis_api.models.student_grade import EXPORTABLE_GRADE_STATUSES, StudentGrade
from sis_api.models.transcript_record import TRANSCRIPT_FINALIZED, TranscriptRecord
from sis_api.services.external_id_mapping_service import lookup_external_ids


class EmptyExportScopeError(ValueError):
    """Raised when no eligible rows match an export's scope."""


def _as_uuid(value: Any, name: str) -> uuid.UUID:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except ValueError as exc:
        msg = f"Invalid {name}: {value!r}"
        raise ValueError(msg) from exc


def _optional_uuid(parameters: Mapping[str, Any], name: str) -> uuid.UUID | None:
    value = parameters.get(name)
    return _as_uuid(value, name) if value else None


def _build_grade_query(organization_id: uuid.UUID, parameters: Mapping[str, Any]) -> Select | None:
    """Build the grade query, or None when a required scope key is missing."""
    student_ids = [_as_uuid(s, "student_id") for s in parameters.get("student_ids") or []]
    school_year_id = _optional_uuid(parameters, "school_year_id")
    term_period = parameters.get("term_period")
    if not student_ids or school_year_id is None or not term_period:
        return None

    query = (
        select(
            StudentGrade,
            Student,
            SchoolYear.name.label("school_year_name"),
            Program.name.label("program_name"),
            Section.name.label("section_name"),
        )
        .join(Student, Student.id == StudentGrade.student_id)
        .outerjoin(SchoolYear, SchoolYear.id == StudentGrade.school_year_id)
        .outerjoin(Program, Program.id == StudentGrade.program_id)
        .outerjoin(Section, Section.id == StudentGrade.section_id)
        .where(
            StudentGrade.organization_id == organization_id,
            StudentGrade.status.in_(EXPORTABLE_GRADE_STATUSES),
            StudentGrade.archived_at.is_(None),
            StudentGrade.student_id.in_(student_ids),
            StudentGrade.school_year_id == school_year_id,
            StudentGrade.term_period == term_period,
        )
    )

    program_id = _optional_uuid(parameters, "program_id")
    if program_id is not None:
        query = query.where(StudentGrade.program_id == program_id)
    section_id = _optional_uuid(parameters, "section_id")
    if section_id is not None:
        query = query.where(StudentGrade.section_id == section_id)

    return query.order_by(Student.last_name, Student.first_name, StudentGrade.id)


def _build_transcript_query(organization_id: uuid.UUID, parameters: Mapping[str, Any]) -> Select | None:
    """Build the transcript query, or None when a required scope key is missing."""
    school_year_id = _optional_uuid(parameters, "school_year_id")
    term_period = parameters.get("term_period")
    if school_year_id is None or not term_period:
        return None

    query = (
        select(TranscriptRecord, Student, SchoolYear.name.label("school_year_name"))
        .join(Student, Student.id == TranscriptRecord.student_id)
        .outerjoin(SchoolYear, SchoolYear.id == TranscriptRecord.school_year_id)
        .where(
            TranscriptRecord.organization_id == organization_id,
            TranscriptRecord.transcript_status == TRANSCRIPT_FINALIZED,
            TranscriptRecord.archived_at.is_(None),
            TranscriptRecord.school_year_id == school_year_id,
            TranscriptRecord.term_period == term_period,
        )
    )

    student_ids = [_as_uuid(s, "student_id") for s in parameters.get("student_ids") or []]
    if student_ids:
        query = query.where(TranscriptRecord.student_id.in_(student_ids))
    program_id = _optional_uuid(parameters, "program_id")
    if program_id is not None:
        query = query.where(TranscriptRecord.program_id == program_id)

    return query.order_by(Student.last_name, Student.first_name, TranscriptRecord.course_name)


async def fetch_grade_rows(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    parameters: Mapping[str, Any],
) -> list[GradeRow]:
    """Fetch confirmed/overridden grades for the job's students, year and term.

    Args:
        session: Database session.
        organization_id: Tenant scope.
        parameters: Job parameters (``student_ids``, ``school_year_id``,
            ``term_period``, optional ``program_id``/``section_id``).

    Returns:
        Grade rows; empty when nothing matches.
    """
    query = _build_grade_query(organization_id, parameters)
    if query is None:
        return []

    result = await session.execute(query)
    return [
        GradeRow(
            student_id=str(grade.student_id),
            student_first_name=student.first_name,
            student_last_name=student.last_name,
            student_number=student.student_number,
            lrn=student.lrn,
            school_year=school_year_name,
            term_period=grade.term_period,
            program=program_name,
            section=section_name,
            grade_value=grade.grade_value,
            status=grade.status,
        )
        for grade, student, school_year_name, program_name, section_name in result.all()
    ]


async def fetch_transcript_rows(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    parameters: Mapping[str, Any],
) -> list[TranscriptRow]:
    """Fetch finalized transcript records for the job's year and term.

    Args:
        session: Database session.
        organization_id: Tenant scope.
        parameters: Job parameters (``school_year_id``, ``term_period``,
            optional ``student_ids``/``program_id``).

    Returns:
        Transcript rows; empty when nothing matches.
    """
    query = _build_transcript_query(organization_id, parameters)
    if query is None:
        return []

    result = await session.execute(query)
    return [
        TranscriptRow(
            student_id=str(record.student_id),
            student_first_name=student.first_name,
            student_last_name=student.last_name,
            student_number=student.student_number,
            lrn=student.lrn,
            school_year=school_year_name,
            term_period=record.term_period,
            course_name=record.course_name,
            grade_value=record.grade_value,
            credits=record.credits,
        )
        for record, student, school_year_name in result.all()
    ]


async def _attach_external_ids(
    session: AsyncSession,
    organization_id: uuid.UUID,
    rows: list,
) -> list:
    mapping = await lookup_external_ids(
        session,
        organization_id=organization_id,
        entity_type="student",
        internal_ids=(uuid.UUID(row.student_id) for row in rows),
    )
    return [replace(row, external_ids=tuple(mapping.get(uuid.UUID(row.student_id), ()))) for row in rows]


async def read_export_data(session: AsyncSession, job: ExportJob) -> ExportData:
    """Fetch the rows an export job is entitled to see.

    Args:
        session: Database session.
        job: The export job being processed.

    Returns:
        ExportData with exactly one populated row-set.

    Raises:
        EmptyExportScopeError: If no eligible rows match.
        ValueError: If the export type is unsupported or a parameter is malformed.
    """
    parameters = job.export_parameters or {}

    if job.export_type in (ExportType.TRANSCRIPT, ExportType.REPORT_CARD):
        rows = await fetch_grade_rows(session, organization_id=job.organization_id, parameters=parameters)
        if not rows:
            msg = "No confirmed grades found for selected scope"
            raise EmptyExportScopeError(msg)
    elif job.export_type == ExportType.COMPLIANCE_EXPORT:
        rows = await fetch_transcript_rows(session, organization_id=job.organization_id, parameters=parameters)
        if not rows:
            msg = "No finalized transcript records found for selected scope"
            raise EmptyExportScopeError(msg)
    else:
        msg = f"Unsupported export type: {job.export_type}"
        raise ValueError(msg)

    if parameters.get("include_external_ids"):
        rows = await _attach_external_ids(session, job.organization_id, rows)

    if job.export_type == ExportType.COMPLIANCE_EXPORT:
        return ExportData(transcript_rows=rows)
    return ExportData(grade_rows=rows)
