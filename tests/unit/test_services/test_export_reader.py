"""Tests for the export data reader."""

import uuid

import pytest

from sis_api.models.export_job import ExportJob
from sis_api.models.external_id_mapping import ExternalIdMapping
from sis_api.services.export_reader import (
    EmptyExportScopeError,
    fetch_grade_rows,
    fetch_transcript_rows,
    read_export_data,
)


def _job(organization_id: uuid.UUID, export_type: str, parameters: dict) -> ExportJob:
    return ExportJob(
        id=uuid.uuid4(),
        organization_id=organization_id,
        requested_by=uuid.uuid4(),
        export_type=export_type,
        export_parameters=parameters,
        status="processing",
    )


class TestFetchGradeRows:
    """Grade queries only ever return confirmed/overridden, non-archived rows."""

    @pytest.mark.asyncio
    async def test_only_exportable_statuses(self, async_session, academic_data, grade_parameters) -> None:
        rows = await fetch_grade_rows(
            async_session, organization_id=academic_data.organization_id, parameters=grade_parameters
        )

        assert sorted(r.grade_value for r in rows) == ["88", "91", "95"]
        assert {r.status for r in rows} <= {"confirmed", "overridden"}

    @pytest.mark.asyncio
    async def test_status_parameter_cannot_widen_scope(self, async_session, academic_data, grade_parameters) -> None:
        parameters = {**grade_parameters, "status": "draft", "statuses": ["draft", "pending_confirmation"]}

        rows = await fetch_grade_rows(
            async_session, organization_id=academic_data.organization_id, parameters=parameters
        )

        assert {r.status for r in rows} <= {"confirmed", "overridden"}
        assert len(rows) == 3

    @pytest.mark.asyncio
    async def test_display_joins(self, async_session, academic_data, grade_parameters) -> None:
        rows = await fetch_grade_rows(
            async_session, organization_id=academic_data.organization_id, parameters=grade_parameters
        )

        row = rows[0]
        assert row.student_id == str(academic_data.student_id)
        assert row.student_name == "Ada Lovelace"
        assert row.student_number == "S-001"
        assert row.school_year == "2025-2026"
        assert row.program == "STEM"
        assert row.section == "Grade 10 - Newton"

    @pytest.mark.asyncio
    async def test_scoped_to_organization(self, async_session, academic_data, other_organization_id, grade_parameters) -> None:
        rows = await fetch_grade_rows(async_session, organization_id=other_organization_id, parameters=grade_parameters)
        assert [r.grade_value for r in rows] == ["60"]

    @pytest.mark.asyncio
    async def test_unrelated_organization_sees_nothing(self, async_session, academic_data, grade_parameters) -> None:
        rows = await fetch_grade_rows(async_session, organization_id=uuid.uuid4(), parameters=grade_parameters)
        assert rows == []

    @pytest.mark.asyncio
    async def test_term_filter(self, async_session, academic_data, grade_parameters) -> None:
        rows = await fetch_grade_rows(
            async_session,
            organization_id=academic_data.organization_id,
            parameters={**grade_parameters, "term_period": "Q2"},
        )
        assert [r.grade_value for r in rows] == ["85"]

    @pytest.mark.asyncio
    async def test_section_filter(self, async_session, academic_data, grade_parameters) -> None:
        matching = await fetch_grade_rows(
            async_session,
            organization_id=academic_data.organization_id,
            parameters={**grade_parameters, "section_id": str(academic_data.section_id)},
        )
        other = await fetch_grade_rows(
            async_session,
            organization_id=academic_data.organization_id,
            parameters={**grade_parameters, "section_id": str(uuid.uuid4())},
        )
        assert len(matching) == 3
        assert other == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["student_ids", "school_year_id", "term_period"])
    async def test_missing_scope_key_returns_nothing(
        self, async_session, academic_data, grade_parameters, missing: str
    ) -> None:
        parameters = {k: v for k, v in grade_parameters.items() if k != missing}
        rows = await fetch_grade_rows(
            async_session, organization_id=academic_data.organization_id, parameters=parameters
        )
        assert rows == []

    @pytest.mark.asyncio
    async def test_malformed_id_raises(self, async_session, academic_data, grade_parameters) -> None:
        with pytest.raises(ValueError, match="Invalid school_year_id"):
            await fetch_grade_rows(
                async_session,
                organization_id=academic_data.organization_id,
                parameters={**grade_parameters, "school_year_id": "not-a-uuid"},
            )


class TestFetchTranscriptRows:
    @pytest.mark.asyncio
    async def test_only_finalized(self, async_session, academic_data, transcript_parameters) -> None:
        rows = await fetch_transcript_rows(
            async_session, organization_id=academic_data.organization_id, parameters=transcript_parameters
        )

        assert [r.course_name for r in rows] == ["Algebra, Advanced", 'Physics "Honors"']
        assert str(rows[1].credits) == "1.50"

    @pytest.mark.asyncio
    async def test_student_filter(self, async_session, academic_data, transcript_parameters) -> None:
        rows = await fetch_transcript_rows(
            async_session,
            organization_id=academic_data.organization_id,
            parameters={**transcript_parameters, "student_ids": [str(academic_data.other_student_id)]},
        )
        assert rows == []


class TestReadExportData:
    @pytest.mark.asyncio
    async def test_report_card_reads_grades(self, async_session, academic_data, grade_parameters) -> None:
        data = await read_export_data(async_session, _job(academic_data.organization_id, "report_card", grade_parameters))

        assert len(data.grade_rows) == 3
        assert data.transcript_rows == []
        assert data.record_count == 3

    @pytest.mark.asyncio
    async def test_compliance_reads_transcripts(self, async_session, academic_data, transcript_parameters) -> None:
        data = await read_export_data(
            async_session, _job(academic_data.organization_id, "compliance_export", transcript_parameters)
        )

        assert len(data.transcript_rows) == 2
        assert data.grade_rows == []

    @pytest.mark.asyncio
    async def test_no_grades_raises(self, async_session, academic_data, grade_parameters) -> None:
        job = _job(academic_data.organization_id, "transcript", {**grade_parameters, "term_period": "Q4"})
        with pytest.raises(EmptyExportScopeError, match="No confirmed grades found"):
            await read_export_data(async_session, job)

    @pytest.mark.asyncio
    async def test_no_transcripts_raises(self, async_session, academic_data, transcript_parameters) -> None:
        job = _job(academic_data.organization_id, "compliance_export", {**transcript_parameters, "term_period": "Q3"})
        with pytest.raises(EmptyExportScopeError, match="No finalized transcript records found"):
            await read_export_data(async_session, job)

    @pytest.mark.asyncio
    async def test_attaches_external_ids(self, async_session, academic_data, transcript_parameters) -> None:
        async_session.add_all(
            [
                ExternalIdMapping(
                    organization_id=academic_data.organization_id,
                    entity_type="student",
                    internal_id=academic_data.student_id,
                    external_system="deped",
                    external_id="LRN-123",
                ),
                ExternalIdMapping(
                    organization_id=academic_data.organization_id,
                    entity_type="student",
                    internal_id=academic_data.student_id,
                    external_system="legacy",
                    external_id="OLD-1",
                    is_active=False,
                ),
            ]
        )
        await async_session.commit()
        parameters = {**transcript_parameters, "include_external_ids": True}

        data = await read_export_data(async_session, _job(academic_data.organization_id, "compliance_export", parameters))

        assert all(row.external_ids == (("deped", "LRN-123"),) for row in data.transcript_rows)
