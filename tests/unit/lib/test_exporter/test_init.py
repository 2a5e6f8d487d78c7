"""Tests for the exporter public API."""

import pytest

from sis_api.lib.exporter import (
    XLSX_CONTENT_TYPE,
    ExportData,
    TranscriptRow,
    render_excel,
    render_export,
    resolve_format,
)


def _data() -> ExportData:
    row = TranscriptRow(
        student_id="s1",
        student_first_name="Ada",
        student_last_name="Lovelace",
        student_number=None,
        lrn=None,
        school_year="2025-2026",
        term_period="Q1",
        course_name="Algebra",
        grade_value="A",
        credits=None,
    )
    return ExportData(transcript_rows=[row])


class TestResolveFormat:
    @pytest.mark.parametrize(
        ("export_type", "expected"),
        [("transcript", "pdf"), ("report_card", "pdf"), ("compliance_export", "csv")],
    )
    def test_defaults(self, export_type: str, expected: str) -> None:
        assert resolve_format(export_type, None) == expected

    def test_explicit_format_wins(self) -> None:
        assert resolve_format("transcript", "csv") == "csv"

    def test_unsupported_format(self) -> None:
        with pytest.raises(ValueError, match="Unsupported format"):
            resolve_format("transcript", "docx")

    def test_unsupported_type(self) -> None:
        with pytest.raises(ValueError, match="Unsupported export type"):
            resolve_format("diploma", None)


class TestRenderExport:
    def test_compliance_defaults_to_csv(self) -> None:
        document = render_export("compliance_export", _data(), {}, file_stem="compliance_export_1")
        assert document.file_name == "compliance_export_1.csv"
        assert document.content_type == "text/csv"

    def test_transcript_defaults_to_pdf_with_title(self) -> None:
        document = render_export("transcript", _data(), {}, file_stem="transcript_1")
        assert document.file_name == "transcript_1.pdf"
        assert b"(Transcript) Tj" in document.file_buffer

    def test_report_card_title(self) -> None:
        document = render_export("report_card", _data(), {"format": "pdf"}, file_stem="x")
        assert b"(Report Card) Tj" in document.file_buffer

    def test_title_override(self) -> None:
        document = render_export("transcript", _data(), {}, file_stem="x", title="Official Record")
        assert b"(Official Record) Tj" in document.file_buffer

    def test_excel_is_csv_labelled_as_xlsx(self) -> None:
        document = render_export("compliance_export", _data(), {"format": "excel"}, file_stem="x")

        assert document.file_name == "x.xlsx"
        assert document.content_type == XLSX_CONTENT_TYPE
        assert document.file_buffer == render_export("compliance_export", _data(), {}, file_stem="x").file_buffer

    def test_render_excel_directly(self) -> None:
        document = render_excel(_data(), file_stem="grades")
        assert document.file_name == "grades.xlsx"
        assert document.file_buffer.startswith(b"Student ID,")
