"""Exporter library — public API for export document rendering.

Provides format-specific renderers and a unified ``render_export`` that
picks one from the export type and requested format. Renderers are pure:
they take an already-fetched row-set and return bytes in memory.
"""

from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any

from sis_api.lib.exporter.csv_writer import (
    CSV_CONTENT_TYPE,
    GRADE_COLUMNS,
    TRANSCRIPT_COLUMNS,
    render_csv,
)
from sis_api.lib.exporter.pdf_writer import DEFAULT_MAX_ROWS, MAX_PAGE_ROWS, PDF_CONTENT_TYPE, render_pdf
from sis_api.lib.exporter.types import ExportData, GradeRow, RenderedDocument, TranscriptRow

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SUPPORTED_FORMATS = ["pdf", "csv", "excel"]

# Default output format per export type
DEFAULT_FORMATS = {
    "transcript": "pdf",
    "report_card": "pdf",
    "compliance_export": "csv",
}

DOCUMENT_TITLES = {
    "transcript": "Transcript",
    "report_card": "Report Card",
    "compliance_export": "Compliance Export",
}


def render_excel(
    data: ExportData,
    *,
    file_stem: str,
    include_external_ids: bool = False,
) -> RenderedDocument:
    """Render a spreadsheet-compatible document.

    The payload is CSV relabelled with an ``.xlsx`` name and the
    spreadsheet content type; spreadsheet tools open it as delimited text.
    """
    document = render_csv(data, file_stem=file_stem, include_external_ids=include_external_ids)
    return replace(document, file_name=f"{file_stem}.xlsx", content_type=XLSX_CONTENT_TYPE)


def resolve_format(export_type: str, requested: str | None) -> str:
    """Return the output format for an export type, validating any explicit request.

    Raises:
        ValueError: If the export type or format is not supported.
    """
    if export_type not in DEFAULT_FORMATS:
        msg = f"Unsupported export type: {export_type}"
        raise ValueError(msg)
    output_format = requested or DEFAULT_FORMATS[export_type]
    if output_format not in SUPPORTED_FORMATS:
        msg = f"Unsupported format: {output_format}. Supported: {SUPPORTED_FORMATS}"
        raise ValueError(msg)
    return output_format


def render_export(
    export_type: str,
    data: ExportData,
    parameters: Mapping[str, Any],
    *,
    file_stem: str,
    title: str | None = None,
    generated_at: datetime | None = None,
    max_rows: int = DEFAULT_MAX_ROWS,
) -> RenderedDocument:
    """Render an export document.

    Args:
        export_type: transcript, report_card or compliance_export.
        data: The fetched row-set.
        parameters: Job parameters; ``format`` and ``include_external_ids`` are read.
        file_stem: File name without extension.
        title: Document title override for page-oriented output.
        generated_at: Timestamp for page-oriented output.
        max_rows: Row cap for page-oriented output.

    Returns:
        The rendered document.

    Raises:
        ValueError: If the type/format is unsupported or the row-set is empty.
    """
    output_format = resolve_format(export_type, parameters.get("format"))
    include_external_ids = bool(parameters.get("include_external_ids"))

    if output_format == "pdf":
        return render_pdf(
            title or DOCUMENT_TITLES[export_type],
            data,
            file_stem=file_stem,
            generated_at=generated_at,
            max_rows=max_rows,
        )
    if output_format == "excel":
        return render_excel(data, file_stem=file_stem, include_external_ids=include_external_ids)
    return render_csv(data, file_stem=file_stem, include_external_ids=include_external_ids)


__all__ = [
    "CSV_CONTENT_TYPE",
    "DEFAULT_FORMATS",
    "DEFAULT_MAX_ROWS",
    "DOCUMENT_TITLES",
    "ExportData",
    "GRADE_COLUMNS",
    "GradeRow",
    "MAX_PAGE_ROWS",
    "PDF_CONTENT_TYPE",
    "RenderedDocument",
    "SUPPORTED_FORMATS",
    "TRANSCRIPT_COLUMNS",
    "TranscriptRow",
    "XLSX_CONTENT_TYPE",
    "render_csv",
    "render_excel",
    "render_export",
    "render_pdf",
    "resolve_format",
]
