"""Delimited-text (CSV) renderer for grade and transcript row-sets."""

import csv
import io

from sis_api.lib.exporter.types import ExportData, GradeRow, RenderedDocument, TranscriptRow

CSV_CONTENT_TYPE = "text/csv"

TRANSCRIPT_COLUMNS = [
    "Student ID",
    "Student Name",
    "Student Number",
    "LRN",
    "School Year",
    "Term Period",
    "Course Name",
    "Grade Value",
    "Credits",
]

GRADE_COLUMNS = [
    "Student ID",
    "Student Name",
    "Student Number",
    "LRN",
    "School Year",
    "Term Period",
    "Program",
    "Section",
    "Grade Value",
    "Status",
]

EXTERNAL_IDS_COLUMN = "External IDs"


def _format_external_ids(pairs: tuple[tuple[str, str], ...]) -> str:
    return "; ".join(f"{system}:{external_id}" for system, external_id in pairs)


def _transcript_cells(row: TranscriptRow) -> list[object]:
    return [
        row.student_id,
        row.student_name,
        row.student_number,
        row.lrn,
        row.school_year,
        row.term_period,
        row.course_name,
        row.grade_value,
        str(row.credits) if row.credits is not None else None,
    ]


def _grade_cells(row: GradeRow) -> list[object]:
    return [
        row.student_id,
        row.student_name,
        row.student_number,
        row.lrn,
        row.school_year,
        row.term_period,
        row.program,
        row.section,
        row.grade_value,
        row.status,
    ]


def render_csv(
    data: ExportData,
    *,
    file_stem: str,
    include_external_ids: bool = False,
) -> RenderedDocument:
    """Render a row-set as CSV.

    Transcript rows take precedence over grade rows when both are present.
    Cells containing the delimiter, a quote or a line break are quoted with
    embedded quotes doubled; ``None`` becomes an empty cell.

    Args:
        data: The fetched row-set.
        file_stem: File name without extension.
        include_external_ids: Append an ``External IDs`` column.

    Returns:
        The rendered CSV document.

    Raises:
        ValueError: If the row-set is empty.
    """
    if data.transcript_rows:
        columns = list(TRANSCRIPT_COLUMNS)
        rows = [(_transcript_cells(r), r.external_ids) for r in data.transcript_rows]
    elif data.grade_rows:
        columns = list(GRADE_COLUMNS)
        rows = [(_grade_cells(r), r.external_ids) for r in data.grade_rows]
    else:
        msg = "No data available for CSV export"
        raise ValueError(msg)

    if include_external_ids:
        columns.append(EXTERNAL_IDS_COLUMN)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(columns)
    for cells, external_ids in rows:
        if include_external_ids:
            cells = [*cells, _format_external_ids(external_ids)]
        writer.writerow(cells)

    return RenderedDocument(
        file_buffer=buffer.getvalue().encode("utf-8"),
        file_name=f"{file_stem}.csv",
        content_type=CSV_CONTENT_TYPE,
    )
