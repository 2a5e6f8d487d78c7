"""Minimal page-oriented (PDF) renderer.

Produces a single-page PDF 1.4 document with a title, generation
timestamp, record count and the first rows as plain text lines. There is
no layout engine: the output is small but valid, with a correct
cross-reference table so standard viewers open it without repair.
"""

from datetime import UTC, datetime

from sis_api.lib.exporter.types import ExportData, GradeRow, RenderedDocument, TranscriptRow

PDF_CONTENT_TYPE = "application/pdf"
DEFAULT_MAX_ROWS = 10

_PAGE_WIDTH = 612
_PAGE_HEIGHT = 792
_LEFT_MARGIN = 50
_LINE_HEIGHT = 15
_BOTTOM_MARGIN = 50
_FIRST_ROW_Y = _PAGE_HEIGHT - 102

# Rows that fit between the header block and the bottom margin of one page
MAX_PAGE_ROWS = (_FIRST_ROW_Y - _BOTTOM_MARGIN) // _LINE_HEIGHT + 1


def escape_pdf_text(value: str) -> str:
    """Escape a string for use inside a PDF literal string ``( ... )``."""
    return (
        value.replace("\\", "\\\\")
        .replace("(", "\\(")
        .replace(")", "\\)")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def _text_op(text: str, *, size: int, y: int) -> str:
    return f"BT /F1 {size} Tf {_LEFT_MARGIN} {y} Td ({escape_pdf_text(text)}) Tj ET"


def _row_line(row: GradeRow | TranscriptRow) -> str:
    name = row.student_name or "Unknown"
    if isinstance(row, TranscriptRow):
        parts = [name, row.school_year, row.term_period, row.course_name, row.grade_value]
    else:
        parts = [name, row.school_year, row.term_period, row.program, row.section, row.grade_value]
    return " | ".join(p for p in parts if p)


def _content_stream(title: str, data: ExportData, generated_at: datetime, max_rows: int) -> bytes:
    rows: list[GradeRow] | list[TranscriptRow] = data.transcript_rows or data.grade_rows
    ops = [
        _text_op(title, size=16, y=_PAGE_HEIGHT - 42),
        _text_op(f"Generated: {generated_at.isoformat()}", size=10, y=_PAGE_HEIGHT - 62),
        _text_op(f"Records: {data.record_count}", size=10, y=_PAGE_HEIGHT - 82),
    ]
    y = _FIRST_ROW_Y
    for row in rows[: min(max_rows, MAX_PAGE_ROWS)]:
        ops.append(_text_op(_row_line(row), size=9, y=y))
        y -= _LINE_HEIGHT
    # Base-14 Helvetica only covers Latin-1
    return "\n".join(ops).encode("latin-1", errors="replace")


def _assemble(objects: list[bytes]) -> bytes:
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n"

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode("ascii")
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("ascii")
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n".encode("ascii")
    out += f"startxref\n{xref_offset}\n%%EOF\n".encode("ascii")
    return bytes(out)


def render_pdf(
    title: str,
    data: ExportData,
    *,
    file_stem: str,
    generated_at: datetime | None = None,
    max_rows: int = DEFAULT_MAX_ROWS,
) -> RenderedDocument:
    """Render a row-set as a one-page PDF.

    Args:
        title: Document title, e.g. ``Transcript``.
        data: The fetched row-set.
        file_stem: File name without extension.
        generated_at: Timestamp printed on the page; defaults to now (UTC).
        max_rows: Maximum number of rows written as text lines; never more
            than ``MAX_PAGE_ROWS``.

    Returns:
        The rendered PDF document.

    Raises:
        ValueError: If the row-set is empty.
    """
    if not data.grade_rows and not data.transcript_rows:
        msg = "No data available for PDF export"
        raise ValueError(msg)

    content = _content_stream(title, data, generated_at or datetime.now(UTC), max_rows)
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        (
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 {_PAGE_WIDTH} {_PAGE_HEIGHT}] /Contents 4 0 R "
            "/Resources << /Font << /F1 << /Type /Font /Subtype /Type1 /BaseFont /Helvetica >> >> >> >>"
        ).encode("ascii"),
        f"<< /Length {len(content)} >>\nstream\n".encode("ascii") + content + b"\nendstream",
    ]

    return RenderedDocument(
        file_buffer=_assemble(objects),
        file_name=f"{file_stem}.pdf",
        content_type=PDF_CONTENT_TYPE,
    )
