"""Row and result types for export document rendering.

Rows are plain dataclasses detached from the ORM so renderers stay pure.
"""

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class GradeRow:
    """A confirmed or overridden student grade with its display joins."""

    student_id: str
    student_first_name: str | None
    student_last_name: str | None
    student_number: str | None
    lrn: str | None
    school_year: str | None
    term_period: str | None
    program: str | None
    section: str | None
    grade_value: str
    status: str
    external_ids: tuple[tuple[str, str], ...] = ()

    @property
    def student_name(self) -> str:
        return f"{self.student_first_name or ''} {self.student_last_name or ''}".strip()


@dataclass(frozen=True)
class TranscriptRow:
    """A finalized transcript line with its display joins."""

    student_id: str
    student_first_name: str | None
    student_last_name: str | None
    student_number: str | None
    lrn: str | None
    school_year: str | None
    term_period: str
    course_name: str | None
    grade_value: str
    credits: Decimal | None
    external_ids: tuple[tuple[str, str], ...] = ()

    @property
    def student_name(self) -> str:
        return f"{self.student_first_name or ''} {self.student_last_name or ''}".strip()


@dataclass
class ExportData:
    """Row-sets fetched for one export job. At most one is populated."""

    grade_rows: list[GradeRow] = field(default_factory=list)
    transcript_rows: list[TranscriptRow] = field(default_factory=list)

    @property
    def record_count(self) -> int:
        return len(self.transcript_rows) or len(self.grade_rows)


@dataclass(frozen=True)
class RenderedDocument:
    """An in-memory export document ready for upload."""

    file_buffer: bytes
    file_name: str
    content_type: str
