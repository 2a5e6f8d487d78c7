"""ORM model registry — import all models so Alembic autogenerate discovers them."""

from sis_api.models.export_job import ExportJob
from sis_api.models.export_template import ExportTemplate
from sis_api.models.external_id_mapping import ExternalIdMapping
from sis_api.models.profile import Profile
from sis_api.models.program import Program, Section
from sis_api.models.school_year import SchoolYear
from sis_api.models.student import Student
from sis_api.models.student_grade import StudentGrade
from sis_api.models.transcript_record import TranscriptRecord

__all__ = [
    "ExportJob",
    "ExportTemplate",
    "ExternalIdMapping",
    "Profile",
    "Program",
    "SchoolYear",
    "Section",
    "Student",
    "StudentGrade",
    "TranscriptRecord",
]
