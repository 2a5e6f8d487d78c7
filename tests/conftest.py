"""Shared test fixtures for async database, sessions, profiles, academic data and storage."""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import jwt
import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import sis_api.models  # noqa: F401
from sis_api.core.config import Settings
from sis_api.lib.storage import StorageObjectExistsError
from sis_api.models.base import Base
from sis_api.models.export_job import ExportJob
from sis_api.models.profile import Profile
from sis_api.models.program import Program, Section
from sis_api.models.school_year import SchoolYear
from sis_api.models.student import Student
from sis_api.models.student_grade import StudentGrade
from sis_api.models.transcript_record import TranscriptRecord


class MemoryStorage:
    """Write-once in-memory blob storage."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}

    def upload(self, key: str, body: bytes, content_type: str) -> int:
        if key in self.objects:
            msg = f"Object already exists at {key}"
            raise StorageObjectExistsError(msg)
        self.objects[key] = (body, content_type)
        return len(body)

    def signed_url(self, key: str, expires_in: int) -> str:
        return f"https://storage.test/exports/{key}?expires={expires_in}"


class BrokenStorage(MemoryStorage):
    """Storage whose uploads always fail."""

    def upload(self, key: str, body: bytes, content_type: str) -> int:
        msg = "connection reset by peer"
        raise ConnectionError(msg)


@dataclass
class AcademicData:
    """Identifiers of the seeded academic records."""

    organization_id: uuid.UUID
    school_id: uuid.UUID
    school_year_id: uuid.UUID
    student_id: uuid.UUID
    other_student_id: uuid.UUID
    program_id: uuid.UUID
    section_id: uuid.UUID
    grade_ids: list[uuid.UUID] = field(default_factory=list)
    transcript_ids: list[uuid.UUID] = field(default_factory=list)


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key="test-secret-key-not-for-production",
        jwt_algorithm="HS256",
        export_processor_url=None,
    )


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine shared by every session of a test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """Per-test async session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def organization_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def other_organization_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def broken_storage() -> BrokenStorage:
    return BrokenStorage()


@pytest.fixture
def make_profile(async_session: AsyncSession, organization_id: uuid.UUID) -> Callable[..., Awaitable[Profile]]:
    """Factory creating a profile in the test organization by default."""

    async def _make(
        role: str,
        *,
        organization: uuid.UUID | None = None,
        is_super_admin: bool = False,
        school_id: uuid.UUID | None = None,
    ) -> Profile:
        profile = Profile(
            organization_id=organization or organization_id,
            school_id=school_id,
            role=role,
            is_super_admin=is_super_admin,
            first_name=role.title(),
            last_name="User",
            email=f"{role}-{uuid.uuid4().hex[:8]}@school.test",
        )
        async_session.add(profile)
        await async_session.commit()
        await async_session.refresh(profile)
        return profile

    return _make


@pytest.fixture
async def admin_profile(make_profile) -> Profile:
    return await make_profile("admin")


@pytest.fixture
async def registrar_profile(make_profile) -> Profile:
    return await make_profile("registrar")


@pytest.fixture
async def teacher_profile(make_profile) -> Profile:
    return await make_profile("teacher")


@pytest.fixture
def encode_token(settings: Settings) -> Callable[..., str]:
    """Encode JWTs shaped like the hosted auth service's access tokens."""

    def _encode(
        subject: str,
        *,
        role: str = "admin",
        secret_key: str | None = None,
        token_type: str = "access",
        expires_minutes: int = 30,
    ) -> str:
        payload = {
            "sub": subject,
            "role": role,
            "type": token_type,
            "exp": datetime.now(UTC) + timedelta(minutes=expires_minutes),
        }
        return jwt.encode(payload, secret_key or settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    return _encode


@pytest.fixture
def token_for(encode_token) -> Callable[[Profile], str]:
    """Issue bearer tokens for profiles."""

    def _issue(profile: Profile) -> str:
        return encode_token(str(profile.id), role=profile.role)

    return _issue


@pytest.fixture
def make_job(async_session: AsyncSession) -> Callable[..., Awaitable[ExportJob]]:
    """Factory inserting an export job directly."""

    async def _make(profile: Profile, export_type: str, parameters: dict | None = None, **fields: object) -> ExportJob:
        job = ExportJob(
            organization_id=fields.pop("organization_id", profile.organization_id),
            school_id=fields.pop("school_id", None),
            requested_by=profile.id,
            export_type=export_type,
            export_parameters=parameters or {},
            **fields,
        )
        async_session.add(job)
        await async_session.commit()
        await async_session.refresh(job)
        return job

    return _make


@pytest.fixture
async def academic_data(
    async_session: AsyncSession,
    organization_id: uuid.UUID,
    other_organization_id: uuid.UUID,
) -> AcademicData:
    """Seed one organization with grades and transcript lines in several states.

    - student ``Ada Lovelace``: 3 confirmed/overridden Q1 grades, 1 draft Q1
      grade, 1 confirmed Q2 grade, 1 archived confirmed Q1 grade
    - 2 finalized and 1 draft Q1 transcript records
    - a second organization with a confirmed Q1 grade for the same year id
    """
    school_id = uuid.uuid4()
    year = SchoolYear(organization_id=organization_id, name="2025-2026")
    program = Program(organization_id=organization_id, name="STEM")
    student = Student(
        organization_id=organization_id,
        first_name="Ada",
        last_name="Lovelace",
        student_number="S-001",
        lrn="123456789012",
    )
    other_student = Student(organization_id=organization_id, first_name="Alan", last_name="Turing")
    async_session.add_all([year, program, student, other_student])
    await async_session.flush()

    section = Section(organization_id=organization_id, program_id=program.id, name="Grade 10 - Newton")
    async_session.add(section)
    await async_session.flush()

    data = AcademicData(
        organization_id=organization_id,
        school_id=school_id,
        school_year_id=year.id,
        student_id=student.id,
        other_student_id=other_student.id,
        program_id=program.id,
        section_id=section.id,
    )

    def grade(value: str, status: str, term: str = "Q1", **extra: object) -> StudentGrade:
        return StudentGrade(
            organization_id=extra.pop("organization_id", organization_id),
            school_id=school_id,
            student_id=extra.pop("student_id", student.id),
            program_id=program.id,
            section_id=section.id,
            school_year_id=year.id,
            term_period=term,
            grade_value=value,
            status=status,
            **extra,
        )

    exportable = [grade("95", "confirmed"), grade("88", "confirmed"), grade("91", "overridden")]
    others = [
        grade("70", "draft"),
        grade("80", "pending_confirmation"),
        grade("85", "confirmed", term="Q2"),
        grade("99", "confirmed", archived_at=datetime.now(UTC)),
        grade("60", "confirmed", organization_id=other_organization_id),
    ]
    async_session.add_all(exportable + others)

    def transcript(course: str, status: str, credits: str) -> TranscriptRecord:
        return TranscriptRecord(
            organization_id=organization_id,
            school_id=school_id,
            student_id=student.id,
            program_id=program.id,
            school_year_id=year.id,
            term_period="Q1",
            course_name=course,
            grade_value="A",
            credits=Decimal(credits),
            transcript_status=status,
        )

    transcripts = [
        transcript("Algebra, Advanced", "finalized", "1.00"),
        transcript('Physics "Honors"', "finalized", "1.50"),
        transcript("Chemistry", "draft", "1.00"),
    ]
    async_session.add_all(transcripts)
    await async_session.commit()

    data.grade_ids = [g.id for g in exportable]
    data.transcript_ids = [t.id for t in transcripts[:2]]
    return data


@pytest.fixture
def grade_parameters(academic_data: AcademicData) -> dict:
    """Job parameters selecting the seeded student's Q1 grades."""
    return {
        "student_ids": [str(academic_data.student_id)],
        "school_year_id": str(academic_data.school_year_id),
        "term_period": "Q1",
    }


@pytest.fixture
def transcript_parameters(academic_data: AcademicData) -> dict:
    """Job parameters selecting the seeded Q1 transcript records as CSV."""
    return {
        "school_year_id": str(academic_data.school_year_id),
        "term_period": "Q1",
        "format": "csv",
    }
