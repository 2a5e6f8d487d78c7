"""Program and Section models (read-only for the export pipeline)."""

import uuid

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sis_api.models.base import Base, TimestampMixin, UUIDMixin


class Program(Base, UUIDMixin, TimestampMixin):
    """A course of study offered by a school."""

    __tablename__ = "programs"

    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)


class Section(Base, UUIDMixin, TimestampMixin):
    """A class group within a program."""

    __tablename__ = "sections"

    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    program_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("programs.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
