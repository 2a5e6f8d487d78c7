"""SchoolYear model (read-only for the export pipeline)."""

import uuid
from datetime import date

from sqlalchemy import Date, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sis_api.models.base import Base, TimestampMixin, UUIDMixin


class SchoolYear(Base, UUIDMixin, TimestampMixin):
    """An academic year, e.g. ``2024-2025``."""

    __tablename__ = "school_years"

    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
