"""Profile model — the authenticated identity behind a bearer token."""

import uuid

from sqlalchemy import Boolean, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sis_api.models.base import Base, TimestampMixin, UUIDMixin

ROLE_ADMIN = "admin"
ROLE_PRINCIPAL = "principal"
ROLE_REGISTRAR = "registrar"
ROLE_TEACHER = "teacher"


class Profile(Base, UUIDMixin, TimestampMixin):
    """A user profile scoped to one organization.

    Profiles are provisioned by the auth service; this service only reads
    them to authorize requests.
    """

    __tablename__ = "profiles"

    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    school_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    role: Mapped[str] = mapped_column(String(30), nullable=False)
    is_super_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
