"""FastAPI dependency injection for database sessions, auth, storage, and access control.

Provides get_async_session, get_current_profile, get_export_storage and the
role-based access control factory.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Annotated, Any

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from sis_api.core.config import Settings, get_settings
from sis_api.core.database import get_session_factory
from sis_api.core.security import profile_id_from_token
from sis_api.lib.storage import ExportStorage, S3ExportStorage, create_storage_client
from sis_api.models.profile import Profile

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/token")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/token", auto_error=False)


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


async def resolve_token_profile(session: AsyncSession, token: str | None, settings: Settings) -> Profile | None:
    """Return the profile behind a bearer token, or None if the token is missing, invalid or unknown."""
    if not token:
        return None
    try:
        profile_id = profile_id_from_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
    except jwt.InvalidTokenError:
        return None
    return await session.get(Profile, profile_id)


async def get_current_profile(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Profile:
    """Decode the bearer JWT and return the caller's profile.

    Raises:
        HTTPException: 401 if the token is invalid or the profile is unknown.
    """
    profile = await resolve_token_profile(session, token, settings)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return profile


def require_role(*roles: str) -> Callable[..., Any]:
    """Factory that creates a dependency requiring specific profile roles.

    Super-admins satisfy every role requirement.

    Args:
        *roles: Allowed role names (e.g., "admin", "principal").

    Returns:
        A FastAPI dependency function that validates the profile's role.
    """

    async def role_checker(
        current_profile: Annotated[Profile, Depends(get_current_profile)],
    ) -> Profile:
        if not current_profile.is_super_admin and current_profile.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{current_profile.role}' does not have access to this resource",
            )
        return current_profile

    return role_checker


def get_export_storage(settings: Annotated[Settings, Depends(get_settings)]) -> ExportStorage:
    """Build the object storage used for export documents."""
    client = create_storage_client(
        endpoint_url=settings.storage_endpoint_url,
        access_key_id=settings.storage_access_key_id,
        secret_access_key=settings.storage_secret_access_key,
        region_name=settings.storage_region,
    )
    return S3ExportStorage(client, settings.export_bucket)
