"""API dependencies for authentication and common operations."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from growshare.core.exceptions import AuthenticationError, NotFoundError
from growshare.core.security import verify_token
from growshare.database import get_db
from growshare.models.user import User

__all__ = ["get_current_user", "get_db", "CurrentUser", "DbSession"]

# Security scheme; a missing header is reported as 401 by get_current_user
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Resolve the identity provider's session token to a user record."""
    if credentials is None:
        raise AuthenticationError()

    payload = verify_token(credentials.credentials)

    result = await db.execute(select(User).where(User.auth_provider_id == payload["sub"]))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User")

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
