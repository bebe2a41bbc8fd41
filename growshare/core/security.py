"""Verification of identity-provider session tokens."""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from growshare.config import settings
from growshare.core.exceptions import AuthenticationError


def create_access_token(
    subject: str,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """Sign a session token for ``subject`` (the identity provider's user id).

    Used by local tooling and tests; production tokens come from the provider.
    """
    to_encode: dict[str, Any] = {"sub": subject, **(extra_claims or {})}
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode["exp"] = expire
    if settings.auth_jwt_issuer:
        to_encode["iss"] = settings.auth_jwt_issuer
    return jwt.encode(to_encode, settings.auth_jwt_secret, algorithm=settings.auth_jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """Verify and decode a session token."""
    options = {"verify_iss": bool(settings.auth_jwt_issuer)}
    try:
        payload = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            issuer=settings.auth_jwt_issuer,
            options=options,
        )
    except JWTError as e:
        raise AuthenticationError(f"Token validation failed: {str(e)}")
    if not payload.get("sub"):
        raise AuthenticationError("Invalid token payload")
    return payload
