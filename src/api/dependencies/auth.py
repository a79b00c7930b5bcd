"""Authentication dependencies for FastAPI."""

from typing import Annotated

from fastapi import Depends, Header

from core.exceptions import AuthenticationError, ErrorCode
from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import Actor, extract_bearer_token

# Singleton auth provider
_auth_provider: JWTAuthProvider | None = None


def get_auth_provider() -> JWTAuthProvider:
    """Get or create the auth provider singleton."""
    global _auth_provider
    if _auth_provider is None:
        _auth_provider = JWTAuthProvider()
    return _auth_provider


async def get_current_actor(
    authorization: Annotated[str | None, Header()] = None,
    auth_provider: JWTAuthProvider = Depends(get_auth_provider),
) -> Actor:
    """
    Dependency resolving the authenticated actor.

    Raises:
        AuthenticationError: If no bearer token is provided or it is invalid
    """
    token = extract_bearer_token(authorization)
    if not token:
        raise AuthenticationError(
            message="Authorization header required",
            error_code=ErrorCode.UNAUTHORIZED,
        )

    actor = await auth_provider.verify_token(token)

    if not actor:
        raise AuthenticationError(
            message="Invalid or expired token",
            error_code=ErrorCode.INVALID_TOKEN,
        )

    return actor


# Type alias for convenience in route handlers
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
