"""FastAPI dependency injection functions."""

import logging
from typing import Annotated

from fastapi import Depends, Header

from src.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt, extract_bearer_token
from src.api.middleware.error_handler import AuthenticationError, AuthorizationError
from src.schemas.auth import Actor, AuthenticatedActor, GuestActor, UserContext

logger = logging.getLogger(__name__)


async def get_current_user(
    authorization: Annotated[str, Header(description="Bearer token")] = "",
) -> UserContext:
    """Extract and validate the current user from the Authorization header.

    This dependency requires a valid JWT token in the Authorization header.
    Use this for endpoints that require authentication.

    Args:
        authorization: The Authorization header value (Bearer token).

    Returns:
        UserContext: The authenticated user's context.

    Raises:
        AuthenticationError: If the token is missing, invalid, or expired.
    """
    try:
        payload = decode_jwt(extract_bearer_token(authorization))
        return payload.to_user_context()

    except AuthError as e:
        message = "Token has expired" if e.code == AuthErrorCode.TOKEN_EXPIRED else e.message
        raise AuthenticationError(
            message,
            details=[{"loc": ["header", "authorization"], "msg": e.message, "type": e.code.value.lower()}],
        ) from e


CurrentUser = Annotated[UserContext, Depends(get_current_user)]


async def get_admin_user(user: CurrentUser) -> UserContext:
    """Require an authenticated user with the admin role.

    Raises:
        AuthorizationError: If the user is not an admin.
    """
    if not user.is_admin:
        raise AuthorizationError("Admin access required")
    return user


async def resolve_actor(
    authorization: Annotated[str | None, Header()] = None,
) -> Actor:
    """Resolve who is making the request, without ever rejecting it.

    A missing header, a non-bearer scheme or an invalid/expired token all
    resolve to a guest so that guest checkout keeps working.

    Args:
        authorization: Optional Authorization header value.

    Returns:
        Actor: AuthenticatedActor for a valid token, GuestActor otherwise.
    """
    if not authorization:
        return GuestActor()

    try:
        payload = decode_jwt(extract_bearer_token(authorization))
    except AuthError as e:
        logger.debug("Treating request as guest: %s", e.message)
        return GuestActor()

    return AuthenticatedActor(user_id=payload.sub, email=payload.email, role=payload.role)


# Type aliases for cleaner dependency injection
AdminUser = Annotated[UserContext, Depends(get_admin_user)]
RequestActor = Annotated[Actor, Depends(resolve_actor)]
