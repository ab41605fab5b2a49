"""FastAPI dependencies for dependency injection."""

from typing import Optional
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from core.middleware.authorization import Identity
from core.security import decode_access_token
from database.models.users import UserRole


security = HTTPBearer(auto_error=False)


async def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[Identity]:
    """
    Decode the bearer token into the acting identity.
    Returns None if no valid token was supplied.
    """
    if credentials is None:
        return None

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        return None

    try:
        identity = Identity(user_id=int(payload["sub"]), role=UserRole(payload["role"]))
    except (KeyError, ValueError):
        return None

    # Picked up by the request logging middleware
    request.state.user_id = identity.user_id
    return identity


async def require_identity(
    identity: Optional[Identity] = Depends(get_current_identity),
) -> Identity:
    """Require an authenticated caller."""
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity
