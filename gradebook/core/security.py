"""Bearer-token identity helpers.

Tokens are issued elsewhere; this module only decodes them so that routes can
read the caller's id (``sub``) and ``role``.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gradebook.core.config import settings
from gradebook.core.exceptions import AuthenticationError, AuthorizationError

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired", error_code="TOKEN_EXPIRED")
    except jwt.PyJWTError:
        raise AuthenticationError("Could not validate credentials", error_code="INVALID_TOKEN")

    if not payload.get("sub"):
        raise AuthenticationError("Token is missing a subject", error_code="INVALID_TOKEN")
    payload["access_token"] = token
    return payload


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Dict[str, Any]:
    """Decode the bearer token of an authenticated request."""
    if credentials is None:
        raise AuthenticationError("Not authenticated", error_code="NOT_AUTHENTICATED")
    return decode_access_token(credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[Dict[str, Any]]:
    """Like get_current_user, but anonymous (None) on a missing or bad token.

    Used by public routes that only tailor their answer to a known caller.
    """
    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except AuthenticationError:
        return None


def require_role(allowed_roles: List[str]):
    """Dependency factory restricting a route to the given roles."""

    async def role_checker(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if current_user.get("role") not in allowed_roles:
            raise AuthorizationError(
                "You do not have permission to perform this action",
                error_code="FORBIDDEN",
                details={"required_roles": allowed_roles}
            )
        return current_user

    return role_checker
