"""
Bearer-token authentication for the API.
Validates access tokens issued by the identity provider on every request.
"""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import ExpiredSignatureError, JWTError, jwt

from vocab_api.config import settings
from vocab_api.errors import HttpError


# auto_error=False so a missing header surfaces as our 401 payload, not FastAPI's 403
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Authenticated caller: the user id and the raw access token."""
    user_id: UUID
    token: str
    email: Optional[str] = None


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT access token.

    Args:
        token: Raw JWT from the Authorization header

    Returns:
        dict: Verified token claims

    Raises:
        HttpError: 401 if the token is invalid or expired
    """
    options = {"verify_aud": settings.JWT_AUDIENCE is not None}
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=settings.JWT_ALGORITHMS,
            audience=settings.JWT_AUDIENCE,
            options=options
        )
    except ExpiredSignatureError:
        raise HttpError(401, "登录状态已过期，请重新登录")
    except JWTError as e:
        raise HttpError(401, "无效或过期的登录状态", str(e))


def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> AuthContext:
    """
    Verify the bearer token and extract the caller identity.

    Args:
        credentials: HTTP Bearer token from Authorization header

    Returns:
        AuthContext for the caller

    Raises:
        HttpError: If the header is missing/malformed or the token is invalid
    """
    if credentials is None:
        raise HttpError(401, "缺少 Authorization 头")
    if credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise HttpError(401, "Authorization 头格式错误")

    token = credentials.credentials
    payload = decode_access_token(token)

    user_id_str: Optional[str] = payload.get("sub")
    if user_id_str is None:
        raise HttpError(401, "Invalid token: missing user ID")

    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise HttpError(401, "Invalid token: invalid user ID format")

    return AuthContext(user_id=user_id, token=token, email=payload.get("email"))


async def get_current_user(auth: AuthContext = Depends(verify_token)) -> AuthContext:
    """
    FastAPI dependency to get current authenticated user.

    Usage:
        @router.get("/protected")
        async def protected_route(user: AuthContext = Depends(get_current_user)):
            user_id = user.user_id
    """
    return auth
