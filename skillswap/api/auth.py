"""
Authentication Dependency

Bearer-token identity: the token is the user's opaque api_token. Token
issuance and password handling live outside this service.
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select

from skillswap.database import AsyncSessionLocal
from skillswap.models.user import User

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


def _auth_error(code: str, message: str, details: str, status_code: int = status.HTTP_401_UNAUTHORIZED):
    return HTTPException(
        status_code=status_code,
        detail={
            "error": {
                "code": code,
                "message": message,
                "details": details,
            }
        },
        headers={"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None,
    )


async def resolve_token(token: Optional[str]) -> User:
    """
    Look up the user owning `token`.

    Raises:
        HTTPException: 401 for a missing/unknown token, 403 for inactive users
    """
    if not token:
        raise _auth_error("AUTH_001", "Authorization header missing", "Please provide a valid bearer token")

    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).where(User.api_token == token))
        user = result.scalar_one_or_none()

    if user is None:
        logger.warning(f"Invalid token attempt: {token[:6]}...")
        raise _auth_error("AUTH_002", "Invalid or expired token", "The provided token is not valid")

    if not user.is_active:
        raise _auth_error(
            "AUTH_004", "Account disabled", "This account is not active",
            status_code=status.HTTP_403_FORBIDDEN,
        )

    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> User:
    """FastAPI dependency returning the authenticated user."""
    return await resolve_token(credentials.credentials if credentials else None)
