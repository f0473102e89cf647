"""
Authentication dependencies for FastAPI.
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from memoria.database import get_db
from memoria.models.user import User
from memoria.schemas.user import IdentityClaims
from memoria.services.identity import IdentityService
from memoria.utils.security import decode_access_token

logger = logging.getLogger("memoria.auth")

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> IdentityClaims:
    """
    Dependency returning the verified token claims.

    Raises:
        HTTPException: If the token is missing, invalid or expired
    """
    if not credentials:
        logger.warning("Auth failed", extra={"event": "auth", "reason": "no_token"})
        raise _credentials_exception()

    claims = decode_access_token(credentials.credentials)
    if claims is None:
        logger.warning("Auth failed", extra={"event": "auth", "reason": "invalid_or_expired_token"})
        raise _credentials_exception()

    return claims


async def get_current_user(
    claims: IdentityClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency to get the current authenticated user.

    Args:
        claims: Verified token claims
        db: Database session

    Returns:
        Current authenticated User

    Raises:
        HTTPException: If the identity has no user and cannot be provisioned
    """
    user = await IdentityService(db).resolve(claims)

    if user is None:
        logger.warning("Auth failed", extra={"event": "auth", "reason": "user_not_found"})
        raise _credentials_exception()

    return user


async def get_optional_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """
    Dependency to optionally get the current user.
    Returns None if no valid token is provided or the identity has no user yet.
    Read endpoints never provision users.
    """
    if not credentials:
        return None

    claims = decode_access_token(credentials.credentials)

    if claims is None:
        return None

    return await IdentityService(db).get_user_by_external_id(claims.sub)
