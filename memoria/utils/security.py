"""
Identity token helpers.

Tokens are issued by the external identity provider; the `sub` claim is the
external identity. `create_access_token` signs tokens with the same settings
for development tooling and tests.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from memoria.config import get_settings
from memoria.schemas.user import IdentityClaims

# Profile claims copied into IdentityClaims when present
_PROFILE_CLAIMS = ("email", "name", "username", "picture")


def create_access_token(
    external_id: str,
    expires_delta: Optional[timedelta] = None,
    **claims: Any,
) -> str:
    """
    Create a signed identity token.

    Args:
        external_id: External identity to encode as `sub`
        expires_delta: Optional expiration time delta
        **claims: Extra claims (email, name, username, picture, ...)

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    to_encode: Dict[str, Any] = {
        "sub": external_id,
        "exp": datetime.now(timezone.utc) + expires_delta,
        **claims,
    }
    if settings.jwt_issuer:
        to_encode.setdefault("iss", settings.jwt_issuer)
    if settings.jwt_audience:
        to_encode.setdefault("aud", settings.jwt_audience)

    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> Optional[IdentityClaims]:
    """
    Decode and verify an identity token.

    Args:
        token: JWT token string

    Returns:
        IdentityClaims if valid, None if invalid, expired or missing `exp`/`sub`
    """
    settings = get_settings()
    options = {
        "verify_aud": settings.jwt_audience is not None,
        "require_exp": True,
        "require_sub": True,
    }
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options=options,
        )
    except JWTError:
        return None

    sub = payload.get("sub")
    if not sub:
        return None

    return IdentityClaims(
        sub=str(sub),
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        **{k: payload[k] for k in _PROFILE_CLAIMS if isinstance(payload.get(k), str)},
    )
