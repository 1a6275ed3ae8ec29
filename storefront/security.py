"""
Bearer token handling.

Tokens are issued by the account service; this module only needs to read
the ``sub`` (user id) and ``role`` claims. ``create_access_token`` mirrors
the issuer for tooling and tests.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from storefront.config import settings
from storefront.errors import AuthenticationError


def create_access_token(user_id: int, role: str = "user", expires_minutes: Optional[int] = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    claims = {"sub": str(user_id), "role": role, "exp": expire}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Verify signature and expiry and return the claims
    
    Raises:
        AuthenticationError: If the token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise AuthenticationError("Not authorized, token failed") from e
    
    if not payload.get("sub"):
        raise AuthenticationError("Not authorized, token failed")
    return payload
