"""
JWT token utilities for authentication.

Tokens are issued by the Conduz identity provider; this backend only needs
to verify them. `create_access_token` is used by the seed script and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from conduz.app.core.config import settings


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token.

    Args:
        data: Claims to encode (`sub` username and `user_id` are required by
            get_current_user; `role` is informational, the database wins)
        expires_delta: Lifetime, defaults to settings.access_token_expire_minutes

    Returns:
        Encoded JWT string
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def token_for_user(user) -> str:
    return create_access_token({"sub": user.username, "user_id": user.id, "role": user.role.value})


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the verified claims, or None if the signature or expiry is invalid."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
