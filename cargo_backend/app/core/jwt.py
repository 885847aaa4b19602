"""
JWT utilities for forwarded credentials.

The gateway authenticates callers; this service only reads the caller
identity from the bearer token it receives and passes the token on.
"""

from typing import Optional, Dict, Any
from jose import JWTError, jwt
from cargo_backend.app.core.config import settings


def decode_forwarded_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Read the claims of a forwarded bearer token.

    When `verify_forwarded_tokens` is enabled the signature and expiry are
    checked against the shared secret; otherwise the claims are read as-is.

    Args:
        token: JWT token string from the Authorization header

    Returns:
        Token claims (sub, user_id, ...) if readable, None otherwise
    """
    try:
        if settings.verify_forwarded_tokens:
            return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        return jwt.get_unverified_claims(token)
    except JWTError:
        return None
