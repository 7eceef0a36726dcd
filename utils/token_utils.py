"""
utils/token_utils.py

Purpose: Client-side access token inspection

- Structural decode of JWT claims (signature is the server's concern)
- Expiry checks with an optional refresh-ahead buffer
- Safe fingerprints for logging
"""

import hashlib
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import jwt


def decode_claims(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Decodes a JWT payload without verifying its signature.

    Args:
        token: Encoded JWT

    Returns:
        Claims dict, or None for missing or malformed tokens
    """
    if not token or not isinstance(token, str):
        return None

    try:
        claims = jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False},
        )
    except jwt.InvalidTokenError:
        return None

    return claims if isinstance(claims, dict) else None


def get_expiry(token: Optional[str]) -> Optional[datetime]:
    """Returns the `exp` claim as an aware UTC datetime, if present and numeric."""
    claims = decode_claims(token)
    if not claims:
        return None

    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(exp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def is_token_expired(
    token: Optional[str],
    buffer_seconds: float = 0,
    now: Optional[datetime] = None,
) -> bool:
    """
    Checks whether a token is expired or will expire within the buffer.

    Tokens that cannot be decoded or carry no usable `exp` claim count
    as expired.

    Args:
        token: Encoded JWT
        buffer_seconds: Treat the token as expired this many seconds early
        now: Reference time (defaults to the current UTC time)

    Returns:
        True if the token must not be used
    """
    expiry = get_expiry(token)
    if expiry is None:
        return True

    now = now or datetime.now(timezone.utc)
    return now.timestamp() >= expiry.timestamp() - buffer_seconds


def token_fingerprint(token: Optional[str]) -> str:
    """Short, non-reversible identifier for log lines."""
    if not token:
        return "none"
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:10]
