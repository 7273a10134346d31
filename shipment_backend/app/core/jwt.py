"""
JWT access tokens for shipment app accounts.

A token identifies an account by its internal row id (`user_id` claim) and
carries the 4-digit account code and account type so handlers and the access
log can use them without a database lookup.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from shipment_backend.app.core.config import settings


def user_claims(user) -> Dict[str, Any]:
    """Claims describing an account row."""
    return {
        "sub": user.email,
        "user_id": user.id,
        "account_id": user.user_id,
        "type": user.type.value,
    }


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Encode `data` with an expiry.
    
    `expires_delta` defaults to `access_token_expire_minutes`.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_user_token(user, expires_delta: Optional[timedelta] = None) -> str:
    """Issue the bearer token handed out by /login."""
    return create_access_token(user_claims(user), expires_delta)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a JWT access token.
    
    Returns:
        Decoded payload, or None when the signature or expiry check fails
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def bearer_claims(authorization: Optional[str]) -> Dict[str, Any]:
    """Claims of a `Bearer <token>` header value, or {} when absent or invalid."""
    if not authorization or not authorization.lower().startswith("bearer "):
        return {}
    return decode_access_token(authorization[7:].strip()) or {}
