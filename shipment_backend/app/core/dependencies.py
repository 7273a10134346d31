"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication.
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from shipment_backend.app.core.exceptions import (
    AccountNotApprovedError,
    AuthenticationError,
    InsufficientPermissionsError,
    TokenRevokedError,
)
from shipment_backend.app.core.jwt import decode_access_token
from shipment_backend.app.core.token_revocation import is_token_revoked
from shipment_backend.app.db.session import get_db
from shipment_backend.app.models.enums import AccountStatus
from shipment_backend.app.models.user import User

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    FastAPI dependency for JWT authentication.
    
    1. Validates JWT token signature and expiry
    2. Rejects tokens revoked by logout
    3. Verifies the account still exists, is active and is approved
    
    Returns:
        Decoded token payload plus the raw token under "token"
        
    Raises:
        AuthenticationError / TokenRevokedError: 401
        InsufficientPermissionsError: 403 for deactivated accounts
        AccountNotApprovedError: 403 for accounts pending or rejected since login
    """
    token = credentials.credentials
    
    payload = decode_access_token(token)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")
    
    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")
    
    if await is_token_revoked(token):
        raise TokenRevokedError()
    
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    
    if not user:
        raise AuthenticationError("User not found")
    
    if not user.is_active:
        raise InsufficientPermissionsError("User account is inactive")
    
    if user.status != AccountStatus.APPROVED:
        raise AccountNotApprovedError(user.status.value)
    
    return {**payload, "token": token}
