"""
Security guards for role-based access control.
"""

from fastapi import Depends
from shipment_backend.app.core.dependencies import get_current_user
from shipment_backend.app.core.exceptions import InsufficientPermissionsError
from shipment_backend.app.models.enums import UserType


def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    """
    Dependency for admin-only endpoints.
    
    Usage:
        @router.post("/admin/users/{user_id}/approve")
        async def approve_user(
            user_id: int,
            admin: dict = Depends(require_admin)
        ):
            ...
    
    Returns:
        User payload if admin, raises 403 otherwise
    """
    if current_user.get("type") != UserType.ADMIN.value:
        raise InsufficientPermissionsError("Admin access required")
    
    return current_user
