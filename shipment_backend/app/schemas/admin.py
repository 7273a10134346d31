"""
Admin Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Dict, Any, List
from shipment_backend.app.schemas.auth import UserResponse


class RejectUserRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500, description="Reason shown to the applicant")


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int


class AuditLogResponse(BaseModel):
    id: int
    actor_id: Optional[int]
    actor_email: Optional[str]
    action: str
    entity_type: Optional[str]
    entity_id: Optional[str]
    meta_data: Optional[Dict[str, Any]]
    ip_address: Optional[str]
    timestamp: datetime
    
    class Config:
        from_attributes = True
