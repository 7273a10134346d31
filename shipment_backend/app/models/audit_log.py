"""
Audit Log Database Model.

Tracks account and shipment events for later review by administrators.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from shipment_backend.app.db.session import Base


class AuditLog(Base):
    """
    One row per recorded event.
    
    Events logged:
    - USER_CREATED / USER_APPROVED / USER_REJECTED
    - LOGIN_SUCCESS / LOGIN_FAILED / LOGOUT
    - PROFILE_UPDATED / PASSWORD_CHANGED
    - SHIPMENT_CREATED / SHIPMENT_UPDATED / SHIPMENT_DELETED
    - SHIPMENT_STATUS_BULK_UPDATED / SHIPMENTS_EXPORTED
    """
    __tablename__ = "audit_logs"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Who performed the action (None for anonymous or system actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_email = Column(String(255), nullable=True)
    
    action = Column(String(100), nullable=False, index=True)
    
    # What the action touched: ("user", "4821"), ("shipment", "SHP123456")
    entity_type = Column(String(50), nullable=True, index=True)
    entity_id = Column(String(50), nullable=True, index=True)
    
    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)
    
    ip_address = Column(String(50), nullable=True)
    
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    
    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', entity={self.entity_type}:{self.entity_id})>"
