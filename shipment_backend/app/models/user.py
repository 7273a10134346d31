"""
User account database model.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, Text
from sqlalchemy.sql import func
from shipment_backend.app.db.session import Base
from shipment_backend.app.models.enums import UserType, AccountStatus


class User(Base):
    """
    Account of a customer, dealer, employee or administrator.
    
    `id` is the internal auto-increment key; `user_id` is the separately
    allocated 4-digit code people quote to each other.
    """
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, unique=True, index=True, nullable=False)
    
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    type = Column(Enum(UserType, values_callable=lambda e: [m.value for m in e]), nullable=False)
    
    status = Column(
        Enum(AccountStatus, values_callable=lambda e: [m.value for m in e]),
        default=AccountStatus.APPROVED,
        nullable=False,
        index=True,
    )
    is_active = Column(Boolean, default=True, nullable=False)
    rejection_reason = Column(Text, nullable=True)
    
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<User(id={self.id}, user_id={self.user_id}, email='{self.email}', type='{self.type.value}')>"
