"""
Enumerations shared by the account and shipment models.
"""

import enum


class UserType(str, enum.Enum):
    """
    Account type (role) enumeration.
    
    Values keep the spelling stored by the mobile app.
    """
    CLIENT = "Client"
    DEALER = "dealer"
    FIELD_EMPLOYEE = "field_employee"
    OFFICE_EMPLOYEE = "office_employee"
    SALES_PURCHASE = "sales_purchase"
    ADMIN = "Admin"

    @property
    def requires_approval(self) -> bool:
        return self in (UserType.FIELD_EMPLOYEE, UserType.OFFICE_EMPLOYEE, UserType.SALES_PURCHASE)


class AccountStatus(str, enum.Enum):
    APPROVED = "approved"
    PENDING_APPROVAL = "pending_approval"
    REJECTED = "rejected"


class ShipmentStatus(str, enum.Enum):
    """
    Shipment lifecycle tag.
    
    Status flow:
        requested → pending → Confirmed/approved → in_transit → delivered
        requested/pending can move to rejected
    """
    REQUESTED = "requested"
    PENDING = "pending"
    CONFIRMED = "Confirmed"
    APPROVED = "approved"
    REJECTED = "rejected"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
