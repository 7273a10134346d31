"""
Shipment database model.
"""

from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime
from sqlalchemy.sql import func
from shipment_backend.app.db.session import Base
from shipment_backend.app.models.enums import ShipmentStatus

IMAGE_SLOTS = ("image1", "image2", "image3")


class Shipment(Base):
    """
    Material shipment row.
    
    The primary key is the allocated "SHP" + 6-digit code; the primary key
    constraint is what makes concurrent allocations safe. `total_price` is
    always derived server-side from quantity and unit price.
    """
    __tablename__ = "shipment_detail"
    
    id = Column(String(9), primary_key=True)
    
    material_name = Column("material_Name", String(255), nullable=False)
    detail = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False)
    price_per_unit = Column(Numeric(10, 2), nullable=False)
    # Holds MAX_QUANTITY times the largest Numeric(10, 2) unit price
    total_price = Column(Numeric(20, 2), nullable=False)
    
    destination = Column(String(255), nullable=True)
    pickup_location = Column(String(255), nullable=True)
    drop_location = Column(String(255), nullable=True)
    
    # Linked customer / employee / dealer accounts (internal user ids)
    c_id = Column(Integer, nullable=True, index=True)
    e_id = Column(Integer, nullable=True, index=True)
    d_id = Column(Integer, nullable=True, index=True)
    
    status = Column(String(32), default=ShipmentStatus.REQUESTED.value, nullable=False, index=True)
    
    # Stored file names under the upload directory
    image1 = Column(String(255), nullable=True)
    image2 = Column(String(255), nullable=True)
    image3 = Column(String(255), nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    @property
    def images(self) -> list:
        return [getattr(self, slot) for slot in IMAGE_SLOTS if getattr(self, slot)]
    
    def __repr__(self):
        return f"<Shipment(id='{self.id}', material='{self.material_name}', status='{self.status}')>"
