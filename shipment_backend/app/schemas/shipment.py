"""
Shipment Pydantic schemas.

Request models validate the multipart form fields; response models keep the
wire names the mobile app already uses (`material_Name`, `price_per_unit`, ...).
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict
from shipment_backend.app.models.enums import ShipmentStatus

# Upper bound of the 32-bit quantity column
MAX_QUANTITY = 2_147_483_647


class ShipmentCreate(BaseModel):
    """Schema for creating a new shipment."""
    material_name: str = Field(..., min_length=1, max_length=255, description="Material name")
    detail: str = Field(..., min_length=1, description="Material details")
    quantity: int = Field(..., gt=0, le=MAX_QUANTITY, description="Number of units")
    price_per_unit: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2, description="Unit price")
    destination: Optional[str] = Field(None, max_length=255)
    pickup_location: Optional[str] = Field(None, max_length=255)
    drop_location: Optional[str] = Field(None, max_length=255)
    c_id: Optional[int] = Field(None, description="Customer account ID")
    e_id: Optional[int] = Field(None, description="Employee account ID")
    d_id: Optional[int] = Field(None, description="Dealer account ID")
    status: ShipmentStatus = Field(default=ShipmentStatus.REQUESTED)
    
    class Config:
        str_strip_whitespace = True


class ShipmentUpdate(BaseModel):
    """Schema for updating an existing shipment. Unset fields keep their stored value."""
    material_name: Optional[str] = Field(None, min_length=1, max_length=255)
    detail: Optional[str] = Field(None, min_length=1)
    quantity: Optional[int] = Field(None, gt=0, le=MAX_QUANTITY)
    price_per_unit: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    destination: Optional[str] = Field(None, max_length=255)
    pickup_location: Optional[str] = Field(None, max_length=255)
    drop_location: Optional[str] = Field(None, max_length=255)
    c_id: Optional[int] = None
    e_id: Optional[int] = None
    d_id: Optional[int] = None
    status: Optional[ShipmentStatus] = None
    
    class Config:
        str_strip_whitespace = True


class ShipmentResponse(BaseModel):
    """Schema for a stored shipment."""
    id: str
    material_name: str = Field(..., serialization_alias="material_Name")
    detail: str
    quantity: int
    price_per_unit: float
    total_price: float
    destination: Optional[str] = None
    pickup_location: Optional[str] = None
    drop_location: Optional[str] = None
    c_id: Optional[int] = None
    e_id: Optional[int] = None
    d_id: Optional[int] = None
    status: str
    image1: Optional[str] = None
    image2: Optional[str] = None
    image3: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class ShipmentCreatedResponse(BaseModel):
    message: str = "Shipment added successfully"
    id: str
    total_price: float


class ShipmentUpdatedResponse(BaseModel):
    message: str = "Shipment updated successfully"
    id: str
    total_price: float


class MessageResponse(BaseModel):
    message: str


class BulkStatusRequest(BaseModel):
    """Schema for setting one status on many shipments."""
    ids: List[str] = Field(..., min_length=1)
    status: ShipmentStatus


class BulkStatusResponse(BaseModel):
    message: str
    updated: int


class DashboardResponse(BaseModel):
    """Schema for the admin dashboard summary."""
    total: int
    with_images: int
    without_images: int
    status_breakdown: Dict[str, int]
    recent: List[ShipmentResponse]
