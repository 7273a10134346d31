"""
Shipment API Endpoints.

Multipart create / update (up to three images), delete and read paths used by
the customer, dealer and admin screens.
"""

from typing import Dict, List, Optional, Type
from fastapi import APIRouter, Depends, File, Form, Path, Query, Request, UploadFile
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from shipment_backend.app.db.session import get_db
from shipment_backend.app.core.exceptions import FieldValidationError
from shipment_backend.app.models.shipment import IMAGE_SLOTS
from shipment_backend.app.schemas.shipment import (
    ShipmentCreate,
    ShipmentUpdate,
    ShipmentResponse,
    ShipmentCreatedResponse,
    ShipmentUpdatedResponse,
    MessageResponse,
)
from shipment_backend.app.services.audit import log_event, AuditAction
from shipment_backend.app.services.image_storage import ImageStorage, get_image_storage
from shipment_backend.app.services.shipment_store import ShipmentStore

router = APIRouter(tags=["Shipments"])


def get_shipment_store(
    db: AsyncSession = Depends(get_db),
    images: ImageStorage = Depends(get_image_storage)
) -> ShipmentStore:
    return ShipmentStore(db, images)


# Field names as the mobile form sends them
_WIRE_NAMES = {"material_name": "material_Name"}


def _validated(schema: Type[BaseModel], fields: Dict[str, Optional[str]]) -> BaseModel:
    """Validate form fields; blank values count as not supplied."""
    supplied = {name: value for name, value in fields.items() if value is not None and value.strip() != ""}
    try:
        return schema(**supplied)
    except ValidationError as exc:
        names = [_WIRE_NAMES.get(str(err["loc"][0]), str(err["loc"][0])) for err in exc.errors() if err["loc"]]
        raise FieldValidationError(
            "Missing or invalid fields: " + ", ".join(names),
            details={"errors": exc.errors(include_url=False, include_context=False)}
        )


async def _store_images(images: ImageStorage, uploads: Dict[str, Optional[UploadFile]]) -> Dict[str, str]:
    """Write every supplied upload; on failure already written files are removed."""
    stored: Dict[str, str] = {}
    try:
        for slot, upload in uploads.items():
            if upload is not None and upload.filename:
                stored[slot] = await images.save(slot, upload)
    except Exception:
        images.remove(stored.values())
        raise
    return stored


def _form_fields(
    material_name, detail, quantity, price_per_unit, destination,
    pickup_location, drop_location, c_id, e_id, d_id, status
) -> Dict[str, Optional[str]]:
    return {
        "material_name": material_name,
        "detail": detail,
        "quantity": quantity,
        "price_per_unit": price_per_unit,
        "destination": destination,
        "pickup_location": pickup_location,
        "drop_location": drop_location,
        "c_id": c_id,
        "e_id": e_id,
        "d_id": d_id,
        "status": status,
    }


@router.get("/shipment", response_model=List[ShipmentResponse])
async def list_shipments(
    c_id: Optional[int] = Query(None, description="Only shipments of this customer"),
    store: ShipmentStore = Depends(get_shipment_store)
):
    """List all shipments, or those linked to one customer."""
    shipments = await store.list_all(c_id=c_id)
    return [ShipmentResponse.model_validate(s) for s in shipments]


@router.get("/shipment/customer/{c_id}", response_model=List[ShipmentResponse])
async def list_customer_shipments(
    c_id: int = Path(..., description="Customer account ID"),
    store: ShipmentStore = Depends(get_shipment_store)
):
    shipments = await store.list_for_customer(c_id)
    return [ShipmentResponse.model_validate(s) for s in shipments]


@router.get("/shipment/{shipment_id}", response_model=ShipmentResponse)
async def get_shipment(
    shipment_id: str = Path(..., description="Shipment ID (SHP######)"),
    store: ShipmentStore = Depends(get_shipment_store)
):
    shipment = await store.get(shipment_id)
    return ShipmentResponse.model_validate(shipment)


@router.post("/add_shipment", response_model=ShipmentCreatedResponse)
async def add_shipment(
    request: Request,
    material_name: Optional[str] = Form(None, alias="material_Name"),
    detail: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    price_per_unit: Optional[str] = Form(None),
    destination: Optional[str] = Form(None),
    pickup_location: Optional[str] = Form(None),
    drop_location: Optional[str] = Form(None),
    c_id: Optional[str] = Form(None),
    e_id: Optional[str] = Form(None),
    d_id: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    image1: Optional[UploadFile] = File(None),
    image2: Optional[UploadFile] = File(None),
    image3: Optional[UploadFile] = File(None),
    store: ShipmentStore = Depends(get_shipment_store)
):
    """
    Create a shipment.
    
    Required: material_Name, detail, quantity, price_per_unit.
    The id (SHP######) and total_price are assigned by the server.
    """
    data = _validated(ShipmentCreate, _form_fields(
        material_name, detail, quantity, price_per_unit, destination,
        pickup_location, drop_location, c_id, e_id, d_id, status
    ))
    
    stored = await _store_images(store.images, dict(zip(IMAGE_SLOTS, (image1, image2, image3))))
    try:
        shipment = await store.create(data, stored)
    except Exception:
        store.images.remove(stored.values())
        raise
    
    await log_event(
        db=store.db,
        action=AuditAction.SHIPMENT_CREATED,
        entity_type="shipment",
        entity_id=shipment.id,
        metadata={"total_price": str(shipment.total_price), "images": sorted(stored)},
        ip_address=request.client.host if request.client else None
    )
    
    return ShipmentCreatedResponse(id=shipment.id, total_price=shipment.total_price)


@router.put("/update-shipment/{shipment_id}", response_model=ShipmentUpdatedResponse)
async def update_shipment(
    request: Request,
    shipment_id: str = Path(..., description="Shipment ID (SHP######)"),
    material_name: Optional[str] = Form(None, alias="material_Name"),
    detail: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    price_per_unit: Optional[str] = Form(None),
    destination: Optional[str] = Form(None),
    pickup_location: Optional[str] = Form(None),
    drop_location: Optional[str] = Form(None),
    c_id: Optional[str] = Form(None),
    e_id: Optional[str] = Form(None),
    d_id: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    image1: Optional[UploadFile] = File(None),
    image2: Optional[UploadFile] = File(None),
    image3: Optional[UploadFile] = File(None),
    store: ShipmentStore = Depends(get_shipment_store)
):
    """
    Update a shipment.
    
    Only supplied fields and image slots are overwritten; total_price is
    recomputed. 404 when no shipment has this id.
    """
    data = _validated(ShipmentUpdate, _form_fields(
        material_name, detail, quantity, price_per_unit, destination,
        pickup_location, drop_location, c_id, e_id, d_id, status
    ))
    
    # Fail before writing any file
    await store.get(shipment_id)
    
    stored = await _store_images(store.images, dict(zip(IMAGE_SLOTS, (image1, image2, image3))))
    try:
        shipment = await store.update(shipment_id, data, stored)
    except Exception:
        store.images.remove(stored.values())
        raise
    
    await log_event(
        db=store.db,
        action=AuditAction.SHIPMENT_UPDATED,
        entity_type="shipment",
        entity_id=shipment.id,
        metadata={
            "updated_fields": sorted(data.model_dump(exclude_unset=True)),
            "images": sorted(stored),
            "total_price": str(shipment.total_price),
        },
        ip_address=request.client.host if request.client else None
    )
    
    return ShipmentUpdatedResponse(id=shipment.id, total_price=shipment.total_price)


@router.delete("/delete-shipment/{shipment_id}", response_model=MessageResponse)
async def delete_shipment(
    request: Request,
    shipment_id: str = Path(..., description="Shipment ID (SHP######)"),
    store: ShipmentStore = Depends(get_shipment_store)
):
    """Delete a shipment and its stored images. 404 when no shipment has this id."""
    await store.delete(shipment_id)
    
    await log_event(
        db=store.db,
        action=AuditAction.SHIPMENT_DELETED,
        entity_type="shipment",
        entity_id=shipment_id,
        ip_address=request.client.host if request.client else None
    )
    
    return MessageResponse(message="Shipment deleted successfully")
