"""
Shipment record store.

Validated create / update / delete / read operations on `shipment_detail`.
Totals are always computed here from quantity and unit price; whatever total
a client sends is ignored.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from sqlalchemy import select, update, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from shipment_backend.app.core.exceptions import ResourceNotFoundError
from shipment_backend.app.models.shipment import Shipment, IMAGE_SLOTS
from shipment_backend.app.schemas.shipment import ShipmentCreate, ShipmentUpdate
from shipment_backend.app.services.id_generator import SHIPMENT_ID, insert_with_identifier
from shipment_backend.app.services.image_storage import ImageStorage

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")


def compute_total(quantity: int, price_per_unit: Decimal) -> Decimal:
    """Total price rounded to cents."""
    return (Decimal(quantity) * Decimal(price_per_unit)).quantize(_CENTS, rounding=ROUND_HALF_UP)


def _image_values(images: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Keep only known slots that actually received a file."""
    return {slot: name for slot, name in (images or {}).items() if slot in IMAGE_SLOTS and name}


class ShipmentStore:
    """Owns persisted shipment rows for one database session."""
    
    def __init__(self, db: AsyncSession, images: Optional[ImageStorage] = None):
        self.db = db
        self.images = images
    
    async def get(self, shipment_id: str) -> Shipment:
        result = await self.db.execute(select(Shipment).where(Shipment.id == shipment_id))
        shipment = result.scalar_one_or_none()
        if shipment is None:
            raise ResourceNotFoundError("Shipment", shipment_id)
        return shipment
    
    async def list_all(self, c_id: Optional[int] = None) -> List[Shipment]:
        """All shipments in storage order, optionally only those of one customer."""
        query = select(Shipment)
        if c_id is not None:
            query = query.where(Shipment.c_id == c_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())
    
    async def list_for_customer(self, c_id: int) -> List[Shipment]:
        return await self.list_all(c_id=c_id)
    
    async def create(self, data: ShipmentCreate, images: Optional[Dict[str, str]] = None) -> Shipment:
        """Persist a new shipment under a freshly allocated SHP identifier."""
        fields = data.model_dump()
        fields["status"] = data.status.value
        fields["total_price"] = compute_total(data.quantity, data.price_per_unit)
        fields.update(_image_values(images))
        
        shipment = await insert_with_identifier(
            self.db,
            SHIPMENT_ID,
            lambda candidate: Shipment(id=candidate, **fields),
        )
        logger.info("Created shipment %s (total %s)", shipment.id, shipment.total_price)
        return shipment
    
    async def update(
        self,
        shipment_id: str,
        data: ShipmentUpdate,
        images: Optional[Dict[str, str]] = None
    ) -> Shipment:
        """
        Partially overwrite a shipment.
        
        Only fields set on `data` and image slots present in `images` are
        written; everything else keeps its stored value. The total is
        recomputed from the effective quantity and unit price.
        """
        current = await self.get(shipment_id)
        
        values = data.model_dump(exclude_unset=True, exclude_none=True)
        if "status" in values:
            values["status"] = data.status.value
        new_images = _image_values(images)
        values.update(new_images)
        
        quantity = values.get("quantity", current.quantity)
        price_per_unit = values.get("price_per_unit", current.price_per_unit)
        values["total_price"] = compute_total(quantity, price_per_unit)
        
        replaced = [getattr(current, slot) for slot in new_images if getattr(current, slot)]
        
        result = await self.db.execute(
            update(Shipment).where(Shipment.id == shipment_id).values(**values)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise ResourceNotFoundError("Shipment", shipment_id)
        await self.db.commit()
        await self.db.refresh(current)
        
        if self.images is not None:
            self.images.remove(replaced)
        
        logger.info("Updated shipment %s fields=%s", shipment_id, sorted(values))
        return current
    
    async def delete(self, shipment_id: str) -> None:
        """Hard delete; stored image files go with the row."""
        result = await self.db.execute(
            select(*(getattr(Shipment, slot) for slot in IMAGE_SLOTS)).where(Shipment.id == shipment_id)
        )
        stored_images = result.first()
        
        result = await self.db.execute(delete(Shipment).where(Shipment.id == shipment_id))
        if result.rowcount == 0:
            await self.db.rollback()
            raise ResourceNotFoundError("Shipment", shipment_id)
        await self.db.commit()
        
        if self.images is not None and stored_images is not None:
            self.images.remove(stored_images)
        
        logger.info("Deleted shipment %s", shipment_id)
    
    async def list_for_export(self, source: Optional[str] = None) -> List[Shipment]:
        """
        Shipments newest first for export.
        
        `source` "employee" keeps shipments carrying at least one image (filed
        from the field app), "office" keeps those without any.
        """
        has_image = or_(*(getattr(Shipment, slot).is_not(None) for slot in IMAGE_SLOTS))
        query = select(Shipment).order_by(Shipment.created_at.desc(), Shipment.id)
        if source == "employee":
            query = query.where(has_image)
        elif source == "office":
            query = query.where(~has_image)
        result = await self.db.execute(query)
        return list(result.scalars().all())
    
    async def bulk_update_status(self, ids: List[str], status: str) -> int:
        """Set one status on many shipments; returns the number of rows changed."""
        result = await self.db.execute(
            update(Shipment).where(Shipment.id.in_(ids)).values(status=status)
        )
        await self.db.commit()
        return result.rowcount
    
    async def dashboard(self, recent_limit: int = 10) -> dict:
        total = (await self.db.execute(select(func.count(Shipment.id)))).scalar()
        
        with_images = (await self.db.execute(
            select(func.count(Shipment.id)).where(
                or_(*(getattr(Shipment, slot).is_not(None) for slot in IMAGE_SLOTS))
            )
        )).scalar()
        
        breakdown_rows = await self.db.execute(
            select(Shipment.status, func.count(Shipment.id)).group_by(Shipment.status)
        )
        
        recent = await self.db.execute(
            select(Shipment).order_by(Shipment.created_at.desc(), Shipment.id).limit(recent_limit)
        )
        
        return {
            "total": total,
            "with_images": with_images,
            "without_images": total - with_images,
            "status_breakdown": {status: count for status, count in breakdown_rows.all()},
            "recent": list(recent.scalars().all()),
        }
