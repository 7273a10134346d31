"""
Admin API Endpoints.

Dashboard, shipment export, bulk shipment status changes, account approval
and the audit trail. Every route requires an Admin bearer token.
"""

import csv
import io
from typing import Optional
from fastapi import APIRouter, Depends, Query, Path, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from shipment_backend.app.db.session import get_db
from shipment_backend.app.models.user import User
from shipment_backend.app.models.enums import AccountStatus
from shipment_backend.app.schemas.admin import UserListResponse, RejectUserRequest, AuditLogResponse
from shipment_backend.app.schemas.auth import UserResponse
from shipment_backend.app.schemas.shipment import (
    BulkStatusRequest, BulkStatusResponse, DashboardResponse, ShipmentResponse
)
from shipment_backend.app.core.exceptions import ResourceNotFoundError
from shipment_backend.app.core.guards import require_admin
from shipment_backend.app.services.audit import log_event, AuditAction, get_audit_trail
from shipment_backend.app.services.shipment_store import ShipmentStore

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Shipment totals, status breakdown and the ten most recent shipments."""
    summary = await ShipmentStore(db).dashboard()
    summary["recent"] = [ShipmentResponse.model_validate(s) for s in summary["recent"]]
    return DashboardResponse(**summary)


EXPORT_COLUMNS = [
    "id", "material_Name", "detail", "quantity", "price_per_unit", "total_price",
    "destination", "pickup_location", "drop_location", "c_id", "e_id", "d_id",
    "status", "created_at", "source",
]


@router.get("/export")
async def export_shipments(
    format: str = Query("json", pattern="^(json|csv)$"),
    source: Optional[str] = Query(None, pattern="^(employee|office)$"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Export shipments, newest first, as JSON or as a CSV attachment.
    
    `source=employee` keeps shipments with images, `source=office` those without.
    """
    shipments = await ShipmentStore(db).list_for_export(source)
    
    await log_event(
        db=db,
        action=AuditAction.SHIPMENTS_EXPORTED,
        actor_id=admin["user_id"],
        actor_email=admin.get("sub"),
        entity_type="shipment",
        metadata={"format": format, "source": source, "count": len(shipments)}
    )
    
    if format == "json":
        return [ShipmentResponse.model_validate(s) for s in shipments]
    
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS)
    writer.writeheader()
    for shipment in shipments:
        row = ShipmentResponse.model_validate(shipment).model_dump(by_alias=True)
        row["created_at"] = row["created_at"].isoformat()
        row["source"] = "Employee" if shipment.images else "Office"
        writer.writerow({column: row.get(column) for column in EXPORT_COLUMNS})
    
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="shipments_export.csv"'}
    )


@router.patch("/shipments/bulk-status", response_model=BulkStatusResponse)
async def bulk_update_status(
    request: BulkStatusRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Set the same status on a list of shipments."""
    updated = await ShipmentStore(db).bulk_update_status(request.ids, request.status.value)
    
    await log_event(
        db=db,
        action=AuditAction.SHIPMENT_STATUS_BULK_UPDATED,
        actor_id=admin["user_id"],
        actor_email=admin.get("sub"),
        entity_type="shipment",
        metadata={"ids": request.ids, "status": request.status.value, "updated": updated}
    )
    
    return BulkStatusResponse(message=f"Updated {updated} records successfully", updated=updated)


@router.get("/users", response_model=UserListResponse)
async def list_users(
    status: Optional[AccountStatus] = Query(None, description="Filter by account status"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """List accounts, newest first."""
    query = select(User).order_by(User.created_at.desc(), User.id.desc())
    if status is not None:
        query = query.where(User.status == status)
    
    result = await db.execute(query)
    users = result.scalars().all()
    
    return UserListResponse(
        users=[UserResponse.model_validate(user) for user in users],
        total=len(users)
    )


async def _set_account_status(
    db: AsyncSession,
    admin: dict,
    user_id: int,
    new_status: AccountStatus,
    action: str,
    reason: Optional[str] = None
) -> UserResponse:
    result = await db.execute(select(User).where(User.user_id == user_id))
    user = result.scalar_one_or_none()
    
    if not user:
        raise ResourceNotFoundError("User", user_id)
    
    previous = user.status
    user.status = new_status
    user.rejection_reason = reason if new_status == AccountStatus.REJECTED else None
    await db.commit()
    await db.refresh(user)
    
    await log_event(
        db=db,
        action=action,
        actor_id=admin["user_id"],
        actor_email=admin.get("sub"),
        entity_type="user",
        entity_id=user.user_id,
        metadata={"previous_status": previous.value, "reason": reason}
    )
    
    return UserResponse.model_validate(user)


@router.post("/users/{user_id}/approve", response_model=UserResponse)
async def approve_user(
    user_id: int = Path(..., description="4-digit account code"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Approve a pending employee account so it can log in."""
    return await _set_account_status(db, admin, user_id, AccountStatus.APPROVED, AuditAction.USER_APPROVED)


@router.post("/users/{user_id}/reject", response_model=UserResponse)
async def reject_user(
    request: RejectUserRequest,
    user_id: int = Path(..., description="4-digit account code"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Reject an account; it can no longer log in."""
    return await _set_account_status(
        db, admin, user_id, AccountStatus.REJECTED, AuditAction.USER_REJECTED, reason=request.reason
    )


@router.get("/audit-logs", response_model=list[AuditLogResponse])
async def audit_logs(
    action: Optional[str] = Query(None, description="Filter by action"),
    limit: int = Query(100, ge=1, le=500),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Audit entries, newest first."""
    entries = await get_audit_trail(db, action=action, limit=limit)
    return [AuditLogResponse.model_validate(entry) for entry in entries]
