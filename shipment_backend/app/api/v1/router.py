"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from shipment_backend.app.api.v1.endpoints import auth, shipments, admin

router = APIRouter()

# Signup / login / logout / profile / account lookup
router.include_router(auth.router)

# Shipment record lifecycle
router.include_router(shipments.router)

# Admin dashboard, approvals and audit trail
router.include_router(admin.router)
