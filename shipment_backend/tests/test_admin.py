"""
Admin endpoint tests: dashboard, bulk status, account approval and audit trail.
"""

import csv
import io
import pytest

from shipment_backend.app.models.enums import UserType, AccountStatus

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64

STEEL_RODS = {
    "material_Name": "Steel Rods",
    "detail": "Grade A",
    "quantity": "10",
    "price_per_unit": "250.00",
}


async def _create_shipment(client, **extra):
    response = await client.post("/add_shipment", data={**STEEL_RODS, **extra})
    assert response.status_code == 200
    return response.json()["id"]


async def test_non_admin_is_forbidden(client, customer_headers):
    response = await client.get("/admin/dashboard", headers=customer_headers)
    
    assert response.status_code == 403
    assert response.json()["message"] == "Admin access required"


async def test_dashboard(client, admin_headers):
    await _create_shipment(client)
    await _create_shipment(client, status="pending")
    
    response = await client.get("/admin/dashboard", headers=admin_headers)
    
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["with_images"] == 0
    assert body["without_images"] == 2
    assert body["status_breakdown"] == {"requested": 1, "pending": 1}
    assert {s["material_Name"] for s in body["recent"]} == {"Steel Rods"}


async def test_bulk_status_update(client, admin_headers):
    first = await _create_shipment(client)
    second = await _create_shipment(client)
    untouched = await _create_shipment(client)
    
    response = await client.patch("/admin/shipments/bulk-status", headers=admin_headers, json={
        "ids": [first, second],
        "status": "Confirmed",
    })
    
    assert response.status_code == 200
    assert response.json() == {"message": "Updated 2 records successfully", "updated": 2}
    assert (await client.get(f"/shipment/{first}")).json()["status"] == "Confirmed"
    assert (await client.get(f"/shipment/{untouched}")).json()["status"] == "requested"


async def test_bulk_status_rejects_unknown_status(client, admin_headers):
    response = await client.patch("/admin/shipments/bulk-status", headers=admin_headers, json={
        "ids": ["SHP123456"],
        "status": "lost",
    })
    
    assert response.status_code == 400


async def test_approve_pending_employee(client, admin_headers, make_user):
    employee = await make_user(
        6006, "field@mail.com", user_type=UserType.FIELD_EMPLOYEE, status=AccountStatus.PENDING_APPROVAL
    )
    
    pending = await client.get("/admin/users", headers=admin_headers, params={"status": "pending_approval"})
    assert [u["user_id"] for u in pending.json()["users"]] == [employee.user_id]
    
    approved = await client.post(f"/admin/users/{employee.user_id}/approve", headers=admin_headers)
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"
    
    login = await client.post("/login", json={"email": "field@mail.com", "password": "password123"})
    assert login.status_code == 200


async def test_reject_account(client, admin_headers, make_user):
    employee = await make_user(
        7007, "office@mail.com", user_type=UserType.OFFICE_EMPLOYEE, status=AccountStatus.PENDING_APPROVAL
    )
    
    response = await client.post(
        f"/admin/users/{employee.user_id}/reject",
        headers=admin_headers,
        json={"reason": "Unknown applicant"},
    )
    
    assert response.status_code == 200
    assert response.json()["status"] == "rejected"


async def test_approve_unknown_account_is_404(client, admin_headers):
    response = await client.post("/admin/users/9999/approve", headers=admin_headers)
    assert response.status_code == 404


async def test_list_users(client, admin_headers, customer_user):
    response = await client.get("/admin/users", headers=admin_headers)
    
    assert response.status_code == 200
    assert response.json()["total"] == 2


async def test_audit_trail_records_activity(client, admin_headers):
    shipment_id = await _create_shipment(client)
    await client.delete(f"/delete-shipment/{shipment_id}")
    await client.post("/login", json={"email": "ghost@mail.com", "password": "whatever"})
    
    response = await client.get("/admin/audit-logs", headers=admin_headers)
    
    assert response.status_code == 200
    actions = [entry["action"] for entry in response.json()]
    assert {"SHIPMENT_CREATED", "SHIPMENT_DELETED", "LOGIN_FAILED"} <= set(actions)
    
    failed = await client.get("/admin/audit-logs", headers=admin_headers, params={"action": "LOGIN_FAILED"})
    entries = failed.json()
    assert len(entries) == 1
    assert entries[0]["meta_data"] == {"reason": "User not found"}


async def test_export_json_and_source_filter(client, admin_headers):
    office = await _create_shipment(client)
    field = (await client.post("/add_shipment", data=STEEL_RODS, files={
        "image2": ("crate.png", PNG, "image/png"),
    })).json()["id"]
    
    everything = await client.get("/admin/export", headers=admin_headers)
    from_field = await client.get("/admin/export", headers=admin_headers, params={"source": "employee"})
    from_office = await client.get("/admin/export", headers=admin_headers, params={"source": "office"})
    
    assert everything.status_code == 200
    assert {s["id"] for s in everything.json()} == {office, field}
    assert [s["id"] for s in from_field.json()] == [field]
    assert [s["id"] for s in from_office.json()] == [office]
    assert from_office.json()[0]["material_Name"] == "Steel Rods"


async def test_export_csv_attachment(client, admin_headers, image_storage):
    shipment_id = await _create_shipment(client, destination="Pune")
    
    response = await client.get("/admin/export", headers=admin_headers, params={"format": "csv"})
    
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="shipments_export.csv"' in response.headers["content-disposition"]
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert len(rows) == 1
    assert rows[0]["id"] == shipment_id
    assert rows[0]["material_Name"] == "Steel Rods"
    assert rows[0]["destination"] == "Pune"
    assert float(rows[0]["total_price"]) == 2500.0
    assert rows[0]["source"] == "Office"


async def test_export_rejects_unknown_format_and_non_admin(client, admin_headers, customer_headers):
    bad_format = await client.get("/admin/export", headers=admin_headers, params={"format": "xlsx"})
    not_admin = await client.get("/admin/export", headers=customer_headers)
    
    assert bad_format.status_code == 400
    assert not_admin.status_code == 403


async def test_export_is_audited(client, admin_headers):
    await _create_shipment(client)
    await client.get("/admin/export", headers=admin_headers, params={"format": "csv"})
    
    trail = (await client.get("/admin/audit-logs", headers=admin_headers,
                              params={"action": "SHIPMENTS_EXPORTED"})).json()
    
    assert len(trail) == 1
    assert trail[0]["meta_data"] == {"format": "csv", "source": None, "count": 1}
