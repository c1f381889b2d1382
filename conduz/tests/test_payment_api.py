"""
Integration tests for the payment commit endpoints.
"""

import pytest
from conduz.app.models.payroll_enums import DriverType


@pytest.fixture
async def renter_setup(make_driver, make_record, make_financing):
    """Renter record worth 529.36 and a loan issued after it was computed."""
    driver = await make_driver(name="Carla Renter", driver_type=DriverType.RENTER, rental_fee="100.00")
    record = await make_record(driver, tolls="20.00")
    loan = await make_financing(driver, weeks=3)
    return driver, record, loan


async def test_commit_payment(client, admin_headers, renter_setup):
    driver, record, loan = renter_setup

    response = await client.post(f"/v1/admin/weekly-records/{record.id}/payment", json={
        "bonus_amount": 25.00,
        "discount_amount": 0,
        "notes": "  Semana 40  "
    }, headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["record"]["payment_status"] == "paid"
    assert data["payment"]["total_amount"] == 554.36
    assert data["payment"]["total_amount_cents"] == 55436
    assert data["payment"]["notes"] == "Semana 40"
    assert data["payment"]["created_by"]["username"] == "admin"
    assert data["payment"]["financing_processed"][0]["remaining_installments"] == 2

    financing = await client.get(f"/v1/admin/financing?driver_id={driver.id}", headers=admin_headers)
    assert financing.json()["financing"][0]["remaining_weeks"] == 2
    assert financing.json()["financing"][0]["status"] == "active"


async def test_repeated_commit_returns_conflict(client, admin_headers, renter_setup):
    driver, record, loan = renter_setup
    url = f"/v1/admin/weekly-records/{record.id}/payment"

    first = await client.post(url, json={"bonus_amount": 25.00}, headers=admin_headers)
    second = await client.post(url, json={"bonus_amount": 25.00}, headers=admin_headers)

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["error_code"] == "ERR_CONFLICT_001"
    assert "already marked as paid" in second.json()["message"]

    financing = await client.get(f"/v1/admin/financing?driver_id={driver.id}", headers=admin_headers)
    assert financing.json()["financing"][0]["remaining_weeks"] == 2

    payments = await client.get(f"/v1/admin/payments?driver_id={driver.id}", headers=admin_headers)
    assert payments.json()["total"] == 1


async def test_non_positive_total_is_400(client, admin_headers, renter_setup):
    _, record, _ = renter_setup

    response = await client.post(f"/v1/admin/weekly-records/{record.id}/payment", json={
        "discount_amount": 600.00
    }, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_001"

    stored = await client.get(f"/v1/admin/weekly-records/{record.id}", headers=admin_headers)
    assert stored.json()["payment_status"] == "pending"


async def test_negative_bonus_counts_as_zero(client, admin_headers, renter_setup):
    _, record, _ = renter_setup

    response = await client.post(f"/v1/admin/weekly-records/{record.id}/payment", json={
        "bonus_amount": -1
    }, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["payment"]["bonus_cents"] == 0
    assert response.json()["payment"]["total_amount_cents"] == 52936


async def test_commit_with_active_loan_returns_payment(client, admin_headers, renter_setup):
    driver, record, loan = renter_setup

    response = await client.post(f"/v1/admin/weekly-records/{record.id}/payment", json={
        "bonus_amount": 25.00
    }, headers=admin_headers)

    assert response.status_code == 200
    payment = response.json()["payment"]
    assert payment["updated_at"] == payment["created_at"]
    assert payment["financing_processed"] == [{
        "financing_id": loan.id,
        "record_id": record.id,
        "type": "loan",
        "amount": 300.0,
        "installments_paid": 1,
        "remaining_installments": 2,
        "completed": False,
    }]

    stored = await client.get(f"/v1/admin/payments/{payment['id']}", headers=admin_headers)
    assert stored.status_code == 200
    assert stored.json()["financing_processed"][0]["remaining_installments"] == 2


async def test_unknown_record_is_404(client, admin_headers):
    response = await client.post("/v1/admin/weekly-records/999/payment", json={}, headers=admin_headers)

    assert response.status_code == 404


async def test_attach_proof(client, admin_headers, renter_setup):
    _, record, _ = renter_setup
    paid = await client.post(f"/v1/admin/weekly-records/{record.id}/payment", json={}, headers=admin_headers)
    payment_id = paid.json()["payment"]["id"]

    response = await client.patch(f"/v1/admin/payments/{payment_id}/proof", json={
        "url": "https://files.conduz.pt/proofs/40.pdf",
        "storage_path": "proofs/40.pdf",
        "file_name": "40.pdf",
        "size": 1024,
        "content_type": "application/pdf"
    }, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["proof_file_name"] == "40.pdf"
    assert response.json()["total_amount_cents"] == 52936

    audit = await client.get("/v1/admin/audit-logs?action=PAYMENT_PROOF_ATTACHED", headers=admin_headers)
    assert len(audit.json()) == 1
    assert audit.json()[0]["entity_id"] == payment_id


async def test_payment_list_filters_by_week(client, admin_headers, make_driver, make_record):
    driver = await make_driver()
    week_40 = await make_record(driver, week_id="2024-W40")
    week_41 = await make_record(driver, week_id="2024-W41")
    for record in (week_40, week_41):
        await client.post(f"/v1/admin/weekly-records/{record.id}/payment", json={}, headers=admin_headers)

    response = await client.get("/v1/admin/payments?week_id=2024-W41", headers=admin_headers)

    assert response.json()["total"] == 1
    assert response.json()["payments"][0]["record_id"] == week_41.id
