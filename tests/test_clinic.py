"""Tests for clinic settings, the service catalog and dashboard stats."""

import pytest
from httpx import AsyncClient

from conftest import book_appointment, create_doctor, create_patient


@pytest.mark.asyncio
async def test_get_clinic_with_counts(client: AsyncClient, admin, receptionist):
    """Test reading the caller's clinic."""
    response = await client.get("/api/clinic", headers=admin["headers"])

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == admin["clinic_id"]
    assert data["name"] == "Acme Clinic"
    assert data["counts"] == {"users": 2, "services": 0, "appointments": 0}


@pytest.mark.asyncio
async def test_update_clinic(client: AsyncClient, admin):
    """Test updating clinic details."""
    response = await client.put(
        "/api/clinic",
        json={"name": "Acme Health", "address": "1 Main St", "phone": "555-0000"},
        headers=admin["headers"],
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Acme Health"


@pytest.mark.asyncio
async def test_update_clinic_requires_admin(client: AsyncClient, receptionist):
    """Test that only the admin edits the clinic."""
    response = await client.put(
        "/api/clinic",
        json={"name": "Taken Over", "address": "x", "phone": "y"},
        headers=receptionist["headers"],
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_service_catalog(client: AsyncClient, admin, other_admin):
    """Test creating, filtering, updating and deleting catalog services."""
    response = await client.post(
        "/api/services",
        json={"name": "General consultation", "price": 80.0},
        headers=admin["headers"],
    )
    assert response.status_code == 201
    service = response.json()
    assert service["price"] == 80.0
    assert service["clinic_id"] == admin["clinic_id"]

    await client.post(
        "/api/services",
        json={"name": "X-ray", "price": 120.5, "is_active": False},
        headers=admin["headers"],
    )
    await client.post(
        "/api/services",
        json={"name": "Globex consultation", "price": 60},
        headers=other_admin["headers"],
    )

    response = await client.get(
        "/api/services", params={"is_active": "true"}, headers=admin["headers"]
    )
    assert [s["name"] for s in response.json()] == ["General consultation"]

    response = await client.get(
        "/api/services", params={"search": "consultation"}, headers=admin["headers"]
    )
    assert [s["id"] for s in response.json()] == [service["id"]]

    response = await client.put(
        f"/api/services/{service['id']}", json={"price": 90}, headers=admin["headers"]
    )
    assert response.status_code == 200
    assert response.json()["price"] == 90.0

    response = await client.delete(f"/api/services/{service['id']}", headers=admin["headers"])
    assert response.status_code == 200

    response = await client.get(f"/api/services/{service['id']}", headers=admin["headers"])
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_service_price_must_be_positive(client: AsyncClient, admin):
    """Test service validation."""
    response = await client.post(
        "/api/services",
        json={"name": "Free checkup", "price": 0},
        headers=admin["headers"],
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_receptionist_cannot_create_service(client: AsyncClient, receptionist):
    """Test that the catalog is managed by the admin."""
    response = await client.post(
        "/api/services",
        json={"name": "Massage", "price": 40},
        headers=receptionist["headers"],
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_other_clinic_service_forbidden(client: AsyncClient, admin, other_admin):
    """Test that a service of another clinic is not reachable."""
    response = await client.post(
        "/api/services",
        json={"name": "Globex consultation", "price": 60},
        headers=other_admin["headers"],
    )

    response = await client.get(
        f"/api/services/{response.json()['id']}", headers=admin["headers"]
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_dashboard_stats_scoped_to_clinic(client: AsyncClient, admin, other_admin):
    """Test that dashboard counts only include the caller's clinic."""
    doctor = await create_doctor(client, admin["headers"], "smith@acme.com")
    patient = await create_patient(client, admin["headers"], "jane@acme.com")
    await create_patient(client, admin["headers"], "mark@acme.com", "Mark", "Twain")
    await book_appointment(client, admin["headers"], patient["id"], doctor["id"])
    await client.post(
        "/api/invoices",
        json={"patient_id": patient["id"], "amount": 25},
        headers=admin["headers"],
    )

    other_doctor = await create_doctor(client, other_admin["headers"], "who@globex.com")
    other_patient = await create_patient(client, other_admin["headers"], "jim@globex.com")
    await book_appointment(client, other_admin["headers"], other_patient["id"], other_doctor["id"])

    response = await client.get("/api/stats", headers=admin["headers"])
    assert response.status_code == 200
    assert response.json() == {"patients": 2, "doctors": 1, "appointments": 1, "invoices": 1}

    response = await client.get("/api/stats", headers=other_admin["headers"])
    assert response.json() == {"patients": 1, "doctors": 1, "appointments": 1, "invoices": 0}
