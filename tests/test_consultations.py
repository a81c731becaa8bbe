"""Tests for consultations and prescriptions."""

import pytest
from httpx import AsyncClient

from conftest import create_doctor, create_patient


async def record_consultation(client: AsyncClient, headers, appointment_id: str):
    return await client.post(
        "/api/consultations",
        json={
            "appointment_id": appointment_id,
            "diagnosis": "Seasonal allergy",
            "treatment": "Antihistamines",
        },
        headers=headers,
    )


@pytest.mark.asyncio
async def test_create_consultation_completes_appointment(
    client: AsyncClient, admin, doctor, patient, appointment
):
    """Test that recording a consultation completes the appointment and bills the patient."""
    response = await record_consultation(client, doctor["headers"], appointment["id"])

    assert response.status_code == 201
    data = response.json()
    assert data["appointment_id"] == appointment["id"]
    assert data["prescriptions"] == []

    response = await client.get(f"/api/appoitments/{appointment['id']}", headers=admin["headers"])
    assert response.json()["status"] == "COMPLETED"

    response = await client.get("/api/invoices", headers=patient["headers"])
    invoices = response.json()
    assert len(invoices) == 1
    assert invoices[0]["status"] == "PENDING"
    assert invoices[0]["amount"] == 50.0


@pytest.mark.asyncio
async def test_consultation_invoice_uses_catalog_price(
    client: AsyncClient, admin, doctor, patient, appointment
):
    """Test that the consultation fee comes from the active catalog service."""
    await client.post(
        "/api/services",
        json={"name": "General consultation", "price": 75.5},
        headers=admin["headers"],
    )

    await record_consultation(client, doctor["headers"], appointment["id"])

    response = await client.get("/api/invoices", headers=patient["headers"])
    assert [i["amount"] for i in response.json()] == [75.5]


@pytest.mark.asyncio
async def test_only_assigned_doctor_records_consultation(
    client: AsyncClient, admin, appointment
):
    """Test that another doctor of the clinic cannot record the consultation."""
    other_doctor = await create_doctor(client, admin["headers"], "grey@acme.com")

    response = await record_consultation(client, other_doctor["headers"], appointment["id"])

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_staff_cannot_record_consultation(client: AsyncClient, admin, appointment):
    """Test that consultations are written by doctors."""
    response = await record_consultation(client, admin["headers"], appointment["id"])

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_duplicate_consultation(client: AsyncClient, doctor, appointment):
    """Test that an appointment has at most one consultation."""
    await record_consultation(client, doctor["headers"], appointment["id"])

    response = await record_consultation(client, doctor["headers"], appointment["id"])

    assert response.status_code == 400
    assert response.json()["message"] == "Appointment already has a consultation"


@pytest.mark.asyncio
async def test_consultation_visibility(client: AsyncClient, admin, doctor, patient, appointment):
    """Test who can read a consultation."""
    response = await record_consultation(client, doctor["headers"], appointment["id"])
    consultation_id = response.json()["id"]

    response = await client.get(f"/api/consultations/{consultation_id}", headers=patient["headers"])
    assert response.status_code == 200

    response = await client.get(f"/api/consultations/{consultation_id}", headers=admin["headers"])
    assert response.status_code == 200

    other_doctor = await create_doctor(client, admin["headers"], "grey@acme.com")
    response = await client.get(
        f"/api/consultations/{consultation_id}", headers=other_doctor["headers"]
    )
    assert response.status_code == 403

    other_patient = await create_patient(client, admin["headers"], "mark@acme.com", "Mark", "Twain")
    response = await client.get(
        f"/api/consultations/{consultation_id}", headers=other_patient["headers"]
    )
    assert response.status_code == 403

    response = await client.get("/api/consultations", headers=other_patient["headers"])
    assert response.json() == []


@pytest.mark.asyncio
async def test_update_consultation(client: AsyncClient, doctor, appointment):
    """Test amending diagnosis and treatment."""
    response = await record_consultation(client, doctor["headers"], appointment["id"])
    consultation_id = response.json()["id"]

    response = await client.put(
        f"/api/consultations/{consultation_id}",
        json={"treatment": "Rest and fluids"},
        headers=doctor["headers"],
    )

    assert response.status_code == 200
    assert response.json()["treatment"] == "Rest and fluids"
    assert response.json()["diagnosis"] == "Seasonal allergy"


@pytest.mark.asyncio
async def test_other_doctor_cannot_update_consultation(
    client: AsyncClient, admin, doctor, appointment
):
    """Test that only the assigned doctor amends a consultation."""
    response = await record_consultation(client, doctor["headers"], appointment["id"])
    consultation_id = response.json()["id"]
    other_doctor = await create_doctor(client, admin["headers"], "grey@acme.com")

    response = await client.put(
        f"/api/consultations/{consultation_id}",
        json={"diagnosis": "Something else"},
        headers=other_doctor["headers"],
    )

    assert response.status_code == 403

    response = await client.get(f"/api/consultations/{consultation_id}", headers=doctor["headers"])
    assert response.json()["diagnosis"] == "Seasonal allergy"


@pytest.mark.asyncio
async def test_prescriptions(client: AsyncClient, admin, doctor, patient, appointment):
    """Test issuing and reading prescriptions."""
    response = await record_consultation(client, doctor["headers"], appointment["id"])
    consultation_id = response.json()["id"]

    other_doctor = await create_doctor(client, admin["headers"], "grey@acme.com")
    response = await client.post(
        "/api/prescriptions",
        json={"consultation_id": consultation_id, "medications": "Aspirin 100mg"},
        headers=other_doctor["headers"],
    )
    assert response.status_code == 403

    response = await client.post(
        "/api/prescriptions",
        json={
            "consultation_id": consultation_id,
            "medications": "Cetirizine 10mg",
            "instructions": "Once daily",
        },
        headers=doctor["headers"],
    )
    assert response.status_code == 201
    prescription_id = response.json()["id"]

    response = await client.get(f"/api/prescriptions/{prescription_id}", headers=patient["headers"])
    assert response.status_code == 200
    assert response.json()["medications"] == "Cetirizine 10mg"

    response = await client.get(
        f"/api/prescriptions/{prescription_id}", headers=other_doctor["headers"]
    )
    assert response.status_code == 403

    response = await client.get(f"/api/consultations/{consultation_id}", headers=doctor["headers"])
    assert [p["id"] for p in response.json()["prescriptions"]] == [prescription_id]

    response = await client.get(
        "/api/prescriptions",
        params={"consultation_id": consultation_id},
        headers=patient["headers"],
    )
    assert [p["id"] for p in response.json()] == [prescription_id]


@pytest.mark.asyncio
async def test_other_clinic_prescription(client: AsyncClient, other_admin, doctor, appointment):
    """Test that another clinic cannot read prescriptions."""
    response = await record_consultation(client, doctor["headers"], appointment["id"])
    response = await client.post(
        "/api/prescriptions",
        json={"consultation_id": response.json()["id"], "medications": "Ibuprofen"},
        headers=doctor["headers"],
    )

    response = await client.get(
        f"/api/prescriptions/{response.json()['id']}", headers=other_admin["headers"]
    )

    assert response.status_code == 403
