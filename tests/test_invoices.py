"""Tests for invoices and the Stripe payment flow."""

import dataclasses
import json
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient

from app.core.payments import CheckoutSession
from app.services.invoice_service import InvoiceService

from conftest import checkout_completed_event, create_patient, sign_payload


async def bill(client: AsyncClient, headers, patient_id: str, amount=120) -> dict:
    response = await client.post(
        "/api/invoices",
        json={"patient_id": patient_id, "amount": amount},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def deliver(client: AsyncClient, payload: str, signature: str | None = None):
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["Stripe-Signature"] = signature
    return await client.post("/api/webhooks/stripe", content=payload, headers=headers)


@pytest.mark.asyncio
async def test_create_invoice(client: AsyncClient, receptionist, patient):
    """Test that invoices start PENDING."""
    invoice = await bill(client, receptionist["headers"], patient["id"], 120)

    assert invoice["status"] == "PENDING"
    assert invoice["amount"] == 120.0
    assert invoice["paid_at"] is None


@pytest.mark.asyncio
async def test_create_invoice_validation(client: AsyncClient, admin, patient):
    """Test that amounts must be positive."""
    response = await client.post(
        "/api/invoices",
        json={"patient_id": patient["id"], "amount": -5},
        headers=admin["headers"],
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_invoice_other_clinic_patient(client: AsyncClient, other_admin, patient):
    """Test billing a patient of another clinic."""
    response = await client.post(
        "/api/invoices",
        json={"patient_id": patient["id"], "amount": 10},
        headers=other_admin["headers"],
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_doctor_cannot_create_invoice(client: AsyncClient, doctor, patient):
    """Test that billing is a front-desk task."""
    response = await client.post(
        "/api/invoices",
        json={"patient_id": patient["id"], "amount": 10},
        headers=doctor["headers"],
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invoice_visibility(client: AsyncClient, admin, patient):
    """Test that patients only see their own invoices."""
    other = await create_patient(client, admin["headers"], "mark@acme.com", "Mark", "Twain")
    own = await bill(client, admin["headers"], patient["id"])
    foreign = await bill(client, admin["headers"], other["id"])

    response = await client.get("/api/invoices", headers=patient["headers"])
    assert [i["id"] for i in response.json()] == [own["id"]]

    response = await client.get(f"/api/invoices/{foreign['id']}", headers=patient["headers"])
    assert response.status_code == 403

    response = await client.get(
        "/api/invoices", params={"patient_id": other["id"]}, headers=admin["headers"]
    )
    assert [i["id"] for i in response.json()] == [foreign["id"]]


@pytest.mark.asyncio
async def test_get_unknown_invoice(client: AsyncClient, admin):
    """Test getting an invoice that does not exist."""
    response = await client.get(f"/api/invoices/{uuid4()}", headers=admin["headers"])

    assert response.status_code == 404
    assert response.json()["message"] == "Invoice not found"


@pytest.mark.asyncio
async def test_pay_invoice_creates_checkout(client: AsyncClient, admin, patient, gateway):
    """Test starting a checkout for a pending invoice."""
    invoice = await bill(client, admin["headers"], patient["id"], "120.00")

    response = await client.post(f"/api/invoices/{invoice['id']}/pay", headers=patient["headers"])

    assert response.status_code == 200
    data = response.json()
    assert data["session_id"] == "cs_test_1"
    assert data["url"].startswith("https://checkout.stripe.com/")
    assert gateway.created == [
        {"invoice_id": invoice["id"], "unit_amount": 12000, "customer_email": "jane@acme.com"}
    ]


@pytest.mark.asyncio
async def test_only_owner_patient_pays(client: AsyncClient, admin, patient, gateway):
    """Test that staff and other patients cannot pay an invoice."""
    invoice = await bill(client, admin["headers"], patient["id"])
    other = await create_patient(client, admin["headers"], "mark@acme.com", "Mark", "Twain")

    response = await client.post(f"/api/invoices/{invoice['id']}/pay", headers=admin["headers"])
    assert response.status_code == 403

    response = await client.post(f"/api/invoices/{invoice['id']}/pay", headers=other["headers"])
    assert response.status_code == 403

    assert gateway.created == []


@pytest.mark.asyncio
async def test_webhook_marks_invoice_paid_once(client: AsyncClient, admin, patient, gateway):
    """Test that a paid checkout settles the invoice and replays change nothing."""
    invoice = await bill(client, admin["headers"], patient["id"])
    response = await client.post(f"/api/invoices/{invoice['id']}/pay", headers=patient["headers"])
    session = gateway.complete(response.json()["session_id"], payment_intent="pi_123")

    payload = checkout_completed_event(session)
    response = await deliver(client, payload, sign_payload(payload))
    assert response.status_code == 200
    assert response.json() == {"received": True}

    response = await client.get(f"/api/invoices/{invoice['id']}", headers=patient["headers"])
    paid = response.json()
    assert paid["status"] == "PAID"
    assert paid["paid_at"] is not None
    assert paid["stripe_payment_id"] == "pi_123"

    replay = checkout_completed_event(session, event_id="evt_test_2")
    response = await deliver(client, replay, sign_payload(replay))
    assert response.status_code == 200

    response = await client.get(f"/api/invoices/{invoice['id']}", headers=patient["headers"])
    assert response.json()["paid_at"] == paid["paid_at"]
    assert response.json()["updated_at"] == paid["updated_at"]


@pytest.mark.asyncio
async def test_webhook_invalid_signature(client: AsyncClient, admin, patient, gateway):
    """Test that unverified deliveries are rejected without touching the invoice."""
    invoice = await bill(client, admin["headers"], patient["id"])
    response = await client.post(f"/api/invoices/{invoice['id']}/pay", headers=patient["headers"])
    session = gateway.complete(response.json()["session_id"])
    payload = checkout_completed_event(session)

    response = await deliver(client, payload, sign_payload(payload, secret="whsec_wrong"))
    assert response.status_code == 400
    assert response.json()["message"].startswith("Webhook Error")

    response = await deliver(client, payload)
    assert response.status_code == 400
    assert response.json()["message"] == "Missing stripe signature"

    # Signed for a different body
    response = await deliver(client, payload.replace("paid", "PAID"), sign_payload(payload))
    assert response.status_code == 400

    response = await client.get(f"/api/invoices/{invoice['id']}", headers=patient["headers"])
    assert response.json()["status"] == "PENDING"


@pytest.mark.asyncio
async def test_webhook_unpaid_checkout_then_intent_succeeded(
    client: AsyncClient, admin, patient, gateway
):
    """Test settling an asynchronous payment through payment_intent.succeeded."""
    invoice = await bill(client, admin["headers"], patient["id"])
    response = await client.post(f"/api/invoices/{invoice['id']}/pay", headers=patient["headers"])
    session_id = response.json()["session_id"]

    # Delayed payment methods complete the checkout before the money arrives
    pending = dataclasses.replace(gateway.sessions[session_id], payment_intent="pi_async")
    payload = checkout_completed_event(pending)
    response = await deliver(client, payload, sign_payload(payload))
    assert response.status_code == 200

    response = await client.get(f"/api/invoices/{invoice['id']}", headers=patient["headers"])
    assert response.json()["status"] == "PENDING"

    payload = json.dumps(
        {
            "id": "evt_test_3",
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_async", "object": "payment_intent"}},
        }
    )
    response = await deliver(client, payload, sign_payload(payload))
    assert response.status_code == 200

    response = await client.get(f"/api/invoices/{invoice['id']}", headers=patient["headers"])
    assert response.json()["status"] == "PAID"
    assert response.json()["stripe_payment_id"] == "pi_async"


@pytest.mark.asyncio
async def test_webhook_ignores_other_events(client: AsyncClient):
    """Test that unrelated events are acknowledged."""
    payload = json.dumps({"id": "evt_x", "type": "customer.created", "data": {"object": {}}})

    response = await deliver(client, payload, sign_payload(payload))

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_webhook_unknown_invoice(client: AsyncClient):
    """Test a paid checkout pointing at an invoice that does not exist."""
    session = CheckoutSession(
        id="cs_ghost",
        url=None,
        payment_status="paid",
        invoice_id=str(uuid4()),
        patient_id=None,
        payment_intent="pi_ghost",
    )
    payload = checkout_completed_event(session)

    response = await deliver(client, payload, sign_payload(payload))

    assert response.status_code == 404

@pytest.mark.asyncio
async def test_pay_settled_invoice_rejected(client: AsyncClient, admin, patient, gateway):
    """Test that a PAID invoice cannot be paid again."""
    invoice = await bill(client, admin["headers"], patient["id"])
    response = await client.post(f"/api/invoices/{invoice['id']}/pay", headers=patient["headers"])
    session = gateway.complete(response.json()["session_id"])
    payload = checkout_completed_event(session)
    await deliver(client, payload, sign_payload(payload))

    response = await client.post(f"/api/invoices/{invoice['id']}/pay", headers=patient["headers"])

    assert response.status_code == 400
    assert response.json()["message"] == "Invoice is not pending payment"
    assert len(gateway.created) == 1


@pytest.mark.asyncio
async def test_verify_payment(client: AsyncClient, admin, patient, gateway):
    """Test pull verification before and after the payer completes checkout."""
    invoice = await bill(client, admin["headers"], patient["id"])
    response = await client.post(f"/api/invoices/{invoice['id']}/pay", headers=patient["headers"])
    session_id = response.json()["session_id"]

    response = await client.post(
        "/api/invoices/verify-payment",
        json={"session_id": session_id},
        headers=patient["headers"],
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Payment not completed yet"
    assert response.json()["invoice"]["status"] == "PENDING"

    gateway.complete(session_id, payment_intent="pi_verify")
    response = await client.post(
        "/api/invoices/verify-payment",
        json={"session_id": session_id},
        headers=patient["headers"],
    )
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Invoice updated to PAID"
    assert data["payment_status"] == "paid"
    assert data["invoice"]["status"] == "PAID"
    assert data["invoice"]["stripe_payment_id"] == "pi_verify"

    response = await client.post(
        "/api/invoices/verify-payment",
        json={"session_id": session_id},
        headers=patient["headers"],
    )
    assert response.json()["message"] == "Invoice already paid"
    assert response.json()["invoice"]["paid_at"] == data["invoice"]["paid_at"]


@pytest.mark.asyncio
async def test_verify_unknown_session(client: AsyncClient, patient):
    """Test verifying a session Stripe does not know."""
    response = await client.post(
        "/api/invoices/verify-payment",
        json={"session_id": "cs_missing"},
        headers=patient["headers"],
    )

    assert response.status_code == 404


async def verify(client: AsyncClient, headers, session_id: str):
    return await client.post(
        "/api/invoices/verify-payment",
        json={"session_id": session_id},
        headers=headers,
    )


def payment_intent_succeeded_event(payment_intent: str, event_id: str = "evt_test_pi") -> str:
    return json.dumps(
        {
            "id": event_id,
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": payment_intent, "object": "payment_intent"}},
        }
    )


@pytest.mark.asyncio
async def test_webhook_after_verify_payment_changes_nothing(
    client: AsyncClient, admin, patient, gateway
):
    """Test that webhooks arriving after pull verification leave the invoice untouched."""
    invoice = await bill(client, admin["headers"], patient["id"])
    response = await client.post(f"/api/invoices/{invoice['id']}/pay", headers=patient["headers"])
    session = gateway.complete(response.json()["session_id"], payment_intent="pi_A")

    response = await verify(client, patient["headers"], session.id)
    assert response.json()["message"] == "Invoice updated to PAID"
    paid = response.json()["invoice"]

    late = dataclasses.replace(session, payment_intent="pi_B")
    payload = checkout_completed_event(late, event_id="evt_late")
    response = await deliver(client, payload, sign_payload(payload))
    assert response.status_code == 200

    payload = payment_intent_succeeded_event("pi_A")
    response = await deliver(client, payload, sign_payload(payload))
    assert response.status_code == 200

    response = await client.get(f"/api/invoices/{invoice['id']}", headers=patient["headers"])
    data = response.json()
    assert data["status"] == "PAID"
    assert data["paid_at"] == paid["paid_at"]
    assert data["stripe_payment_id"] == "pi_A"


@pytest.mark.asyncio
async def test_verify_payment_after_webhook_changes_nothing(
    client: AsyncClient, admin, patient, gateway
):
    """Test that pull verification after a webhook reports the invoice as already paid."""
    invoice = await bill(client, admin["headers"], patient["id"])
    response = await client.post(f"/api/invoices/{invoice['id']}/pay", headers=patient["headers"])
    session = gateway.complete(response.json()["session_id"], payment_intent="pi_A")

    payload = checkout_completed_event(session)
    response = await deliver(client, payload, sign_payload(payload))
    assert response.status_code == 200

    response = await client.get(f"/api/invoices/{invoice['id']}", headers=patient["headers"])
    paid = response.json()
    assert paid["stripe_payment_id"] == "pi_A"

    gateway.complete(session.id, payment_intent="pi_B")
    response = await verify(client, patient["headers"], session.id)

    data = response.json()
    assert data["message"] == "Invoice already paid"
    assert data["invoice"]["paid_at"] == paid["paid_at"]
    assert data["invoice"]["stripe_payment_id"] == "pi_A"


@pytest.mark.asyncio
async def test_verify_payment_loses_race_to_webhook(
    client: AsyncClient, admin, patient, gateway, monkeypatch
):
    """Test the message when the webhook settles the invoice between read and update."""
    invoice = await bill(client, admin["headers"], patient["id"])
    response = await client.post(f"/api/invoices/{invoice['id']}/pay", headers=patient["headers"])
    session = gateway.complete(response.json()["session_id"], payment_intent="pi_A")

    original = InvoiceService.get_accessible_row

    async def read_then_settle(self, invoice_id, operation, caller):
        row = await original(self, invoice_id, operation, caller)
        await self.mark_paid(invoice_id, "pi_webhook")
        return row

    monkeypatch.setattr(InvoiceService, "get_accessible_row", read_then_settle)

    response = await verify(client, patient["headers"], session.id)

    assert response.status_code == 200
    assert response.json()["message"] == "Invoice already paid"
    assert response.json()["invoice"]["stripe_payment_id"] == "pi_webhook"


@pytest.mark.asyncio
async def test_mark_paid_transitions_once(client: AsyncClient, db_session, admin, patient):
    """Test that the conditional update settles an invoice exactly once."""
    invoice = await bill(client, admin["headers"], patient["id"])
    invoice_id = UUID(invoice["id"])
    service = InvoiceService(db_session)

    assert await service.mark_paid(invoice_id, "pi_A") is True
    first = await service.get_row(invoice_id)

    assert await service.mark_paid(invoice_id, "pi_B") is False
    second = await service.get_row(invoice_id)

    assert second["status"] == "PAID"
    assert second["paid_at"] == first["paid_at"]
    assert second["stripe_payment_id"] == "pi_A"
