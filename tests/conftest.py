"""Pytest configuration and fixtures."""

import dataclasses
import hashlib
import hmac
import json
import os
import time
from collections.abc import AsyncGenerator
from decimal import Decimal
from typing import Any
from unittest.mock import MagicMock
from uuid import UUID

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_FORMAT"] = "console"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.exceptions import NotFoundException
from app.core.payments import CheckoutSession, StripeGateway, get_payment_gateway, to_minor_units
from app.core.redis_client import get_redis_client
from app.database import get_db
from app.main import app
from app.models import metadata

WEBHOOK_SECRET = "whsec_test_secret"
PASSWORD = "secret123"


class FakeStripeGateway(StripeGateway):
    """Stripe gateway that keeps checkout sessions in memory.

    Webhook signature verification is inherited unchanged.
    """

    def __init__(self):
        super().__init__(
            api_key="sk_test_fake",
            webhook_secret=WEBHOOK_SECRET,
            currency="usd",
            frontend_url="http://localhost:3000",
        )
        self.created: list[dict[str, Any]] = []
        self.sessions: dict[str, CheckoutSession] = {}

    async def create_checkout_session(
        self,
        *,
        invoice_id: UUID,
        patient_id: UUID,
        amount: Decimal,
        customer_email: str | None,
    ) -> CheckoutSession:
        session_id = f"cs_test_{len(self.created) + 1}"
        session = CheckoutSession(
            id=session_id,
            url=f"https://checkout.stripe.com/c/pay/{session_id}",
            payment_status="unpaid",
            invoice_id=str(invoice_id),
            patient_id=str(patient_id),
            payment_intent=None,
        )
        self.created.append(
            {
                "invoice_id": str(invoice_id),
                "unit_amount": to_minor_units(amount),
                "customer_email": customer_email,
            }
        )
        self.sessions[session_id] = session
        return session

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        if session_id not in self.sessions:
            raise NotFoundException("Stripe session not found")
        return self.sessions[session_id]

    def complete(self, session_id: str, payment_intent: str = "pi_test_1") -> CheckoutSession:
        """Simulate the payer finishing the checkout."""
        session = dataclasses.replace(
            self.sessions[session_id], payment_status="paid", payment_intent=payment_intent
        )
        self.sessions[session_id] = session
        return session


def make_redis_mock() -> MagicMock:
    """Redis stand-in backed by a dict, enough for rate limiting and revocation."""
    store: dict[str, Any] = {}
    redis_mock = MagicMock()
    redis_mock.get.side_effect = store.get
    redis_mock.setex.side_effect = lambda key, ttl, value: store.__setitem__(key, value)
    redis_mock.incr.side_effect = lambda key: store.__setitem__(key, int(store[key]) + 1)
    redis_mock.exists.side_effect = lambda key: int(key in store)
    return redis_mock


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header for a payload."""
    timestamp = timestamp or int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{payload}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def checkout_completed_event(session: CheckoutSession, event_id: str = "evt_test_1") -> str:
    """Serialize a checkout.session.completed event for a session."""
    return json.dumps(
        {
            "id": event_id,
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": session.id,
                    "object": "checkout.session",
                    "payment_status": session.payment_status,
                    "payment_intent": session.payment_intent,
                    "client_reference_id": session.invoice_id,
                    "metadata": {
                        "invoice_id": session.invoice_id,
                        "patient_id": session.patient_id,
                    },
                }
            },
        }
    )


async def register_clinic(client: AsyncClient, name: str, email: str) -> dict[str, Any]:
    """Register a clinic and log its admin in."""
    response = await client.post(
        "/api/auth/register",
        json={"email": email, "password": PASSWORD, "clinic_name": name},
    )
    assert response.status_code == 201, response.text
    data = response.json()
    return {
        "clinic_id": data["clinic_id"],
        "user_id": data["user"]["id"],
        "headers": await login(client, email),
    }


async def login(client: AsyncClient, email: str, password: str = PASSWORD) -> dict[str, str]:
    """Log in and return bearer headers."""
    response = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


async def create_doctor(
    client: AsyncClient,
    headers: dict[str, str],
    email: str,
    specialization: str = "General Practice",
) -> dict[str, Any]:
    """Create a doctor through the API and log them in."""
    response = await client.post(
        "/api/doctors",
        json={
            "email": email,
            "password": PASSWORD,
            "specialization": specialization,
            "license_number": f"LIC-{email.split('@')[0].upper()}",
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return {"id": response.json()["id"], "headers": await login(client, email)}


async def create_patient(
    client: AsyncClient,
    headers: dict[str, str],
    email: str,
    first_name: str = "Jane",
    last_name: str = "Doe",
) -> dict[str, Any]:
    """Create a patient through the API and log them in."""
    response = await client.post(
        "/api/patients",
        json={
            "email": email,
            "password": PASSWORD,
            "first_name": first_name,
            "last_name": last_name,
            "date_of_birth": "1990-05-17",
            "phone": "555-0100",
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return {"id": response.json()["id"], "headers": await login(client, email)}


async def book_appointment(
    client: AsyncClient,
    headers: dict[str, str],
    patient_id: str,
    doctor_id: str,
    scheduled_at: str = "2030-01-15T10:00:00",
) -> dict[str, Any]:
    """Book an appointment through the API."""
    response = await client.post(
        "/api/appoitments",
        json={"patient_id": patient_id, "doctor_id": doctor_id, "scheduled_at": scheduled_at},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def redis_mock() -> MagicMock:
    """Dict backed Redis mock."""
    return make_redis_mock()


@pytest.fixture
def gateway() -> FakeStripeGateway:
    """In-memory payment gateway."""
    return FakeStripeGateway()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    redis_mock: MagicMock,
    gateway: FakeStripeGateway,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database, Redis and Stripe overridden."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis_client] = lambda: redis_mock
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin(client: AsyncClient) -> dict[str, Any]:
    """Admin of the Acme clinic."""
    return await register_clinic(client, "Acme Clinic", "admin@acme.com")


@pytest_asyncio.fixture
async def other_admin(client: AsyncClient) -> dict[str, Any]:
    """Admin of a second, unrelated clinic."""
    return await register_clinic(client, "Globex Clinic", "admin@globex.com")


@pytest_asyncio.fixture
async def receptionist(client: AsyncClient, admin: dict[str, Any]) -> dict[str, Any]:
    """Receptionist at the Acme clinic."""
    response = await client.post(
        "/api/staff",
        json={"email": "desk@acme.com", "password": PASSWORD},
        headers=admin["headers"],
    )
    assert response.status_code == 201, response.text
    return {"id": response.json()["id"], "headers": await login(client, "desk@acme.com")}


@pytest_asyncio.fixture
async def doctor(client: AsyncClient, admin: dict[str, Any]) -> dict[str, Any]:
    """Doctor at the Acme clinic."""
    return await create_doctor(client, admin["headers"], "smith@acme.com", "Cardiology")


@pytest_asyncio.fixture
async def patient(client: AsyncClient, admin: dict[str, Any]) -> dict[str, Any]:
    """Patient at the Acme clinic."""
    return await create_patient(client, admin["headers"], "jane@acme.com")


@pytest_asyncio.fixture
async def appointment(
    client: AsyncClient,
    admin: dict[str, Any],
    doctor: dict[str, Any],
    patient: dict[str, Any],
) -> dict[str, Any]:
    """Scheduled appointment between the Acme patient and doctor."""
    return await book_appointment(client, admin["headers"], patient["id"], doctor["id"])
