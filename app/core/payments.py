"""Stripe Checkout integration."""

import json
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from typing import Any
from uuid import UUID

import stripe
from starlette.concurrency import run_in_threadpool
from structlog import get_logger

from app.config import settings
from app.core.exceptions import (
    AppException,
    BadRequestException,
    NotFoundException,
    WebhookSignatureException,
)

logger = get_logger(__name__)

PAID = "paid"


@dataclass(frozen=True)
class CheckoutSession:
    """The parts of a Stripe checkout session this application relies on."""

    id: str
    url: str | None
    payment_status: str
    invoice_id: str | None
    patient_id: str | None
    payment_intent: str | None

    @property
    def is_paid(self) -> bool:
        """Whether Stripe reports the session as paid."""
        return self.payment_status == PAID

    @property
    def payment_reference(self) -> str:
        """Reference stored on the invoice: the payment intent, else the session."""
        return self.payment_intent or self.id


def to_minor_units(amount: Decimal) -> int:
    """Convert a currency amount to Stripe's integer minor units (cents)."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def checkout_session_from_payload(data: Any) -> CheckoutSession:
    """
    Normalize a checkout session, either an SDK object or a webhook dict.

    The invoice id is read from the session metadata, falling back to
    ``client_reference_id``.
    """
    metadata = data.get("metadata") or {}
    payment_intent = data.get("payment_intent")
    if payment_intent is not None and not isinstance(payment_intent, str):
        payment_intent = payment_intent["id"]

    return CheckoutSession(
        id=data["id"],
        url=data.get("url"),
        payment_status=data.get("payment_status") or "unpaid",
        invoice_id=metadata.get("invoice_id") or data.get("client_reference_id"),
        patient_id=metadata.get("patient_id"),
        payment_intent=payment_intent,
    )


class StripeGateway:
    """Thin wrapper around the Stripe SDK; blocking calls run in a threadpool."""

    def __init__(self, api_key: str, webhook_secret: str, currency: str, frontend_url: str):
        """Initialize gateway; the SDK client is created on first use."""
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.currency = currency
        self.frontend_url = frontend_url.rstrip("/")
        self._client: stripe.StripeClient | None = None

    @property
    def client(self) -> stripe.StripeClient:
        """Get the Stripe SDK client."""
        if self._client is None:
            if not self.api_key:
                raise AppException("Payment provider is not configured", status_code=500)
            self._client = stripe.StripeClient(self.api_key)
        return self._client

    async def create_checkout_session(
        self,
        *,
        invoice_id: UUID,
        patient_id: UUID,
        amount: Decimal,
        customer_email: str | None,
    ) -> CheckoutSession:
        """
        Create a hosted checkout page for an invoice.

        Args:
            invoice_id: Invoice being paid, carried as metadata and client reference
            patient_id: Paying patient, carried as metadata
            amount: Invoice amount in major currency units
            customer_email: Pre-filled payer e-mail

        Returns:
            The created checkout session
        """
        params: dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": self.currency,
                        "product_data": {
                            "name": f"Invoice #{str(invoice_id)[:8]}",
                            "description": f"Medical invoice - {amount:.2f}",
                        },
                        "unit_amount": to_minor_units(amount),
                    },
                    "quantity": 1,
                }
            ],
            "success_url": (
                f"{self.frontend_url}/patient/invoices"
                "?payment=success&session_id={CHECKOUT_SESSION_ID}"
            ),
            "cancel_url": f"{self.frontend_url}/patient/invoices?payment=cancelled",
            "client_reference_id": str(invoice_id),
            "metadata": {
                "invoice_id": str(invoice_id),
                "patient_id": str(patient_id),
            },
        }
        if customer_email:
            params["customer_email"] = customer_email

        session = await run_in_threadpool(self.client.checkout.sessions.create, params=params)
        logger.info("checkout_session_created", invoice_id=str(invoice_id), session_id=session.id)
        return checkout_session_from_payload(session)

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        """
        Fetch a checkout session from Stripe.

        Raises:
            NotFoundException: If Stripe does not know the session
        """
        try:
            session = await run_in_threadpool(self.client.checkout.sessions.retrieve, session_id)
        except stripe.InvalidRequestError as e:
            logger.warning("checkout_session_not_found", session_id=session_id, error=str(e))
            raise NotFoundException("Stripe session not found")
        return checkout_session_from_payload(session)

    def construct_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """
        Verify a webhook signature and decode the event.

        Args:
            payload: Raw request body, exactly as received
            signature: Value of the ``Stripe-Signature`` header

        Returns:
            Decoded event

        Raises:
            WebhookSignatureException: If the signature is missing or invalid
        """
        if not signature:
            raise WebhookSignatureException("Missing stripe signature")

        if not self.webhook_secret:
            logger.error("stripe_webhook_secret_missing")
            raise AppException("Webhook secret not configured", status_code=500)

        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                signature,
                self.webhook_secret,
                stripe.Webhook.DEFAULT_TOLERANCE,
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            logger.warning("stripe_webhook_signature_invalid", error=str(e))
            raise WebhookSignatureException(f"Webhook Error: {e!s}")

        try:
            return json.loads(payload)
        except ValueError:
            raise BadRequestException("Webhook payload is not valid JSON")


@lru_cache
def get_payment_gateway() -> StripeGateway:
    """Get the process wide Stripe gateway."""
    return StripeGateway(
        api_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        currency=settings.stripe_currency,
        frontend_url=settings.frontend_url,
    )
