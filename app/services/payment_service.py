"""Invoice payment flow over Stripe Checkout.

An invoice reaches PAID through either of two paths, both of which end in
:meth:`InvoiceService.mark_paid`:

* pull: the client hands back the checkout session id and the session is
  fetched from Stripe;
* push: Stripe calls the webhook with a signed event.

Both may run any number of times for the same payment.
"""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException
from app.core.payments import CheckoutSession, StripeGateway, checkout_session_from_payload
from app.core.permissions import Operation
from app.schemas.auth import Caller
from app.schemas.invoices import (
    CheckoutResponse,
    InvoiceResponse,
    InvoiceStatus,
    VerifyPaymentResponse,
    WebhookAck,
)
from app.services.invoice_service import InvoiceService

logger = structlog.get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"


def parse_invoice_id(value: str | None) -> UUID:
    """
    Read the invoice id carried by a checkout session.

    Raises:
        BadRequestException: If it is missing or malformed
    """
    if not value:
        raise BadRequestException("Invoice ID not found in session")
    try:
        return UUID(value)
    except ValueError:
        raise BadRequestException("Invalid invoice ID in session")


class PaymentService:
    """Service for paying invoices through the payment provider."""

    def __init__(self, db: AsyncSession, gateway: StripeGateway):
        """Initialize service with database session and payment gateway."""
        self.db = db
        self.gateway = gateway
        self.invoices = InvoiceService(db)

    async def create_checkout(self, invoice_id: UUID, caller: Caller) -> CheckoutResponse:
        """
        Open a hosted checkout page for one of the caller's invoices.

        Args:
            invoice_id: Invoice to pay
            caller: Paying patient

        Returns:
            Checkout URL and session id

        Raises:
            ForbiddenException: If the caller is not the invoice's patient
            NotFoundException: If the invoice does not exist
            BadRequestException: If the invoice is not PENDING
        """
        invoice = await self.invoices.get_accessible_row(invoice_id, Operation.INVOICE_PAY, caller)
        if invoice["status"] != InvoiceStatus.PENDING.value:
            raise BadRequestException("Invoice is not pending payment")

        session = await self.gateway.create_checkout_session(
            invoice_id=invoice["id"],
            patient_id=invoice["patient_id"],
            amount=invoice["amount"],
            customer_email=caller.email,
        )
        return CheckoutResponse(url=session.url, session_id=session.id)

    async def verify_payment(self, session_id: str, caller: Caller) -> VerifyPaymentResponse:
        """
        Pull the checkout session from Stripe and settle its invoice if paid.

        Already paid invoices are reported as success without being touched.

        Raises:
            NotFoundException: If the session or the invoice does not exist
            BadRequestException: If the session carries no invoice id
            ForbiddenException: If the invoice is outside the caller's reach
        """
        session = await self.gateway.retrieve_checkout_session(session_id)
        invoice_id = parse_invoice_id(session.invoice_id)
        invoice = await self.invoices.get_accessible_row(
            invoice_id, Operation.INVOICE_VERIFY, caller
        )

        if invoice["status"] == InvoiceStatus.PAID.value:
            message = "Invoice already paid"
        elif session.is_paid:
            if await self.invoices.mark_paid(invoice_id, session.payment_reference):
                message = "Invoice updated to PAID"
            else:
                message = "Invoice already paid"
        else:
            message = "Payment not completed yet"

        logger.info(
            "payment_verified",
            invoice_id=str(invoice_id),
            session_id=session.id,
            payment_status=session.payment_status,
        )
        return VerifyPaymentResponse(
            message=message,
            payment_status=session.payment_status,
            invoice=InvoiceResponse.model_validate(await self.invoices.get_row(invoice_id)),
        )

    async def handle_webhook(self, payload: bytes, signature: str | None) -> WebhookAck:
        """
        Process a Stripe webhook delivery.

        Args:
            payload: Raw request body
            signature: ``Stripe-Signature`` header

        Returns:
            Acknowledgement

        Raises:
            WebhookSignatureException: If the signature does not verify
            BadRequestException: If a paid checkout carries no invoice id
            NotFoundException: If the referenced invoice does not exist
        """
        event = self.gateway.construct_event(payload, signature)
        event_type = event.get("type")
        data: dict[str, Any] = (event.get("data") or {}).get("object") or {}

        logger.info("stripe_webhook_received", event_id=event.get("id"), event_type=event_type)

        if event_type == CHECKOUT_COMPLETED:
            await self._on_checkout_completed(checkout_session_from_payload(data))
        elif event_type == PAYMENT_INTENT_SUCCEEDED:
            await self._on_payment_intent_succeeded(data.get("id"))
        else:
            logger.info("stripe_webhook_ignored", event_type=event_type)

        return WebhookAck()

    async def _on_checkout_completed(self, session: CheckoutSession) -> None:
        if not session.is_paid:
            # Keep the intent so payment_intent.succeeded can find the invoice later
            if session.payment_intent and session.invoice_id:
                try:
                    invoice_id = UUID(session.invoice_id)
                except ValueError:
                    logger.warning("stripe_webhook_bad_invoice_id", session_id=session.id)
                    return
                await self.invoices.remember_payment_reference(invoice_id, session.payment_intent)
            logger.info(
                "checkout_not_paid",
                session_id=session.id,
                payment_status=session.payment_status,
            )
            return

        invoice_id = parse_invoice_id(session.invoice_id)
        await self.invoices.get_row(invoice_id)
        await self.invoices.mark_paid(invoice_id, session.payment_reference)

    async def _on_payment_intent_succeeded(self, payment_intent_id: str | None) -> None:
        if not payment_intent_id:
            return

        invoice = await self.invoices.find_by_payment_reference(payment_intent_id)
        if invoice is None:
            logger.info("payment_intent_without_invoice", payment_intent_id=payment_intent_id)
            return

        await self.invoices.mark_paid(invoice["id"])
