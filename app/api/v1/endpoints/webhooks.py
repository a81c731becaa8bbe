"""Payment provider webhook endpoints."""

from fastapi import APIRouter, Header, Request, status

from app.dependencies import DatabaseSession, PaymentGateway
from app.schemas.invoices import WebhookAck
from app.services.payment_service import PaymentService

router = APIRouter()


@router.post(
    "/stripe",
    response_model=WebhookAck,
    status_code=status.HTTP_200_OK,
    summary="Stripe webhook",
)
async def stripe_webhook(
    request: Request,
    db: DatabaseSession,
    gateway: PaymentGateway,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
) -> WebhookAck:
    """
    Receive a signed Stripe event.

    The raw body is verified against the signature before anything is
    processed; unverified deliveries are rejected with 400.
    """
    payload = await request.body()
    return await PaymentService(db, gateway).handle_webhook(payload, stripe_signature)
