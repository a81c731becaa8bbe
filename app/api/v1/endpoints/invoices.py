"""Invoice and payment endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentCaller, DatabaseSession, PaymentGateway
from app.schemas.invoices import (
    CheckoutResponse,
    InvoiceCreate,
    InvoiceFilters,
    InvoiceResponse,
    InvoiceStatus,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from app.services.invoice_service import InvoiceService
from app.services.payment_service import PaymentService

router = APIRouter()


@router.get(
    "",
    response_model=list[InvoiceResponse],
    status_code=status.HTTP_200_OK,
    summary="List invoices",
)
async def list_invoices(
    caller: CurrentCaller,
    db: DatabaseSession,
    patient_id: UUID | None = Query(None),
    status_filter: InvoiceStatus | None = Query(None, alias="status"),
) -> list[InvoiceResponse]:
    """
    List invoices visible to the caller.

    Args:
        caller: Authenticated caller
        db: Database session
        patient_id: Filter by patient (ignored for patients)
        status_filter: Filter by status

    Returns:
        Invoices, newest first
    """
    filters = InvoiceFilters(patient_id=patient_id, status=status_filter)
    return await InvoiceService(db).list_invoices(caller, filters)


@router.post(
    "",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create invoice",
)
async def create_invoice(
    data: InvoiceCreate,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> InvoiceResponse:
    """Bill a patient (ADMIN or RECEPTIONIST). Invoices start PENDING."""
    return await InvoiceService(db).create_invoice(data, caller)


@router.post(
    "/verify-payment",
    response_model=VerifyPaymentResponse,
    status_code=status.HTTP_200_OK,
    summary="Verify a checkout session",
)
async def verify_payment(
    data: VerifyPaymentRequest,
    caller: CurrentCaller,
    db: DatabaseSession,
    gateway: PaymentGateway,
) -> VerifyPaymentResponse:
    """
    Check a checkout session with Stripe and mark its invoice PAID if paid.

    Safe to call repeatedly.
    """
    return await PaymentService(db, gateway).verify_payment(data.session_id, caller)


@router.get(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    status_code=status.HTTP_200_OK,
    summary="Get invoice",
)
async def get_invoice(
    invoice_id: UUID,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> InvoiceResponse:
    """Get an invoice by ID."""
    return await InvoiceService(db).get_invoice(invoice_id, caller)


@router.post(
    "/{invoice_id}/pay",
    response_model=CheckoutResponse,
    status_code=status.HTTP_200_OK,
    summary="Pay invoice",
)
async def pay_invoice(
    invoice_id: UUID,
    caller: CurrentCaller,
    db: DatabaseSession,
    gateway: PaymentGateway,
) -> CheckoutResponse:
    """
    Start a Stripe checkout for one of the caller's PENDING invoices.

    Args:
        invoice_id: Invoice to pay
        caller: Authenticated patient
        db: Database session
        gateway: Payment gateway

    Returns:
        Checkout URL and session id
    """
    return await PaymentService(db, gateway).create_checkout(invoice_id, caller)
