"""Invoice service: billing records and the PENDING -> PAID transition."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenException, NotFoundException
from app.core.permissions import Operation, Resource, ensure_allowed
from app.core.tenancy import row_in_clinic, scoped
from app.models.invoices import invoices
from app.models.patients import patients
from app.schemas.auth import Caller
from app.schemas.invoices import InvoiceCreate, InvoiceFilters, InvoiceResponse, InvoiceStatus
from app.schemas.users import UserRole

logger = structlog.get_logger(__name__)


class InvoiceService:
    """Service for managing invoices."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_row(self, invoice_id: UUID) -> dict:
        """
        Load an invoice without access checks.

        Raises:
            NotFoundException: If the invoice does not exist
        """
        result = await self.db.execute(select(invoices).where(invoices.c.id == invoice_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Invoice not found")
        return dict(row)

    async def get_accessible_row(self, invoice_id: UUID, operation: Operation, caller: Caller) -> dict:
        """
        Load an invoice the caller may act on.

        Raises:
            NotFoundException: If the invoice does not exist
            ForbiddenException: If it is outside the caller's clinic or, for
                patients, not their own
        """
        ensure_allowed(operation, caller)
        row = await self.get_row(invoice_id)

        if not await row_in_clinic(self.db, invoices, invoice_id, caller.clinic_id):
            raise ForbiddenException("Unauthorized access to this invoice")

        ensure_allowed(
            operation,
            caller,
            Resource.of(row["patient_id"]),
            "Unauthorized access to this invoice",
        )
        return row

    async def list_invoices(self, caller: Caller, filters: InvoiceFilters) -> list[InvoiceResponse]:
        """
        List invoices in the caller's clinic; patients only see their own.

        Args:
            caller: Resolved caller
            filters: Patient and status filters

        Returns:
            Invoices, newest first
        """
        ensure_allowed(Operation.INVOICE_VIEW, caller)

        conditions: list[Any] = []
        if caller.role == UserRole.PATIENT:
            if caller.patient_id is None:
                return []
            conditions.append(invoices.c.patient_id == caller.patient_id)
        elif filters.patient_id:
            conditions.append(invoices.c.patient_id == filters.patient_id)

        if filters.status:
            conditions.append(invoices.c.status == filters.status.value)

        query = (
            select(invoices)
            .where(*scoped(conditions, invoices, caller.clinic_id))
            .order_by(invoices.c.created_at.desc())
        )
        result = await self.db.execute(query)
        return [InvoiceResponse.model_validate(dict(row)) for row in result.mappings()]

    async def get_invoice(self, invoice_id: UUID, caller: Caller) -> InvoiceResponse:
        """Get an invoice by ID."""
        return InvoiceResponse.model_validate(
            await self.get_accessible_row(invoice_id, Operation.INVOICE_VIEW, caller)
        )

    async def create_invoice(self, data: InvoiceCreate, caller: Caller) -> InvoiceResponse:
        """
        Bill a patient of the caller's clinic.

        Raises:
            ForbiddenException: If the caller is not front-desk staff or the
                patient belongs to another clinic
            NotFoundException: If the patient does not exist
        """
        ensure_allowed(Operation.INVOICE_CREATE, caller)

        result = await self.db.execute(select(patients.c.id).where(patients.c.id == data.patient_id))
        if result.first() is None:
            raise NotFoundException("Patient not found")
        if not await row_in_clinic(self.db, patients, data.patient_id, caller.clinic_id):
            raise ForbiddenException("Unauthorized access to this patient")

        return await self.raise_invoice(data.patient_id, data.amount)

    async def raise_invoice(self, patient_id: UUID, amount: Decimal) -> InvoiceResponse:
        """Create a PENDING invoice and commit."""
        result = await self.db.execute(
            insert(invoices)
            .values(
                patient_id=patient_id,
                amount=amount,
                status=InvoiceStatus.PENDING.value,
            )
            .returning(invoices)
        )
        row = dict(result.mappings().one())
        await self.db.commit()

        logger.info(
            "invoice_created",
            invoice_id=str(row["id"]),
            patient_id=str(patient_id),
            amount=str(amount),
        )
        return InvoiceResponse.model_validate(row)

    async def mark_paid(self, invoice_id: UUID, payment_reference: str | None = None) -> bool:
        """
        Move an invoice from PENDING to PAID.

        The update is conditional on the current status, so concurrent or
        repeated calls transition the invoice at most once and never touch a
        PAID invoice's timestamp or reference.

        Args:
            invoice_id: Invoice to settle
            payment_reference: Provider reference to store, None keeps the stored one

        Returns:
            True if this call performed the transition
        """
        values: dict[str, Any] = {
            "status": InvoiceStatus.PAID.value,
            "paid_at": datetime.now(UTC),
            "updated_at": datetime.now(UTC),
        }
        if payment_reference:
            values["stripe_payment_id"] = payment_reference

        result = await self.db.execute(
            update(invoices)
            .where(
                invoices.c.id == invoice_id,
                invoices.c.status == InvoiceStatus.PENDING.value,
            )
            .values(**values)
        )
        await self.db.commit()

        transitioned = result.rowcount == 1
        if transitioned:
            logger.info("invoice_marked_paid", invoice_id=str(invoice_id))
        else:
            logger.info("invoice_already_settled", invoice_id=str(invoice_id))
        return transitioned

    async def remember_payment_reference(self, invoice_id: UUID, payment_reference: str) -> bool:
        """Store a provider reference on a PENDING invoice that has none yet."""
        result = await self.db.execute(
            update(invoices)
            .where(
                invoices.c.id == invoice_id,
                invoices.c.status == InvoiceStatus.PENDING.value,
                invoices.c.stripe_payment_id.is_(None),
            )
            .values(stripe_payment_id=payment_reference, updated_at=datetime.now(UTC))
        )
        await self.db.commit()
        return result.rowcount == 1

    async def find_by_payment_reference(self, payment_reference: str) -> dict | None:
        """Find the invoice carrying a provider payment reference."""
        result = await self.db.execute(
            select(invoices).where(invoices.c.stripe_payment_id == payment_reference).limit(1)
        )
        row = result.mappings().first()
        return dict(row) if row else None
