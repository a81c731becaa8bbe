"""Prescription endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentCaller, DatabaseSession
from app.schemas.consultations import PrescriptionCreate, PrescriptionResponse
from app.services.prescription_service import PrescriptionService

router = APIRouter()


@router.get(
    "",
    response_model=list[PrescriptionResponse],
    status_code=status.HTTP_200_OK,
    summary="List prescriptions",
)
async def list_prescriptions(
    caller: CurrentCaller,
    db: DatabaseSession,
    consultation_id: UUID | None = Query(None),
) -> list[PrescriptionResponse]:
    """List prescriptions visible to the caller."""
    return await PrescriptionService(db).list_prescriptions(caller, consultation_id)


@router.post(
    "",
    response_model=PrescriptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue prescription",
)
async def create_prescription(
    data: PrescriptionCreate,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> PrescriptionResponse:
    """Issue a prescription for a consultation (its DOCTOR only)."""
    return await PrescriptionService(db).create_prescription(data, caller)


@router.get(
    "/{prescription_id}",
    response_model=PrescriptionResponse,
    status_code=status.HTTP_200_OK,
    summary="Get prescription",
)
async def get_prescription(
    prescription_id: UUID,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> PrescriptionResponse:
    """Get a prescription by ID."""
    return await PrescriptionService(db).get_prescription(prescription_id, caller)
