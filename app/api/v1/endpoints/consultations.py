"""Consultation endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentCaller, DatabaseSession
from app.schemas.consultations import (
    ConsultationCreate,
    ConsultationResponse,
    ConsultationUpdate,
)
from app.services.consultation_service import ConsultationService

router = APIRouter()


@router.get(
    "",
    response_model=list[ConsultationResponse],
    status_code=status.HTTP_200_OK,
    summary="List consultations",
)
async def list_consultations(
    caller: CurrentCaller,
    db: DatabaseSession,
    appointment_id: UUID | None = Query(None),
) -> list[ConsultationResponse]:
    """List consultations visible to the caller."""
    return await ConsultationService(db).list_consultations(caller, appointment_id)


@router.post(
    "",
    response_model=ConsultationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record consultation",
)
async def create_consultation(
    data: ConsultationCreate,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> ConsultationResponse:
    """
    Record the consultation for an appointment (assigned DOCTOR only).

    Completes the appointment and bills the patient.
    """
    return await ConsultationService(db).create_consultation(data, caller)


@router.get(
    "/{consultation_id}",
    response_model=ConsultationResponse,
    status_code=status.HTTP_200_OK,
    summary="Get consultation",
)
async def get_consultation(
    consultation_id: UUID,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> ConsultationResponse:
    """Get a consultation with its prescriptions."""
    return await ConsultationService(db).get_consultation(consultation_id, caller)


@router.put(
    "/{consultation_id}",
    response_model=ConsultationResponse,
    status_code=status.HTTP_200_OK,
    summary="Update consultation",
)
async def update_consultation(
    consultation_id: UUID,
    data: ConsultationUpdate,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> ConsultationResponse:
    """Update diagnosis and treatment (assigned DOCTOR only)."""
    return await ConsultationService(db).update_consultation(consultation_id, data, caller)
