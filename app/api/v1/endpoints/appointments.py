"""Appointment endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.core.exceptions import BadRequestException
from app.dependencies import CurrentCaller, DatabaseSession
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentResponse,
    AppointmentUpdate,
)
from app.services.appointment_service import AppointmentService

router = APIRouter()

CURRENT_DOCTOR = "current"


def build_filters(
    patient_id: UUID | None,
    doctor_id: str | None,
    status_filter: str | None,
) -> AppointmentFilters:
    """Turn query parameters into filters; ``doctor_id=current`` means the caller."""
    if doctor_id == CURRENT_DOCTOR:
        return AppointmentFilters(patient_id=patient_id, current_doctor=True, status=status_filter)

    try:
        parsed_doctor_id = UUID(doctor_id) if doctor_id else None
    except ValueError:
        raise BadRequestException("doctor_id must be a UUID or 'current'")

    return AppointmentFilters(patient_id=patient_id, doctor_id=parsed_doctor_id, status=status_filter)


@router.get(
    "",
    response_model=list[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    caller: CurrentCaller,
    db: DatabaseSession,
    patient_id: UUID | None = Query(None),
    doctor_id: str | None = Query(None, description="Doctor UUID or 'current'"),
    status_filter: str | None = Query(None, alias="status"),
) -> list[AppointmentResponse]:
    """
    List appointments visible to the caller.

    Args:
        caller: Authenticated caller
        db: Database session
        patient_id: Filter by patient (ignored for patients)
        doctor_id: Filter by doctor, ``current`` for the calling doctor
        status_filter: Filter by status

    Returns:
        Appointments ordered by scheduled time
    """
    filters = build_filters(patient_id, doctor_id, status_filter)
    return await AppointmentService(db).list_appointments(caller, filters)


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Book an appointment.

    Args:
        data: Appointment creation data
        caller: Authenticated caller
        db: Database session

    Returns:
        Created appointment, status SCHEDULED
    """
    return await AppointmentService(db).create_appointment(data, caller)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Get a specific appointment by ID."""
    return await AppointmentService(db).get_appointment(appointment_id, caller)


@router.put(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Update an existing appointment.

    Patients may change the schedule and notes only; staff may also change
    the status.
    """
    return await AppointmentService(db).update_appointment(appointment_id, data, caller)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_200_OK,
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: UUID,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> dict[str, str]:
    """Delete an appointment."""
    await AppointmentService(db).delete_appointment(appointment_id, caller)
    return {"message": "Appointment deleted successfully"}
