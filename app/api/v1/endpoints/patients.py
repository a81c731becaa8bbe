"""Patient endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentCaller, DatabaseSession
from app.schemas.patients import PatientCreate, PatientResponse, PatientUpdate
from app.services.patient_service import PatientService

router = APIRouter()


@router.get(
    "",
    response_model=list[PatientResponse],
    status_code=status.HTTP_200_OK,
    summary="List patients",
)
async def list_patients(
    caller: CurrentCaller,
    db: DatabaseSession,
    search: str | None = Query(None, description="Match name, phone or e-mail"),
) -> list[PatientResponse]:
    """
    List patients of the caller's clinic.

    Args:
        caller: Authenticated caller
        db: Database session
        search: Optional free-text filter

    Returns:
        Matching patients
    """
    return await PatientService(db).list_patients(caller, search)


@router.post(
    "",
    response_model=PatientResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register patient",
)
async def create_patient(
    data: PatientCreate,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> PatientResponse:
    """Register a patient at the caller's clinic (ADMIN or RECEPTIONIST)."""
    return await PatientService(db).create_patient(data, caller)


@router.get(
    "/me",
    response_model=PatientResponse,
    status_code=status.HTTP_200_OK,
    summary="Get own patient profile",
)
async def get_my_profile(caller: CurrentCaller, db: DatabaseSession) -> PatientResponse:
    """Get the calling patient's profile."""
    return await PatientService(db).get_own_profile(caller)


@router.get(
    "/{patient_id}",
    response_model=PatientResponse,
    status_code=status.HTTP_200_OK,
    summary="Get patient by ID",
)
async def get_patient(
    patient_id: UUID,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> PatientResponse:
    """
    Get a patient by ID.

    Doctors need an appointment with the patient; patients can only read
    their own record.
    """
    return await PatientService(db).get_patient(patient_id, caller)


@router.put(
    "/{patient_id}",
    response_model=PatientResponse,
    status_code=status.HTTP_200_OK,
    summary="Update patient",
)
async def update_patient(
    patient_id: UUID,
    data: PatientUpdate,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> PatientResponse:
    """Update patient details (ADMIN or RECEPTIONIST)."""
    return await PatientService(db).update_patient(patient_id, data, caller)
