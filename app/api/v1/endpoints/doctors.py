"""Doctor endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentCaller, DatabaseSession
from app.schemas.doctors import DoctorCreate, DoctorResponse, DoctorUpdate
from app.services.doctor_service import DoctorService

router = APIRouter()


@router.get(
    "",
    response_model=list[DoctorResponse],
    status_code=status.HTTP_200_OK,
    summary="List doctors",
)
async def list_doctors(
    caller: CurrentCaller,
    db: DatabaseSession,
    search: str | None = Query(None, description="Match specialization, license or e-mail"),
) -> list[DoctorResponse]:
    """
    List doctors of the caller's clinic.

    Args:
        caller: Authenticated caller
        db: Database session
        search: Optional free-text filter

    Returns:
        Matching doctors
    """
    return await DoctorService(db).list_doctors(caller, search)


@router.post(
    "",
    response_model=DoctorResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create doctor",
)
async def create_doctor(
    data: DoctorCreate,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> DoctorResponse:
    """Create a doctor account and profile (ADMIN or RECEPTIONIST)."""
    return await DoctorService(db).create_doctor(data, caller)


@router.get(
    "/me",
    response_model=DoctorResponse,
    status_code=status.HTTP_200_OK,
    summary="Get own doctor profile",
)
async def get_my_profile(caller: CurrentCaller, db: DatabaseSession) -> DoctorResponse:
    """Get the calling doctor's profile."""
    return await DoctorService(db).get_own_profile(caller)


@router.get(
    "/{doctor_id}",
    response_model=DoctorResponse,
    status_code=status.HTTP_200_OK,
    summary="Get doctor by ID",
)
async def get_doctor(
    doctor_id: UUID,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> DoctorResponse:
    """Get a doctor by ID."""
    return await DoctorService(db).get_doctor(doctor_id, caller)


@router.put(
    "/{doctor_id}",
    response_model=DoctorResponse,
    status_code=status.HTTP_200_OK,
    summary="Update doctor",
)
async def update_doctor(
    doctor_id: UUID,
    data: DoctorUpdate,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> DoctorResponse:
    """Update a doctor's profile, e-mail or password (ADMIN or RECEPTIONIST)."""
    return await DoctorService(db).update_doctor(doctor_id, data, caller)
