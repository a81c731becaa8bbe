"""Clinic settings endpoints."""

from fastapi import APIRouter, status

from app.dependencies import CurrentCaller, DatabaseSession
from app.schemas.clinics import ClinicResponse, ClinicUpdate
from app.services.clinic_service import ClinicService

router = APIRouter()


@router.get(
    "",
    response_model=ClinicResponse,
    status_code=status.HTTP_200_OK,
    summary="Get own clinic",
)
async def get_clinic(caller: CurrentCaller, db: DatabaseSession) -> ClinicResponse:
    """
    Get the caller's clinic with related counts.

    Returns 404 when the caller is not bound to a clinic.
    """
    return await ClinicService(db).get_clinic(caller)


@router.put(
    "",
    response_model=ClinicResponse,
    status_code=status.HTTP_200_OK,
    summary="Update own clinic",
)
async def update_clinic(
    data: ClinicUpdate,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> ClinicResponse:
    """Update name, address and phone of the caller's clinic (ADMIN only)."""
    return await ClinicService(db).update_clinic(data, caller)
