"""Staff (receptionist) endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentCaller, DatabaseSession
from app.schemas.users import StaffCreate, StaffUpdate, UserResponse
from app.services.staff_service import StaffService

router = APIRouter()


@router.get(
    "",
    response_model=list[UserResponse],
    status_code=status.HTTP_200_OK,
    summary="List receptionists",
)
async def list_staff(
    caller: CurrentCaller,
    db: DatabaseSession,
    search: str | None = Query(None, description="Match e-mail"),
) -> list[UserResponse]:
    """List receptionists of the caller's clinic."""
    return await StaffService(db).list_staff(caller, search)


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create receptionist",
)
async def create_staff(
    data: StaffCreate,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> UserResponse:
    """Create a receptionist account (ADMIN only)."""
    return await StaffService(db).create_staff(data, caller)


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get receptionist",
)
async def get_staff(user_id: UUID, caller: CurrentCaller, db: DatabaseSession) -> UserResponse:
    """Get a receptionist by user ID."""
    return await StaffService(db).get_staff(user_id, caller)


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Update receptionist",
)
async def update_staff(
    user_id: UUID,
    data: StaffUpdate,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> UserResponse:
    """Change a receptionist's e-mail or password (ADMIN only)."""
    return await StaffService(db).update_staff(user_id, data, caller)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_200_OK,
    summary="Delete receptionist",
)
async def delete_staff(user_id: UUID, caller: CurrentCaller, db: DatabaseSession) -> dict[str, str]:
    """Delete a receptionist account (ADMIN only)."""
    await StaffService(db).delete_staff(user_id, caller)
    return {"message": "Staff member deleted successfully"}
