"""Clinic service catalog endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentCaller, DatabaseSession
from app.schemas.services import ServiceCreate, ServiceResponse, ServiceUpdate
from app.services.service_catalog_service import ServiceCatalogService

router = APIRouter()


@router.get(
    "",
    response_model=list[ServiceResponse],
    status_code=status.HTTP_200_OK,
    summary="List services",
)
async def list_services(
    caller: CurrentCaller,
    db: DatabaseSession,
    search: str | None = Query(None, description="Match name or description"),
    is_active: bool | None = Query(None),
) -> list[ServiceResponse]:
    """
    List the caller's clinic services.

    Args:
        caller: Authenticated caller
        db: Database session
        search: Optional free-text filter
        is_active: Optional active flag filter

    Returns:
        Matching services
    """
    return await ServiceCatalogService(db).list_services(caller, search, is_active)


@router.post(
    "",
    response_model=ServiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create service",
)
async def create_service(
    data: ServiceCreate,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> ServiceResponse:
    """Add a service to the catalog (ADMIN only)."""
    return await ServiceCatalogService(db).create_service(data, caller)


@router.get(
    "/{service_id}",
    response_model=ServiceResponse,
    status_code=status.HTTP_200_OK,
    summary="Get service",
)
async def get_service(
    service_id: UUID,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> ServiceResponse:
    """Get a catalog service by ID."""
    return await ServiceCatalogService(db).get_service(service_id, caller)


@router.put(
    "/{service_id}",
    response_model=ServiceResponse,
    status_code=status.HTTP_200_OK,
    summary="Update service",
)
async def update_service(
    service_id: UUID,
    data: ServiceUpdate,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> ServiceResponse:
    """Update a catalog service (ADMIN only)."""
    return await ServiceCatalogService(db).update_service(service_id, data, caller)


@router.delete(
    "/{service_id}",
    status_code=status.HTTP_200_OK,
    summary="Delete service",
)
async def delete_service(
    service_id: UUID,
    caller: CurrentCaller,
    db: DatabaseSession,
) -> dict[str, str]:
    """Remove a catalog service (ADMIN only)."""
    await ServiceCatalogService(db).delete_service(service_id, caller)
    return {"message": "Service deleted successfully"}
