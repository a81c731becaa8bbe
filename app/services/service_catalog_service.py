"""Clinic service catalog."""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

import structlog
from sqlalchemy import delete, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, ForbiddenException, NotFoundException
from app.core.permissions import Operation, ensure_allowed
from app.core.tenancy import row_in_clinic, scoped
from app.models.services import services
from app.schemas.auth import Caller
from app.schemas.services import ServiceCreate, ServiceResponse, ServiceUpdate

logger = structlog.get_logger(__name__)


class ServiceCatalogService:
    """Service for the priced services a clinic offers."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _get_in_clinic(self, service_id: UUID, caller: Caller) -> dict:
        result = await self.db.execute(select(services).where(services.c.id == service_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Service not found")
        if not await row_in_clinic(self.db, services, service_id, caller.clinic_id):
            raise ForbiddenException("Unauthorized access to this service")
        return dict(row)

    async def list_services(
        self,
        caller: Caller,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> list[ServiceResponse]:
        """
        List catalog services of the caller's clinic.

        Args:
            caller: Resolved caller
            search: Optional match on name or description
            is_active: Optional active flag filter

        Returns:
            Services, newest first
        """
        ensure_allowed(Operation.SERVICE_VIEW, caller)

        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(
                    services.c.name.ilike(pattern),
                    services.c.description.ilike(pattern),
                )
            )
        if is_active is not None:
            conditions.append(services.c.is_active == is_active)

        query = (
            select(services)
            .where(*scoped(conditions, services, caller.clinic_id))
            .order_by(services.c.created_at.desc())
        )
        result = await self.db.execute(query)
        return [ServiceResponse.model_validate(dict(row)) for row in result.mappings()]

    async def get_service(self, service_id: UUID, caller: Caller) -> ServiceResponse:
        """Get a catalog service by ID."""
        ensure_allowed(Operation.SERVICE_VIEW, caller)
        return ServiceResponse.model_validate(await self._get_in_clinic(service_id, caller))

    async def create_service(self, data: ServiceCreate, caller: Caller) -> ServiceResponse:
        """
        Add a service to the caller's clinic (ADMIN only).

        Raises:
            BadRequestException: If the caller is not bound to a clinic
        """
        ensure_allowed(Operation.SERVICE_MANAGE, caller)
        if caller.clinic_id is None:
            raise BadRequestException("No clinic associated with this user")

        result = await self.db.execute(
            insert(services)
            .values(clinic_id=caller.clinic_id, **data.model_dump())
            .returning(services)
        )
        row = dict(result.mappings().one())
        await self.db.commit()

        logger.info("service_created", service_id=str(row["id"]), clinic_id=str(caller.clinic_id))
        return ServiceResponse.model_validate(row)

    async def update_service(
        self, service_id: UUID, data: ServiceUpdate, caller: Caller
    ) -> ServiceResponse:
        """Update a catalog service (ADMIN only)."""
        ensure_allowed(Operation.SERVICE_MANAGE, caller)
        row = await self._get_in_clinic(service_id, caller)

        values = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if not values:
            return ServiceResponse.model_validate(row)

        values["updated_at"] = datetime.now(UTC)
        result = await self.db.execute(
            update(services).where(services.c.id == service_id).values(**values).returning(services)
        )
        row = dict(result.mappings().one())
        await self.db.commit()
        return ServiceResponse.model_validate(row)

    async def delete_service(self, service_id: UUID, caller: Caller) -> None:
        """Remove a catalog service (ADMIN only)."""
        ensure_allowed(Operation.SERVICE_MANAGE, caller)
        await self._get_in_clinic(service_id, caller)

        await self.db.execute(delete(services).where(services.c.id == service_id))
        await self.db.commit()
        logger.info("service_deleted", service_id=str(service_id))

    async def current_consultation_price(self, clinic_id: UUID | None) -> Decimal | None:
        """Price of the clinic's most recently added active service, if any."""
        if clinic_id is None:
            return None

        query = (
            select(services.c.price)
            .where(services.c.clinic_id == clinic_id, services.c.is_active.is_(True))
            .order_by(services.c.created_at.desc())
            .limit(1)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()
