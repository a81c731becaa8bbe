"""Role based authorization rules.

All role rules live in one table so they can be audited and tested in
isolation. Services call :func:`ensure_allowed` after they have loaded the
resource and checked its clinic; the tenant check itself lives in
:mod:`app.core.tenancy`.
"""

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from app.core.exceptions import ForbiddenException
from app.schemas.auth import Caller
from app.schemas.users import UserRole


class Operation(str, Enum):
    """Operations subject to authorization."""

    CLINIC_VIEW = "clinic:view"
    CLINIC_UPDATE = "clinic:update"
    STATS_VIEW = "stats:view"

    PATIENT_VIEW = "patient:view"
    PATIENT_VIEW_SELF = "patient:view_self"
    PATIENT_CREATE = "patient:create"
    PATIENT_UPDATE = "patient:update"

    DOCTOR_VIEW = "doctor:view"
    DOCTOR_VIEW_SELF = "doctor:view_self"
    DOCTOR_CREATE = "doctor:create"
    DOCTOR_UPDATE = "doctor:update"

    STAFF_VIEW = "staff:view"
    STAFF_MANAGE = "staff:manage"

    SERVICE_VIEW = "service:view"
    SERVICE_MANAGE = "service:manage"

    APPOINTMENT_VIEW = "appointment:view"
    APPOINTMENT_CREATE = "appointment:create"
    APPOINTMENT_UPDATE = "appointment:update"
    APPOINTMENT_CHANGE_STATUS = "appointment:change_status"
    APPOINTMENT_DELETE = "appointment:delete"

    CONSULTATION_VIEW = "consultation:view"
    CONSULTATION_CREATE = "consultation:create"
    CONSULTATION_UPDATE = "consultation:update"

    PRESCRIPTION_VIEW = "prescription:view"
    PRESCRIPTION_CREATE = "prescription:create"

    INVOICE_VIEW = "invoice:view"
    INVOICE_CREATE = "invoice:create"
    INVOICE_PAY = "invoice:pay"
    INVOICE_VERIFY = "invoice:verify"


ALL_ROLES = frozenset(UserRole)
STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.RECEPTIONIST, UserRole.DOCTOR})
FRONT_DESK = frozenset({UserRole.ADMIN, UserRole.RECEPTIONIST})
ADMIN_ONLY = frozenset({UserRole.ADMIN})
DOCTOR_ONLY = frozenset({UserRole.DOCTOR})
PATIENT_ONLY = frozenset({UserRole.PATIENT})

ROLE_RULES: dict[Operation, frozenset[UserRole]] = {
    Operation.CLINIC_VIEW: ALL_ROLES,
    Operation.CLINIC_UPDATE: ADMIN_ONLY,
    Operation.STATS_VIEW: ALL_ROLES,
    Operation.PATIENT_VIEW: ALL_ROLES,
    Operation.PATIENT_VIEW_SELF: PATIENT_ONLY,
    Operation.PATIENT_CREATE: FRONT_DESK,
    Operation.PATIENT_UPDATE: FRONT_DESK,
    Operation.DOCTOR_VIEW: ALL_ROLES,
    Operation.DOCTOR_VIEW_SELF: DOCTOR_ONLY,
    Operation.DOCTOR_CREATE: FRONT_DESK,
    Operation.DOCTOR_UPDATE: FRONT_DESK,
    Operation.STAFF_VIEW: STAFF_ROLES,
    Operation.STAFF_MANAGE: ADMIN_ONLY,
    Operation.SERVICE_VIEW: ALL_ROLES,
    Operation.SERVICE_MANAGE: ADMIN_ONLY,
    Operation.APPOINTMENT_VIEW: ALL_ROLES,
    Operation.APPOINTMENT_CREATE: ALL_ROLES,
    Operation.APPOINTMENT_UPDATE: ALL_ROLES,
    Operation.APPOINTMENT_CHANGE_STATUS: STAFF_ROLES,
    Operation.APPOINTMENT_DELETE: frozenset(
        {UserRole.ADMIN, UserRole.RECEPTIONIST, UserRole.PATIENT}
    ),
    Operation.CONSULTATION_VIEW: ALL_ROLES,
    Operation.CONSULTATION_CREATE: DOCTOR_ONLY,
    Operation.CONSULTATION_UPDATE: DOCTOR_ONLY,
    Operation.PRESCRIPTION_VIEW: ALL_ROLES,
    Operation.PRESCRIPTION_CREATE: DOCTOR_ONLY,
    Operation.INVOICE_VIEW: ALL_ROLES,
    Operation.INVOICE_CREATE: FRONT_DESK,
    Operation.INVOICE_PAY: PATIENT_ONLY,
    Operation.INVOICE_VERIFY: ALL_ROLES,
}

# A doctor may only act on resources tied to their own appointments
DOCTOR_OWNED_OPERATIONS = frozenset(
    {
        Operation.PATIENT_VIEW,
        Operation.CONSULTATION_CREATE,
        Operation.CONSULTATION_UPDATE,
        Operation.PRESCRIPTION_VIEW,
        Operation.PRESCRIPTION_CREATE,
    }
)


@dataclass(frozen=True)
class Resource:
    """Ownership facts about the row being accessed."""

    patient_id: UUID | None = None
    doctor_ids: frozenset[UUID] = field(default_factory=frozenset)

    @classmethod
    def of(cls, patient_id: UUID | None = None, doctor_id: UUID | None = None) -> "Resource":
        """Build a resource owned by one patient and (optionally) one doctor."""
        return cls(
            patient_id=patient_id,
            doctor_ids=frozenset({doctor_id}) if doctor_id else frozenset(),
        )


def authorize(operation: Operation, caller: Caller, resource: Resource | None = None) -> bool:
    """
    Decide whether the caller may perform an operation.

    Args:
        operation: Operation being attempted
        caller: Resolved caller, including their patient/doctor profile ids
        resource: Ownership of the target row, None for collection level checks

    Returns:
        True if allowed, False otherwise
    """
    if caller.role not in ROLE_RULES[operation]:
        return False

    if resource is None:
        return True

    if caller.role == UserRole.PATIENT:
        return caller.patient_id is not None and resource.patient_id == caller.patient_id

    if caller.role == UserRole.DOCTOR and operation in DOCTOR_OWNED_OPERATIONS:
        return caller.doctor_id is not None and caller.doctor_id in resource.doctor_ids

    return True


def ensure_allowed(
    operation: Operation,
    caller: Caller,
    resource: Resource | None = None,
    message: str = "You are not allowed to perform this action",
) -> None:
    """Raise ForbiddenException unless :func:`authorize` allows the operation."""
    if not authorize(operation, caller, resource):
        raise ForbiddenException(message)
