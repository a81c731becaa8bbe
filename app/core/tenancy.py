"""Clinic (tenant) scoping predicates.

Every list, count and single-row access check goes through
:func:`clinic_scope`, so a caller bound to a clinic only ever sees rows whose
clinic (direct, or through the owning user/patient/appointment) matches.
Search and filter predicates are always AND-ed with the scope, never used in
its place.
"""

from collections.abc import Callable
from uuid import UUID

from sqlalchemy import ColumnElement, Table, exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointments import appointments
from app.models.clinics import clinics
from app.models.consultations import consultations, prescriptions
from app.models.doctors import doctors
from app.models.invoices import invoices
from app.models.patients import patients
from app.models.services import services
from app.models.users import users


def _clinic_user_ids(clinic_id: UUID):
    return select(users.c.id).where(users.c.clinic_id == clinic_id)


def _clinic_appointment_ids(clinic_id: UUID):
    return select(appointments.c.id).where(appointments.c.clinic_id == clinic_id)


def patient_owned_by_clinic(clinic_id: UUID) -> ColumnElement[bool]:
    """Patients whose own user account belongs to the clinic."""
    return patients.c.user_id.in_(_clinic_user_ids(clinic_id))


def patient_id_seen_by_clinic(patient_id_column, clinic_id: UUID) -> ColumnElement[bool]:
    """
    Match patient ids linked to the clinic either through their user account
    or through any appointment booked at the clinic.

    Clinic association can be recorded on either side, so billing data is
    scoped by the union of both.
    """
    return or_(
        patient_id_column.in_(select(patients.c.id).where(patient_owned_by_clinic(clinic_id))),
        patient_id_column.in_(
            select(appointments.c.patient_id).where(appointments.c.clinic_id == clinic_id)
        ),
    )


_SCOPES: dict[str, Callable[[UUID], ColumnElement[bool]]] = {
    clinics.name: lambda cid: clinics.c.id == cid,
    users.name: lambda cid: users.c.clinic_id == cid,
    patients.name: patient_owned_by_clinic,
    doctors.name: lambda cid: doctors.c.user_id.in_(_clinic_user_ids(cid)),
    appointments.name: lambda cid: appointments.c.clinic_id == cid,
    consultations.name: lambda cid: consultations.c.appointment_id.in_(
        _clinic_appointment_ids(cid)
    ),
    prescriptions.name: lambda cid: prescriptions.c.consultation_id.in_(
        select(consultations.c.id).where(
            consultations.c.appointment_id.in_(_clinic_appointment_ids(cid))
        )
    ),
    services.name: lambda cid: services.c.clinic_id == cid,
    invoices.name: lambda cid: patient_id_seen_by_clinic(invoices.c.patient_id, cid),
}


def clinic_scope(table: Table, clinic_id: UUID | None) -> ColumnElement[bool] | None:
    """
    Build the tenant predicate for a table.

    Args:
        table: One of the clinic-owned tables
        clinic_id: Caller's clinic, or None for callers not bound to a clinic

    Returns:
        Predicate to AND into the query, or None when no scoping applies
    """
    if clinic_id is None:
        return None
    return _SCOPES[table.name](clinic_id)


def scoped(conditions: list, table: Table, clinic_id: UUID | None) -> list:
    """Return ``conditions`` with the tenant predicate for ``table`` appended."""
    scope = clinic_scope(table, clinic_id)
    if scope is None:
        return list(conditions)
    return [*conditions, scope]


async def row_in_clinic(
    db: AsyncSession,
    table: Table,
    row_id: UUID,
    clinic_id: UUID | None,
) -> bool:
    """Check whether an existing row falls inside the caller's clinic."""
    scope = clinic_scope(table, clinic_id)
    if scope is None:
        return True

    query = select(exists().where(table.c.id == row_id, scope))
    result = await db.execute(query)
    return bool(result.scalar())
