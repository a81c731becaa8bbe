"""API router configuration."""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    appointments,
    auth,
    clinics,
    consultations,
    doctors,
    health,
    invoices,
    patients,
    prescriptions,
    services,
    staff,
    stats,
    webhooks,
)

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(clinics.router, prefix="/clinic", tags=["Clinic"])
api_router.include_router(patients.router, prefix="/patients", tags=["Patients"])
api_router.include_router(doctors.router, prefix="/doctors", tags=["Doctors"])
api_router.include_router(staff.router, prefix="/staff", tags=["Staff"])
api_router.include_router(services.router, prefix="/services", tags=["Services"])
api_router.include_router(appointments.router, prefix="/appoitments", tags=["Appointments"])
# Correctly spelled alias of the route above
api_router.include_router(
    appointments.router,
    prefix="/appointments",
    tags=["Appointments"],
    include_in_schema=False,
)
api_router.include_router(consultations.router, prefix="/consultations", tags=["Consultations"])
api_router.include_router(prescriptions.router, prefix="/prescriptions", tags=["Prescriptions"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["Invoices"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
api_router.include_router(stats.router, prefix="/stats", tags=["Stats"])
