"""Database models."""

from app.models.appointments import appointments
from app.models.base import metadata
from app.models.clinics import clinics
from app.models.consultations import consultations, prescriptions
from app.models.doctors import doctors
from app.models.invoices import invoices
from app.models.patients import patients
from app.models.services import services
from app.models.users import users

__all__ = [
    "appointments",
    "clinics",
    "consultations",
    "doctors",
    "invoices",
    "metadata",
    "patients",
    "prescriptions",
    "services",
    "users",
]
